import pytest

from kart_remote.app import create_control_core
from kart_remote.config import ControlConfig, KartProfile, LinkConfig
from kart_remote.encoding import MotorEncoding
from kart_remote.link.session import ConnectionState

pytest.importorskip("PySide6.QtBluetooth")


def test_control_core_is_wired_from_profile() -> None:
    profile = KartProfile(
        link=LinkConfig(),
        control=ControlConfig(motor_encoding=MotorEncoding.SIGNED_OFFSET, dual_pedal=True),
    )
    core = create_control_core(profile)
    assert core.session.motor_encoding is MotorEncoding.SIGNED_OFFSET
    assert core.session.state is ConnectionState.DISCONNECTED
    assert core.snapshot.brake_available
