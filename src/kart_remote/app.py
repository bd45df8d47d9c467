import logging
import sys

from PySide6.QtWidgets import QApplication

from .config import KartProfile, load_kart_profile
from .control import ControlCore
from .link.session import LinkSession
from .tilt import QtTiltSource

APP_NAME = "Kart Remote"
APP_VERSION = "0.1.0"


def create_application() -> QApplication:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s - %(message)s")
    app = QApplication(sys.argv)
    app.setApplicationName(APP_NAME)
    app.setApplicationVersion(APP_VERSION)
    return app


def create_control_core(profile: KartProfile | None = None) -> ControlCore:
    """Wire the BLE transport, tilt sensor and control core from the saved profile."""
    # Local import keeps QtBluetooth out of the config and test import paths.
    from .link.ble import QtBleTransport

    profile = profile or load_kart_profile()
    transport = QtBleTransport(discovery_timeout_ms=profile.link.discovery_timeout_ms)
    session = LinkSession(
        transport,
        profile.link.identifiers,
        motor_encoding=profile.control.motor_encoding,
    )
    return ControlCore(session, control=profile.control, tilt_source=QtTiltSource())


def create_main_window(core: ControlCore) -> "ControlWindow":
    from .ui.control_window import ControlWindow  # Local import avoids circular/reference timing issues.

    return ControlWindow(core, app_name=APP_NAME, version=APP_VERSION)
