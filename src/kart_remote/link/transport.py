"""Transport collaborator interface.

The session only ever talks to these protocols; the QtBluetooth adapter in
:mod:`kart_remote.link.ble` implements them for real hardware and the tests
provide in-memory fakes.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol


# Kart firmware GATT identifiers
DEFAULT_SERVICE_UUID: str = "4fafc201-1fb5-459e-8fcc-c5c9c331914b"
DEFAULT_STEERING_UUID: str = "beb5483e-36e1-4688-b7f5-ea07361b26a8"
DEFAULT_MOTOR_UUID: str = "beb5483e-36e1-4688-b7f5-ea07361b26a9"

DEFAULT_DEVICE_NAME: str = "Kart"

DEFAULT_DISCOVERY_TIMEOUT_MS: int = 10000
"""How long device discovery runs before giving up."""


@dataclass(frozen=True, slots=True)
class LinkIdentifiers:
    """The service and the two write channels exposed by the kart."""

    service_uuid: str = DEFAULT_SERVICE_UUID
    steering_uuid: str = DEFAULT_STEERING_UUID
    motor_uuid: str = DEFAULT_MOTOR_UUID


class Channel(Protocol):
    async def write(self, payload: bytes) -> None:
        """Write one payload; raise ``WriteFailed`` if the write is rejected."""
        ...


class DeviceLink(Protocol):
    async def get_channel(self, service_uuid: str, channel_uuid: str) -> Channel:
        ...

    def set_disconnect_handler(self, handler: Callable[[], None]) -> None:
        """Register the callback invoked when the link drops on its own."""
        ...

    async def close(self) -> None:
        ...


class Device(Protocol):
    @property
    def name(self) -> str:
        ...

    async def connect(self) -> DeviceLink:
        ...


class Transport(Protocol):
    async def request_device(self, service_uuid: str) -> Device:
        """Find a device advertising ``service_uuid``.

        Raises:
            ConnectionFailed: If no device was selected or found.
        """
        ...
