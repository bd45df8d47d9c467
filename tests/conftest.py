"""Shared fixtures: a Qt application for timers and in-memory link/sensor fakes."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Optional

import pytest
from PySide6.QtCore import QCoreApplication

from kart_remote.link.session import ConnectionFailed, WriteFailed
from kart_remote.link.transport import DEFAULT_MOTOR_UUID, DEFAULT_STEERING_UUID
from kart_remote.tilt import TiltSample


@pytest.fixture(scope="session", autouse=True)
def qapp() -> QCoreApplication:
    """QTimer needs an application instance to start."""
    return QCoreApplication.instance() or QCoreApplication([])


# ============================================================================
# Transport fakes
# ============================================================================


class FakeChannel:
    def __init__(self) -> None:
        self.writes: list[bytes] = []
        self.fail_next = 0

    async def write(self, payload: bytes) -> None:
        if self.fail_next:
            self.fail_next -= 1
            raise WriteFailed("Characteristic write rejected")
        self.writes.append(payload)


class FakeLink:
    def __init__(self) -> None:
        self.channels = {
            DEFAULT_STEERING_UUID: FakeChannel(),
            DEFAULT_MOTOR_UUID: FakeChannel(),
        }
        self.handler: Optional[Callable[[], None]] = None
        self.closed = False
        self.gate: Optional[asyncio.Event] = None

    @property
    def steering(self) -> FakeChannel:
        return self.channels[DEFAULT_STEERING_UUID]

    @property
    def motor(self) -> FakeChannel:
        return self.channels[DEFAULT_MOTOR_UUID]

    async def get_channel(self, service_uuid: str, channel_uuid: str) -> FakeChannel:
        if self.gate is not None:
            await self.gate.wait()
        try:
            return self.channels[channel_uuid]
        except KeyError:
            raise ConnectionFailed(f"Characteristic {channel_uuid} not found on the kart") from None

    def set_disconnect_handler(self, handler: Callable[[], None]) -> None:
        self.handler = handler

    async def close(self) -> None:
        self.closed = True

    def drop(self) -> None:
        """Simulate the kart going out of range."""
        assert self.handler is not None
        self.handler()


class FakeDevice:
    def __init__(self, link: FakeLink, name: str = "Kart-42") -> None:
        self._link = link
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    async def connect(self) -> FakeLink:
        return self._link


class FakeTransport:
    """Hands out one link per ``request_device`` call, or raises ``error``."""

    def __init__(self, *links: FakeLink, name: str = "Kart-42") -> None:
        self.links = list(links) or [FakeLink()]
        self.name = name
        self.error: Optional[BaseException] = None
        self.gate: Optional[asyncio.Event] = None
        self.requests: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def link(self) -> FakeLink:
        return self.links[0]

    async def request_device(self, service_uuid: str) -> FakeDevice:
        self.requests.append(service_uuid)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
        finally:
            self.in_flight -= 1
        if self.error is not None:
            raise self.error
        link = self.links[min(len(self.requests), len(self.links)) - 1]
        return FakeDevice(link, self.name)


# ============================================================================
# Sensor fake
# ============================================================================


class FakeTiltSource:
    def __init__(self, *, granted: bool = True) -> None:
        self.granted = granted
        self.callback: Optional[Callable[[TiltSample], None]] = None
        self.access_requests = 0

    async def request_access(self) -> bool:
        self.access_requests += 1
        return self.granted

    def subscribe(self, callback: Callable[[TiltSample], None]) -> None:
        self.callback = callback

    def unsubscribe(self) -> None:
        self.callback = None

    def emit(self, gamma: float, beta: float = 0.0) -> None:
        assert self.callback is not None
        self.callback(TiltSample(gamma=gamma, beta=beta))


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def tilt_source() -> FakeTiltSource:
    return FakeTiltSource()
