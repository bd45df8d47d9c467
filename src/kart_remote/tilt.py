"""Orientation sensing used for tilt steering."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional, Protocol

from PySide6.QtSensors import QRotationSensor

logger = logging.getLogger(__name__)


class PermissionDenied(Exception):
    """Access to the orientation sensor was refused or is unavailable."""


@dataclass(frozen=True, slots=True)
class TiltSample:
    """Device orientation in degrees.

    - `gamma` is left/right tilt (negative = left).
    - `beta` is front/back tilt.
    """

    gamma: float
    beta: float


class TiltSource(Protocol):
    async def request_access(self) -> bool:
        """Ask the platform for sensor access; must be awaited before subscribing."""
        ...

    def subscribe(self, callback: Callable[[TiltSample], None]) -> None:
        ...

    def unsubscribe(self) -> None:
        ...


class QtTiltSource:
    """Tilt samples from ``QRotationSensor`` (roll -> gamma, pitch -> beta)."""

    def __init__(self) -> None:
        self._sensor = QRotationSensor()
        self._callback: Optional[Callable[[TiltSample], None]] = None

    @property
    def active(self) -> bool:
        return self._callback is not None

    async def request_access(self) -> bool:
        if self._sensor.isConnectedToBackend():
            return True
        return bool(self._sensor.connectToBackend())

    def subscribe(self, callback: Callable[[TiltSample], None]) -> None:
        self.unsubscribe()
        self._callback = callback
        self._sensor.readingChanged.connect(self._on_reading)
        if not self._sensor.start():
            self.unsubscribe()
            raise PermissionDenied("Orientation sensor could not be started")
        logger.info("Tilt sensor started (%s)", self._sensor.identifier())

    def unsubscribe(self) -> None:
        if self._callback is None:
            return
        self._sensor.readingChanged.disconnect(self._on_reading)
        self._sensor.stop()
        self._callback = None

    def _on_reading(self) -> None:
        reading = self._sensor.reading()
        if reading is None or self._callback is None:
            return
        self._callback(TiltSample(gamma=float(reading.y()), beta=float(reading.x())))
