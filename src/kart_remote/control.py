"""Control core: turns input events into actuator commands on the link.

Presentation code calls the input methods (press/release, slider, tilt toggle,
emergency stop, connect/disconnect) and listens for :class:`ControlSnapshot`
updates. All state changes happen on the event loop thread; sends are
scheduled as fire-and-forget tasks and never raise into the caller.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import Any, Optional

from kart_remote.actuator import ActuatorState, map_slider_to_steering, map_tilt_to_steering
from kart_remote.config import ControlConfig
from kart_remote.link.session import AlreadyConnecting, ConnectionState, LinkSession
from kart_remote.ramp import RampController, RampDirection, ReleasePolicy
from kart_remote.tilt import PermissionDenied, TiltSample, TiltSource

logger = logging.getLogger(__name__)


TILT_DENIED_MESSAGE = "Tilt sensor permission denied"
TILT_UNAVAILABLE_MESSAGE = "Tilt sensing is not available on this device"


@dataclass(frozen=True, slots=True)
class ControlSnapshot:
    """Everything the presentation layer needs to render."""

    connection_state: ConnectionState
    device_name: str
    last_error: Optional[str]
    steering: int
    motor: int
    tilt_enabled: bool
    brake_available: bool


class ControlCore:
    """Orchestrate mapping, ramping, encoding and sending for one kart.

    The motor range follows the session's motor encoding so the values the
    ramp produces are always encodable.
    """

    def __init__(
        self,
        session: LinkSession,
        *,
        control: ControlConfig | None = None,
        tilt_source: TiltSource | None = None,
    ) -> None:
        control = control or ControlConfig()
        self._session = session
        self._state = ActuatorState()
        self._ramp = RampController(
            self._state,
            motor_range=session.motor_encoding.motor_range,
            release_policy=control.release_policy,
            on_change=self._on_motor_changed,
            interval_ms=control.ramp_interval_ms,
            step=control.ramp_step,
            brake_enabled=control.dual_pedal,
        )
        self._tilt_source = tilt_source
        self._tilt_enabled = False
        self._tilt_request = 0
        self._last_error: str | None = None
        self._connection_state = session.state
        self._listeners: list[Callable[[ControlSnapshot], None]] = []
        self._tasks: set[asyncio.Future] = set()
        session.add_listener(self._on_connection_changed)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ActuatorState:
        return self._state

    @property
    def ramp(self) -> RampController:
        return self._ramp

    @property
    def session(self) -> LinkSession:
        return self._session

    @property
    def release_policy(self) -> ReleasePolicy:
        return self._ramp.release_policy

    @property
    def tilt_enabled(self) -> bool:
        return self._tilt_enabled

    @property
    def snapshot(self) -> ControlSnapshot:
        return ControlSnapshot(
            connection_state=self._session.state,
            device_name=self._session.device_name,
            last_error=self._last_error,
            steering=self._state.steering,
            motor=self._state.motor,
            tilt_enabled=self._tilt_enabled,
            brake_available=self._ramp.brake_enabled,
        )

    def add_listener(self, listener: Callable[[ControlSnapshot], None]) -> None:
        self._listeners.append(listener)

    # -------------------------------------------------------------------------
    # Pedals
    # -------------------------------------------------------------------------

    def press_throttle(self) -> None:
        self._ramp.start(RampDirection.THROTTLE)

    def release_throttle(self) -> None:
        self._ramp.stop(RampDirection.THROTTLE)

    def press_brake(self) -> None:
        if not self._ramp.brake_enabled:
            logger.debug("Brake pressed but the brake pedal is not enabled")
            return
        self._ramp.start(RampDirection.BRAKE)

    def release_brake(self) -> None:
        if not self._ramp.brake_enabled:
            return
        self._ramp.stop(RampDirection.BRAKE)

    def emergency_stop(self) -> None:
        """Cancel all ramps and command the motor to 0."""
        logger.info("Emergency stop")
        self._ramp.emergency_stop()

    # -------------------------------------------------------------------------
    # Steering
    # -------------------------------------------------------------------------

    def set_steering_slider(self, value: int) -> bool:
        """Apply a slider position; ignored while tilt steering is active."""
        if self._tilt_enabled:
            logger.debug("Slider input ignored while tilt steering is active")
            return False
        self._apply_steering(map_slider_to_steering(value))
        return True

    def _on_tilt_sample(self, sample: TiltSample) -> None:
        if not self._tilt_enabled:
            return
        angle = map_tilt_to_steering(sample.gamma)
        # Sensor noise produces many samples for the same angle; only send changes.
        if angle == self._state.steering:
            return
        self._apply_steering(angle)

    async def toggle_tilt(self) -> bool:
        """Switch tilt steering on or off; returns the new tilt state."""
        if self._tilt_enabled:
            self.disable_tilt()
            return False
        return await self.enable_tilt()

    async def enable_tilt(self) -> bool:
        if self._tilt_enabled:
            return True
        if self._tilt_source is None:
            self._report_error(TILT_UNAVAILABLE_MESSAGE)
            return False

        self._tilt_request += 1
        request = self._tilt_request
        try:
            granted = await self._tilt_source.request_access()
        except Exception as exc:
            logger.warning("Tilt permission request failed: %s", exc)
            granted = False
        if request != self._tilt_request:
            # disable_tilt() was called while the permission prompt was open
            return False
        if not granted:
            self._report_error(TILT_DENIED_MESSAGE)
            return False

        try:
            self._tilt_source.subscribe(self._on_tilt_sample)
        except PermissionDenied as exc:
            self._report_error(str(exc) or TILT_DENIED_MESSAGE)
            return False

        self._tilt_enabled = True
        if self._last_error in (TILT_DENIED_MESSAGE, TILT_UNAVAILABLE_MESSAGE):
            self._last_error = None
        logger.info("Tilt steering enabled")
        self._publish()
        return True

    def disable_tilt(self) -> None:
        self._tilt_request += 1
        if not self._tilt_enabled:
            return
        self._tilt_enabled = False
        if self._tilt_source is not None:
            self._tilt_source.unsubscribe()
        logger.info("Tilt steering disabled")
        self._publish()

    # -------------------------------------------------------------------------
    # Link
    # -------------------------------------------------------------------------

    async def connect(self) -> bool:
        try:
            return await self._session.connect()
        except AlreadyConnecting:
            logger.debug("Connect ignored; an attempt is already in progress")
            return False

    async def disconnect(self) -> None:
        await self._session.disconnect()

    async def shutdown(self) -> None:
        """Stop everything: sensor, ramps, motor, then the link."""
        self.disable_tilt()
        self._ramp.teardown()
        self._state.motor = 0
        # Queued sends go out first so the final zero is the last motor write.
        await self.flush()
        await self._session.send_motor(0)
        await self._session.disconnect()

    async def flush(self) -> None:
        """Wait for every scheduled send to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _apply_steering(self, angle: int) -> None:
        self._state.steering = angle
        self._dispatch(self._session.send_steering, angle)
        self._publish()

    def _on_motor_changed(self, value: int) -> None:
        self._dispatch(self._session.send_motor, value)
        self._publish()

    def _on_connection_changed(self, state: ConnectionState) -> None:
        previous = self._connection_state
        self._connection_state = state
        if state is ConnectionState.CONNECTING:
            self._last_error = None
        elif state is ConnectionState.CONNECTED:
            self._last_error = None
            # Bring the kart in line with the current controls.
            self._dispatch(self._session.send_steering, self._state.steering)
            self._dispatch(self._session.send_motor, self._state.motor)
        elif state is ConnectionState.ERROR:
            self._last_error = self._session.last_error
        elif previous is ConnectionState.CONNECTED:
            # Never resume a stale speed after the link comes back.
            self._ramp.emergency_stop()
        self._publish()

    def _dispatch(self, send: Callable[[int], Coroutine[Any, Any, bool]], value: int) -> None:
        if not self._session.is_connected:
            return
        task = asyncio.ensure_future(send(value))
        self._tasks.add(task)
        task.add_done_callback(self._on_send_done)

    def _on_send_done(self, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Command send failed: %s", exc)

    def _report_error(self, message: str) -> None:
        logger.warning(message)
        self._last_error = message
        self._publish()

    def _publish(self) -> None:
        snapshot = self.snapshot
        for listener in list(self._listeners):
            listener(snapshot)
