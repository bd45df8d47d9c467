"""Press-and-hold throttle/brake ramping.

While a pedal is held the motor value moves by a fixed step on every timer
tick until it reaches the pedal's bound. Each direction owns exactly one
``QTimer`` so repeated press events can never stack up running timers.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from functools import partial

from PySide6.QtCore import QTimer

from kart_remote.actuator import ActuatorState, MotorRange, clamp_motor

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_RAMP_INTERVAL_MS: int = 50
"""Tick period (ms) while a pedal is held."""

DEFAULT_RAMP_STEP: int = 5
"""Motor change per tick."""


class RampDirection(Enum):
    THROTTLE = "throttle"
    BRAKE = "brake"


class ReleasePolicy(Enum):
    """What happens to the motor when a pedal is released.

    - ``CRUISE``: motor keeps whatever value it reached.
    - ``DEAD_MAN``: motor drops to 0 immediately.
    """

    CRUISE = "cruise"
    DEAD_MAN = "dead_man"


class RampController:
    """Drive ``ActuatorState.motor`` from held throttle/brake gestures."""

    def __init__(
        self,
        state: ActuatorState,
        *,
        motor_range: MotorRange,
        release_policy: ReleasePolicy,
        on_change: Callable[[int], None] | None = None,
        interval_ms: int = DEFAULT_RAMP_INTERVAL_MS,
        step: int = DEFAULT_RAMP_STEP,
        brake_enabled: bool = False,
    ) -> None:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        if step <= 0:
            raise ValueError("step must be positive")
        self._state = state
        self._motor_range = motor_range
        self._release_policy = release_policy
        self._on_change = on_change
        self._step = int(step)

        self._timers: dict[RampDirection, QTimer] = {}
        directions = [RampDirection.THROTTLE]
        if brake_enabled:
            directions.append(RampDirection.BRAKE)
        for direction in directions:
            timer = QTimer(interval=int(interval_ms))
            timer.timeout.connect(partial(self.tick, direction))
            self._timers[direction] = timer

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def release_policy(self) -> ReleasePolicy:
        return self._release_policy

    @property
    def interval_ms(self) -> int:
        return self._timers[RampDirection.THROTTLE].interval()

    @property
    def brake_enabled(self) -> bool:
        return RampDirection.BRAKE in self._timers

    def is_ramping(self, direction: RampDirection) -> bool:
        timer = self._timers.get(direction)
        return timer is not None and timer.isActive()

    @property
    def any_ramping(self) -> bool:
        return any(timer.isActive() for timer in self._timers.values())

    def bound_for(self, direction: RampDirection) -> int:
        """Return the motor value a held pedal ramps toward."""
        if direction is RampDirection.THROTTLE:
            return self._motor_range.high
        return self._motor_range.low

    # -------------------------------------------------------------------------
    # Gestures
    # -------------------------------------------------------------------------

    def start(self, direction: RampDirection) -> None:
        """Begin ramping in ``direction``; repeated calls while held are ignored."""
        timer = self._timer(direction)
        if timer.isActive():
            return
        for other, other_timer in self._timers.items():
            if other is not direction and other_timer.isActive():
                other_timer.stop()
                logger.debug("%s ramp cancelled by %s press", other.value, direction.value)
        timer.start()

    def stop(self, direction: RampDirection) -> None:
        """Stop ramping in ``direction`` and apply the release policy."""
        timer = self._timer(direction)
        if not timer.isActive():
            return
        timer.stop()
        if self._release_policy is ReleasePolicy.DEAD_MAN:
            self._set_motor(0)

    def tick(self, direction: RampDirection) -> None:
        """Advance the motor one step toward the direction's bound."""
        if not self.is_ramping(direction):
            return
        bound = self.bound_for(direction)
        current = self._state.motor
        if current < bound:
            target = min(bound, current + self._step)
        elif current > bound:
            target = max(bound, current - self._step)
        else:
            return
        self._set_motor(target)

    def emergency_stop(self) -> None:
        """Cancel every ramp and force the motor to 0."""
        self.teardown()
        self._set_motor(0)

    def teardown(self) -> None:
        """Cancel every ramp timer without touching the motor value."""
        for timer in self._timers.values():
            timer.stop()

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _timer(self, direction: RampDirection) -> QTimer:
        try:
            return self._timers[direction]
        except KeyError:
            raise ValueError(f"{direction.value} ramp is not enabled") from None

    def _set_motor(self, value: int) -> None:
        self._state.motor = clamp_motor(value, self._motor_range)
        if self._on_change is not None:
            self._on_change(self._state.motor)
