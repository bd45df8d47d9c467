"""Actuator state and input-to-actuator mapping.

Every value that ends up on the wire passes through this module first, so the
steering and motor bounds are enforced here rather than in the transport.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

STEERING_MIN: int = 0
STEERING_MAX: int = 180
STEERING_CENTER: int = 90

TILT_LIMIT_DEG: float = 45.0
"""Tilt angle (degrees) that maps to full steering lock."""


class MotorRange(Enum):
    """Declared motor domain for the target firmware."""

    SIGNED = (-100, 100)
    UNSIGNED = (0, 100)

    @property
    def low(self) -> int:
        return self.value[0]

    @property
    def high(self) -> int:
        return self.value[1]


@dataclass
class ActuatorState:
    """The two actuator commands currently requested from the kart."""

    steering: int = STEERING_CENTER
    motor: int = 0


# ---------------------------------------------------------------------------
# Mapping functions
# ---------------------------------------------------------------------------

def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def map_tilt_to_steering(gamma: float) -> int:
    """Map left/right device tilt to a steering angle.

    Args:
        gamma: Left/right tilt in degrees. Values beyond +/-45 are clamped.

    Returns:
        Steering angle in range [0, 180]; 90 is centre.
    """
    if gamma is None or math.isnan(gamma):
        return STEERING_CENTER
    clamped = max(-TILT_LIMIT_DEG, min(TILT_LIMIT_DEG, float(gamma)))
    angle = _round_half_up((clamped + TILT_LIMIT_DEG) / (2 * TILT_LIMIT_DEG) * STEERING_MAX)
    return max(STEERING_MIN, min(STEERING_MAX, angle))


def map_slider_to_steering(raw: int) -> int:
    """Clamp a raw slider value into the steering range."""
    return max(STEERING_MIN, min(STEERING_MAX, int(raw)))


def clamp_motor(value: int, motor_range: MotorRange) -> int:
    return max(motor_range.low, min(motor_range.high, int(value)))
