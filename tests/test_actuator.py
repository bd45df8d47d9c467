"""Tests for the actuator mapping functions."""

from __future__ import annotations

import math

import pytest

from kart_remote.actuator import (
    STEERING_CENTER,
    ActuatorState,
    MotorRange,
    clamp_motor,
    map_slider_to_steering,
    map_tilt_to_steering,
)


# ============================================================================
# Tilt mapping
# ============================================================================


class TestMapTiltToSteering:
    """Tests for tilt -> steering angle mapping."""

    @pytest.mark.parametrize(
        ("gamma", "expected"),
        [(-45.0, 0), (0.0, 90), (45.0, 180), (-22.5, 45), (22.5, 135), (1.0, 92)],
    )
    def test_known_points(self, gamma: float, expected: int) -> None:
        assert map_tilt_to_steering(gamma) == expected

    def test_monotonic_within_range(self) -> None:
        """Steering never decreases as tilt increases."""
        previous = -1
        gamma = -45.0
        while gamma <= 45.0:
            angle = map_tilt_to_steering(gamma)
            assert angle >= previous
            previous = angle
            gamma += 0.25

    @pytest.mark.parametrize("gamma", [-45.01, -60.0, -90.0, -1e6])
    def test_clamps_left(self, gamma: float) -> None:
        assert map_tilt_to_steering(gamma) == 0

    @pytest.mark.parametrize("gamma", [45.01, 60.0, 90.0, 1e6])
    def test_clamps_right(self, gamma: float) -> None:
        assert map_tilt_to_steering(gamma) == 180

    def test_nan_maps_to_center(self) -> None:
        """A sensor that reports no angle yet leaves steering centred."""
        assert map_tilt_to_steering(math.nan) == STEERING_CENTER


# ============================================================================
# Slider mapping
# ============================================================================


class TestMapSliderToSteering:
    """Tests for slider -> steering angle mapping."""

    @pytest.mark.parametrize("raw", [0, 1, 90, 179, 180])
    def test_identity_in_range(self, raw: int) -> None:
        assert map_slider_to_steering(raw) == raw

    def test_clamps_below(self) -> None:
        assert map_slider_to_steering(-5) == 0

    def test_clamps_above(self) -> None:
        assert map_slider_to_steering(250) == 180


# ============================================================================
# Motor clamping
# ============================================================================


class TestClampMotor:
    """Tests for motor range clamping."""

    def test_signed_range(self) -> None:
        assert clamp_motor(-150, MotorRange.SIGNED) == -100
        assert clamp_motor(150, MotorRange.SIGNED) == 100
        assert clamp_motor(-40, MotorRange.SIGNED) == -40

    def test_unsigned_range(self) -> None:
        assert clamp_motor(-40, MotorRange.UNSIGNED) == 0
        assert clamp_motor(101, MotorRange.UNSIGNED) == 100

    def test_range_bounds(self) -> None:
        assert (MotorRange.SIGNED.low, MotorRange.SIGNED.high) == (-100, 100)
        assert (MotorRange.UNSIGNED.low, MotorRange.UNSIGNED.high) == (0, 100)


def test_actuator_state_defaults() -> None:
    """Steering starts centred and the motor at rest."""
    state = ActuatorState()
    assert state.steering == 90
    assert state.motor == 0
