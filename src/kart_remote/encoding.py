"""One-byte wire payloads for the steering and motor channels."""

from __future__ import annotations

from enum import Enum

from kart_remote.actuator import STEERING_MAX, STEERING_MIN, MotorRange


class MotorEncoding(Enum):
    """How the motor value is packed into its byte.

    - ``UNSIGNED``: motor in 0..100 written as the byte value itself.
    - ``SIGNED_OFFSET``: motor in -100..100 written as ``value + 100`` (0..200).
    """

    UNSIGNED = "unsigned"
    SIGNED_OFFSET = "signed_offset"

    @property
    def motor_range(self) -> MotorRange:
        return MotorRange.SIGNED if self is MotorEncoding.SIGNED_OFFSET else MotorRange.UNSIGNED

    @property
    def offset(self) -> int:
        return -self.motor_range.low


def encode_steering(angle: float) -> bytes:
    value = int(round(angle))
    if not STEERING_MIN <= value <= STEERING_MAX:
        raise ValueError(f"steering angle {angle} outside {STEERING_MIN}..{STEERING_MAX}")
    return bytes([value])


def decode_steering(payload: bytes) -> int:
    if len(payload) != 1:
        raise ValueError(f"steering payload must be 1 byte, got {len(payload)}")
    value = payload[0]
    if value > STEERING_MAX:
        raise ValueError(f"steering byte {value} outside {STEERING_MIN}..{STEERING_MAX}")
    return value


def encode_motor(speed: float, encoding: MotorEncoding) -> bytes:
    """Encode a motor speed for the given firmware encoding.

    Raises:
        ValueError: If the speed is outside the encoding's declared range.
    """
    value = int(round(speed))
    motor_range = encoding.motor_range
    if not motor_range.low <= value <= motor_range.high:
        raise ValueError(f"motor speed {speed} outside {motor_range.low}..{motor_range.high}")
    return bytes([value + encoding.offset])


def decode_motor(payload: bytes, encoding: MotorEncoding) -> int:
    if len(payload) != 1:
        raise ValueError(f"motor payload must be 1 byte, got {len(payload)}")
    value = payload[0] - encoding.offset
    motor_range = encoding.motor_range
    if not motor_range.low <= value <= motor_range.high:
        raise ValueError(f"motor byte {payload[0]} outside the {encoding.value} domain")
    return value
