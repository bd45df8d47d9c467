from __future__ import annotations

import configparser
from dataclasses import dataclass
from pathlib import Path

from PySide6.QtCore import QStandardPaths

from kart_remote.encoding import MotorEncoding
from kart_remote.link.transport import (
    DEFAULT_DISCOVERY_TIMEOUT_MS,
    DEFAULT_MOTOR_UUID,
    DEFAULT_SERVICE_UUID,
    DEFAULT_STEERING_UUID,
    LinkIdentifiers,
)
from kart_remote.ramp import DEFAULT_RAMP_INTERVAL_MS, DEFAULT_RAMP_STEP, ReleasePolicy


@dataclass(frozen=True)
class LinkConfig:
    """BLE identifiers of the kart firmware and discovery settings."""

    service_uuid: str = DEFAULT_SERVICE_UUID
    steering_uuid: str = DEFAULT_STEERING_UUID
    motor_uuid: str = DEFAULT_MOTOR_UUID
    discovery_timeout_ms: int = DEFAULT_DISCOVERY_TIMEOUT_MS

    @property
    def identifiers(self) -> LinkIdentifiers:
        return LinkIdentifiers(
            service_uuid=self.service_uuid,
            steering_uuid=self.steering_uuid,
            motor_uuid=self.motor_uuid,
        )


@dataclass(frozen=True)
class ControlConfig:
    """Driving behaviour; release policy and encoding must match the kart."""

    release_policy: ReleasePolicy = ReleasePolicy.DEAD_MAN
    motor_encoding: MotorEncoding = MotorEncoding.UNSIGNED
    dual_pedal: bool = False
    ramp_interval_ms: int = DEFAULT_RAMP_INTERVAL_MS
    ramp_step: int = DEFAULT_RAMP_STEP


@dataclass(frozen=True)
class KartProfile:
    """Full persisted configuration for the application."""

    link: LinkConfig
    control: ControlConfig


# -------------------------------------------------------------------------
# Limits for persisted values
# -------------------------------------------------------------------------

MIN_RAMP_INTERVAL_MS: int = 10
MAX_RAMP_INTERVAL_MS: int = 1000
MIN_RAMP_STEP: int = 1
MAX_RAMP_STEP: int = 100
MIN_DISCOVERY_TIMEOUT_MS: int = 1000
MAX_DISCOVERY_TIMEOUT_MS: int = 60000


def config_path() -> Path:
    # e.g., ~/.config/Kart Remote/config.ini on Linux
    config_dir = Path(QStandardPaths.writableLocation(QStandardPaths.AppConfigLocation))
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir / "config.ini"


def _bounded(value: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, value))


def ensure_config_exists() -> None:
    """Create config.ini with all default values if it doesn't exist."""
    path = config_path()
    if path.exists():
        return
    save_link_config(LinkConfig())
    save_control_config(ControlConfig())


def load_link_config() -> LinkConfig:
    parser = configparser.ConfigParser()
    parser.read(config_path(), encoding="utf-8")
    if "link" not in parser:
        return LinkConfig()
    section = parser["link"]
    defaults = LinkConfig()
    try:
        timeout = int(section.get("discovery_timeout_ms", str(defaults.discovery_timeout_ms)))
    except ValueError:
        timeout = defaults.discovery_timeout_ms
    return LinkConfig(
        service_uuid=section.get("service_uuid", "").strip() or defaults.service_uuid,
        steering_uuid=section.get("steering_uuid", "").strip() or defaults.steering_uuid,
        motor_uuid=section.get("motor_uuid", "").strip() or defaults.motor_uuid,
        discovery_timeout_ms=_bounded(timeout, MIN_DISCOVERY_TIMEOUT_MS, MAX_DISCOVERY_TIMEOUT_MS),
    )


def save_link_config(cfg: LinkConfig) -> None:
    parser = configparser.ConfigParser()
    parser.read(config_path(), encoding="utf-8")
    parser["link"] = {
        "service_uuid": cfg.service_uuid,
        "steering_uuid": cfg.steering_uuid,
        "motor_uuid": cfg.motor_uuid,
        "discovery_timeout_ms": str(int(cfg.discovery_timeout_ms)),
    }
    path = config_path()
    with path.open("w", encoding="utf-8") as f:
        parser.write(f)


def load_control_config() -> ControlConfig:
    parser = configparser.ConfigParser()
    parser.read(config_path(), encoding="utf-8")
    if "control" not in parser:
        return ControlConfig()
    section = parser["control"]
    defaults = ControlConfig()

    try:
        release_policy = ReleasePolicy(section.get("release_policy", defaults.release_policy.value).strip())
    except ValueError:
        release_policy = defaults.release_policy
    try:
        motor_encoding = MotorEncoding(section.get("motor_encoding", defaults.motor_encoding.value).strip())
    except ValueError:
        motor_encoding = defaults.motor_encoding
    try:
        dual_pedal = section.getboolean("dual_pedal", fallback=defaults.dual_pedal)
    except ValueError:
        dual_pedal = defaults.dual_pedal
    try:
        interval = int(section.get("ramp_interval_ms", str(defaults.ramp_interval_ms)))
    except ValueError:
        interval = defaults.ramp_interval_ms
    try:
        step = int(section.get("ramp_step", str(defaults.ramp_step)))
    except ValueError:
        step = defaults.ramp_step

    return ControlConfig(
        release_policy=release_policy,
        motor_encoding=motor_encoding,
        dual_pedal=dual_pedal,
        ramp_interval_ms=_bounded(interval, MIN_RAMP_INTERVAL_MS, MAX_RAMP_INTERVAL_MS),
        ramp_step=_bounded(step, MIN_RAMP_STEP, MAX_RAMP_STEP),
    )


def save_control_config(cfg: ControlConfig) -> None:
    parser = configparser.ConfigParser()
    parser.read(config_path(), encoding="utf-8")
    parser["control"] = {
        "release_policy": cfg.release_policy.value,
        "motor_encoding": cfg.motor_encoding.value,
        "dual_pedal": "true" if cfg.dual_pedal else "false",
        "ramp_interval_ms": str(int(cfg.ramp_interval_ms)),
        "ramp_step": str(int(cfg.ramp_step)),
    }
    path = config_path()
    with path.open("w", encoding="utf-8") as f:
        parser.write(f)


def load_kart_profile() -> KartProfile:
    """Load the full profile, creating default config if needed."""
    ensure_config_exists()
    return KartProfile(link=load_link_config(), control=load_control_config())


def save_kart_profile(profile: KartProfile) -> None:
    save_link_config(profile.link)
    save_control_config(profile.control)

