"""Tests for the config module.

This module tests configuration persistence, loading, and validation.
"""

from __future__ import annotations

from pathlib import Path

import pytest

import kart_remote.config as config
from kart_remote.encoding import MotorEncoding
from kart_remote.link.transport import DEFAULT_SERVICE_UUID
from kart_remote.ramp import ReleasePolicy


@pytest.fixture
def cfg_path(tmp_path: Path, monkeypatch) -> Path:
    path = tmp_path / "config.ini"
    monkeypatch.setattr(config, "config_path", lambda: path)
    return path


# ============================================================================
# Kart Profile Tests
# ============================================================================


class TestKartProfile:
    """Tests for KartProfile save/load functionality."""

    def test_save_and_load_profile_roundtrip(self, cfg_path: Path) -> None:
        """Saving and loading a profile should preserve all data."""
        link = config.LinkConfig(
            service_uuid="0000ffe0-0000-1000-8000-00805f9b34fb",
            steering_uuid="0000ffe1-0000-1000-8000-00805f9b34fb",
            motor_uuid="0000ffe2-0000-1000-8000-00805f9b34fb",
            discovery_timeout_ms=5000,
        )
        control = config.ControlConfig(
            release_policy=ReleasePolicy.CRUISE,
            motor_encoding=MotorEncoding.SIGNED_OFFSET,
            dual_pedal=True,
            ramp_interval_ms=40,
            ramp_step=10,
        )
        profile = config.KartProfile(link=link, control=control)
        config.save_kart_profile(profile)

        assert config.load_kart_profile() == profile

    def test_sections_are_independent(self, cfg_path: Path) -> None:
        """Saving one section should not clobber the other."""
        config.save_control_config(config.ControlConfig(ramp_step=7))
        config.save_link_config(config.LinkConfig(discovery_timeout_ms=3000))

        assert config.load_control_config().ramp_step == 7
        assert config.load_link_config().discovery_timeout_ms == 3000

    def test_identifiers_follow_link_config(self) -> None:
        link = config.LinkConfig(motor_uuid="abc")
        ids = link.identifiers
        assert ids.service_uuid == DEFAULT_SERVICE_UUID
        assert ids.motor_uuid == "abc"


# ============================================================================
# Missing File Tests
# ============================================================================


class TestMissingFile:
    """Tests for handling missing configuration files."""

    def test_load_missing_sections_returns_defaults(self, cfg_path: Path) -> None:
        assert config.load_link_config() == config.LinkConfig()
        assert config.load_control_config() == config.ControlConfig()
        assert not cfg_path.exists()

    def test_load_kart_profile_creates_default_config(self, cfg_path: Path) -> None:
        """Loading the profile from a missing file should create both sections."""
        profile = config.load_kart_profile()

        assert cfg_path.exists()
        content = cfg_path.read_text()
        assert "[link]" in content and "[control]" in content

        assert profile.link.service_uuid == DEFAULT_SERVICE_UUID
        assert profile.control.release_policy is ReleasePolicy.DEAD_MAN
        assert profile.control.motor_encoding is MotorEncoding.UNSIGNED
        assert profile.control.dual_pedal is False
        assert profile.control.ramp_interval_ms == 50
        assert profile.control.ramp_step == 5


# ============================================================================
# Validation Tests
# ============================================================================


class TestValidation:
    """Tests for hand-edited or corrupt values."""

    def test_invalid_values_fall_back_to_defaults(self, cfg_path: Path) -> None:
        cfg_path.write_text(
            "[control]\n"
            "release_policy = coast\n"
            "motor_encoding = bcd\n"
            "dual_pedal = maybe\n"
            "ramp_interval_ms = fast\n"
            "ramp_step = 5.5\n"
            "[link]\n"
            "service_uuid =\n"
            "discovery_timeout_ms = soon\n",
            encoding="utf-8",
        )
        defaults_control = config.ControlConfig()
        defaults_link = config.LinkConfig()

        assert config.load_control_config() == defaults_control
        assert config.load_link_config() == defaults_link

    def test_numbers_are_bounded(self, cfg_path: Path) -> None:
        cfg_path.write_text(
            "[control]\n"
            "ramp_interval_ms = 1\n"
            "ramp_step = 500\n"
            "[link]\n"
            "discovery_timeout_ms = 999999\n",
            encoding="utf-8",
        )
        control = config.load_control_config()
        assert control.ramp_interval_ms == config.MIN_RAMP_INTERVAL_MS
        assert control.ramp_step == config.MAX_RAMP_STEP
        assert config.load_link_config().discovery_timeout_ms == config.MAX_DISCOVERY_TIMEOUT_MS

    def test_values_are_trimmed(self, cfg_path: Path) -> None:
        cfg_path.write_text("[control]\nrelease_policy =   cruise  \n", encoding="utf-8")
        assert config.load_control_config().release_policy is ReleasePolicy.CRUISE


class TestConfigDataclasses:
    """Tests for the configuration dataclasses."""

    def test_control_config_immutable(self) -> None:
        cfg = config.ControlConfig()
        with pytest.raises(AttributeError):
            cfg.ramp_step = 9  # type: ignore

    def test_link_config_equality(self) -> None:
        assert config.LinkConfig(discovery_timeout_ms=2000) == config.LinkConfig(discovery_timeout_ms=2000)
