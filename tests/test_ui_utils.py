"""Tests for the UI utility module."""

from __future__ import annotations

import pytest

from kart_remote.link.session import ConnectionState
from kart_remote.ui.utils import format_connection_status


class TestFormatConnectionStatus:
    """Tests for the status bar text."""

    def test_connected_shows_device_name(self) -> None:
        assert format_connection_status(ConnectionState.CONNECTED, "Kart-42") == "Connected to Kart-42"

    def test_connected_without_name(self) -> None:
        assert format_connection_status(ConnectionState.CONNECTED) == "Connected"

    @pytest.mark.parametrize(
        ("state", "text"),
        [
            (ConnectionState.DISCONNECTED, "Disconnected"),
            (ConnectionState.CONNECTING, "Connecting..."),
            (ConnectionState.ERROR, "Connection failed"),
        ],
    )
    def test_other_states_ignore_name(self, state: ConnectionState, text: str) -> None:
        assert format_connection_status(state, "Kart-42") == text
