"""Shared UI helpers for Kart Remote."""

from __future__ import annotations

from typing import Optional

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QSlider,
    QWidget,
)

from ..link.session import ConnectionState


_STATUS_TEXT = {
    ConnectionState.DISCONNECTED: "Disconnected",
    ConnectionState.CONNECTING: "Connecting...",
    ConnectionState.CONNECTED: "Connected",
    ConnectionState.ERROR: "Connection failed",
}


def format_connection_status(state: ConnectionState, device_name: str = "") -> str:
    """Human readable connection status for the status bar."""
    if state is ConnectionState.CONNECTED and device_name:
        return f"Connected to {device_name}"
    return _STATUS_TEXT[state]


class SliderWithLabel(QWidget):
    """A horizontal slider with an adjacent value label."""

    def __init__(
        self,
        *,
        min_value: int,
        max_value: int,
        default_value: int,
        tick_interval: int = 5,
        suffix: str = "",
        label_width: int = 52,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self._suffix = suffix

        self.slider = QSlider(Qt.Horizontal)
        self.slider.setRange(min_value, max_value)
        self.slider.setTickInterval(tick_interval)
        self.slider.setTickPosition(QSlider.TicksBelow)
        self.slider.setValue(default_value)

        self.label = QLabel()
        self.label.setMinimumWidth(label_width)
        self._update_label(default_value)

        self.slider.valueChanged.connect(self._update_label)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self.slider, stretch=1)
        layout.addWidget(self.label)

    def _update_label(self, value: int) -> None:
        self.label.setText(f"{value}{self._suffix}")

    def value(self) -> int:
        return self.slider.value()

    def setValueSilent(self, value: int) -> None:  # noqa: N802 (Qt naming convention)
        """Set value without emitting valueChanged signal."""
        self.slider.blockSignals(True)
        self.slider.setValue(value)
        self.slider.blockSignals(False)
        self._update_label(value)

    @property
    def valueChanged(self):  # noqa: N802 (Qt naming convention)
        """Expose the slider's valueChanged signal."""
        return self.slider.valueChanged
