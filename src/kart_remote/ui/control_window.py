"""Main window: a thin presentation layer over :class:`ControlCore`.

Design notes:
- Widgets only forward input events to the core and render snapshots.
- Pedal buttons use pressed/released so holding a button ramps the motor.
- The slider is read-only while tilt steering is active.
"""

from __future__ import annotations

import asyncio

from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QPushButton,
    QStatusBar,
    QStyle,
    QVBoxLayout,
    QWidget,
)

from ..actuator import STEERING_MAX, STEERING_MIN
from ..control import ControlCore, ControlSnapshot
from ..link.session import ConnectionState
from .utils import SliderWithLabel, format_connection_status

_CONNECT_BUTTON_TEXT = {
    ConnectionState.CONNECTING: "Cancel",
    ConnectionState.CONNECTED: "Disconnect",
}


class ControlWindow(QMainWindow):
    """Connect/disconnect, pedals, steering slider, tilt toggle and stop."""

    def __init__(self, core: ControlCore, *, app_name: str, version: str) -> None:
        super().__init__()
        self._core = core
        self._shutdown_started = False
        self._shutdown_done = False
        self._background: set[asyncio.Future] = set()
        self.setWindowTitle(f"{app_name} - v{version}")
        self.resize(720, 360)

        self._status_bar = QStatusBar()
        self.setStatusBar(self._status_bar)

        self._build_ui()
        core.add_listener(self._render)
        self._render(core.snapshot)

    def _build_ui(self) -> None:
        snapshot = self._core.snapshot

        self._connect_btn = QPushButton("Connect")
        self._connect_btn.setIcon(self.style().standardIcon(QStyle.SP_DriveNetIcon))
        self._connect_btn.clicked.connect(self._on_connect_clicked)

        self._tilt_btn = QPushButton("Tilt")
        self._tilt_btn.setCheckable(True)
        self._tilt_btn.clicked.connect(lambda: self._spawn(self._core.toggle_tilt()))

        self._stop_btn = QPushButton("STOP")
        self._stop_btn.setIcon(self.style().standardIcon(QStyle.SP_BrowserStop))
        self._stop_btn.clicked.connect(self._core.emergency_stop)

        top = QHBoxLayout()
        top.addWidget(self._connect_btn)
        top.addWidget(self._tilt_btn)
        top.addStretch(1)
        top.addWidget(self._stop_btn)

        self._gas_btn = QPushButton("GAS")
        self._gas_btn.setMinimumSize(140, 140)
        self._gas_btn.pressed.connect(self._core.press_throttle)
        self._gas_btn.released.connect(self._core.release_throttle)

        self._brake_btn = QPushButton("BRAKE")
        self._brake_btn.setMinimumSize(140, 140)
        self._brake_btn.pressed.connect(self._core.press_brake)
        self._brake_btn.released.connect(self._core.release_brake)
        self._brake_btn.setVisible(snapshot.brake_available)

        self._motor_label = QLabel()
        self._error_label = QLabel()
        self._error_label.setStyleSheet("color: #d9534f;")

        pedals = QHBoxLayout()
        pedals.addWidget(self._brake_btn)
        pedals.addStretch(1)
        pedals.addWidget(self._motor_label)
        pedals.addStretch(1)
        pedals.addWidget(self._gas_btn)

        self._steering = SliderWithLabel(
            min_value=STEERING_MIN,
            max_value=STEERING_MAX,
            default_value=snapshot.steering,
            tick_interval=15,
            suffix="°",
        )
        self._steering.valueChanged.connect(self._core.set_steering_slider)

        layout = QVBoxLayout()
        layout.addLayout(top)
        layout.addWidget(self._error_label)
        layout.addLayout(pedals, stretch=1)
        layout.addWidget(QLabel("Steering (left / right)"))
        layout.addWidget(self._steering)

        central = QWidget()
        central.setLayout(layout)
        self.setCentralWidget(central)

    # -------------------------------------------------------------------------
    # Event handlers
    # -------------------------------------------------------------------------

    def _on_connect_clicked(self) -> None:
        if self._core.session.state in (ConnectionState.CONNECTED, ConnectionState.CONNECTING):
            self._spawn(self._core.disconnect())
        else:
            self._spawn(self._core.connect())

    def _render(self, snapshot: ControlSnapshot) -> None:
        state = snapshot.connection_state
        self._status_bar.showMessage(format_connection_status(state, snapshot.device_name))
        self._connect_btn.setText(_CONNECT_BUTTON_TEXT.get(state, "Connect"))

        self._tilt_btn.setChecked(snapshot.tilt_enabled)
        self._tilt_btn.setText("Tilt ON" if snapshot.tilt_enabled else "Tilt")
        self._steering.slider.setEnabled(not snapshot.tilt_enabled)
        if self._steering.value() != snapshot.steering:
            self._steering.setValueSilent(snapshot.steering)

        self._motor_label.setText(f"{snapshot.motor}%")
        self._error_label.setText(snapshot.last_error or "")

    def _spawn(self, coro) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _shutdown_and_close(self) -> None:
        try:
            await self._core.shutdown()
        finally:
            self._shutdown_done = True
            self.close()

    def closeEvent(self, event) -> None:  # noqa: N802 (Qt naming)
        """Stop the kart and drop the link before the window goes away."""
        if not self._shutdown_done:
            event.ignore()
            if not self._shutdown_started:
                self._shutdown_started = True
                self._spawn(self._shutdown_and_close())
            return
        super().closeEvent(event)
