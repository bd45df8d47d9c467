"""Bluetooth Low Energy transport built on QtBluetooth.

Qt reports every BLE step through signals; each step here is wrapped in an
asyncio future so :class:`~kart_remote.link.session.LinkSession` can await
them. The futures are resolved from Qt slots, which requires the Qt event loop
to be the running asyncio loop (see ``QtAsyncio`` in :mod:`kart_remote.main`).
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Callable
from typing import Any, Optional

from PySide6.QtBluetooth import (
    QBluetoothDeviceDiscoveryAgent,
    QBluetoothDeviceInfo,
    QBluetoothUuid,
    QLowEnergyController,
    QLowEnergyService,
)
from PySide6.QtCore import QBluetoothPermission, QByteArray, QCoreApplication, Qt, QUuid

from kart_remote.link.session import ConnectionFailed, WriteFailed
from kart_remote.link.transport import DEFAULT_DEVICE_NAME, DEFAULT_DISCOVERY_TIMEOUT_MS

logger = logging.getLogger(__name__)


def bluetooth_uuid(value: str) -> QBluetoothUuid:
    """Build a ``QBluetoothUuid`` from its canonical string form."""
    return QBluetoothUuid(QUuid(value))


def _settle(future: asyncio.Future, result: Any = None) -> None:
    if not future.done():
        future.set_result(result)


def _fail(future: asyncio.Future, exc: BaseException) -> None:
    if not future.done():
        future.set_exception(exc)


class WriteQueue:
    """Pending characteristic writes on one service, completed in order.

    Qt serialises writes on a service and acknowledges them one at a time, so
    the oldest pending write is the one an acknowledgement or error refers to.
    """

    def __init__(self) -> None:
        self._pending: deque[asyncio.Future] = deque()

    def __len__(self) -> int:
        return len(self._pending)

    def push(self) -> asyncio.Future:
        future = asyncio.get_running_loop().create_future()
        self._pending.append(future)
        return future

    def complete(self) -> None:
        # A cancelled write is still performed by Qt, so its ack consumes its slot.
        if self._pending:
            _settle(self._pending.popleft())

    def fail(self, exc: BaseException) -> None:
        if self._pending:
            _fail(self._pending.popleft(), exc)

    def fail_all(self, exc: BaseException) -> None:
        while self._pending:
            _fail(self._pending.popleft(), exc)


class QtBleChannel:
    """One writable characteristic."""

    def __init__(self, service: QLowEnergyService, characteristic, queue: WriteQueue) -> None:
        self._service = service
        self._characteristic = characteristic
        self._queue = queue

    @property
    def uuid(self) -> str:
        return self._characteristic.uuid().toString()

    async def write(self, payload: bytes) -> None:
        future = self._queue.push()
        self._service.writeCharacteristic(
            self._characteristic,
            QByteArray(payload),
            QLowEnergyService.WriteMode.WriteWithResponse,
        )
        await future


class QtBleLink:
    """An open connection to the kart's GATT server."""

    def __init__(self, controller: QLowEnergyController) -> None:
        self._controller = controller
        self._services: dict[str, tuple[QLowEnergyService, WriteQueue]] = {}
        self._discoveries: set[asyncio.Future] = set()
        self._disconnect_handler: Optional[Callable[[], None]] = None
        self._closing = False
        controller.disconnected.connect(self._on_disconnected)

    def set_disconnect_handler(self, handler: Callable[[], None]) -> None:
        self._disconnect_handler = handler

    async def get_channel(self, service_uuid: str, channel_uuid: str) -> QtBleChannel:
        service, queue = await self._service(service_uuid)
        characteristic = service.characteristic(bluetooth_uuid(channel_uuid))
        if not characteristic.isValid():
            raise ConnectionFailed(f"Characteristic {channel_uuid} not found on the kart")
        return QtBleChannel(service, characteristic, queue)

    async def close(self) -> None:
        self._closing = True
        self._fail_pending(WriteFailed("Link closed"))
        self._controller.disconnectFromDevice()
        self._controller.deleteLater()

    async def _service(self, service_uuid: str) -> tuple[QLowEnergyService, WriteQueue]:
        key = service_uuid.lower()
        if key in self._services:
            return self._services[key]

        service = self._controller.createServiceObject(bluetooth_uuid(service_uuid))
        if service is None:
            raise ConnectionFailed("Kart control service not found")

        future = asyncio.get_running_loop().create_future()
        queue = WriteQueue()

        def on_state_changed(state) -> None:
            if state == QLowEnergyService.ServiceState.RemoteServiceDiscovered:
                _settle(future)
            elif state == QLowEnergyService.ServiceState.InvalidService:
                _fail(future, ConnectionFailed("Kart control service became invalid during discovery"))

        def on_error(error) -> None:
            if not future.done():
                _fail(future, ConnectionFailed(f"Service discovery failed: {error}"))
            elif error == QLowEnergyService.ServiceError.CharacteristicWriteError:
                queue.fail(WriteFailed("Characteristic write rejected"))

        service.stateChanged.connect(on_state_changed)
        service.errorOccurred.connect(on_error)
        service.characteristicWritten.connect(lambda _characteristic, _value: queue.complete())
        self._discoveries.add(future)
        try:
            service.discoverDetails()
            await future
        finally:
            self._discoveries.discard(future)

        self._services[key] = (service, queue)
        return service, queue

    def _on_disconnected(self) -> None:
        self._fail_pending(WriteFailed("Link dropped"))
        if self._closing:
            return
        if self._disconnect_handler is not None:
            self._disconnect_handler()

    def _fail_pending(self, exc: BaseException) -> None:
        for future in list(self._discoveries):
            _fail(future, ConnectionFailed(f"Service discovery aborted: {exc}"))
        for _service, queue in self._services.values():
            queue.fail_all(exc)


class QtBleDevice:
    """A discovered kart that has not been connected yet."""

    def __init__(self, info: QBluetoothDeviceInfo) -> None:
        self._info = info

    @property
    def name(self) -> str:
        return self._info.name() or DEFAULT_DEVICE_NAME

    async def connect(self) -> QtBleLink:
        loop = asyncio.get_running_loop()
        controller = QLowEnergyController.createCentral(self._info)
        connected = loop.create_future()
        discovered = loop.create_future()

        def on_error(_error) -> None:
            exc = ConnectionFailed(controller.errorString() or "Bluetooth connection error")
            _fail(connected, exc)
            _fail(discovered, exc)

        def on_disconnected() -> None:
            exc = ConnectionFailed("Kart disconnected during handshake")
            _fail(connected, exc)
            _fail(discovered, exc)

        controller.connected.connect(lambda: _settle(connected))
        controller.discoveryFinished.connect(lambda: _settle(discovered))
        controller.errorOccurred.connect(on_error)
        controller.disconnected.connect(on_disconnected)

        try:
            controller.connectToDevice()
            await connected
            controller.discoverServices()
            await discovered
        except BaseException:
            controller.disconnectFromDevice()
            controller.deleteLater()
            raise
        controller.disconnected.disconnect(on_disconnected)
        return QtBleLink(controller)


class QtBleTransport:
    """Discover karts with a ``QBluetoothDeviceDiscoveryAgent``."""

    def __init__(self, *, discovery_timeout_ms: int = DEFAULT_DISCOVERY_TIMEOUT_MS) -> None:
        self._discovery_timeout_ms = int(discovery_timeout_ms)

    async def request_device(self, service_uuid: str) -> QtBleDevice:
        app = QCoreApplication.instance()
        if app is not None and app.checkPermission(QBluetoothPermission()) == Qt.PermissionStatus.Denied:
            raise ConnectionFailed("Bluetooth permission denied")

        wanted = bluetooth_uuid(service_uuid)
        future = asyncio.get_running_loop().create_future()
        agent = QBluetoothDeviceDiscoveryAgent()
        agent.setLowEnergyDiscoveryTimeout(self._discovery_timeout_ms)

        def on_discovered(info: QBluetoothDeviceInfo) -> None:
            if wanted in info.serviceUuids():
                logger.info("Found %s (%s)", info.name() or DEFAULT_DEVICE_NAME, info.address().toString())
                _settle(future, info)

        def on_error(_error) -> None:
            _fail(future, ConnectionFailed(agent.errorString() or "Bluetooth discovery failed"))

        agent.deviceDiscovered.connect(on_discovered)
        agent.finished.connect(lambda: _fail(future, ConnectionFailed("No kart found")))
        agent.canceled.connect(lambda: _fail(future, ConnectionFailed("Discovery cancelled")))
        agent.errorOccurred.connect(on_error)
        agent.start(QBluetoothDeviceDiscoveryAgent.DiscoveryMethod.LowEnergyMethod)
        try:
            info = await future
        finally:
            if agent.isActive():
                agent.stop()
            agent.deleteLater()
        return QtBleDevice(info)
