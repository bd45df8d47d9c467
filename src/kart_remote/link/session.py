"""Connection lifecycle and guarded command writes for the kart link.

The session is the only owner of the open link and its channel handles.
Everything that can go wrong on the radio side is converted to session state
here, so callers never see transport exceptions.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Optional

from kart_remote.encoding import MotorEncoding, encode_motor, encode_steering
from kart_remote.link.transport import (
    DEFAULT_DEVICE_NAME,
    Channel,
    Device,
    DeviceLink,
    LinkIdentifiers,
    Transport,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class LinkError(Exception):
    """Base class for link failures."""


class ConnectionFailed(LinkError):
    """Discovery or handshake with the kart did not complete."""


class AlreadyConnecting(LinkError):
    """A connection attempt is already in flight."""


class WriteFailed(LinkError):
    """A single command write was rejected by the transport."""


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------

class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"  # disconnected after a failed attempt; see LinkSession.last_error


@dataclass(frozen=True, slots=True)
class LinkHandles:
    """Everything that is only valid while the link is up."""

    device: Device
    link: DeviceLink
    steering: Optional[Channel]
    motor: Optional[Channel]
    device_name: str


class LinkSession:
    """Own one link to one kart."""

    def __init__(
        self,
        transport: Transport,
        identifiers: LinkIdentifiers | None = None,
        *,
        motor_encoding: MotorEncoding = MotorEncoding.UNSIGNED,
    ) -> None:
        self._transport = transport
        self._identifiers = identifiers or LinkIdentifiers()
        self._motor_encoding = motor_encoding
        self._state = ConnectionState.DISCONNECTED
        self._last_error: str | None = None
        self._handles: LinkHandles | None = None
        self._attempt = 0
        self._opening: asyncio.Future | None = None
        self._listeners: list[Callable[[ConnectionState], None]] = []

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def device_name(self) -> str:
        return self._handles.device_name if self._handles is not None else ""

    @property
    def handles(self) -> LinkHandles | None:
        return self._handles

    @property
    def motor_encoding(self) -> MotorEncoding:
        return self._motor_encoding

    def add_listener(self, listener: Callable[[ConnectionState], None]) -> None:
        """Call ``listener`` with the new state after every transition."""
        self._listeners.append(listener)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self) -> bool:
        """Find the kart, open the link and resolve both channels.

        Returns:
            True once connected, False if the attempt failed or was abandoned.

        Raises:
            AlreadyConnecting: If another attempt is still in flight.
        """
        while True:
            if self._state is ConnectionState.CONNECTING:
                raise AlreadyConnecting("A connection attempt is already in progress")
            if self._state is ConnectionState.CONNECTED:
                return True
            opening = self._opening
            if opening is None or opening.done():
                break
            # An abandoned attempt is still unwinding; only one may touch the radio.
            await asyncio.wait({opening})

        self._attempt += 1
        attempt = self._attempt
        self._last_error = None
        self._set_state(ConnectionState.CONNECTING)

        opening = asyncio.ensure_future(self._open(self._identifiers))
        self._opening = opening
        try:
            handles = await opening
        except asyncio.CancelledError:
            if attempt != self._attempt:
                # disconnect() cancelled this attempt
                return False
            self._last_error = "Connection cancelled"
            self._set_state(ConnectionState.ERROR)
            raise
        except Exception as exc:
            if attempt != self._attempt:
                return False
            message = str(exc) or exc.__class__.__name__
            logger.warning("Connection failed: %s", message)
            self._last_error = message
            self._set_state(ConnectionState.ERROR)
            return False

        if attempt != self._attempt:
            logger.info("Connection attempt abandoned; closing late link")
            await self._close_quietly(handles.link)
            return False

        self._handles = handles
        handles.link.set_disconnect_handler(partial(self._on_link_dropped, handles.link))
        logger.info("Connected to %s", handles.device_name)
        self._set_state(ConnectionState.CONNECTED)
        return True

    async def disconnect(self) -> None:
        """Tear down the link; a no-op when nothing is connected.

        During CONNECTING the attempt is cancelled and this waits until the
        transport has released the device.
        """
        if self._state is ConnectionState.CONNECTING:
            self._attempt += 1
            logger.info("Connection attempt cancelled")
            self._set_state(ConnectionState.DISCONNECTED)
            opening = self._opening
            if opening is not None and not opening.done():
                opening.cancel()
                await asyncio.wait({opening})
            return
        handles = self._handles
        if handles is None:
            return
        self._handles = None
        self._set_state(ConnectionState.DISCONNECTED)
        logger.info("Disconnected from %s", handles.device_name)
        await self._close_quietly(handles.link)

    def _on_link_dropped(self, link: DeviceLink) -> None:
        if self._handles is None or self._handles.link is not link:
            return
        name = self._handles.device_name
        self._handles = None
        logger.info("Link to %s dropped", name)
        self._set_state(ConnectionState.DISCONNECTED)

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    async def send_steering(self, angle: int) -> bool:
        """Write a steering angle; silently skipped unless connected."""
        handles = self._handles
        if not self.is_connected or handles is None or handles.steering is None:
            return False
        return await self._write(handles.steering, partial(encode_steering, angle), "steering")

    async def send_motor(self, speed: int) -> bool:
        """Write a motor speed; silently skipped unless connected."""
        handles = self._handles
        if not self.is_connected or handles is None or handles.motor is None:
            return False
        return await self._write(
            handles.motor, partial(encode_motor, speed, self._motor_encoding), "motor"
        )

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    async def _open(self, ids: LinkIdentifiers) -> LinkHandles:
        link: DeviceLink | None = None
        try:
            device = await self._transport.request_device(ids.service_uuid)
            link = await device.connect()
            steering = await link.get_channel(ids.service_uuid, ids.steering_uuid)
            motor = await link.get_channel(ids.service_uuid, ids.motor_uuid)
        except BaseException:
            await self._close_quietly(link)
            raise
        return LinkHandles(
            device=device,
            link=link,
            steering=steering,
            motor=motor,
            device_name=device.name or DEFAULT_DEVICE_NAME,
        )

    async def _write(self, channel: Channel, encode: Callable[[], bytes], label: str) -> bool:
        try:
            payload = encode()
        except ValueError as exc:
            logger.warning("%s value rejected: %s", label.capitalize(), exc)
            return False
        try:
            await channel.write(payload)
        except Exception as exc:
            logger.warning("%s write failed: %s", label.capitalize(), exc)
            return False
        return True

    async def _close_quietly(self, link: DeviceLink | None) -> None:
        if link is None:
            return
        try:
            await link.close()
        except Exception as exc:
            logger.warning("Error while closing link: %s", exc)

    def _set_state(self, state: ConnectionState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)
