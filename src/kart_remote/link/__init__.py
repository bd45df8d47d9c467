from .session import (
    AlreadyConnecting,
    ConnectionFailed,
    ConnectionState,
    LinkError,
    LinkHandles,
    LinkSession,
    WriteFailed,
)
from .transport import LinkIdentifiers

__all__ = [
    "AlreadyConnecting",
    "ConnectionFailed",
    "ConnectionState",
    "LinkError",
    "LinkHandles",
    "LinkIdentifiers",
    "LinkSession",
    "WriteFailed",
]
