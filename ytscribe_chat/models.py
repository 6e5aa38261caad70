from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel


# Inbound events
SEND_MESSAGE = "sendMessage"
RESET_SESSION = "resetSession"

# Outbound events
RECEIVE_CHUNK = "receiveChunk"
STREAM_END = "streamEnd"


class ClientFrame(BaseModel):
    event: str
    data: Any = None


class ServerFrame(BaseModel):
    event: str
    data: Optional[Dict[str, Any]] = None

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


# Explicit exports
__all__ = [
    "SEND_MESSAGE",
    "RESET_SESSION",
    "RECEIVE_CHUNK",
    "STREAM_END",
    "ClientFrame",
    "ServerFrame",
]
