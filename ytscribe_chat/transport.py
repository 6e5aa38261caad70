"""Connection abstraction between the relay and the client socket."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import WebSocket
from pydantic import ValidationError

from .models import ClientFrame, ServerFrame


logger = logging.getLogger("ytscribe_chat.transport")


class Connection:
    """Outbound half of a client channel. Emitting is fire-and-forget."""

    connection_id: str = ""

    async def emit(self, event: str, data: Optional[Dict[str, Any]] = None) -> None:
        raise NotImplementedError


class WebSocketConnection(Connection):
    def __init__(self, websocket: WebSocket, connection_id: str) -> None:
        self._websocket = websocket
        self.connection_id = connection_id

    async def emit(self, event: str, data: Optional[Dict[str, Any]] = None) -> None:
        frame = ServerFrame(event=event, data=data)
        try:
            await self._websocket.send_json(frame.to_wire())
        except Exception as e:
            # Peer already gone; later emissions have no effect either
            logger.debug(
                "Dropped %s for connection %s: %s", event, self.connection_id, e
            )


def parse_frame(raw: str) -> Optional[ClientFrame]:
    """Decode one inbound text frame, or return None if it is malformed."""
    try:
        return ClientFrame.model_validate_json(raw)
    except ValidationError as e:
        logger.debug("Ignoring malformed frame: %s", e.errors(include_url=False))
        return None
