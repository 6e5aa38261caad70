from __future__ import annotations

import logging
import uuid

from fastapi import Depends, FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .logging import configure_logging
from .provider import CompletionProvider, SemanticKernelProvider
from .relay import SessionRelay
from .transport import WebSocketConnection, parse_frame


logger = logging.getLogger("ytscribe_chat.api")

app = FastAPI(title="YTScribe Chat Relay", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(get_settings().cors_origins),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_provider() -> CompletionProvider:
    return SemanticKernelProvider.instance()


@app.on_event("startup")
async def on_startup() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info(
        "Chat relay starting: provider=%s stream_timeout=%ss",
        settings.completion_provider,
        settings.stream_timeout_seconds,
    )


@app.get("/healthz")
async def healthz() -> dict:
    return {"status": "ok"}


@app.websocket("/ws/chat")
async def chat_socket(
    websocket: WebSocket,
    provider: CompletionProvider = Depends(get_provider),
) -> None:
    """
    Streaming chat endpoint, one relay per connection.

    Client -> server: {"event": "sendMessage", "data": {"message": "..."}}
                      {"event": "resetSession"}
    Server -> client: {"event": "receiveChunk", "data": {"text": "..."}}
                      {"event": "streamEnd"}
    """
    await websocket.accept()
    connection = WebSocketConnection(websocket, connection_id=uuid.uuid4().hex)
    relay = SessionRelay(
        connection,
        provider,
        stream_timeout=get_settings().stream_timeout_seconds,
    )
    relay.on_connect()
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            raw = message.get("text")
            if raw is None:
                # Binary frames carry no events
                continue
            frame = parse_frame(raw)
            if frame is None:
                continue
            await relay.dispatch(frame.event, frame.data)
    except WebSocketDisconnect:
        pass
    finally:
        relay.on_disconnect()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ytscribe_chat.api:app",
        host="0.0.0.0",
        port=get_settings().port,
    )
