"""Per-connection chat relay between a client socket and the completion provider."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Optional, Set

from .models import RECEIVE_CHUNK, RESET_SESSION, SEND_MESSAGE, STREAM_END
from .provider import CompletionProvider, ProviderError, UnavailableSession
from .session import ChatSession, StreamChunk, new_chat_session
from .transport import Connection


logger = logging.getLogger("ytscribe_chat.relay")

ERROR_PREFIX = "\n[Error] "

_END_OF_STREAM = object()


async def _anext_or_end(iterator: AsyncIterator[StreamChunk]) -> Any:
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return _END_OF_STREAM


class SessionRelay:
    """Owns the chat session of one connection and mediates its traffic.

    Sends are serialized: a second ``sendMessage`` waits for the previous
    turn's ``streamEnd``. Each send is bound to the session current when it
    arrived, so a reset only affects messages received after it. A reset
    never cancels the turn in flight.
    """

    def __init__(
        self,
        connection: Connection,
        provider: CompletionProvider,
        stream_timeout: Optional[float] = None,
    ) -> None:
        self._connection = connection
        self._provider = provider
        self._stream_timeout = stream_timeout or None
        self._send_lock = asyncio.Lock()
        self._tasks: Set[asyncio.Task] = set()
        self.session: Optional[ChatSession] = None

    def _new_session(self) -> ChatSession:
        try:
            return new_chat_session(self._provider)
        except Exception as e:
            logger.warning(
                "Chat session unavailable for connection %s: %s",
                self._connection.connection_id,
                e,
            )
            return ChatSession(handle=UnavailableSession(e))

    def on_connect(self) -> None:
        self.session = self._new_session()
        logger.info(
            "Chat connected: connection=%s session=%s",
            self._connection.connection_id,
            self.session.session_id,
        )

    def on_reset_session(self) -> None:
        self.session = self._new_session()
        logger.info(
            "Chat session reset: connection=%s session=%s",
            self._connection.connection_id,
            self.session.session_id,
        )

    def on_disconnect(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self.session = None
        logger.info("Chat disconnected: connection=%s", self._connection.connection_id)

    async def on_send_message(
        self, message: Any, session: Optional[ChatSession] = None
    ) -> None:
        """Relay one user turn.

        ``session`` is the session current when the message arrived; queued
        sends keep it even if a reset happens before they start.
        """
        if not isinstance(message, str) or not message:
            return
        if session is None:
            session = self.session
        if session is None:
            return
        async with self._send_lock:
            await self._relay_turn(session, message)

    async def _relay_turn(self, session: ChatSession, message: str) -> None:
        stream: Optional[AsyncIterator[StreamChunk]] = None
        try:
            stream = session.handle.send_streaming(message)
            async for chunk in self._with_timeout(stream):
                if chunk.text:
                    await self._connection.emit(RECEIVE_CHUNK, {"text": chunk.text})
        except Exception as e:
            logger.warning(
                "Completion failed for connection %s: %s",
                self._connection.connection_id,
                e,
            )
            text = str(e) or "Unknown error"
            await self._connection.emit(RECEIVE_CHUNK, {"text": ERROR_PREFIX + text})
        finally:
            await self._close_stream(stream)
        await self._connection.emit(STREAM_END)

    async def _close_stream(self, stream: Optional[AsyncIterator[StreamChunk]]) -> None:
        aclose = getattr(stream, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except Exception as e:
            logger.debug(
                "Closing completion stream failed for connection %s: %s",
                self._connection.connection_id,
                e,
            )

    async def _next_chunk(self, iterator: AsyncIterator[StreamChunk]) -> Any:
        if self._stream_timeout is None:
            return await _anext_or_end(iterator)
        pending = asyncio.ensure_future(_anext_or_end(iterator))
        try:
            done, _ = await asyncio.wait({pending}, timeout=self._stream_timeout)
        except asyncio.CancelledError:
            pending.cancel()
            raise
        if not done:
            pending.cancel()
            await asyncio.gather(pending, return_exceptions=True)
            raise ProviderError(
                "Completion provider timed out after %gs" % self._stream_timeout
            )
        # Provider errors, TimeoutError included, surface unchanged
        return pending.result()

    async def _with_timeout(
        self, stream: AsyncIterator[StreamChunk]
    ) -> AsyncIterator[StreamChunk]:
        iterator = stream.__aiter__()
        while True:
            chunk = await self._next_chunk(iterator)
            if chunk is _END_OF_STREAM:
                return
            yield chunk

    async def dispatch(self, event: str, data: Any = None) -> None:
        """Route one inbound event. Unknown events are ignored."""
        if event == SEND_MESSAGE:
            message = data.get("message") if isinstance(data, dict) else None
            # Bind the turn to the session current on arrival
            task = asyncio.create_task(self.on_send_message(message, self.session))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        elif event == RESET_SESSION:
            self.on_reset_session()
        else:
            logger.debug(
                "Ignoring unknown event %r on connection %s",
                event,
                self._connection.connection_id,
            )
