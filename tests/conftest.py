"""Shared test doubles: a scripted completion provider and a recording connection."""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from ytscribe_chat.provider import CompletionProvider, SessionHandle
from ytscribe_chat.session import ChatTurn, StreamChunk
from ytscribe_chat.transport import Connection


class Stall:
    """Script step that sleeps before the next chunk."""

    def __init__(self, seconds: float) -> None:
        self.seconds = seconds


class StubSession(SessionHandle):
    def __init__(self, provider: "StubProvider", system_instruction, history, generation_config):
        self.provider = provider
        self.system_instruction = system_instruction
        self.history = history
        self.initial_history = list(history)
        self.generation_config = generation_config
        self.sent: List[str] = []

    async def send_streaming(self, message: str):
        self.sent.append(message)
        self.provider.sent.append((self, message))
        script = self.provider.next_script()
        parts = []
        for step in script:
            if isinstance(step, BaseException):
                raise step
            if isinstance(step, Stall):
                await asyncio.sleep(step.seconds)
                continue
            parts.append(step)
            yield StreamChunk(text=step)
        self.history.append(ChatTurn(role="user", text=message))
        self.history.append(ChatTurn(role="assistant", text="".join(parts)))


class StubProvider(CompletionProvider):
    """Replays scripted replies. Each script is a list of chunk strings,
    exceptions to raise, or Stall steps; the last script repeats."""

    def __init__(self, *scripts: List[Any]) -> None:
        self.scripts = list(scripts) or [[]]
        self.sessions: List[StubSession] = []
        self.sent: List[tuple] = []

    def next_script(self) -> List[Any]:
        if len(self.scripts) > 1:
            return self.scripts.pop(0)
        return self.scripts[0]

    def create_session(self, system_instruction, history, generation_config) -> SessionHandle:
        session = StubSession(self, system_instruction, history, generation_config)
        self.sessions.append(session)
        return session


class RecordingConnection(Connection):
    def __init__(self, connection_id: str = "test-connection") -> None:
        self.connection_id = connection_id
        self.events: List[tuple] = []

    async def emit(self, event: str, data: Optional[Dict[str, Any]] = None) -> None:
        self.events.append((event, data))


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def connection() -> RecordingConnection:
    return RecordingConnection()
