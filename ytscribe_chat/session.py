from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List

from .prompts import GENERATION_CONFIG, SYSTEM_INSTRUCTION, GenerationConfig

if TYPE_CHECKING:
    from .provider import CompletionProvider, SessionHandle


@dataclass(frozen=True)
class ChatTurn:
    role: str  # 'user' | 'assistant'
    text: str


@dataclass(frozen=True)
class StreamChunk:
    text: str
    is_final: bool = False


@dataclass
class ChatSession:
    """One conversation segment owned by a single connection.

    Never mutated across a reset: the relay swaps in a brand-new instance.
    ``history`` is shared with the provider handle, which appends a user and
    an assistant turn after every completed reply.
    """

    handle: "SessionHandle"
    history: List[ChatTurn] = field(default_factory=list)
    system_instruction: str = SYSTEM_INSTRUCTION
    generation_config: GenerationConfig = GENERATION_CONFIG
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)


def new_chat_session(provider: "CompletionProvider") -> ChatSession:
    history: List[ChatTurn] = []
    handle = provider.create_session(SYSTEM_INSTRUCTION, history, GENERATION_CONFIG)
    return ChatSession(handle=handle, history=history)
