from __future__ import annotations

import logging
from typing import Any, AsyncIterator, List, Optional, Tuple

from semantic_kernel.connectors.ai.open_ai import (
    AzureChatCompletion,
    OpenAIChatPromptExecutionSettings,
)
from semantic_kernel.contents import ChatHistory

from .config import Settings, get_settings
from .prompts import GenerationConfig
from .session import ChatTurn, StreamChunk


logger = logging.getLogger("ytscribe_chat.provider")


class ProviderError(Exception):
    """A completion provider failure whose message is safe to show in the chat."""


class SessionHandle:
    def send_streaming(self, message: str) -> AsyncIterator[StreamChunk]:
        raise NotImplementedError


class CompletionProvider:
    def create_session(
        self,
        system_instruction: str,
        history: List[ChatTurn],
        generation_config: GenerationConfig,
    ) -> SessionHandle:
        raise NotImplementedError


class UnavailableSession(SessionHandle):
    """Stands in for a session whose construction failed.

    Every send re-raises the construction error, so it reaches the user
    through the normal chat error path instead of closing the connection.
    """

    def __init__(self, error: Exception) -> None:
        self._error = error

    async def send_streaming(self, message: str) -> AsyncIterator[StreamChunk]:
        raise self._error
        yield  # pragma: no cover


def _build_service(settings: Settings, config: GenerationConfig) -> Tuple[Any, Any]:
    provider = settings.completion_provider
    if provider == "google_ai":
        if not settings.google_ai_api_key:
            raise ProviderError("GEMINI_API_KEY is not configured")
        # The Google connector ships in the semantic-kernel[google] extra
        from semantic_kernel.connectors.ai.google.google_ai import (
            GoogleAIChatCompletion,
            GoogleAIChatPromptExecutionSettings,
        )

        service = GoogleAIChatCompletion(
            gemini_model_id=settings.gemini_model_id,
            api_key=settings.google_ai_api_key,
        )
        execution_settings = GoogleAIChatPromptExecutionSettings(
            temperature=config.temperature,
            max_output_tokens=config.max_output_tokens,
        )
        return service, execution_settings

    if provider == "azure_openai":
        missing = [
            name
            for name, value in {
                "AZURE_OPENAI_ENDPOINT": settings.azure_openai_endpoint,
                "AZURE_OPENAI_API_KEY": settings.azure_openai_api_key,
                "AZURE_OPENAI_CHAT_DEPLOYMENT_NAME": settings.azure_openai_chat_deployment_name,
            }.items()
            if not value
        ]
        if missing:
            raise ProviderError(
                "Missing required environment variables: " + ", ".join(missing)
            )
        service = AzureChatCompletion(
            api_key=settings.azure_openai_api_key,
            endpoint=settings.azure_openai_endpoint,
            deployment_name=settings.azure_openai_chat_deployment_name,
            api_version=settings.azure_openai_api_version,
        )
        execution_settings = OpenAIChatPromptExecutionSettings(
            temperature=config.temperature,
            max_tokens=config.max_output_tokens,
        )
        return service, execution_settings

    raise ProviderError(f"Unsupported completion provider: {provider}")


class SemanticKernelSession(SessionHandle):
    """A chat session backed by a semantic-kernel chat completion service.

    The connector is built on the first send, never at construction, so a
    missing or invalid credential only shows up as a send-time error.
    """

    def __init__(
        self,
        settings: Settings,
        system_instruction: str,
        history: List[ChatTurn],
        generation_config: GenerationConfig,
    ) -> None:
        self._settings = settings
        self._system_instruction = system_instruction
        self._history = history
        self._generation_config = generation_config
        self._service: Optional[Any] = None
        self._execution_settings: Optional[Any] = None

    def _ensure_service(self) -> Tuple[Any, Any]:
        if self._service is None:
            self._service, self._execution_settings = _build_service(
                self._settings, self._generation_config
            )
        return self._service, self._execution_settings

    def _chat_history(self, message: str) -> ChatHistory:
        chat_history = ChatHistory(system_message=self._system_instruction)
        turns = self._history
        if self._settings.max_history_turns > 0:
            turns = turns[-self._settings.max_history_turns * 2 :]
        for turn in turns:
            if turn.role == "user":
                chat_history.add_user_message(turn.text)
            else:
                chat_history.add_assistant_message(turn.text)
        chat_history.add_user_message(message)
        return chat_history

    async def send_streaming(self, message: str) -> AsyncIterator[StreamChunk]:
        service, execution_settings = self._ensure_service()
        chat_history = self._chat_history(message)

        parts: List[str] = []
        async for contents in service.get_streaming_chat_message_contents(
            chat_history=chat_history, settings=execution_settings
        ):
            for content in contents:
                text = getattr(content, "content", None)
                if not isinstance(text, str) or not text:
                    continue
                parts.append(text)
                finish_reason = getattr(content, "finish_reason", None)
                yield StreamChunk(text=text, is_final=finish_reason is not None)

        # Only a completed reply becomes part of the conversation
        self._history.append(ChatTurn(role="user", text=message))
        self._history.append(ChatTurn(role="assistant", text="".join(parts)))


class SemanticKernelProvider(CompletionProvider):
    """Singleton-style provider; sessions read their own settings when created."""

    _instance: Optional["SemanticKernelProvider"] = None

    @classmethod
    def instance(cls) -> "SemanticKernelProvider":
        if cls._instance is None:
            cls._instance = SemanticKernelProvider()
        return cls._instance

    def create_session(
        self,
        system_instruction: str,
        history: List[ChatTurn],
        generation_config: GenerationConfig,
    ) -> SessionHandle:
        settings = get_settings()
        logger.debug(
            "Creating chat session with provider=%s", settings.completion_provider
        )
        return SemanticKernelSession(
            settings, system_instruction, history, generation_config
        )
