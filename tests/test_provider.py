"""
Tests for the semantic-kernel backed completion provider. The connector is
replaced with a fake streaming service so no network calls are made.
"""

import pytest

from conftest import run
from ytscribe_chat import provider as provider_module
from ytscribe_chat.config import Settings
from ytscribe_chat.prompts import GENERATION_CONFIG, SYSTEM_INSTRUCTION
from ytscribe_chat.provider import (
    ProviderError,
    SemanticKernelProvider,
    SemanticKernelSession,
)
from ytscribe_chat.session import ChatTurn


class FakeContent:
    def __init__(self, content, finish_reason=None):
        self.content = content
        self.finish_reason = finish_reason


class FakeService:
    def __init__(self, batches, error=None):
        self.batches = batches
        self.error = error
        self.calls = []

    async def get_streaming_chat_message_contents(self, chat_history, settings):
        self.calls.append((chat_history, settings))
        for batch in self.batches:
            yield batch
        if self.error is not None:
            raise self.error


def _collect(session, message):
    async def consume():
        return [chunk async for chunk in session.send_streaming(message)]

    return run(consume())


def _session(settings=None, history=None, service=None, monkeypatch=None):
    history = [] if history is None else history
    session = SemanticKernelSession(
        settings or Settings(google_ai_api_key="test-key"),
        SYSTEM_INSTRUCTION,
        history,
        GENERATION_CONFIG,
    )
    if service is not None:
        monkeypatch.setattr(
            provider_module, "_build_service", lambda settings, config: (service, "exec-settings")
        )
    return session, history


def _roles(chat_history):
    return [(m.role.value, m.content) for m in chat_history.messages]


def test_streams_text_and_commits_history(monkeypatch):
    service = FakeService(
        [
            [FakeContent("Hel")],
            [FakeContent(""), FakeContent("lo")],
            [FakeContent("!", finish_reason="stop")],
        ]
    )
    session, history = _session(service=service, monkeypatch=monkeypatch)

    chunks = _collect(session, "hi")

    assert [c.text for c in chunks] == ["Hel", "lo", "!"]
    assert [c.is_final for c in chunks] == [False, False, True]
    assert history == [
        ChatTurn(role="user", text="hi"),
        ChatTurn(role="assistant", text="Hello!"),
    ]
    chat_history, settings = service.calls[0]
    assert settings == "exec-settings"
    assert _roles(chat_history) == [("system", SYSTEM_INSTRUCTION), ("user", "hi")]


def test_prior_turns_are_sent_with_the_message(monkeypatch):
    prior = [ChatTurn("user", "q1"), ChatTurn("assistant", "a1")]
    service = FakeService([[FakeContent("a2")]])
    session, _ = _session(history=list(prior), service=service, monkeypatch=monkeypatch)

    _collect(session, "q2")

    chat_history, _ = service.calls[0]
    assert _roles(chat_history)[1:] == [("user", "q1"), ("assistant", "a1"), ("user", "q2")]


def test_history_cap_keeps_latest_exchanges(monkeypatch):
    prior = [
        ChatTurn("user", "q1"),
        ChatTurn("assistant", "a1"),
        ChatTurn("user", "q2"),
        ChatTurn("assistant", "a2"),
    ]
    service = FakeService([[FakeContent("a3")]])
    session, history = _session(
        settings=Settings(google_ai_api_key="k", max_history_turns=1),
        history=list(prior),
        service=service,
        monkeypatch=monkeypatch,
    )

    _collect(session, "q3")

    chat_history, _ = service.calls[0]
    assert _roles(chat_history)[1:] == [("user", "q2"), ("assistant", "a2"), ("user", "q3")]
    # The session itself keeps everything
    assert len(history) == 6


def test_failed_stream_leaves_history_untouched(monkeypatch):
    service = FakeService([[FakeContent("partial")]], error=RuntimeError("stream reset"))
    session, history = _session(service=service, monkeypatch=monkeypatch)

    with pytest.raises(RuntimeError, match="stream reset"):
        _collect(session, "hi")

    assert history == []


def test_missing_gemini_key_fails_at_send_not_creation():
    session, _ = _session(settings=Settings(completion_provider="google_ai"))

    with pytest.raises(ProviderError, match="GEMINI_API_KEY is not configured"):
        _collect(session, "hi")


def test_missing_azure_settings_are_listed():
    settings = Settings(completion_provider="azure_openai", azure_openai_endpoint="https://x")
    session, _ = _session(settings=settings)

    with pytest.raises(ProviderError) as exc:
        _collect(session, "hi")

    assert "AZURE_OPENAI_API_KEY" in str(exc.value)
    assert "AZURE_OPENAI_CHAT_DEPLOYMENT_NAME" in str(exc.value)
    assert "AZURE_OPENAI_ENDPOINT" not in str(exc.value)


def test_unknown_provider_is_a_send_time_error():
    session, _ = _session(settings=Settings(completion_provider="carrier-pigeon"))

    with pytest.raises(ProviderError, match="Unsupported completion provider: carrier-pigeon"):
        _collect(session, "hi")


def test_connector_is_built_once_per_session(monkeypatch):
    built = []

    def build(settings, config):
        built.append(config)
        return FakeService([[FakeContent("x")]]), None

    monkeypatch.setattr(provider_module, "_build_service", build)
    session, _ = _session()

    _collect(session, "one")
    _collect(session, "two")

    assert built == [GENERATION_CONFIG]


def test_provider_reads_settings_per_session(monkeypatch):
    provider = SemanticKernelProvider()

    monkeypatch.setenv("GEMINI_MODEL", "model-a")
    first = provider.create_session(SYSTEM_INSTRUCTION, [], GENERATION_CONFIG)
    monkeypatch.setenv("GEMINI_MODEL", "model-b")
    second = provider.create_session(SYSTEM_INSTRUCTION, [], GENERATION_CONFIG)

    assert first._settings.gemini_model_id == "model-a"
    assert second._settings.gemini_model_id == "model-b"


def test_provider_instance_is_shared():
    assert SemanticKernelProvider.instance() is SemanticKernelProvider.instance()
