from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv


# Load environment variables from a local .env if present (harmless in containers)
load_dotenv()


@dataclass(frozen=True)
class Settings:
    completion_provider: str = "google_ai"
    google_ai_api_key: Optional[str] = None
    gemini_model_id: str = "gemini-2.5-flash"
    azure_openai_endpoint: Optional[str] = None
    azure_openai_api_key: Optional[str] = None
    azure_openai_chat_deployment_name: Optional[str] = None
    azure_openai_api_version: Optional[str] = None
    stream_timeout_seconds: float = 60.0  # 0 disables the idle timeout
    max_history_turns: int = 0  # 0 keeps the whole conversation
    cors_origins: Tuple[str, ...] = ("*",)
    port: int = 5000
    log_level: str = "INFO"


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def get_settings() -> Settings:
    """Read settings from the environment.

    Not cached: every chat session reads its own copy, so rotated credentials
    apply to the next connect or reset. Missing credentials are not an error
    here; the provider reports them when a message is sent.
    """
    google_ai_api_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_AI_API_KEY")
    endpoint = os.getenv("AZURE_OPENAI_ENDPOINT") or os.getenv("AZURE_OPEN_AI__ENDPOINT")
    api_key = os.getenv("AZURE_OPENAI_API_KEY") or os.getenv("AZURE_OPEN_AI__API_KEY")
    deployment = os.getenv("AZURE_OPENAI_CHAT_DEPLOYMENT_NAME") or os.getenv(
        "AZURE_OPEN_AI__CHAT_COMPLETION_DEPLOYMENT_NAME"
    )

    origins = tuple(
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "*").split(",")
        if origin.strip()
    )

    timeout = _float_env("CHAT_STREAM_TIMEOUT_SECONDS", 60.0)
    max_history_turns = _int_env("MAX_HISTORY_TURNS", 0)

    return Settings(
        completion_provider=os.getenv("COMPLETION_PROVIDER", "google_ai").strip().lower(),
        google_ai_api_key=google_ai_api_key,
        gemini_model_id=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        azure_openai_endpoint=endpoint,
        azure_openai_api_key=api_key,
        azure_openai_chat_deployment_name=deployment,
        azure_openai_api_version=os.getenv("AZURE_OPENAI_API_VERSION"),
        stream_timeout_seconds=max(timeout, 0.0),
        max_history_turns=max(max_history_turns, 0),
        cors_origins=origins or ("*",),
        port=_int_env("PORT", 5000),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
