import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


load_dotenv()

BACKENDS = ("gemini", "openai", "relay")


def _get_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        raise RuntimeError(f"{name} must be a number, got {value!r}")


@dataclass(frozen=True)
class Settings:
    """Runtime configuration, read from the environment (and .env)."""

    backend: str = "gemini"
    genai_api_key: Optional[str] = None
    genai_model: str = "gemini-2.5-flash"
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    relay_url: str = "http://127.0.0.1:5000/api/relay"
    timeout: float = 60.0
    temperature: float = 0.1
    speech_enabled: bool = True
    secret_key: str = "stepwise-dev"
    max_sessions: int = 1000

    @classmethod
    def from_env(cls) -> "Settings":
        backend = os.getenv("STEPWISE_BACKEND", "gemini").strip().lower()
        if backend not in BACKENDS:
            raise RuntimeError(
                f"STEPWISE_BACKEND must be one of {', '.join(BACKENDS)}, got {backend!r}"
            )
        return cls(
            backend=backend,
            genai_api_key=os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY"),
            genai_model=os.getenv("GENAI_MODEL", "gemini-2.5-flash"),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            relay_url=os.getenv("STEPWISE_RELAY_URL", "http://127.0.0.1:5000/api/relay"),
            timeout=_get_float("STEPWISE_TIMEOUT", 60.0),
            temperature=_get_float("STEPWISE_TEMPERATURE", 0.1),
            speech_enabled=os.getenv("STEPWISE_SPEECH", "1").strip().lower() not in {"0", "false", "no", "off"},
            secret_key=os.getenv("FLASK_SECRET_KEY", "stepwise-dev"),
            max_sessions=int(_get_float("STEPWISE_MAX_SESSIONS", 1000)),
        )
