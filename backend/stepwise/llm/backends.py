"""
Model call boundary.

A backend takes a finished prompt and returns a ModelResponse: an HTTP-like
status, the raw body, and the candidate texts found in the payload. Backends
never interpret the text; they only move it.

Three transports are provided:

- GeminiBackend: google-genai SDK, called directly.
- OpenAIBackend: OpenAI chat completions.
- RelayBackend: POSTs the prompt to our own /api/relay endpoint, which holds
  the API key server-side and answers with the Gemini JSON payload.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol

import openai
import requests
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from ..config import Settings


logger = logging.getLogger(__name__)


class TransformMode(enum.Enum):
    INITIAL = "initial"
    REFINE = "refine"


@dataclass
class ModelResponse:
    status: int
    body: str = ""
    candidates: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class ModelBackend(Protocol):
    def generate(self, prompt: str, mode: TransformMode) -> ModelResponse:
        ...


def _get(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def candidate_texts(payload: Any) -> List[str]:
    """
    Pull the first text part of every candidate in a Gemini-shaped payload.

    Works on both SDK response objects and the decoded JSON dict, e.g.
    {"candidates": [{"content": {"parts": [{"text": "x=5"}]}}]}.
    Candidates with no parts or no text are skipped.
    """
    texts = []
    for candidate in _get(payload, "candidates") or []:
        parts = _get(_get(candidate, "content"), "parts") or []
        if not parts:
            continue
        text = _get(parts[0], "text")
        if isinstance(text, str):
            texts.append(text)
    return texts


class GeminiBackend:
    """Direct call to Gemini through the google-genai client."""

    def __init__(self, api_key: Optional[str], model: str = "gemini-2.5-flash",
                 timeout: float = 60.0, temperature: float = 0.1):
        if not api_key:
            raise RuntimeError(
                "GOOGLE_API_KEY or GEMINI_API_KEY environment variable is not set. "
                "Please configure it before using the Gemini backend."
            )
        self.model = model
        self.temperature = temperature
        # HttpOptions.timeout is in milliseconds.
        self.client = genai.Client(
            api_key=api_key,
            http_options=genai_types.HttpOptions(timeout=int(timeout * 1000)),
        )
        logger.info(f"GenAI client initialized with model: {model}")

    def raw_generate(self, prompt: str):
        return self.client.models.generate_content(
            model=self.model,
            contents=prompt,
            config=genai_types.GenerateContentConfig(temperature=self.temperature),
        )

    def generate(self, prompt: str, mode: TransformMode) -> ModelResponse:
        try:
            resp = self.raw_generate(prompt)
        except genai_errors.APIError as e:
            logger.error(f"Gemini API error ({mode.value}): {e.code} {e.message}")
            return ModelResponse(status=e.code or 500, body=str(e.message or e))
        return ModelResponse(status=200, body=resp.model_dump_json(exclude_none=True),
                             candidates=candidate_texts(resp))


class OpenAIBackend:
    """Chat completions call; each choice counts as one candidate."""

    def __init__(self, api_key: Optional[str], model: str = "gpt-4o-mini",
                 timeout: float = 60.0, temperature: float = 0.1):
        if not api_key:
            raise RuntimeError(
                "OPENAI_API_KEY environment variable is not set. "
                "Please configure it before using the OpenAI backend."
            )
        self.model = model
        self.temperature = temperature
        # Retries are off: a failure becomes a placeholder step right away.
        self.client = openai.OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    def generate(self, prompt: str, mode: TransformMode) -> ModelResponse:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.temperature,
            )
        except openai.APITimeoutError as e:
            logger.error(f"OpenAI request timed out ({mode.value}): {e}")
            return ModelResponse(status=504, body=str(e))
        except openai.APIConnectionError as e:
            logger.error(f"OpenAI connection failed ({mode.value}): {e}")
            return ModelResponse(status=502, body=str(e))
        except openai.APIStatusError as e:
            logger.error(f"OpenAI API error ({mode.value}): {e.status_code}")
            return ModelResponse(status=e.status_code, body=e.response.text)

        candidates = [
            choice.message.content
            for choice in response.choices
            if choice.message is not None and choice.message.content
        ]
        return ModelResponse(status=200, body=response.model_dump_json(), candidates=candidates)


class RelayBackend:
    """Goes through the server-side relay so the browser never sees the key."""

    def __init__(self, url: str, timeout: float = 60.0, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def generate(self, prompt: str, mode: TransformMode) -> ModelResponse:
        try:
            r = self.session.post(self.url, json={"prompt": prompt}, timeout=self.timeout)
        except requests.Timeout as e:
            logger.error(f"Relay call timed out ({mode.value}): {e}")
            return ModelResponse(status=504, body=str(e))
        except requests.RequestException as e:
            logger.error(f"Relay call failed ({mode.value}): {e}")
            return ModelResponse(status=502, body=str(e))

        if not r.ok:
            return ModelResponse(status=r.status_code, body=r.text)
        try:
            payload = r.json()
        except ValueError:
            logger.warning(f"Relay returned non-JSON body: {r.text[:200]}")
            return ModelResponse(status=r.status_code, body=r.text)
        return ModelResponse(status=r.status_code, body=r.text, candidates=candidate_texts(payload))


class UnconfiguredBackend:
    """Stands in when no API key is set; every call fails visibly."""

    def __init__(self, reason: str):
        self.reason = reason

    def generate(self, prompt: str, mode: TransformMode) -> ModelResponse:
        return ModelResponse(status=503, body=self.reason)


def build_backend(settings: Settings) -> ModelBackend:
    if settings.backend == "openai":
        return OpenAIBackend(settings.openai_api_key, settings.openai_model,
                             settings.timeout, settings.temperature)
    if settings.backend == "relay":
        return RelayBackend(settings.relay_url, settings.timeout)
    return GeminiBackend(settings.genai_api_key, settings.genai_model,
                         settings.timeout, settings.temperature)
