import sys
from pathlib import Path

# Ensure the backend directory is on sys.path so `stepwise` and `app` are importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from stepwise.llm.backends import ModelResponse
from stepwise.llm.transform import TransformationClient
from stepwise.session.capture import BrowserCapture
from stepwise.session.controller import SessionController


class FakeBackend:
    """Replays queued ModelResponses (or raises queued exceptions)."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []
        self.on_call = None

    def queue(self, *responses):
        self.responses.extend(responses)

    def generate(self, prompt, mode):
        self.calls.append((prompt, mode))
        if self.on_call is not None:
            self.on_call()
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def ok(*texts):
    return ModelResponse(status=200, body="{}", candidates=list(texts))


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def capture():
    return BrowserCapture(available=True)


@pytest.fixture
def controller(backend, capture):
    return SessionController(TransformationClient(backend), capture)
