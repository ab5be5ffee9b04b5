# tests/conftest.py
import io
import json
import threading

import pytest
from botocore.response import StreamingBody

from portfolio_chat.core.messages import ModelResponse, TextBlock, ToolUseBlock


def streaming(payload) -> StreamingBody:
    data = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
    return StreamingBody(io.BytesIO(data), len(data))


class FakeBlobStore:
    """In-memory blob store; a value that is an Exception is raised on read."""

    def __init__(self, blobs=None):
        self.blobs = dict(blobs or {})
        self.reads = []
        self._lock = threading.Lock()

    def get_json(self, key):
        with self._lock:
            self.reads.append(key)
        if key not in self.blobs:
            raise KeyError(key)
        value = self.blobs[key]
        if isinstance(value, Exception):
            raise value
        return value

    def put_json(self, key, value):
        self.blobs[key] = value


class FakeEmbedder:
    def __init__(self, vectors=None, default=None, error=None):
        self.vectors = dict(vectors or {})
        self.default = default
        self.error = error
        self.calls = []

    def embed(self, text):
        self.calls.append(text)
        if self.error:
            raise self.error
        return self.vectors.get(text, self.default)

    def embed_documents(self, texts):
        return [self.embed(t) for t in texts]


class ScriptedLLM:
    """Returns queued ModelResponses (or raises queued exceptions) and records every call."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def complete(self, system, messages, tools):
        self.calls.append({"system": system, "messages": list(messages), "tools": list(tools)})
        nxt = self.responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt


def text_response(text: str) -> ModelResponse:
    return ModelResponse(stop_reason="end_turn", content=(TextBlock(text),))


def tool_response(*calls) -> ModelResponse:
    """calls: (id, name, input) tuples."""
    return ModelResponse(
        stop_reason="tool_use",
        content=(TextBlock("Let me check."),) + tuple(ToolUseBlock(id=i, name=n, input=inp) for i, n, inp in calls),
    )


@pytest.fixture
def kb_records():
    return [
        {"text": "A", "embedding": [1.0, 0.0], "source": "s1"},
        {"text": "B", "embedding": [0.0, 1.0], "source": "s2"},
    ]


@pytest.fixture(autouse=True)
def _aws_env(monkeypatch):
    # boto3 clients built in tests must never reach real AWS
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
