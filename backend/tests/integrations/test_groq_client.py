"""Groq chat-completions client: one request per call, every failure is a GenerationError."""

from __future__ import annotations

import json

import pytest
import requests

from aisummary.core.errors import GenerationError
from aisummary.integrations.groq import GroqHttpClient


def _response(status: int, body) -> requests.Response:
    r = requests.Response()
    r.status_code = status
    r._content = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
    r.encoding = "utf-8"
    return r


class FakeSession:
    def __init__(self, outcome) -> None:
        self.outcome = outcome
        self.posts = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.posts.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def _client(session) -> GroqHttpClient:
    return GroqHttpClient(api_key="test-key", base_url="https://groq.test/v1/", model="m",
                          connect_timeout=3, read_timeout=7, session=session)


def test_chat_json_returns_message_content():
    content = '{"enhancedTitle": "T", "enhancedDescription": "A. B."}'
    session = FakeSession(_response(200, {"choices": [{"message": {"content": content}}], "usage": {"total_tokens": 42}}))

    out = _client(session).chat_json([{"role": "user", "content": "hi"}], temperature=0.2, max_tokens=99)

    assert out == content
    post = session.posts[0]
    assert post["url"] == "https://groq.test/v1/chat/completions"
    assert post["headers"]["Authorization"] == "Bearer test-key"
    assert post["timeout"] == (3, 7)
    assert post["json"]["response_format"] == {"type": "json_object"}
    assert (post["json"]["temperature"], post["json"]["max_tokens"], post["json"]["model"]) == (0.2, 99, "m")


@pytest.mark.parametrize(
    "outcome",
    [
        requests.ConnectionError("refused"),
        requests.Timeout("slow"),
        _response(429, {"error": "rate limited"}),
        _response(500, {"error": "boom"}),
        _response(200, b"<html>"),
        _response(200, {"choices": []}),
        _response(200, {"choices": [{"message": {"content": ""}}]}),
    ],
)
def test_failures_map_to_generation_error(outcome):
    session = FakeSession(outcome)
    with pytest.raises(GenerationError):
        _client(session).chat_json([{"role": "user", "content": "hi"}])
    assert len(session.posts) == 1


def test_missing_api_key(monkeypatch):
    from aisummary.integrations.groq import http_client
    monkeypatch.setattr(http_client.settings, "GROQ_API_KEY", None)
    session = FakeSession(_response(200, {}))
    with pytest.raises(GenerationError):
        GroqHttpClient(session=session).chat_json([])
    assert session.posts == []
