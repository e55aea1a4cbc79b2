import pytest
import requests

from errors import UpstreamFailure
from generation import GenerationClient
from prompts import (
    ENSURE_JSON_LINE, MAX_SOURCE_CHARS, QUIZ_SYSTEM_PROMPT, quiz_messages, quiz_system_prompt, truncate_source,
)


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.requests = []

    def post(self, url, headers=None, json=None, timeout=None):
        self.requests.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        if self.exc:
            raise self.exc
        return self.response


def _client(session, **kw):
    return GenerationClient(api_key="sk-test", base_url="https://llm.example/v1/", timeout=5, session=session, **kw)


def test_chat_returns_message_content():
    session = FakeSession(FakeResponse(body={"choices": [{"message": {"content": "hello"}}]}))
    out = _client(session).chat([{"role": "user", "content": "hi"}], temperature=0.2, max_tokens=50)

    assert out == "hello"
    req = session.requests[0]
    assert req["url"] == "https://llm.example/v1/chat/completions"
    assert req["headers"]["Authorization"] == "Bearer sk-test"
    assert req["timeout"] == 5
    assert req["json"]["model"] == "gpt-4o-mini"
    assert req["json"]["temperature"] == 0.2
    assert "response_format" not in req["json"]


def test_force_json_sets_response_format():
    session = FakeSession(FakeResponse(body={"choices": [{"message": {"content": "{}"}}]}))
    _client(session).chat([], model="gpt-x", force_json=True)
    assert session.requests[0]["json"]["response_format"] == {"type": "json_object"}
    assert session.requests[0]["json"]["model"] == "gpt-x"


def test_missing_content_is_empty_string():
    session = FakeSession(FakeResponse(body={"choices": []}))
    assert _client(session).chat([]) == ""


def test_non_2xx_surfaces_body():
    session = FakeSession(FakeResponse(status_code=429, text='{"error": "rate limited"}'))
    with pytest.raises(UpstreamFailure) as exc:
        _client(session).chat([])
    assert "429" in exc.value.message
    assert "rate limited" in exc.value.message
    assert exc.value.status == 500
    assert len(session.requests) == 1


def test_transport_error_is_upstream_failure():
    session = FakeSession(exc=requests.ConnectionError("refused"))
    with pytest.raises(UpstreamFailure):
        _client(session).chat([])


def test_missing_api_key_fails_before_request():
    session = FakeSession()
    with pytest.raises(UpstreamFailure):
        GenerationClient(api_key="", session=session).chat([])
    assert session.requests == []


def test_teacher_prompt_without_json_gets_format_reminder():
    content = quiz_system_prompt("Make it hard, 5 questions")
    assert content.startswith(QUIZ_SYSTEM_PROMPT)
    assert "\nTeacher instructions: Make it hard, 5 questions" in content
    assert content.endswith(ENSURE_JSON_LINE)


def test_teacher_prompt_mentioning_json_is_left_alone():
    content = quiz_system_prompt("Return Json with 4 questions")
    assert not content.endswith(ENSURE_JSON_LINE)


def test_no_teacher_prompt_uses_base_prompt():
    messages = quiz_messages("source text")
    assert messages == [
        {"role": "system", "content": QUIZ_SYSTEM_PROMPT},
        {"role": "user", "content": "source text"},
    ]


def test_truncate_source_caps_at_ceiling():
    assert len(truncate_source("a" * (MAX_SOURCE_CHARS + 10))) == MAX_SOURCE_CHARS
    assert truncate_source("short") == "short"
    assert truncate_source(None) == ""
