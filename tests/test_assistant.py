import json

import pytest
import requests

from census_quality import assistant
from census_quality.assistant import (
    EMPTY_REPLY,
    MISSING_KEY_REPLY,
    SERVICE_ERROR_REPLY,
    AssistantServiceError,
    GeminiChatClient,
    generate_chat_response,
)
from census_quality.models import ChatTurn, CensusRecord
from census_quality.scoring import analyze_census


class _MockResponse:
    def __init__(self, payload, status_code=200):
        self.content = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code} error", response=self)


def _client(api_key="test-key"):
    return GeminiChatClient(
        api_key=api_key,
        model="gemini-test",
        base_url="https://example.invalid/v1beta/",
        timeout_seconds=5,
    )


def _reply(text):
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


def test_reply_text_and_request_shape(monkeypatch):
    captured = {}

    def _mock_post(url, **kwargs):
        captured["url"] = url
        captured.update(kwargs)
        return _MockResponse(_reply(" Your census looks clean. "))

    monkeypatch.setattr(assistant.requests, "post", _mock_post)
    context = analyze_census([CensusRecord(employee_id="A", annual_salary="")])
    history = [ChatTurn(role="user", text="hi"), ChatTurn(role="model", text="Hello!")]

    reply = generate_chat_response(_client(), history, "Summarize", context)

    assert reply == "Your census looks clean."
    assert captured["url"] == "https://example.invalid/v1beta/models/gemini-test:generateContent"
    assert captured["headers"]["x-goog-api-key"] == "test-key"
    assert captured["timeout"] == 5
    payload = captured["json"]
    assert [c["role"] for c in payload["contents"]] == ["user", "model", "user"]
    assert payload["contents"][-1]["parts"][0]["text"] == "Summarize"
    system_text = payload["systemInstruction"]["parts"][0]["text"]
    assert "Census Quality Scoring Agent" in system_text
    assert "CURRENT ANALYSIS CONTEXT:" in system_text
    assert '"total_employees":1' in system_text


def test_no_context_keeps_plain_instruction():
    payload = _client().build_payload([], "hello")
    system_text = payload["systemInstruction"]["parts"][0]["text"]
    assert "CURRENT ANALYSIS CONTEXT" not in system_text


def test_missing_key_never_calls_service(monkeypatch):
    def _fail_post(*_args, **_kwargs):
        raise AssertionError("service must not be called")

    monkeypatch.setattr(assistant.requests, "post", _fail_post)
    assert generate_chat_response(_client(api_key="  "), [], "hello") == MISSING_KEY_REPLY
    with pytest.raises(AssistantServiceError) as excinfo:
        _client(api_key=None).generate([], "hello")
    assert excinfo.value.failure_kind == "invalid_api_key"


def test_http_error_falls_back(monkeypatch):
    monkeypatch.setattr(
        assistant.requests, "post",
        lambda *_a, **_k: _MockResponse({"error": {"message": "boom"}}, status_code=500),
    )
    assert generate_chat_response(_client(), [], "hello") == SERVICE_ERROR_REPLY

    with pytest.raises(AssistantServiceError) as excinfo:
        _client().generate([], "hello")
    assert excinfo.value.failure_kind == "http_error"
    assert excinfo.value.status_code == 500


def test_rejected_key_is_a_service_error(monkeypatch):
    monkeypatch.setattr(
        assistant.requests, "post",
        lambda *_a, **_k: _MockResponse({"error": {"message": "API key not valid"}}, status_code=403),
    )
    assert generate_chat_response(_client(), [], "hello") == SERVICE_ERROR_REPLY


def test_timeout_falls_back(monkeypatch):
    def _timeout(*_args, **_kwargs):
        raise requests.Timeout("read timed out")

    monkeypatch.setattr(assistant.requests, "post", _timeout)
    with pytest.raises(AssistantServiceError) as excinfo:
        _client().generate([], "hello")
    assert excinfo.value.failure_kind == "timeout"
    assert generate_chat_response(_client(), [], "hello") == SERVICE_ERROR_REPLY


def test_unreachable_service_falls_back(monkeypatch):
    def _refused(*_args, **_kwargs):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(assistant.requests, "post", _refused)
    assert generate_chat_response(_client(), [], "hello") == SERVICE_ERROR_REPLY


def test_malformed_payload_falls_back(monkeypatch):
    monkeypatch.setattr(assistant.requests, "post", lambda *_a, **_k: _MockResponse(b"<html>"))
    assert generate_chat_response(_client(), [], "hello") == SERVICE_ERROR_REPLY


@pytest.mark.parametrize(
    "payload",
    [
        {"candidates": []},
        {"candidates": [{"finishReason": "SAFETY"}]},
        _reply("   "),
    ],
)
def test_empty_reply_falls_back(monkeypatch, payload):
    monkeypatch.setattr(assistant.requests, "post", lambda *_a, **_k: _MockResponse(payload))
    assert generate_chat_response(_client(), [], "hello") == EMPTY_REPLY


def test_transport_error_detail_hides_api_key(monkeypatch):
    def _refused(*_args, **_kwargs):
        raise requests.ConnectionError("connection to host failed for key test-key")

    monkeypatch.setattr(assistant.requests, "post", _refused)
    with pytest.raises(AssistantServiceError) as excinfo:
        _client().generate([], "hello")
    assert excinfo.value.failure_kind == "transport"
    assert "test-key" not in str(excinfo.value)
    assert "[redacted-key]" in str(excinfo.value)
