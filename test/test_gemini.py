"""Gemini 클라이언트: 요청 모양 / 응답 파싱 / 실패 분류 (네트워크 없이)"""
import json

import pytest
import requests

from backend.app.core.errors import (
    ApiKeyInvalidError,
    ApiKeyMissingError,
    RefinementError,
    TranscriptionError,
)
from backend.app.schemas import Caption
from backend.app.services import gemini
from backend.app.services.gemini import GeminiCaptionClient, _parse_json_safely


class _Resp:
    def __init__(self, status=200, body=None, text=None):
        self.status_code = status
        self._body = body
        self.text = text if text is not None else json.dumps(body)

    def json(self):
        return self._body

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


def _model_reply(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest.fixture
def calls(monkeypatch):
    recorded = []

    def install(resp):
        def fake_post(url, headers=None, json=None, timeout=None):
            recorded.append({"url": url, "headers": headers, "json": json})
            if isinstance(resp, Exception):
                raise resp
            return resp
        monkeypatch.setattr(gemini.requests, "post", fake_post)
        return recorded

    return install


def test_transcribe_parses_captions(calls):
    reply = json.dumps([
        {"id": "1", "startTime": 0, "endTime": 0.8, "text": "hello there"},
        {"id": "2", "startTime": 0.8, "endTime": 1.4, "text": "friend"},
    ])
    recorded = calls(_Resp(body=_model_reply(reply)))

    out = GeminiCaptionClient(api_key="AIza-test-key").transcribe(b"RIFF", "audio/wav", language="Korean")

    assert [c.text for c in out] == ["hello there", "friend"]
    req = recorded[0]
    assert req["url"].endswith("/models/gemini-3-flash-preview:generateContent")
    assert req["headers"]["x-goog-api-key"] == "AIza-test-key"
    parts = req["json"]["contents"][0]["parts"]
    assert parts[0]["inline_data"]["mime_type"] == "audio/wav"
    assert "Korean" in parts[1]["text"]
    assert req["json"]["generationConfig"]["temperature"] == 0.1


def test_transcribe_drops_invalid_items(calls):
    reply = json.dumps([
        {"id": "1", "startTime": 0, "endTime": 1, "text": "ok"},
        {"id": "2", "startTime": "soon", "text": "bad"},
    ])
    calls(_Resp(body=_model_reply(reply)))
    out = GeminiCaptionClient(api_key="AIza-test-key").transcribe(b"x", "audio/wav")
    assert [c.id for c in out] == ["1"]


def test_missing_key():
    with pytest.raises(ApiKeyMissingError):
        GeminiCaptionClient(api_key="").transcribe(b"x", "audio/wav")


def test_invalid_key(calls):
    calls(_Resp(status=400, body={}, text='{"error": "API key not valid. Please pass a valid API key."}'))
    with pytest.raises(ApiKeyInvalidError):
        GeminiCaptionClient(api_key="AIza-bad-key").transcribe(b"x", "audio/wav")


def test_http_failure_is_transcription_error(calls):
    calls(_Resp(status=500, body={}, text="boom"))
    with pytest.raises(TranscriptionError):
        GeminiCaptionClient(api_key="AIza-test-key").transcribe(b"x", "audio/wav")


def test_non_json_reply_is_transcription_error(calls):
    calls(_Resp(body=_model_reply("sorry, I cannot do that")))
    with pytest.raises(TranscriptionError):
        GeminiCaptionClient(api_key="AIza-test-key").transcribe(b"x", "audio/wav")


@pytest.mark.parametrize("body", [
    {"candidates": ["oops"]},
    {"candidates": [{"content": "oops"}]},
    {"candidates": [{"content": {"parts": "oops"}}]},
    {"candidates": {"0": {}}},
    ["not", "a", "dict"],
])
def test_malformed_reply_is_service_error(calls, body):
    calls(_Resp(body=body))
    client = GeminiCaptionClient(api_key="AIza-test-key")
    with pytest.raises(TranscriptionError):
        client.transcribe(b"x", "audio/wav")
    with pytest.raises(RefinementError):
        client.refine(b"x", "audio/wav", [Caption(id="1", start_time=0, end_time=1, text="hi")])


def test_refine_returns_timing_updates(calls):
    reply = '```json\n[{"id": "2", "startTime": 3.1, "endTime": 4.0, "text": "ignored"}]\n```'
    recorded = calls(_Resp(body=_model_reply(reply)))
    subset = [Caption(id="2", start_time=1.5, end_time=3.0, text="second")]

    out = GeminiCaptionClient(api_key="AIza-test-key").refine(b"x", "audio/wav", subset)

    assert [(u.id, u.start_time, u.end_time) for u in out] == [("2", 3.1, 4.0)]
    assert '"startTime": 1.5' in recorded[0]["json"]["contents"][0]["parts"][1]["text"]


def test_refine_network_error(calls):
    calls(requests.ConnectionError("down"))
    subset = [Caption(id="2", start_time=1.5, end_time=3.0, text="second")]
    with pytest.raises(RefinementError):
        GeminiCaptionClient(api_key="AIza-test-key").refine(b"x", "audio/wav", subset)


def test_refine_empty_subset_makes_no_call(calls):
    recorded = calls(_Resp(body=_model_reply("[]")))
    assert GeminiCaptionClient(api_key="AIza-test-key").refine(b"x", "audio/wav", []) == []
    assert recorded == []


def test_check_key(calls):
    calls(_Resp(body=_model_reply("OK")))
    client = GeminiCaptionClient(api_key=None)
    assert client.check_key("AIza-some-key") is True
    assert client.check_key("sk-not-gemini") is False


def test_parse_json_safely():
    assert _parse_json_safely('[{"a": 1}]') == [{"a": 1}]
    assert _parse_json_safely('text before [1, 2] after') == [1, 2]
    assert _parse_json_safely("") is None
    assert _parse_json_safely("no json here") is None
