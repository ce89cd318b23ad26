"""
Gemini 클라이언트 (전사 + 싱크 재조정)

역할:
- 오디오(또는 영상) 바이트를 보내서 단어 단위에 가까운 캡션 JSON을 받는다.
- 선택된 캡션들의 시간만 다시 맞춰 달라고 요청한다.

실패 정책:
- 키 없음 -> ApiKeyMissingError, 키 거부 -> ApiKeyInvalidError
- 그 외 호출/파싱 실패 -> TranscriptionError / RefinementError
- 여기서는 타임라인을 건드리지 않는다. (반영은 세션이 한다)
"""

from __future__ import annotations

import base64
import json
import re
from typing import Any, List, Optional

import requests
from pydantic import ValidationError

from backend.app.core.config import ALLOWED_MODELS, settings
from backend.app.core.errors import (
    ApiKeyInvalidError,
    ApiKeyMissingError,
    RefinementError,
    TranscriptionError,
)
from backend.app.core.logger import get_logger
from backend.app.schemas import Caption, TimingUpdate

logger = get_logger(__name__)


TRANSCRIBE_PROMPT = """Transcribe audio to {language} captions.
Rules: Segments (max 3 words), zero gaps, synced to millisecond.
Return JSON array only: [{{"id": string, "startTime": number, "endTime": number, "text": string}}]"""

REFINE_PROMPT = """Refine timings for these captions. Do not change text.
Return JSON array only: [{{"id": string, "startTime": number, "endTime": number}}]
Captions: {captions}"""

_CAPTION_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "id": {"type": "STRING"},
            "startTime": {"type": "NUMBER"},
            "endTime": {"type": "NUMBER"},
            "text": {"type": "STRING"},
        },
        "required": ["id", "startTime", "endTime", "text"],
    },
}


def _parse_json_safely(text: str) -> Optional[Any]:
    """
    모델이 JSON 외 텍스트(```json 펜스 등)를 섞어도 최대한 복구하는 파서
    """
    if not text:
        return None

    text = text.strip()

    try:
        return json.loads(text)
    except ValueError:
        pass

    m = re.search(r"\[.*\]", text, flags=re.DOTALL)
    if not m:
        return None

    try:
        return json.loads(m.group(0))
    except ValueError:
        return None


def _response_text(data: dict) -> str:
    # candidates[0].content.parts[*].text 를 이어붙임
    # 모양이 다르면 빈 문자열 -> 호출부에서 "JSON 아님"으로 처리
    if not isinstance(data, dict):
        return ""
    candidates = data.get("candidates") or []
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        return ""
    content = candidates[0].get("content")
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return ""
    return "".join(str(p.get("text", "")) for p in parts if isinstance(p, dict))


def _parse_items(raw: Any, model_cls, label: str) -> list:
    """리스트 안에서 검증되는 항목만 살린다. (부분 결과 허용)"""
    if not isinstance(raw, list):
        return []
    out = []
    for i, item in enumerate(raw):
        try:
            out.append(model_cls.model_validate(item))
        except ValidationError as e:
            logger.warning("%s 결과 %d번째 항목 무시: %s", label, i, e.errors()[0].get("msg"))
    return out


class GeminiCaptionClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self.base_url = (base_url or settings.GEMINI_API_BASE).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.GEMINI_TIMEOUT_SEC

    def _require_key(self) -> str:
        key = (self.api_key or "").strip()
        if len(key) <= 5:
            raise ApiKeyMissingError()
        return key

    def _generate(self, model: str, payload: dict, key: Optional[str] = None, timeout: Optional[float] = None) -> str:
        url = f"{self.base_url}/models/{model}:generateContent"
        headers = {"x-goog-api-key": key or self._require_key()}
        r = requests.post(url, headers=headers, json=payload, timeout=timeout or self.timeout)
        if r.status_code >= 400 and "API key not valid" in (r.text or ""):
            raise ApiKeyInvalidError()
        r.raise_for_status()
        return _response_text(r.json())

    @staticmethod
    def _media_part(audio_bytes: bytes, mime_type: str) -> dict:
        return {
            "inline_data": {
                "mime_type": mime_type,
                "data": base64.b64encode(audio_bytes).decode("ascii"),
            }
        }

    def transcribe(
        self,
        audio_bytes: bytes,
        mime_type: str,
        language: Optional[str] = None,
        model: Optional[str] = None,
    ) -> List[Caption]:
        language = (language or settings.TRANSCRIBE_LANGUAGE).strip() or "English"
        model = model or settings.GEMINI_MODEL
        if model not in ALLOWED_MODELS:
            logger.warning("지원하지 않는 모델(%s) -> %s 사용", model, settings.GEMINI_MODEL)
            model = settings.GEMINI_MODEL

        payload = {
            "contents": [{
                "parts": [
                    self._media_part(audio_bytes, mime_type),
                    {"text": TRANSCRIBE_PROMPT.format(language=language)},
                ]
            }],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": _CAPTION_SCHEMA,
                "temperature": 0.1,
            },
        }

        logger.info("전사 요청: model=%s lang=%s bytes=%d mime=%s", model, language, len(audio_bytes), mime_type)
        try:
            text = self._generate(model, payload)
        except (ApiKeyMissingError, ApiKeyInvalidError):
            raise
        except requests.RequestException as e:
            raise TranscriptionError(f"transcription request failed: {e}") from e

        data = _parse_json_safely(text)
        if data is None:
            raise TranscriptionError("transcription response is not JSON")

        captions = _parse_items(data, Caption, "전사")
        logger.info("전사 완료: captions=%d", len(captions))
        return captions

    def refine(self, audio_bytes: bytes, mime_type: str, subset: List[Caption]) -> List[TimingUpdate]:
        if not subset:
            return []

        captions_json = json.dumps(
            [c.model_dump(by_alias=True) for c in subset], ensure_ascii=False
        )
        payload = {
            "contents": [{
                "parts": [
                    self._media_part(audio_bytes, mime_type),
                    {"text": REFINE_PROMPT.format(captions=captions_json)},
                ]
            }],
            "generationConfig": {"responseMimeType": "application/json"},
        }

        logger.info("싱크 재조정 요청: captions=%d", len(subset))
        try:
            text = self._generate(settings.GEMINI_REFINE_MODEL, payload)
        except (ApiKeyMissingError, ApiKeyInvalidError):
            raise
        except requests.RequestException as e:
            raise RefinementError(f"refinement request failed: {e}") from e

        data = _parse_json_safely(text)
        if data is None:
            raise RefinementError("refinement response is not JSON")
        return _parse_items(data, TimingUpdate, "싱크")

    def check_key(self, key: str) -> bool:
        """키 형식(AIza...) 확인 후 아주 짧은 요청으로 실제 동작 확인"""
        if not key or not key.startswith("AIza"):
            return False
        payload = {
            "contents": [{"parts": [{"text": "Respond with 'ok' only."}]}],
            "generationConfig": {"maxOutputTokens": 5},
        }
        try:
            text = self._generate(settings.GEMINI_MODEL, payload, key=key, timeout=30)
        except (ApiKeyInvalidError, requests.RequestException) as e:
            logger.warning("API 키 확인 실패: %s", e)
            return False
        return "ok" in text.lower()
