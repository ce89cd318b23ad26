"""
설정 로더

목표
- Python 3.9+에서도 문제 없이 돌아가게(= `str | None` 같은 3.10+ 문법 금지)
- .env가 좀 지저분해도, 깨지지 않게(extra ignore)
"""

from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


ALLOWED_MODELS = ("gemini-3-flash-preview", "gemini-3-pro-preview")


class Settings(BaseSettings):
    # .env 사용 + 알 수 없는 키 무시
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- API Keys ---
    # 예전 .env에서 API_KEY 로 쓰던 값도 받아줌
    GEMINI_API_KEY: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY"),
    )

    # --- 전사(Transcription) ---
    GEMINI_MODEL: str = "gemini-3-flash-preview"
    GEMINI_REFINE_MODEL: str = "gemini-3-flash-preview"
    GEMINI_API_BASE: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_TIMEOUT_SEC: float = 300.0
    TRANSCRIBE_LANGUAGE: str = "English"

    # --- Paths ---
    OUTPUT_DIR: str = "outputs"     # 업로드/내보내기 결과 (정적 서빙)
    PROJECT_DIR: str = "projects"   # 프로젝트 JSON 저장소

    # --- 자동 저장 ---
    # 이 시간 안에 들어온 편집은 한 번의 저장으로 합쳐짐
    AUTOSAVE_DELAY_SEC: float = 2.0

    # --- SRT 기본값 ---
    SRT_WORDS_PER_LINE: int = 5
    SRT_LINES_PER_CAPTION: int = 2

    LOG_LEVEL: str = "INFO"


settings = Settings()
