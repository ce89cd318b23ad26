"""
Pydantic 스키마

- 자막/설정/스타일 모델은 저장 JSON·프론트와 같은 camelCase 키(startTime 등)로 주고받는다.
- 파이썬 코드 안에서는 snake_case 이름(start_time)으로 쓴다. (populate_by_name)
"""

from __future__ import annotations

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from backend.app.core.config import settings

ANONYMOUS_USER_ID = "00000000-0000-0000-0000-000000000000"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Caption(_CamelModel):
    """타이밍이 붙은 자막 한 덩어리 (초 단위)"""

    # 편집은 새 객체로 교체한다 -> 안 건드린 자막은 그대로 남음
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        coerce_numbers_to_str=True,
    )

    id: str
    start_time: float
    end_time: float
    text: str = ""

    @property
    def words(self) -> List[str]:
        return self.text.split()


class TimingUpdate(_CamelModel):
    """싱크 재조정 결과 한 줄: 텍스트 없이 id + 시간만"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    id: str
    start_time: float
    end_time: float


class SegmentationConfig(_CamelModel):
    words_per_line: int = Field(default_factory=lambda: settings.SRT_WORDS_PER_LINE, ge=1)
    lines_per_caption: int = Field(default_factory=lambda: settings.SRT_LINES_PER_CAPTION, ge=1)
    custom_start_time: Optional[float] = None
    custom_end_time: Optional[float] = None

    @property
    def words_per_block(self) -> int:
        return self.words_per_line * self.lines_per_caption


class VideoStyle(_CamelModel):
    # 기본값 = 에디터 기본 스타일 (TITAN BOLD 계열)
    font_family: str = "Montserrat"
    font_size: int = 42
    font_weight: str = "900"
    color: str = "#ffffff"
    highlight_color: str = "#FFD700"
    highlight_style: Literal["background", "underline", "glow", "outline", "none"] = "outline"
    background_color: str = "transparent"
    bg_padding: int = 0
    text_transform: Literal["uppercase", "none", "lowercase"] = "none"
    position: Literal["top", "middle", "bottom", "custom"] = "middle"
    layout: Literal["single", "double", "word", "phrase"] = "word"
    animation: Literal["pop", "fade", "slide", "bounce", "zoomIn", "zoomOut", "shake", "none"] = "pop"
    shadow: bool = True
    stroke: bool = True
    stroke_color: str = "#000000"
    stroke_width: int = 2
    letter_spacing: float = 0
    line_height: float = 1.2
    template: str = "beast"


class CustomFont(BaseModel):
    name: str
    url: str


class Project(BaseModel):
    id: str
    user_id: str = ANONYMOUS_USER_ID
    name: str
    captions: List[Caption] = Field(default_factory=list)
    style: VideoStyle = Field(default_factory=VideoStyle)
    custom_fonts: List[CustomFont] = Field(default_factory=list)
    thumbnail_url: Optional[str] = None
    created_at: str
    updated_at: Optional[str] = None


class SaveStatus(str, Enum):
    SAVED = "saved"
    SAVING = "saving"
    UNSAVED = "unsaved"


# --- API 요청/응답 ---

class SessionCreate(BaseModel):
    project_id: Optional[str] = None
    name: Optional[str] = None


class SessionState(BaseModel):
    session_id: str
    project_id: Optional[str] = None
    name: str
    captions: List[Caption] = Field(default_factory=list)
    style: VideoStyle
    save_status: SaveStatus
    error: Optional[str] = None
    busy: bool = False
    has_media: bool = False
    duration: float = 0.0


class TextEdit(BaseModel):
    text: str = Field(..., description="새 자막 텍스트")


class ResyncRequest(BaseModel):
    ids: List[str] = Field(..., description="싱크를 다시 맞출 자막 id들")


class ResyncResponse(BaseModel):
    updated: int
    captions: List[Caption]


class RenameRequest(BaseModel):
    name: str = Field(..., min_length=1)


class ExportVideoResponse(BaseModel):
    job_id: str
    video_url: str = Field(..., description="결과 mp4 다운로드/스트리밍 URL")
    srt_url: str


class StylesResponse(BaseModel):
    fonts: List[str]
    templates: List[dict]
