"""
편집 세션

세션 하나 = 프로젝트 하나 편집 중인 상태
- 타임라인, 스타일, 업로드된 오디오, 저장 상태, 에러 메시지를 들고 있다.
- 타임라인 변경은 전부 self._lock 안에서 한다. (FastAPI 스레드풀에서 동시에 들어올 수 있음)
- 외부 호출(전사/싱크)은 락 밖에서. 결과는 "돌아온 시점"의 타임라인에 id로 반영한다.
  -> 싱크 요청 중에 고친 텍스트가 날아가지 않음
- 외부 호출 실패 시 타임라인은 그대로 두고 error에 기록한 뒤 예외를 다시 올린다.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from backend.app.core.errors import CaptionServiceError, MediaError, SessionNotFoundError
from backend.app.core.logger import get_logger
from backend.app.schemas import (
    Caption,
    CustomFont,
    SaveStatus,
    SegmentationConfig,
    SessionState,
    VideoStyle,
)
from backend.app.services import presets
from backend.app.services.autosave import AutoSaver
from backend.app.services.subtitles import generate_srt, write_srt
from backend.app.services.timeline import CaptionTimeline
from backend.app.services.video import burn_subtitles

logger = get_logger(__name__)

DEFAULT_PROJECT_NAME = "UNNAMED_PROJECT"


@dataclass
class MediaSource:
    audio_bytes: bytes
    mime_type: str
    video_path: Optional[Path] = None
    duration: float = 0.0


class EditorSession:
    def __init__(
        self,
        session_id: str,
        store,
        client,
        name: Optional[str] = None,
        project_id: Optional[str] = None,
        captions: Optional[Iterable[Caption]] = None,
        style: Optional[VideoStyle] = None,
        custom_fonts: Optional[Iterable[CustomFont]] = None,
        thumbnail_url: Optional[str] = None,
        autosave_delay: Optional[float] = None,
    ):
        self.session_id = session_id
        self.store = store
        self.client = client
        self.name = name or DEFAULT_PROJECT_NAME
        self.project_id = project_id
        self.timeline = CaptionTimeline(captions)
        self.style = style or VideoStyle()
        self.custom_fonts: List[CustomFont] = list(custom_fonts or [])
        self.thumbnail_url = thumbnail_url
        self.media: Optional[MediaSource] = None
        self.error: Optional[str] = None
        self._busy = 0
        self._lock = threading.RLock()
        self.autosave = AutoSaver(self._persist, delay=autosave_delay)

    # --- 상태 ---

    @property
    def busy(self) -> bool:
        return self._busy > 0

    @property
    def has_media(self) -> bool:
        return self.media is not None

    def status(self) -> SessionState:
        with self._lock:
            return SessionState(
                session_id=self.session_id,
                project_id=self.project_id,
                name=self.name,
                captions=self.timeline.captions,
                style=self.style,
                save_status=self.autosave.status,
                error=self.error or self.autosave.last_error,
                busy=self.busy,
                has_media=self.has_media,
                duration=self.media.duration if self.media and self.media.duration else self.timeline.duration,
            )

    def _fail(self, action: str, e: Exception) -> None:
        logger.warning("%s 실패: session=%s err=%s", action, self.session_id, e)
        with self._lock:
            self.error = str(e) or e.__class__.__name__

    def _edited(self) -> None:
        self.autosave.touch()

    # --- 저장 ---

    def _persist(self) -> None:
        with self._lock:
            name, captions, style, pid = self.name, self.timeline.captions, self.style, self.project_id
            fonts, thumbnail = list(self.custom_fonts), self.thumbnail_url
        project = self.store.save(name, captions, style, pid, custom_fonts=fonts, thumbnail_url=thumbnail)
        with self._lock:
            self.project_id = project.id

    def save_now(self) -> bool:
        return self.autosave.save_now()

    # --- 미디어 / 전사 ---

    def attach_media(
        self,
        audio_bytes: bytes,
        mime_type: str,
        video_path: Optional[Path] = None,
        duration: float = 0.0,
    ) -> None:
        with self._lock:
            self.media = MediaSource(audio_bytes, mime_type, video_path, duration)

    def _require_media(self) -> MediaSource:
        with self._lock:
            if self.media is None:
                raise MediaError("NO_MEDIA")
            return self.media

    def transcribe(self, language: Optional[str] = None, model: Optional[str] = None) -> List[Caption]:
        media = self._require_media()
        with self._lock:
            self._busy += 1
            self.error = None
        try:
            captions = self.client.transcribe(media.audio_bytes, media.mime_type, language=language, model=model)
        except CaptionServiceError as e:
            self._fail("전사", e)
            raise
        finally:
            with self._lock:
                self._busy -= 1

        with self._lock:
            self.timeline.replace(captions)
            result = self.timeline.captions
        self._edited()
        return result

    def resync(self, ids: Iterable[str]) -> int:
        """선택한 자막만 시간 재조정. 반환: 실제로 바뀐 자막 수"""
        media = self._require_media()
        with self._lock:
            subset = self.timeline.subset(ids)
            if not subset:
                return 0
            self._busy += 1
            self.error = None
        selected = [c.id for c in subset]
        try:
            updates = self.client.refine(media.audio_bytes, media.mime_type, subset)
        except CaptionServiceError as e:
            self._fail("싱크 재조정", e)
            raise
        finally:
            with self._lock:
                self._busy -= 1

        with self._lock:
            changed = self.timeline.apply_timings(updates, ids=selected)
        logger.info("싱크 재조정 반영: session=%s selected=%d changed=%d", self.session_id, len(selected), changed)
        if changed:
            self._edited()
        return changed

    # --- 편집 ---

    def replace_captions(self, captions: Iterable[Caption]) -> List[Caption]:
        with self._lock:
            self.timeline.replace(captions)
            result = self.timeline.captions
        self._edited()
        return result

    def edit_text(self, caption_id: str, text: str) -> Caption:
        with self._lock:
            caption = self.timeline.edit_text(caption_id, text)
        self._edited()
        return caption

    def active_caption(self, t: float) -> Optional[Caption]:
        with self._lock:
            return self.timeline.active_at(t)

    def set_style(self, style: VideoStyle) -> VideoStyle:
        with self._lock:
            self.style = style
        self._edited()
        return style

    def apply_template(self, template_id: str) -> VideoStyle:
        with self._lock:
            self.style = presets.apply_template(self.style, template_id)
            style = self.style
        self._edited()
        return style

    def rename(self, name: str) -> None:
        with self._lock:
            self.name = name.strip() or DEFAULT_PROJECT_NAME
        self._edited()

    # --- 내보내기 ---

    def export_srt(self, config: Optional[SegmentationConfig] = None) -> str:
        with self._lock:
            captions = self.timeline.captions
        return generate_srt(captions, config)

    def export_video(self, config: Optional[SegmentationConfig], artifacts_dir: Path) -> Path:
        with self._lock:
            media = self.media
            captions = self.timeline.captions
            style = self.style
        if media is None or media.video_path is None:
            raise MediaError("NO_MEDIA")

        srt_path = write_srt(captions, config, artifacts_dir / "captions.srt")
        try:
            return burn_subtitles(media.video_path, srt_path, artifacts_dir / "final.mp4", style)
        except MediaError as e:
            self._fail("영상 내보내기", e)
            raise


class SessionManager:
    def __init__(self, store, client, autosave_delay: Optional[float] = None):
        self.store = store
        self.client = client
        self.autosave_delay = autosave_delay
        self._sessions: Dict[str, EditorSession] = {}
        self._lock = threading.Lock()

    def create(self, project_id: Optional[str] = None, name: Optional[str] = None) -> EditorSession:
        captions, style, fonts, thumbnail = None, None, None, None
        if project_id:
            project = self.store.load(project_id)
            name = name or project.name
            captions, style = project.captions, project.style
            fonts, thumbnail = project.custom_fonts, project.thumbnail_url

        session = EditorSession(
            session_id=uuid.uuid4().hex[:12],
            store=self.store,
            client=self.client,
            name=name,
            project_id=project_id,
            captions=captions,
            style=style,
            custom_fonts=fonts,
            thumbnail_url=thumbnail,
            autosave_delay=self.autosave_delay,
        )
        with self._lock:
            self._sessions[session.session_id] = session
        logger.info("세션 시작: session=%s project=%s", session.session_id, project_id)
        return session

    def get(self, session_id: str) -> EditorSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def close(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(session_id)
        # 닫기 전에 저장 안 된 편집은 저장
        session.autosave.flush()
        if session.autosave.status != SaveStatus.SAVED:
            logger.warning("저장 안 된 편집을 남기고 세션 종료: session=%s err=%s", session_id, session.autosave.last_error)
        session.autosave.cancel()
        logger.info("세션 종료: session=%s", session_id)

    def close_all(self) -> None:
        with self._lock:
            ids = list(self._sessions)
        for sid in ids:
            self.close(sid)
