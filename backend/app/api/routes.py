"""
API 라우터

- 프로젝트: 목록/불러오기/삭제
- 세션: 영상 업로드 -> 오디오 추출 -> 전사, 자막 편집, 선택 싱크, 내보내기

세션 매니저는 app.state.sessions 에 있다. (main.create_app 에서 주입)
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import PlainTextResponse

from backend.app.core.config import settings
from backend.app.core.errors import (
    ApiKeyInvalidError,
    ApiKeyMissingError,
    CaptionServiceError,
    MediaError,
    PersistenceError,
    ProjectNotFoundError,
    SessionNotFoundError,
)
from backend.app.core.logger import get_logger
from backend.app.schemas import (
    Caption,
    ExportVideoResponse,
    Project,
    RenameRequest,
    ResyncRequest,
    ResyncResponse,
    SegmentationConfig,
    SessionCreate,
    SessionState,
    StylesResponse,
    TextEdit,
    VideoStyle,
)
from backend.app.services import presets, video
from backend.app.services.session import EditorSession, SessionManager
from backend.app.services.storage import make_job_dir
from backend.app.services.subtitles import srt_filename

logger = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["captions"])


def _sessions(request: Request) -> SessionManager:
    return request.app.state.sessions


def _session(request: Request, session_id: str) -> EditorSession:
    try:
        return _sessions(request).get(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(404, str(e))


def _output_dir(request: Request) -> Path:
    return Path(getattr(request.app.state, "output_dir", settings.OUTPUT_DIR))


def _content_disposition(filename: str) -> str:
    # 헤더는 latin-1 만 됨 -> ASCII 대체 이름 + RFC 5987 filename*
    filename = re.sub(r'["\\\r\n]', "", filename).strip() or "captions.srt"
    fallback = re.sub(r"[^\x20-\x7e]", "_", filename)
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


def _external_failure(e: CaptionServiceError) -> HTTPException:
    # 키 문제는 사용자가 고칠 수 있게 그대로 알려줌
    if isinstance(e, (ApiKeyMissingError, ApiKeyInvalidError)):
        return HTTPException(401, str(e))
    return HTTPException(502, str(e))


# --- 프로젝트 ---

@router.get("/projects", response_model=List[Project])
def list_projects(request: Request):
    return _sessions(request).store.list()


@router.get("/projects/{project_id}", response_model=Project)
def get_project(request: Request, project_id: str):
    try:
        return _sessions(request).store.load(project_id)
    except ProjectNotFoundError as e:
        raise HTTPException(404, str(e))


@router.delete("/projects/{project_id}")
def delete_project(request: Request, project_id: str):
    try:
        _sessions(request).store.delete(project_id)
    except ProjectNotFoundError as e:
        raise HTTPException(404, str(e))
    return {"ok": True}


# --- 세션 ---

@router.post("/sessions", response_model=SessionState)
def create_session(request: Request, body: Optional[SessionCreate] = None):
    body = body or SessionCreate()
    try:
        session = _sessions(request).create(project_id=body.project_id, name=body.name)
    except ProjectNotFoundError as e:
        raise HTTPException(404, str(e))
    except PersistenceError as e:
        raise HTTPException(502, str(e))
    return session.status()


@router.get("/sessions/{session_id}", response_model=SessionState)
def get_session(request: Request, session_id: str):
    return _session(request, session_id).status()


@router.delete("/sessions/{session_id}")
def close_session(request: Request, session_id: str):
    try:
        _sessions(request).close(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(404, str(e))
    return {"ok": True}


# ffmpeg/전사 호출이 블로킹이라 일반 def 로 둔다. (스레드풀에서 실행)
@router.post("/sessions/{session_id}/media", response_model=SessionState)
def upload_media(
    request: Request,
    session_id: str,
    video_file: UploadFile = File(..., alias="video", description="자막을 만들 영상"),
    language: str = Form(settings.TRANSCRIBE_LANGUAGE, description="자막 언어"),
    model: str = Form(settings.GEMINI_MODEL, description="전사 모델"),
):
    session = _session(request, session_id)

    # 1) 업로드 저장
    job_dir = make_job_dir(_output_dir(request))
    suffix = Path(video_file.filename or "").suffix.lower() or ".mp4"
    video_path = job_dir / "inputs" / f"source{suffix}"
    video_path.write_bytes(video_file.file.read())

    # 2) 오디오 추출. 실패하면 영상 바이트를 그대로 보낸다.
    try:
        wav = video.extract_audio(video_path, job_dir / "inputs" / "audio.wav")
        audio_bytes, mime_type = wav.read_bytes(), "audio/wav"
    except MediaError as e:
        logger.warning("오디오 추출 실패. 원본 영상으로 전사합니다. err=%s", e)
        audio_bytes, mime_type = video_path.read_bytes(), video_file.content_type or "video/mp4"

    try:
        duration = video.probe_duration(video_path)
    except MediaError:
        duration = 0.0

    session.attach_media(audio_bytes, mime_type, video_path=video_path, duration=duration)

    # 3) 전사
    try:
        session.transcribe(language=language, model=model)
    except CaptionServiceError as e:
        raise _external_failure(e)
    return session.status()


@router.put("/sessions/{session_id}/captions", response_model=SessionState)
def replace_captions(request: Request, session_id: str, captions: List[Caption]):
    session = _session(request, session_id)
    session.replace_captions(captions)
    return session.status()


@router.patch("/sessions/{session_id}/captions/{caption_id}", response_model=Caption)
def edit_caption(request: Request, session_id: str, caption_id: str, body: TextEdit):
    session = _session(request, session_id)
    try:
        return session.edit_text(caption_id, body.text)
    except KeyError:
        raise HTTPException(404, f"caption not found: {caption_id}")


@router.post("/sessions/{session_id}/resync", response_model=ResyncResponse)
def resync_captions(request: Request, session_id: str, body: ResyncRequest):
    session = _session(request, session_id)
    if not session.has_media:
        raise HTTPException(409, "영상을 먼저 업로드해주세요.")
    try:
        updated = session.resync(body.ids)
    except CaptionServiceError as e:
        raise _external_failure(e)
    return ResyncResponse(updated=updated, captions=session.timeline.captions)


@router.get("/sessions/{session_id}/active", response_model=Optional[Caption])
def active_caption(request: Request, session_id: str, t: float):
    return _session(request, session_id).active_caption(t)


@router.put("/sessions/{session_id}/style", response_model=VideoStyle)
def update_style(request: Request, session_id: str, style: VideoStyle):
    return _session(request, session_id).set_style(style)


@router.post("/sessions/{session_id}/style/template/{template_id}", response_model=VideoStyle)
def apply_template(request: Request, session_id: str, template_id: str):
    session = _session(request, session_id)
    try:
        return session.apply_template(template_id)
    except KeyError:
        raise HTTPException(404, f"template not found: {template_id}")


@router.put("/sessions/{session_id}/name", response_model=SessionState)
def rename_session(request: Request, session_id: str, body: RenameRequest):
    session = _session(request, session_id)
    session.rename(body.name)
    return session.status()


@router.post("/sessions/{session_id}/save", response_model=SessionState)
def save_session(request: Request, session_id: str):
    session = _session(request, session_id)
    if not session.save_now():
        raise HTTPException(502, session.autosave.last_error or "save failed")
    return session.status()


# --- 내보내기 ---

@router.post("/sessions/{session_id}/export/srt", response_class=PlainTextResponse)
def export_srt(request: Request, session_id: str, config: Optional[SegmentationConfig] = None):
    session = _session(request, session_id)
    content = session.export_srt(config or SegmentationConfig())
    filename = srt_filename(session.name)
    return PlainTextResponse(
        content,
        media_type="text/plain; charset=utf-8",
        headers={"Content-Disposition": _content_disposition(filename)},
    )


@router.post("/sessions/{session_id}/export/video", response_model=ExportVideoResponse)
def export_video(request: Request, session_id: str, config: Optional[SegmentationConfig] = None):
    session = _session(request, session_id)
    job_dir = make_job_dir(_output_dir(request))
    try:
        session.export_video(config or SegmentationConfig(), job_dir / "artifacts")
    except MediaError as e:
        if str(e) == "NO_MEDIA":
            raise HTTPException(409, "영상을 먼저 업로드해주세요.")
        raise HTTPException(502, str(e))

    job_id = job_dir.name
    return ExportVideoResponse(
        job_id=job_id,
        video_url=f"/outputs/{job_id}/artifacts/final.mp4",
        srt_url=f"/outputs/{job_id}/artifacts/captions.srt",
    )


@router.get("/styles", response_model=StylesResponse)
def list_styles():
    return StylesResponse(fonts=presets.FONT_FAMILIES, templates=presets.CAPTION_TEMPLATES)
