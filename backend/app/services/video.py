"""
미디어 처리 - FFmpeg

- 업로드 영상 -> 전사용 오디오(mono 16kHz WAV) 추출
- ffprobe로 길이 측정
- SRT + 스타일로 자막을 burn-in 한 영상 내보내기

moviepy 대신 "FFmpeg 커맨드를 만들고 실행"하는 구조 그대로.
"""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Optional

from backend.app.core.errors import MediaError
from backend.app.core.logger import get_logger
from backend.app.schemas import VideoStyle

logger = get_logger(__name__)

FFMPEG_BIN = os.getenv("FFMPEG_BIN", "ffmpeg")

# ffprobe도 같은 prefix를 쓰도록 맞추기
if Path(FFMPEG_BIN).name == "ffmpeg":
    FFPROBE_BIN = os.getenv("FFPROBE_BIN", "ffprobe")
else:
    FFPROBE_BIN = str(Path(FFMPEG_BIN).with_name("ffprobe"))

# position -> ASS Alignment (8=상단, 5=중앙, 2=하단)
_ALIGNMENT = {"top": 8, "middle": 5, "bottom": 2, "custom": 5}


def _run(cmd: list[str]) -> subprocess.CompletedProcess:
    # FFmpeg 실행 유틸
    logger.info("FFmpeg 실행: %s", " ".join(cmd))
    try:
        p = subprocess.run(cmd, capture_output=True, text=True)
    except OSError as e:
        raise MediaError(f"FFmpeg not runnable: {e}") from e
    if p.returncode != 0:
        raise MediaError(f"FFmpeg failed:\n{p.stderr}")
    return p


def probe_duration(media_path: Path) -> float:
    # ffprobe로 길이(초) 측정
    cmd = [
        FFPROBE_BIN,
        "-v", "error",
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        str(media_path),
    ]
    p = _run(cmd)
    try:
        return float((p.stdout or "").strip() or "0")
    except ValueError:
        return 0.0


def extract_audio(video_path: Path, out_wav: Path) -> Path:
    """
    영상 -> mono 16kHz PCM WAV

    원본 영상을 통째로 보내면 요청이 너무 커져서
    음성만 작게 뽑아서 전사 API로 보낸다.
    """
    out_wav.parent.mkdir(parents=True, exist_ok=True)
    cmd = [
        FFMPEG_BIN, "-y",
        "-i", str(video_path),
        "-vn",
        "-ac", "1",
        "-ar", "16000",
        "-acodec", "pcm_s16le",
        str(out_wav),
    ]
    _run(cmd)
    return out_wav


def _to_ass_color(css: str, alpha: int = 0) -> Optional[str]:
    """
    '#RRGGBB' -> '&HAABBGGRR' (ASS는 BGR 순서 + 알파는 00이 불투명)
    해석 못하는 값(transparent 등)은 None
    """
    s = (css or "").strip().lstrip("#")
    if len(s) == 3:
        s = "".join(ch * 2 for ch in s)
    if len(s) != 6:
        return None
    try:
        int(s, 16)
    except ValueError:
        return None
    r, g, b = s[0:2], s[2:4], s[4:6]
    return f"&H{alpha:02X}{b}{g}{r}".upper()


def build_force_style(style: VideoStyle) -> str:
    """VideoStyle -> subtitles 필터의 force_style 문자열"""
    fields = {
        "Fontname": style.font_family,
        "Fontsize": str(int(style.font_size)),
        "Bold": "1" if str(style.font_weight) in ("700", "800", "900", "bold") else "0",
        "Alignment": str(_ALIGNMENT.get(style.position, 2)),
        "BorderStyle": "1",
        "Outline": str(int(style.stroke_width)) if style.stroke else "0",
        "Shadow": "2" if style.shadow else "0",
    }

    primary = _to_ass_color(style.color)
    if primary:
        fields["PrimaryColour"] = primary
    outline = _to_ass_color(style.stroke_color)
    if outline:
        fields["OutlineColour"] = outline
    back = _to_ass_color(style.background_color, alpha=0x40)
    if back:
        # 배경색이 있으면 박스 모드
        fields["BorderStyle"] = "3"
        fields["BackColour"] = back

    return ",".join(f"{k}={v}" for k, v in fields.items())


def _escape_filter_path(path: Path) -> str:
    # subtitles 필터 인자 안에서 ':' / '\' / "'" 이 깨지지 않도록
    s = str(path).replace("\\", "/")
    s = s.replace(":", "\\:")
    s = s.replace("'", "\\'")
    return s


def burn_subtitles(
    in_video: Path,
    srt_path: Path,
    out_video: Path,
    style: Optional[VideoStyle] = None,
) -> Path:
    """
    SRT를 영상에 burn-in (libass 필요)

    애니메이션/하이라이트 효과는 에디터 미리보기 전용이고
    여기서는 폰트/색/외곽선/위치만 반영한다.
    """
    out_video.parent.mkdir(parents=True, exist_ok=True)
    style = style or VideoStyle()

    vf = f"subtitles='{_escape_filter_path(srt_path)}':force_style='{build_force_style(style)}'"
    cmd = [
        FFMPEG_BIN, "-y",
        "-i", str(in_video),
        "-vf", vf,
        "-c:v", "libx264",
        "-pix_fmt", "yuv420p",
        "-c:a", "copy",
        "-movflags", "+faststart",
        str(out_video),
    ]
    _run(cmd)
    return out_video
