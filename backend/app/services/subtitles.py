"""
자막(SRT) 생성

캡션 타임라인 + 포맷 설정 -> SRT 텍스트 (파일 I/O 없음, 순수 함수)

처리 순서
1) 구간 필터: [custom_start_time, custom_end_time) 과 겹치는 캡션만 남김
2) 구간 클리핑: 시작/끝을 구간 안으로 자름. 자른 뒤 길이가 0 이하면 버림
3) 블록 재분할: 단어 수가 words_per_line * lines_per_caption 를 넘으면
   여러 블록으로 나누고, 시간은 단어 수에 비례해 균등 분배
   (진짜 단어 타임스탬프가 없어서 '단어당 같은 시간'으로 근사)
4) 블록 번호는 1부터 연속
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from backend.app.schemas import Caption, SegmentationConfig


def format_srt_time(seconds: float) -> str:
    # SRT 시간 포맷: HH:MM:SS,mmm (음수는 0으로)
    t = max(0.0, float(seconds))
    h = int(t // 3600)
    m = int((t % 3600) // 60)
    s = int(t % 60)
    ms = int(math.floor((t % 1) * 1000))
    return f"{h:02d}:{m:02d}:{s:02d},{ms:03d}"


def _effective_range(config: SegmentationConfig) -> Tuple[float, float]:
    start = config.custom_start_time if config.custom_start_time is not None else 0.0
    end = config.custom_end_time if config.custom_end_time is not None else math.inf
    return start, end


def _clip(caption: Caption, config: SegmentationConfig) -> Optional[Tuple[float, float]]:
    start, end = caption.start_time, caption.end_time
    if config.custom_start_time is not None:
        start = max(start, config.custom_start_time)
    if config.custom_end_time is not None:
        end = min(end, config.custom_end_time)
    if start >= end:
        return None
    return start, end


def _wrap(words: List[str], per_line: int) -> List[str]:
    return [" ".join(words[i:i + per_line]) for i in range(0, len(words), per_line)]


def iter_blocks(
    captions: Iterable[Caption],
    config: SegmentationConfig,
) -> Iterable[Tuple[int, float, float, List[str]]]:
    """
    (index, start, end, lines) 를 순서대로 만들어낸다.

    generate_srt 가 문자열로 합치고, 영상 내보내기 쪽도 같은 블록을 쓴다.
    """
    # 설정이 깨져 들어와도 죽지 않게 최소 1로 보정
    per_line = max(1, int(config.words_per_line))
    per_block = per_line * max(1, int(config.lines_per_caption))
    range_start, range_end = _effective_range(config)

    overlapping = [
        c for c in captions
        if c.start_time < range_end and c.end_time > range_start
    ]
    # 시작 시간 기준 안정 정렬 (같은 시작이면 원래 순서 유지)
    overlapping.sort(key=lambda c: c.start_time)

    index = 1
    for caption in overlapping:
        clipped = _clip(caption, config)
        if clipped is None:
            continue
        start, end = clipped

        words = caption.words
        if not words:
            continue

        time_per_word = (end - start) / len(words)

        for chunk_start in range(0, len(words), per_block):
            chunk_end = min(chunk_start + per_block, len(words))
            block_start = start + chunk_start * time_per_word
            # 마지막 블록은 끝 시간을 그대로 (부동소수 오차로 구간이 비지 않게)
            block_end = end if chunk_end == len(words) else start + chunk_end * time_per_word
            yield index, block_start, block_end, _wrap(words[chunk_start:chunk_end], per_line)
            index += 1


def generate_srt(captions: Iterable[Caption], config: Optional[SegmentationConfig] = None) -> str:
    config = config or SegmentationConfig()

    parts = []
    for index, start, end, lines in iter_blocks(captions, config):
        body = "\n".join(lines)
        parts.append(
            f"{index}\n{format_srt_time(start)} --> {format_srt_time(end)}\n{body}\n\n"
        )
    return "".join(parts)


def srt_filename(name: str) -> str:
    name = (name or "").strip() or "captions"
    return name if name.lower().endswith(".srt") else f"{name}.srt"


def write_srt(
    captions: Iterable[Caption],
    config: Optional[SegmentationConfig],
    out_path: Path,
) -> Path:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(generate_srt(captions, config), encoding="utf-8")
    return out_path
