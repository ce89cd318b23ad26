"""
캡션 타임라인

- 편집 세션 하나가 타임라인 하나를 가진다. (전역 상태 X)
- 순서 = 리스트 순서. 재정렬/삭제는 replace()로 통째로 갈아끼울 때만.
- 싱크 재조정 뒤 시작 시간 순서가 뒤집혀도 자동 정렬하지 않는다.
  "지금 재생 시간에 보이는 자막"은 리스트 앞쪽에서 먼저 맞는 것.
"""

from __future__ import annotations

import uuid
from typing import Dict, Iterable, Iterator, List, Optional

from backend.app.core.logger import get_logger
from backend.app.schemas import Caption, TimingUpdate

logger = get_logger(__name__)


def ensure_unique_ids(captions: Iterable[Caption]) -> List[Caption]:
    """
    AI가 id를 비우거나 겹치게 주는 경우가 있어서,
    빈 id / 중복 id 만 새 id로 바꾼다. (나머지는 그대로)
    """
    seen = set()
    out: List[Caption] = []
    for c in captions:
        cid = (c.id or "").strip()
        if not cid or cid in seen:
            cid = uuid.uuid4().hex[:8]
            c = c.model_copy(update={"id": cid})
        seen.add(cid)
        out.append(c)
    return out


class CaptionTimeline:
    def __init__(self, captions: Optional[Iterable[Caption]] = None):
        self._captions: List[Caption] = ensure_unique_ids(captions or [])

    def __len__(self) -> int:
        return len(self._captions)

    def __iter__(self) -> Iterator[Caption]:
        return iter(list(self._captions))

    @property
    def captions(self) -> List[Caption]:
        return list(self._captions)

    @property
    def duration(self) -> float:
        return max((c.end_time for c in self._captions), default=0.0)

    def get(self, caption_id: str) -> Optional[Caption]:
        for c in self._captions:
            if c.id == caption_id:
                return c
        return None

    def _index_of(self, caption_id: str) -> int:
        for i, c in enumerate(self._captions):
            if c.id == caption_id:
                return i
        raise KeyError(caption_id)

    def replace(self, captions: Iterable[Caption]) -> None:
        # 전사 완료 / 프로젝트 불러오기: 통째로 교체
        self._captions = ensure_unique_ids(captions)

    def edit_text(self, caption_id: str, text: str) -> Caption:
        i = self._index_of(caption_id)
        updated = self._captions[i].model_copy(update={"text": text})
        self._captions[i] = updated
        return updated

    def subset(self, ids: Iterable[str]) -> List[Caption]:
        wanted = set(ids)
        return [c for c in self._captions if c.id in wanted]

    def apply_timings(self, updates: Iterable[TimingUpdate], ids: Optional[Iterable[str]] = None) -> int:
        """
        선택 싱크 결과 반영

        - 시간(start/end)만 바꾸고 텍스트는 건드리지 않는다.
        - ids가 주어지면 그 안에 있는 것만. 결과에 섞여 온 다른 id는 무시.
        - 반영 시점의 타임라인 기준으로 id 매칭 (요청 중에 바뀐 텍스트 보존)
        반환: 실제로 바뀐 자막 수
        """
        allowed = set(ids) if ids is not None else None
        by_id: Dict[str, TimingUpdate] = {}
        for u in updates:
            if allowed is not None and u.id not in allowed:
                continue
            if u.start_time >= u.end_time:
                logger.warning("잘못된 타이밍 무시: id=%s %.3f >= %.3f", u.id, u.start_time, u.end_time)
                continue
            by_id[u.id] = u

        changed = 0
        for i, c in enumerate(self._captions):
            u = by_id.get(c.id)
            if u is None:
                continue
            self._captions[i] = c.model_copy(
                update={"start_time": u.start_time, "end_time": u.end_time}
            )
            changed += 1
        return changed

    def active_at(self, t: float) -> Optional[Caption]:
        for c in self._captions:
            if c.start_time <= t <= c.end_time:
                return c
        return None

    def to_payload(self) -> List[dict]:
        # 저장/응답용 JSON (camelCase 키)
        return [c.model_dump(by_alias=True) for c in self._captions]
