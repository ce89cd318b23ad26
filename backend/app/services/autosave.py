"""
자동 저장 (디바운스)

편집이 들어올 때마다 저장하면 저장소가 두들겨 맞으니,
마지막 편집 후 delay초 동안 조용하면 그때 한 번만 저장한다.

- touch(): 상태 unsaved + 타이머 리셋 (대기 중인 타이머는 항상 1개)
- 타이머 발동: saving -> save_fn() -> saved
- 저장 실패: unsaved로 되돌리고 last_error 기록 (다음 편집 때 다시 시도)
- 마지막 저장이 이김. 동시 세션 충돌 감지는 하지 않음.
"""

from __future__ import annotations

import threading
from typing import Callable, Optional

from backend.app.core.config import settings
from backend.app.core.logger import get_logger
from backend.app.schemas import SaveStatus

logger = get_logger(__name__)


class AutoSaver:
    def __init__(self, save_fn: Callable[[], None], delay: Optional[float] = None):
        self._save_fn = save_fn
        self.delay = float(settings.AUTOSAVE_DELAY_SEC if delay is None else delay)
        self._lock = threading.Lock()
        # save_fn 이 겹쳐 돌지 않게
        self._save_lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self.status = SaveStatus.SAVED
        self.last_error: Optional[str] = None

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def touch(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self.status = SaveStatus.UNSAVED
            timer = threading.Timer(self.delay, self._fire, args=(self._generation,))
            timer.daemon = True
            self._timer = timer
            timer.start()

    def _fire(self, generation: int) -> None:
        with self._lock:
            # cancel 직전에 이미 시작된 타이머면 무시
            if generation != self._generation or self._timer is None:
                return
            self._timer = None
        self._save()

    def _save(self) -> bool:
        with self._save_lock:
            with self._lock:
                self.status = SaveStatus.SAVING
            try:
                self._save_fn()
            except Exception as e:
                logger.warning("자동 저장 실패: %s", e)
                with self._lock:
                    self.status = SaveStatus.UNSAVED
                    self.last_error = str(e)
                return False
            with self._lock:
                # 저장 중에 새 편집이 들어왔으면 unsaved 유지
                if self._timer is None:
                    self.status = SaveStatus.SAVED
                self.last_error = None
            return True

    def flush(self) -> bool:
        """저장 안 된 편집이 있으면 지금 바로 저장. (대기 타이머 또는 직전 저장 실패)"""
        with self._lock:
            if self._timer is None and self.status == SaveStatus.SAVED:
                return False
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._generation += 1
        return self._save()

    def save_now(self) -> bool:
        # 대기 여부와 상관없이 즉시 저장 (수동 저장 버튼)
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._generation += 1
        return self._save()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._generation += 1
