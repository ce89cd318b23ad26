"""
스토리지 유틸

- 프로젝트(이름 + 캡션 + 스타일)는 PROJECT_DIR/<id>.json 하나로 저장
- 업로드/내보내기 파일은 OUTPUT_DIR/<job_id>/ 아래

나중에 DB/Object Storage로 바꾸기 쉬우라고 '한 곳'에 모아둡니다.
"""

from __future__ import annotations

import json
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Union

from pydantic import ValidationError

from backend.app.core.config import settings
from backend.app.core.errors import PersistenceError, ProjectNotFoundError
from backend.app.core.logger import get_logger
from backend.app.schemas import ANONYMOUS_USER_ID, Caption, CustomFont, Project, VideoStyle

logger = get_logger(__name__)


def make_job_dir(root: Optional[Union[str, Path]] = None) -> Path:
    job_id = uuid.uuid4().hex[:12]
    out_root = Path(root or settings.OUTPUT_DIR)
    job_dir = out_root / job_id
    job_dir.mkdir(parents=True, exist_ok=True)
    (job_dir / "inputs").mkdir(exist_ok=True)
    (job_dir / "artifacts").mkdir(exist_ok=True)
    return job_dir


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _atomic_write(path: Path, text: str) -> None:
    # 저장 도중 죽어도 반쪽짜리 JSON이 남지 않게: tmp에 쓰고 교체
    tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex[:6]}.tmp")
    tmp.write_text(text, encoding="utf-8")
    os.replace(tmp, path)


class JsonProjectStore:
    def __init__(self, root: Optional[Union[str, Path]] = None):
        self.root = Path(root or settings.PROJECT_DIR)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, project_id: str) -> Path:
        # id가 경로를 벗어나지 못하게 파일명만 사용
        safe = Path(str(project_id)).name
        if not safe or safe != project_id:
            raise ProjectNotFoundError(project_id)
        return self.root / f"{safe}.json"

    def _read(self, path: Path) -> Project:
        data = json.loads(path.read_text(encoding="utf-8"))
        return Project.model_validate(data)

    def save(
        self,
        name: str,
        captions: Iterable[Caption],
        style: VideoStyle,
        project_id: Optional[str] = None,
        custom_fonts: Optional[Iterable[CustomFont]] = None,
        thumbnail_url: Optional[str] = None,
    ) -> Project:
        """
        id가 없으면 새로 만들고, 있으면 덮어쓴다.
        created_at 은 유지. custom_fonts / thumbnail_url 이 None 이면 기존 값 유지.
        """
        created_at = _now()
        if project_id:
            path = self._path(project_id)
            if path.exists():
                try:
                    existing = self._read(path)
                    created_at = existing.created_at
                    if custom_fonts is None:
                        custom_fonts = existing.custom_fonts
                    if thumbnail_url is None:
                        thumbnail_url = existing.thumbnail_url
                except (OSError, ValueError, ValidationError) as e:
                    logger.warning("기존 프로젝트 읽기 실패(덮어씀): id=%s err=%s", project_id, e)
        else:
            project_id = uuid.uuid4().hex
            path = self._path(project_id)

        project = Project(
            id=project_id,
            user_id=ANONYMOUS_USER_ID,
            name=name,
            captions=list(captions),
            style=style,
            custom_fonts=list(custom_fonts or []),
            thumbnail_url=thumbnail_url,
            created_at=created_at,
            updated_at=_now(),
        )
        try:
            _atomic_write(path, json.dumps(project.model_dump(by_alias=True), ensure_ascii=False, indent=2))
        except OSError as e:
            raise PersistenceError(f"project save failed: {e}") from e

        logger.info("프로젝트 저장: id=%s name=%s captions=%d", project.id, project.name, len(project.captions))
        return project

    def load(self, project_id: str) -> Project:
        path = self._path(project_id)
        if not path.exists():
            raise ProjectNotFoundError(project_id)
        try:
            return self._read(path)
        except (OSError, ValueError, ValidationError) as e:
            raise PersistenceError(f"project load failed: {e}") from e

    def list(self) -> List[Project]:
        # 최신순. 깨진 파일은 로그만 남기고 건너뜀
        projects: List[Project] = []
        for path in self.root.glob("*.json"):
            try:
                projects.append(self._read(path))
            except (OSError, ValueError, ValidationError) as e:
                logger.warning("프로젝트 파일 읽기 실패: %s err=%s", path.name, e)
        projects.sort(key=lambda p: p.created_at, reverse=True)
        return projects

    def delete(self, project_id: str) -> None:
        path = self._path(project_id)
        if not path.exists():
            raise ProjectNotFoundError(project_id)
        path.unlink()
        logger.info("프로젝트 삭제: id=%s", project_id)
