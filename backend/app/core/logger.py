"""
로거(Logger) 모듈

모든 모듈은 get_logger(__name__) 하나로 로거를 받는다.
- 포맷: 시간 | 레벨 | 모듈 | 메시지
- 레벨은 settings.LOG_LEVEL (.env로 DEBUG 전환 가능)
"""

import logging

from backend.app.core.config import settings

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _level() -> int:
    level = logging.getLevelName(str(settings.LOG_LEVEL).upper())
    # 모르는 이름이면 getLevelName이 문자열을 돌려줌
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger  # 이미 설정되어 있으면 중복 설정 방지

    logger.setLevel(_level())

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT))
    logger.addHandler(handler)
    # uvicorn 루트 핸들러와 중복 출력 방지
    logger.propagate = False
    return logger
