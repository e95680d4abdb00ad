# app/core/logger.py
# 로깅 초기화: 모듈은 logging.getLogger(__name__)만 쓰고 설정은 여기 한 곳에서

from __future__ import annotations
import logging

FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

def setup_logging(level: str | int = "INFO") -> None:
    root = logging.getLogger()
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    root.setLevel(level)

    # 이미 핸들러가 있으면(uvicorn/pytest) 중복 추가 안 함
    if root.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(FORMAT))
    root.addHandler(handler)
