# app/main.py
# FastAPI 앱 초기화 및 라우터 설정
# 라우터는 기능별로 분리하여 관리

from __future__ import annotations

import logging
from asyncio import sleep
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes_recipes import router as recipes_router   # 레시피 검색/리뷰
from app.api.routes_prefs import router as prefs_router       # 사용자 선호
from app.core.config import settings
from app.core.logger import setup_logging

# DB 초기화/인덱스
# init_db/close_db: 앱 시작/종료 시 커넥션 생성/정리
# get_db: 런타임에 DB 핸들 얻기
from app.db.init import get_db, init_db, close_db
from app.db.indexes import ensure_indexes
from app.services.recipes import reset_recipe_service

setup_logging(settings.LOG_LEVEL)
log = logging.getLogger(__name__)

# 스타트업 DB 재시도 (최대 20회, 1초 간격)
DB_RETRIES = 20

app = FastAPI(title="Nutrition Recipe Search - API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 앱 시작/종료 이벤트 핸들러
@app.on_event("startup")
async def on_startup() -> None:
    # 1) DB 먼저 붙는다
    db = None
    for i in range(DB_RETRIES):
        try:
            db = await init_db()
            log.info("[startup] db ready")
            break
        except Exception as e:
            log.warning("[startup] db init retry %d: %s", i + 1, e)
            await sleep(1.0)
    if db is None:
        log.error("[startup] db init failed after retries")
        return

    # 2) 인덱스 보장
    try:
        await ensure_indexes(db)
        log.info("[startup] indexes ensured")
    except Exception:
        log.exception("[startup] ensure_indexes failed")

@app.on_event("shutdown")
async def on_shutdown() -> None:
    # 몽고db 커넥션 정리
    reset_recipe_service()
    await close_db()

@app.get("/")
async def root():
    return {"status": "ok"}

@app.get("/health")
async def health():
    ok = {"status": "ok", "db": "skip"}
    try:
        db = get_db()
        await db.command("ping")
        ok["db"] = "ok"
    except Exception as e:
        ok["db"] = f"error: {e}"
    return ok

# 라우터 prefix는 각 파일 내에서 정의함, 중복 prefix 금지
app.include_router(recipes_router)
app.include_router(prefs_router)
