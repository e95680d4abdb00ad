# app/scripts/backfill_embeddings.py
# 카탈로그 레시피 임베딩 채우기 + (설정 시) 벡터 인덱스 적재
# 사용: python -m app.scripts.backfill_embeddings --limit 500 --all

from __future__ import annotations
import argparse
import asyncio
import logging

from app.core.config import settings
from app.core.logger import setup_logging
from app.db.init import close_db, init_db
from app.services.embeddings import upsert_embedding_for_recipe
from app.services.store import MongoRecipeStore
from app.services.vector_index import VectorIndexClient

log = logging.getLogger(__name__)

async def backfill(store: MongoRecipeStore, index: VectorIndexClient, limit: int, only_missing: bool = True) -> int:
    recipes = await store.list_recipes(limit=limit)
    done = 0
    for r in recipes:
        if only_missing and r.embeddingId:
            continue
        doc = await upsert_embedding_for_recipe(store, r, index=index)
        done += 1
        log.info("embedded %s (%s, dim=%d)", r.id, doc.model, len(doc.vector))
    return done

async def main(limit: int, only_missing: bool) -> None:
    db = await init_db()
    try:
        store = MongoRecipeStore(db)
        n = await backfill(store, VectorIndexClient.from_settings(), limit, only_missing)
        print(f"embedded: {n}")
    finally:
        await close_db()

if __name__ == "__main__":
    ap = argparse.ArgumentParser()
    ap.add_argument("--limit", type=int, default=500)
    ap.add_argument("--all", dest="only_missing", action="store_false",
                    help="이미 임베딩 있는 레시피도 다시 계산")
    args = ap.parse_args()

    setup_logging(settings.LOG_LEVEL)
    asyncio.run(main(args.limit, args.only_missing))
