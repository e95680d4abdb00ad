# app/services/reviews.py
# 리뷰 작성/모더레이션 + 레시피 집계 평점 재계산
# - 작성 직후는 pending: 집계에 반영 안 함
# - 집계는 approved 리뷰 전체 재집계 (모더레이션 번복 대응)
# - 같은 레시피의 재집계는 레시피 단위 락으로 직렬화

from __future__ import annotations
import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, List, Optional

from app.db.models.review import MODERATION_STATUSES, RatingAggregate, ReviewDoc
from app.services.store import RecipeStore, new_id

log = logging.getLogger(__name__)

class ReviewValidationError(ValueError):
    # 평점 범위/상태값 오류. 저장 전에 거절
    pass

class ReviewNotFound(LookupError):
    pass

class RatingRecountConflict(RuntimeError):
    # 재시도 한도 안에 집계 버전을 잡지 못함 (동시 쓰기 과다)
    pass

# 버전 충돌 시 재집계 재시도 횟수
MAX_RECOUNT_ATTEMPTS = 5

class KeyedLocks:
    """키(레시피 id)별 asyncio.Lock. 아무도 안 쓰는 락은 약참조라 자동 정리."""

    def __init__(self) -> None:
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def get(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self.get(key)  # 지역 참조로 대기 중 수거 방지
        async with lock:
            yield

def validate_rating(rating: object) -> int:
    # bool은 int 하위형이지만 평점으로는 거절
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ReviewValidationError("Rating must be an integer between 1 and 5")
    if rating < 1 or rating > 5:
        raise ReviewValidationError("Rating must be between 1 and 5")
    return rating

def validate_status(status: object) -> str:
    if status not in MODERATION_STATUSES:
        raise ReviewValidationError("Invalid status")
    return str(status)

class ReviewLedger:
    def __init__(self, store: RecipeStore, locks: Optional[KeyedLocks] = None):
        self.store = store
        self.locks = locks or KeyedLocks()

    async def submit_review(
        self, recipe_id: str, user_id: str, rating: int, comment: Optional[str] = None,
    ) -> ReviewDoc:
        rating = validate_rating(rating)
        review = ReviewDoc(
            id=new_id(),
            recipeId=recipe_id,
            userId=user_id,
            rating=rating,
            comment=(comment or None),
            moderationStatus="pending",
        )
        saved = await self.store.create_review(review)
        log.info("review submitted recipe=%s review=%s rating=%d", recipe_id, saved.id, rating)
        return saved

    async def moderate_review(
        self,
        recipe_id: str,
        review_id: str,
        status: str,
        moderator_id: str,
        notes: Optional[str] = None,
    ) -> RatingAggregate:
        status = validate_status(status)
        updated = await self.store.update_review_moderation(
            recipe_id, review_id,
            status=status, moderator_id=moderator_id, notes=notes, at=datetime.utcnow(),
        )
        if updated is None:
            raise ReviewNotFound(f"review {review_id} not found for recipe {recipe_id}")
        log.info("review moderated recipe=%s review=%s status=%s by=%s", recipe_id, review_id, status, moderator_id)
        return await self.recompute_rating(recipe_id)

    async def recompute_rating(self, recipe_id: str) -> RatingAggregate:
        # 같은 프로세스 안은 레시피 락으로 직렬화.
        # 다른 워커/스크립트와는 ratingVersion compare-and-set으로 충돌 감지 후 재집계
        async with self.locks.hold(recipe_id):
            for attempt in range(1, MAX_RECOUNT_ATTEMPTS + 1):
                # 읽기 순서: 버전 → 승인 목록
                version = await self.store.get_rating_version(recipe_id)
                ratings = await self.store.list_approved_ratings(recipe_id)
                agg = RatingAggregate.from_ratings(ratings)
                if version is None:
                    log.warning("rating recount skipped, recipe %s not in catalog", recipe_id)
                    return agg
                if await self.store.set_rating_aggregate(recipe_id, agg, version):
                    log.info(
                        "rating recomputed recipe=%s count=%d avg=%.3f attempt=%d",
                        recipe_id, agg.ratingCount, agg.ratingAverage, attempt,
                    )
                    return agg
                log.info("rating recount conflict recipe=%s version=%d attempt=%d", recipe_id, version, attempt)
        raise RatingRecountConflict(f"rating recount for {recipe_id} kept conflicting")

    async def list_reviews(
        self, recipe_id: str, limit: int = 20, status: Optional[str] = None,
    ) -> List[ReviewDoc]:
        if status is not None:
            validate_status(status)
        return await self.store.list_reviews(recipe_id, limit, status)
