# app/services/recipes.py
# 라우터가 쓰는 레시피 서비스 묶음 (검색/단건/리뷰/모더레이션)
# 검색 흐름: 필터 → 질의문 → 임베딩 → 3단계 검색 → 필터 → 평점 보정 점수 → 정렬/컷

from __future__ import annotations
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from app.core.config import settings
from app.data.fallback_recipes import StaticRecipeCorpus
from app.db.init import get_db
from app.db.models.recipe import RecipeDoc
from app.db.models.review import ReviewDoc
from app.db.models.schemas import RecipeSearchFilters, SearchResultOut
from app.db.models.user_prefs import UserPrefsIn
from app.services.embeddings import EmbeddingVector, embed_text
from app.services.filters import build_preference_filters, build_query_text
from app.services.retrieval import (
    EmbeddingScanTier, RecipeRetriever, StaticCorpusTier, VectorIndexTier,
)
from app.services.reviews import ReviewLedger
from app.services.store import MongoRecipeStore, RecipeStore
from app.services.vector_index import VectorIndexClient

log = logging.getLogger(__name__)

Embedder = Callable[[str], Awaitable[EmbeddingVector]]

class RecipeService:
    def __init__(
        self,
        store: RecipeStore,
        retriever: RecipeRetriever,
        ledger: ReviewLedger,
        corpus: Optional[StaticRecipeCorpus] = None,
        embed: Embedder = embed_text,
        default_limit: int = 10,
    ):
        self.store = store
        self.retriever = retriever
        self.ledger = ledger
        self.corpus = corpus if corpus is not None else StaticRecipeCorpus()
        self.embed = embed
        self.default_limit = default_limit

    async def search(self, filters: RecipeSearchFilters) -> List[SearchResultOut]:
        limit = filters.limit or self.default_limit
        text = build_query_text(filters)
        query = await self.embed(text)
        ranked = await self.retriever.retrieve(query, filters, limit)
        log.info("search q=%r model=%s -> %d results", text, query.model, len(ranked))
        return [SearchResultOut(recipe=c.recipe, similarity=c.similarity, score=c.score) for c in ranked]

    async def personalized_search(
        self, anon_id: str, overrides: Optional[RecipeSearchFilters] = None,
    ) -> List[SearchResultOut]:
        prefs = await self.store.get_preferences(anon_id)
        return await self.search(build_preference_filters(prefs, overrides))

    async def get_preferences(self, anon_id: str) -> Dict[str, Any]:
        return await self.store.get_preferences(anon_id) or {}

    async def save_preferences(self, anon_id: str, prefs: UserPrefsIn) -> Dict[str, Any]:
        fields = prefs.model_dump(exclude_unset=True, exclude_none=True)
        saved = await self.store.save_preferences(anon_id, fields)
        log.info("preferences saved anon=%s fields=%s", anon_id, sorted(fields))
        return saved

    async def get_recipe(self, recipe_id: str) -> Optional[RecipeDoc]:
        # 라이브 카탈로그 → 정적 코퍼스 → 없음(None)
        recipe = await self.store.get_recipe(recipe_id)
        if recipe is not None:
            return recipe
        return self.corpus.get(recipe_id)

    async def list_reviews(
        self, recipe_id: str, limit: int = 20, status: Optional[str] = None,
    ) -> List[ReviewDoc]:
        return await self.ledger.list_reviews(recipe_id, limit, status)

    async def submit_review(
        self, recipe_id: str, user_id: str, rating: int, comment: Optional[str] = None,
    ) -> ReviewDoc:
        return await self.ledger.submit_review(recipe_id, user_id, rating, comment)

    async def moderate_review(
        self, recipe_id: str, review_id: str, status: str, moderator_id: str, notes: Optional[str] = None,
    ) -> None:
        await self.ledger.moderate_review(recipe_id, review_id, status, moderator_id, notes)

def build_recipe_service(
    store: RecipeStore,
    index: Optional[VectorIndexClient] = None,
    corpus: Optional[StaticRecipeCorpus] = None,
    embed: Embedder = embed_text,
    ledger: Optional[ReviewLedger] = None,
) -> RecipeService:
    corpus = corpus if corpus is not None else StaticRecipeCorpus()
    index = index if index is not None else VectorIndexClient.from_settings()
    retriever = RecipeRetriever([
        VectorIndexTier(index, store),
        EmbeddingScanTier(store),
        StaticCorpusTier(corpus),
    ])
    return RecipeService(
        store=store,
        retriever=retriever,
        ledger=ledger or ReviewLedger(store),
        corpus=corpus,
        embed=embed,
        default_limit=settings.SEARCH_DEFAULT_LIMIT,
    )

# 프로세스 단위 싱글톤: 레시피 락이 요청 간에 공유되어야 한다
_service: Optional[RecipeService] = None

def get_recipe_service() -> RecipeService:
    global _service
    if _service is None:
        _service = build_recipe_service(MongoRecipeStore(get_db()))
    return _service

def reset_recipe_service() -> None:
    # 종료/재연결 시 호출
    global _service
    _service = None
