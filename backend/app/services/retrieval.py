# app/services/retrieval.py
# -----------------------------------------------------------------------------
# 3단계 폴백 검색
#   1) 벡터 인덱스 질의 (설정된 경우)
#   2) 저장된 임베딩 전수 코사인 스캔
#   3) 정적 큐레이션 코퍼스 (절대 실패하지 않음)
# - 각 단계는 "쿼리 벡터 → 점수 매긴 후보(필터 전)"만 책임진다
# - 하드 제약 필터는 오케스트레이터가 공통으로 적용
# - 필터 후 0건이면 다음 단계로 내려간다 (단계 전환은 순차)
# -----------------------------------------------------------------------------

from __future__ import annotations
import asyncio
import logging
from typing import Dict, List, Optional, Sequence

import httpx
from pymongo.errors import PyMongoError

from app.data.fallback_recipes import StaticRecipeCorpus
from app.db.models.recipe import EmbeddingDoc, RecipeDoc
from app.db.models.schemas import RecipeSearchFilters
from app.services.embeddings import EmbeddingVector
from app.services.filters import matches_filters
from app.services.scoring import (
    DEFAULT_LIMIT, Candidate, cosine_similarity, rank, rating_adjusted_score,
)
from app.services.store import ID_CHUNK, RecipeStore
from app.services.vector_index import VectorIndexClient, VectorIndexError

log = logging.getLogger(__name__)

# 1단계 이웃 수 = limit * 3 (필터로 잘려나갈 여유)
OVERFETCH = 3

# 3단계 합성 점수: 0.4에서 0.01씩 감소
STATIC_BASE_SCORE = 0.4
STATIC_STEP = 0.01

class RetrievalTier:
    name = "tier"

    async def fetch(self, query: EmbeddingVector, limit: int) -> List[Candidate]:
        raise NotImplementedError

    def finalize(self, filtered: List[Candidate]) -> List[Candidate]:
        # 필터 통과분에 대한 후처리 (기본: 그대로)
        return filtered

class VectorIndexTier(RetrievalTier):
    name = "vector_index"

    def __init__(self, index: VectorIndexClient, store: RecipeStore):
        self.index = index
        self.store = store

    async def fetch(self, query: EmbeddingVector, limit: int) -> List[Candidate]:
        if not self.index.enabled:
            return []
        try:
            matches = await self.index.search(query.vector, limit * OVERFETCH)
        except (httpx.HTTPError, VectorIndexError, KeyError, ValueError) as e:
            log.warning("vector index unavailable, falling through: %s", e)
            return []
        if not matches:
            return []

        try:
            catalog = await self.store.get_recipes_by_ids(m.id for m in matches)
        except PyMongoError as e:
            log.warning("catalog lookup failed for vector matches: %s", e)
            return []

        out: List[Candidate] = []
        for m in matches:
            recipe = catalog.get(m.id)
            if recipe is None:
                continue  # 인덱스에만 남은 오래된 항목
            out.append(Candidate(
                recipe=recipe,
                similarity=m.score,
                score=rating_adjusted_score(m.score, recipe.ratingAverage),
                tier=self.name,
            ))
        return out

def _score_embeddings(
    query: EmbeddingVector,
    embeddings: Sequence[EmbeddingDoc],
    catalog: Dict[str, RecipeDoc],
    tier: str,
) -> List[Candidate]:
    out: List[Candidate] = []
    for emb in embeddings:
        recipe = catalog.get(emb.recipeId)
        if recipe is None:
            continue
        # 다른 모델/차원의 벡터는 재임베딩 없이 비교하지 않는다
        if emb.model != query.model or len(emb.vector) != len(query.vector):
            continue
        sim = cosine_similarity(query.vector, emb.vector)
        out.append(Candidate(
            recipe=recipe,
            similarity=sim,
            score=rating_adjusted_score(sim, recipe.ratingAverage),
            tier=tier,
        ))
    return out

class EmbeddingScanTier(RetrievalTier):
    name = "embedding_scan"

    def __init__(self, store: RecipeStore):
        self.store = store

    async def fetch(self, query: EmbeddingVector, limit: int) -> List[Candidate]:
        try:
            embeddings = await self.store.list_embeddings()
            if not embeddings:
                return []
            ids = list(dict.fromkeys(e.recipeId for e in embeddings))
            # 카탈로그 조회는 묶음별 병렬 (I/O)
            parts = await asyncio.gather(*(
                self.store.get_recipes_by_ids(ids[i:i + ID_CHUNK])
                for i in range(0, len(ids), ID_CHUNK)
            ))
        except PyMongoError as e:
            log.warning("embedding scan unavailable, falling through: %s", e)
            return []

        catalog: Dict[str, RecipeDoc] = {}
        for p in parts:
            catalog.update(p)

        # 유사도 계산은 스레드로 (CPU). 결과는 임베딩 목록 순서 그대로
        return await asyncio.to_thread(_score_embeddings, query, embeddings, catalog, self.name)

class StaticCorpusTier(RetrievalTier):
    name = "static_corpus"

    def __init__(self, corpus: Optional[StaticRecipeCorpus] = None):
        self.corpus = corpus if corpus is not None else StaticRecipeCorpus()

    async def fetch(self, query: EmbeddingVector, limit: int) -> List[Candidate]:
        # 실제 유사도 계산 없음: 점수는 필터 이후 위치로 부여
        return [Candidate(recipe=r, similarity=0.0, score=0.0, tier=self.name) for r in self.corpus]

    def finalize(self, filtered: List[Candidate]) -> List[Candidate]:
        # TODO: 필터 통과분이 40건을 넘으면 점수가 0 이하가 된다. 코퍼스 확장 전에 감쇠 방식 재검토
        for i, c in enumerate(filtered):
            c.similarity = c.score = STATIC_BASE_SCORE - i * STATIC_STEP
        return filtered

class RecipeRetriever:
    """단계 목록을 순서대로 시도해 처음으로 필터 통과 후보를 낸 단계의 결과를 정렬해 반환."""

    def __init__(self, tiers: Sequence[RetrievalTier]):
        self.tiers = list(tiers)

    async def retrieve(
        self,
        query: EmbeddingVector,
        filters: RecipeSearchFilters,
        limit: Optional[int] = None,
    ) -> List[Candidate]:
        n = limit or filters.limit or DEFAULT_LIMIT
        for tier in self.tiers:
            raw = await tier.fetch(query, n)
            filtered = tier.finalize([c for c in raw if matches_filters(c.recipe, filters)])
            log.info("tier=%s raw=%d filtered=%d", tier.name, len(raw), len(filtered))
            if filtered:
                return rank(filtered, n)
        log.info("all retrieval tiers exhausted (limit=%d)", n)
        return []
