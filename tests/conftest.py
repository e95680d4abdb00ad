# -*- coding: utf-8 -*-
# 테스트 공용: 메모리 저장소, 고정 임베더, 레시피 팩토리

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import pytest

from app.db.models.recipe import EmbeddingDoc, Macros, Micronutrients, RecipeDoc
from app.db.models.review import RatingAggregate, ReviewDoc
from app.services.embeddings import EmbeddingVector

TEST_MODEL = "test-model"


def make_recipe(rid: str, **kw: Any) -> RecipeDoc:
    macros = kw.pop("macros", {})
    micros = kw.pop("micros", {})
    data: Dict[str, Any] = {
        "id": rid,
        "title": kw.pop("title", f"Recipe {rid}"),
        "cuisine": kw.pop("cuisine", "Mediterranean"),
        "dietaryTags": kw.pop("dietaryTags", ["balanced"]),
        "allergenTags": kw.pop("allergenTags", []),
        "macrosPerServing": Macros(**{"calories": 500, "protein": 30, "carbs": 50, "fats": 15, **macros}),
        "micronutrientsPerServing": Micronutrients(**micros),
    }
    data.update(kw)
    return RecipeDoc(**data)


class InMemoryRecipeStore:
    """RecipeStore 메모리 구현. 삽입 순서 = 카탈로그 순서."""

    def __init__(self) -> None:
        self.recipes: Dict[str, RecipeDoc] = {}
        self.embeddings: Dict[str, EmbeddingDoc] = {}
        self.reviews: Dict[str, ReviewDoc] = {}
        self.preferences: Dict[str, Dict[str, Any]] = {}
        # 집계 재계산 관찰용: "read" / "write" / "stale" 순서 기록
        self.events: List[str] = []
        # set_rating_aggregate 호출별 추가 양보 횟수 (앞에서부터 소비)
        self.write_delays: List[int] = []

    def add(self, recipe: RecipeDoc, vector: Optional[List[float]] = None, model: str = TEST_MODEL) -> RecipeDoc:
        self.recipes[recipe.id] = recipe
        if vector is not None:
            self.embeddings[recipe.id] = EmbeddingDoc(id=recipe.id, recipeId=recipe.id, vector=vector, model=model)
        return recipe

    async def get_recipe(self, recipe_id: str) -> Optional[RecipeDoc]:
        return self.recipes.get(recipe_id)

    async def get_recipes_by_ids(self, ids: Iterable[str]) -> Dict[str, RecipeDoc]:
        return {i: self.recipes[i] for i in ids if i in self.recipes}

    async def list_recipes(self, limit: Optional[int] = None) -> List[RecipeDoc]:
        out = list(self.recipes.values())
        return out[:limit] if limit else out

    async def upsert_recipe(self, recipe: RecipeDoc) -> None:
        self.recipes[recipe.id] = recipe

    async def list_embeddings(self) -> List[EmbeddingDoc]:
        return list(self.embeddings.values())

    async def save_embedding(self, doc: EmbeddingDoc) -> None:
        self.embeddings[doc.id] = doc

    async def set_embedding_id(self, recipe_id: str, embedding_id: str) -> None:
        r = self.recipes[recipe_id]
        self.recipes[recipe_id] = r.model_copy(update={"embeddingId": embedding_id})

    async def create_review(self, review: ReviewDoc) -> ReviewDoc:
        self.reviews[review.id] = review
        return review

    async def get_review(self, recipe_id: str, review_id: str) -> Optional[ReviewDoc]:
        r = self.reviews.get(review_id)
        return r if r and r.recipeId == recipe_id else None

    async def update_review_moderation(
        self, recipe_id: str, review_id: str, *, status: str, moderator_id: str,
        notes: Optional[str], at: datetime,
    ) -> Optional[ReviewDoc]:
        r = await self.get_review(recipe_id, review_id)
        if r is None:
            return None
        r = r.model_copy(update={
            "moderationStatus": status, "moderatedBy": moderator_id,
            "moderatedAt": at, "moderationNotes": notes,
        })
        self.reviews[review_id] = r
        return r

    async def list_reviews(self, recipe_id: str, limit: int = 20, status: Optional[str] = None) -> List[ReviewDoc]:
        rs = [r for r in self.reviews.values() if r.recipeId == recipe_id]
        if status:
            rs = [r for r in rs if r.moderationStatus == status]
        rs.sort(key=lambda r: r.createdAt, reverse=True)
        return rs[:limit]

    async def list_approved_ratings(self, recipe_id: str) -> List[int]:
        # 호출 시점 스냅샷을 찍고 양보 (다른 태스크가 그 사이 승인할 수 있다)
        snapshot = [
            r.rating for r in self.reviews.values()
            if r.recipeId == recipe_id and r.moderationStatus == "approved"
        ]
        self.events.append("read")
        await asyncio.sleep(0)
        return snapshot

    async def get_rating_version(self, recipe_id: str) -> Optional[int]:
        r = self.recipes.get(recipe_id)
        return r.ratingVersion if r is not None else None

    async def set_rating_aggregate(self, recipe_id: str, agg: RatingAggregate, expected_version: int) -> bool:
        delay = self.write_delays.pop(0) if self.write_delays else 0
        for _ in range(delay + 1):
            await asyncio.sleep(0)
        # 양보 이후 원자적 compare-and-set
        r = self.recipes[recipe_id]
        if r.ratingVersion != expected_version:
            self.events.append("stale")
            return False
        self.recipes[recipe_id] = r.model_copy(update={**agg.model_dump(), "ratingVersion": expected_version + 1})
        self.events.append("write")
        return True

    async def get_preferences(self, anon_id: str) -> Optional[Dict[str, Any]]:
        return self.preferences.get(anon_id)

    async def save_preferences(self, anon_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        doc = {**self.preferences.get(anon_id, {}), **fields, "anon_id": anon_id}
        self.preferences[anon_id] = doc
        return dict(doc)


class FixedEmbedder:
    """항상 같은 벡터를 돌려주는 임베더. 호출 텍스트 기록."""

    def __init__(self, vector: List[float], model: str = TEST_MODEL):
        self.vector = vector
        self.model = model
        self.calls: List[str] = []

    async def __call__(self, text: str) -> EmbeddingVector:
        self.calls.append(text)
        return EmbeddingVector(vector=list(self.vector), model=self.model)


@pytest.fixture
def store() -> InMemoryRecipeStore:
    return InMemoryRecipeStore()


@pytest.fixture
def embedder() -> FixedEmbedder:
    return FixedEmbedder([1.0, 0.0, 0.0])
