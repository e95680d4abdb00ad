# app/services/store.py
# 문서 저장소 어댑터: recipes / recipe_embeddings / recipe_reviews / user_preferences
# 서비스 계층은 RecipeStore 인터페이스만 본다 (테스트는 메모리 구현 주입)

from __future__ import annotations
import uuid
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Protocol

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument

from app.db.models.recipe import EmbeddingDoc, RecipeDoc
from app.db.models.review import RatingAggregate, ReviewDoc

RECIPES = "recipes"
EMBEDDINGS = "recipe_embeddings"
REVIEWS = "recipe_reviews"
PREFERENCES = "user_preferences"

# $in 조회 묶음 크기
ID_CHUNK = 200

class RecipeStore(Protocol):
    async def get_recipe(self, recipe_id: str) -> Optional[RecipeDoc]: ...
    async def get_recipes_by_ids(self, ids: Iterable[str]) -> Dict[str, RecipeDoc]: ...
    async def list_recipes(self, limit: Optional[int] = None) -> List[RecipeDoc]: ...
    async def upsert_recipe(self, recipe: RecipeDoc) -> None: ...
    async def list_embeddings(self) -> List[EmbeddingDoc]: ...
    async def save_embedding(self, doc: EmbeddingDoc) -> None: ...
    async def set_embedding_id(self, recipe_id: str, embedding_id: str) -> None: ...
    async def create_review(self, review: ReviewDoc) -> ReviewDoc: ...
    async def get_review(self, recipe_id: str, review_id: str) -> Optional[ReviewDoc]: ...
    async def update_review_moderation(
        self, recipe_id: str, review_id: str, *, status: str, moderator_id: str,
        notes: Optional[str], at: datetime,
    ) -> Optional[ReviewDoc]: ...
    async def list_reviews(self, recipe_id: str, limit: int = 20, status: Optional[str] = None) -> List[ReviewDoc]: ...
    async def list_approved_ratings(self, recipe_id: str) -> List[int]: ...
    async def get_rating_version(self, recipe_id: str) -> Optional[int]: ...
    async def set_rating_aggregate(self, recipe_id: str, agg: RatingAggregate, expected_version: int) -> bool: ...
    async def get_preferences(self, anon_id: str) -> Optional[Dict[str, Any]]: ...
    async def save_preferences(self, anon_id: str, fields: Dict[str, Any]) -> Dict[str, Any]: ...

def new_id() -> str:
    return str(uuid.uuid4())

def _chunks(ids: List[str], size: int = ID_CHUNK) -> Iterable[List[str]]:
    for i in range(0, len(ids), size):
        yield ids[i:i + size]

class MongoRecipeStore:
    """motor 기반 구현. 문서 식별자는 Mongo _id가 아니라 도메인 'id' 필드."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    # ---------- recipes ----------
    async def get_recipe(self, recipe_id: str) -> Optional[RecipeDoc]:
        d = await self.db[RECIPES].find_one({"id": recipe_id}, {"_id": 0})
        return RecipeDoc.model_validate(d) if d else None

    async def get_recipes_by_ids(self, ids: Iterable[str]) -> Dict[str, RecipeDoc]:
        uniq = list(dict.fromkeys(i for i in ids if i))
        out: Dict[str, RecipeDoc] = {}
        for chunk in _chunks(uniq):
            async for d in self.db[RECIPES].find({"id": {"$in": chunk}}, {"_id": 0}):
                out[d["id"]] = RecipeDoc.model_validate(d)
        return out

    async def list_recipes(self, limit: Optional[int] = None) -> List[RecipeDoc]:
        cur = self.db[RECIPES].find({}, {"_id": 0}).sort([("_id", 1)])
        if limit:
            cur = cur.limit(limit)
        return [RecipeDoc.model_validate(d) async for d in cur]

    async def upsert_recipe(self, recipe: RecipeDoc) -> None:
        # 집계 평점은 리뷰에서만 파생: 최초 삽입 때만 0으로 세팅
        body = recipe.model_dump(exclude={"ratingSum", "ratingCount", "ratingAverage", "ratingVersion", "createdAt", "embeddingId"})
        body["updatedAt"] = datetime.utcnow()
        await self.db[RECIPES].update_one(
            {"id": recipe.id},
            {
                "$set": body,
                "$setOnInsert": {
                    "ratingSum": 0.0,
                    "ratingCount": 0,
                    "ratingAverage": RatingAggregate().ratingAverage,
                    "ratingVersion": 0,
                    "createdAt": recipe.createdAt,
                },
            },
            upsert=True,
        )

    # ---------- embeddings ----------
    async def list_embeddings(self) -> List[EmbeddingDoc]:
        cur = self.db[EMBEDDINGS].find({}, {"_id": 0}).sort([("_id", 1)])
        return [EmbeddingDoc.model_validate(d) async for d in cur]

    async def save_embedding(self, doc: EmbeddingDoc) -> None:
        await self.db[EMBEDDINGS].replace_one({"id": doc.id}, doc.model_dump(), upsert=True)

    async def set_embedding_id(self, recipe_id: str, embedding_id: str) -> None:
        await self.db[RECIPES].update_one(
            {"id": recipe_id},
            {"$set": {"embeddingId": embedding_id, "updatedAt": datetime.utcnow()}},
        )

    # ---------- reviews ----------
    async def create_review(self, review: ReviewDoc) -> ReviewDoc:
        await self.db[REVIEWS].insert_one(review.model_dump())
        return review

    async def get_review(self, recipe_id: str, review_id: str) -> Optional[ReviewDoc]:
        d = await self.db[REVIEWS].find_one({"id": review_id, "recipeId": recipe_id}, {"_id": 0})
        return ReviewDoc.model_validate(d) if d else None

    async def update_review_moderation(
        self, recipe_id: str, review_id: str, *, status: str, moderator_id: str,
        notes: Optional[str], at: datetime,
    ) -> Optional[ReviewDoc]:
        d = await self.db[REVIEWS].find_one_and_update(
            {"id": review_id, "recipeId": recipe_id},
            {"$set": {
                "moderationStatus": status,
                "moderatedBy": moderator_id,
                "moderatedAt": at,
                "moderationNotes": notes,
            }},
            projection={"_id": 0},
            return_document=ReturnDocument.AFTER,
        )
        return ReviewDoc.model_validate(d) if d else None

    async def list_reviews(self, recipe_id: str, limit: int = 20, status: Optional[str] = None) -> List[ReviewDoc]:
        q: Dict[str, Any] = {"recipeId": recipe_id}
        if status:
            q["moderationStatus"] = status
        cur = self.db[REVIEWS].find(q, {"_id": 0}).sort([("createdAt", DESCENDING)]).limit(limit)
        return [ReviewDoc.model_validate(d) async for d in cur]

    async def list_approved_ratings(self, recipe_id: str) -> List[int]:
        cur = self.db[REVIEWS].find(
            {"recipeId": recipe_id, "moderationStatus": "approved"},
            {"_id": 0, "rating": 1},
        )
        return [int(d["rating"]) async for d in cur]

    async def get_rating_version(self, recipe_id: str) -> Optional[int]:
        # 레시피 없으면 None. 필드 없는 구버전 문서는 0
        d = await self.db[RECIPES].find_one({"id": recipe_id}, {"_id": 0, "ratingVersion": 1})
        if d is None:
            return None
        return int(d.get("ratingVersion") or 0)

    async def set_rating_aggregate(self, recipe_id: str, agg: RatingAggregate, expected_version: int) -> bool:
        # compare-and-set: 읽은 뒤 다른 프로세스가 먼저 썼으면 False (호출자가 재집계)
        q: Dict[str, Any] = {"id": recipe_id, "ratingVersion": expected_version}
        if expected_version == 0:
            q = {"id": recipe_id, "$or": [{"ratingVersion": 0}, {"ratingVersion": {"$exists": False}}]}
        res = await self.db[RECIPES].update_one(
            q,
            {
                "$set": {**agg.model_dump(), "updatedAt": datetime.utcnow()},
                "$inc": {"ratingVersion": 1},
            },
        )
        return res.modified_count == 1

    # ---------- preferences ----------
    async def get_preferences(self, anon_id: str) -> Optional[Dict[str, Any]]:
        return await self.db[PREFERENCES].find_one({"anon_id": anon_id}, {"_id": 0})

    async def save_preferences(self, anon_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        # 보낸 필드만 $set, 최초 저장 시 created_at
        now = datetime.utcnow()
        return await self.db[PREFERENCES].find_one_and_update(
            {"anon_id": anon_id},
            {"$set": {**fields, "anon_id": anon_id, "updated_at": now}, "$setOnInsert": {"created_at": now}},
            projection={"_id": 0},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
