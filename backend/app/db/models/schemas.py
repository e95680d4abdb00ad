# app/db/models/schemas.py
# API 입출력 Pydantic 모델
# RecipeSearchFilters: 검색 질의 + 하드 제약(알레르기/식단/영양 범위)
# SearchResultOut: 정렬된 결과 한 건 (recipe, similarity, score)
from __future__ import annotations
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.db.models.recipe import RecipeDoc
from app.db.models.review import ReviewDoc

MicronutrientKey = Literal["vitaminD", "vitaminB12", "iron", "magnesium"]

class MacroRange(BaseModel):
    # 양 끝 중 빠진 쪽은 열린 구간
    min: Optional[float] = None
    max: Optional[float] = None

    def is_empty(self) -> bool:
        return self.min is None and self.max is None

class RecipeSearchFilters(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: Optional[str] = Field(default=None, alias="q")
    cuisine: Optional[List[str]] = None
    dietaryTags: Optional[List[str]] = None
    excludeAllergens: Optional[List[str]] = None
    calories: Optional[MacroRange] = None
    protein: Optional[MacroRange] = None
    carbs: Optional[MacroRange] = None
    fats: Optional[MacroRange] = None
    micronutrients: Optional[Dict[MicronutrientKey, MacroRange]] = None
    micronutrientFocus: Optional[MicronutrientKey] = None
    limit: Optional[int] = Field(default=None, ge=1, le=100)

    @field_validator("cuisine", "dietaryTags", "excludeAllergens", mode="before")
    @classmethod
    def _v_split(cls, v):
        # "a,b" 문자열도 허용 (쿼리스트링 호환)
        if isinstance(v, str):
            v = v.split(",")
        if v is None:
            return None
        out = [str(x).strip() for x in v if str(x).strip()]
        return out or None

class SearchResultOut(BaseModel):
    recipe: RecipeDoc
    similarity: float
    score: float

class SearchResponse(BaseModel):
    results: List[SearchResultOut] = Field(default_factory=list)

class ReviewIn(BaseModel):
    # rating 범위 검증은 서비스(ReviewLedger)에서, 여기선 타입만
    rating: int
    comment: Optional[str] = None

class ReviewCreatedOut(BaseModel):
    reviewId: str

class ReviewsResponse(BaseModel):
    reviews: List[ReviewDoc] = Field(default_factory=list)

class ModerationIn(BaseModel):
    status: str
    notes: Optional[str] = None
