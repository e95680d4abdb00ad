# 리뷰/평점 문서 스키마
from __future__ import annotations
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.db.models.recipe import NEUTRAL_RATING

ModerationStatus = Literal["pending", "approved", "rejected"]
MODERATION_STATUSES = ("pending", "approved", "rejected")

class ReviewDoc(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    recipeId: str
    userId: str
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None
    moderationStatus: ModerationStatus = "pending"
    moderatedBy: Optional[str] = None
    moderatedAt: Optional[datetime] = None
    moderationNotes: Optional[str] = None
    createdAt: datetime = Field(default_factory=datetime.utcnow)

class RatingAggregate(BaseModel):
    ratingSum: float = 0.0
    ratingCount: int = 0
    ratingAverage: float = NEUTRAL_RATING

    @classmethod
    def from_ratings(cls, ratings: list[int]) -> "RatingAggregate":
        # 전체 재집계 (증분 아님)
        total = float(sum(ratings))
        count = len(ratings)
        avg = total / count if count else NEUTRAL_RATING
        return cls(ratingSum=total, ratingCount=count, ratingAverage=avg)
