# 레시피/임베딩 표준 스키마
# Mongo 문서 필드명은 camelCase 유지 (프론트/외부 연동 호환)
from __future__ import annotations
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

# 승인 리뷰가 하나도 없을 때의 평균 (5점 척도 중간값)
NEUTRAL_RATING = 3.0

Level = Literal["low", "medium", "high"]

class Macros(BaseModel):
    calories: float = Field(0, ge=0)
    protein: float = Field(0, ge=0)
    carbs: float = Field(0, ge=0)
    fats: float = Field(0, ge=0)
    fiber: float = Field(0, ge=0)

class Micronutrients(BaseModel):
    # 값 없음 = 필터에서 0으로 취급
    vitaminD: Optional[float] = Field(None, ge=0)
    vitaminB12: Optional[float] = Field(None, ge=0)
    iron: Optional[float] = Field(None, ge=0)
    magnesium: Optional[float] = Field(None, ge=0)

MICRONUTRIENT_KEYS = tuple(Micronutrients.model_fields.keys())

class AntioxidantProfile(BaseModel):
    polyphenols: Level = "medium"
    flavonoids: Level = "medium"
    carotenoids: Level = "medium"

class EnvironmentalImpact(BaseModel):
    carbonFootprint: Level = "medium"
    waterUsage: Level = "medium"

class Sustainability(BaseModel):
    glycemicIndex: Optional[float] = None
    nutrientDensityScore: Optional[float] = None
    satietyIndex: Optional[float] = None
    antioxidantProfile: AntioxidantProfile = Field(default_factory=AntioxidantProfile)
    environmentalImpact: EnvironmentalImpact = Field(default_factory=EnvironmentalImpact)

class RecipeDoc(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    title: str
    cuisine: str = ""
    meal: str = ""
    servings: int = Field(1, ge=1)
    prepTimeMin: int = Field(0, ge=0)
    cookTimeMin: int = Field(0, ge=0)
    instructions: str = ""
    summary: str = ""
    dietaryTags: List[str] = Field(default_factory=list)
    allergenTags: List[str] = Field(default_factory=list)
    macrosPerServing: Macros = Field(default_factory=Macros)
    micronutrientsPerServing: Micronutrients = Field(default_factory=Micronutrients)
    sustainability: Sustainability = Field(default_factory=Sustainability)

    # 집계 평점: 승인 리뷰에서만 재계산되는 파생 상태
    ratingSum: float = Field(0.0, ge=0)
    ratingCount: int = Field(0, ge=0)
    ratingAverage: float = NEUTRAL_RATING
    # 집계 쓰기마다 +1 (프로세스 간 재집계 충돌 감지용 낙관적 버전)
    ratingVersion: int = Field(0, ge=0)

    embeddingId: Optional[str] = None
    createdAt: datetime = Field(default_factory=datetime.utcnow)
    updatedAt: datetime = Field(default_factory=datetime.utcnow)

    @model_validator(mode="after")
    def _v_rating(self) -> "RecipeDoc":
        # 저장본이 어긋나 있어도 읽을 때는 불변식 기준으로 맞춘다
        if self.ratingCount > 0:
            self.ratingAverage = self.ratingSum / self.ratingCount
        else:
            self.ratingAverage = NEUTRAL_RATING
        return self

class EmbeddingDoc(BaseModel):
    # recipe_embeddings 컬렉션: 레시피당 1개, id == recipeId
    model_config = ConfigDict(extra="ignore", protected_namespaces=())

    id: str
    recipeId: str
    vector: List[float]
    model: str
    createdAt: datetime = Field(default_factory=datetime.utcnow)
