# app/services/scoring.py
# 유사도/평점 보정 점수/정렬

from __future__ import annotations
import math
from dataclasses import dataclass
from typing import List, Sequence

from app.db.models.recipe import NEUTRAL_RATING, RecipeDoc

DEFAULT_LIMIT = 10

@dataclass
class Candidate:
    recipe: RecipeDoc
    similarity: float
    score: float
    tier: str = ""

def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    # 길이가 다르면 비교하지 않는다 (다른 모델 벡터)
    if not a or not b or len(a) != len(b):
        return 0.0
    dot = 0.0
    na = 0.0
    nb = 0.0
    for x, y in zip(a, b):
        dot += float(x) * float(y)
        na += float(x) * float(x)
        nb += float(y) * float(y)
    if na <= 0 or nb <= 0:
        return 0.0
    return dot / (math.sqrt(na) * math.sqrt(nb))

def rating_factor(rating_average: float) -> float:
    """3점 = 1.0배, 5점 = 1.4배, 1점 = 0.6배 (선형)"""
    return 1 + (rating_average - NEUTRAL_RATING) / 5

def rating_adjusted_score(similarity: float, rating_average: float) -> float:
    return similarity * rating_factor(rating_average)

def rank(candidates: List[Candidate], limit: int | None = None) -> List[Candidate]:
    # sorted는 안정 정렬: 동점이면 입력(카탈로그) 순서 유지
    n = limit if limit is not None else DEFAULT_LIMIT
    return sorted(candidates, key=lambda c: c.score, reverse=True)[:n]
