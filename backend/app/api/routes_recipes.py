# app/api/routes_recipes.py
# 레시피 검색(3단계 폴백) / 단건 조회 / 리뷰 작성·조회·모더레이션

from __future__ import annotations
from typing import List, Optional
import logging

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response

from app.core.deps import get_or_set_anon_id, require_moderator_id
from app.db.models.recipe import RecipeDoc
from app.db.models.schemas import (
    MacroRange, ModerationIn, RecipeSearchFilters, ReviewCreatedOut, ReviewIn,
    ReviewsResponse, SearchResponse,
)
from app.services.recipes import RecipeService, get_recipe_service
from app.services.reviews import RatingRecountConflict, ReviewNotFound, ReviewValidationError

log = logging.getLogger(__name__)

router = APIRouter(prefix="/recipes", tags=["recipes"])

# ------------------------------
# 쿼리스트링 헬퍼
# ------------------------------

def _csv(v: Optional[str]) -> Optional[List[str]]:
    if not v:
        return None
    out = [s.strip() for s in v.split(",") if s.strip()]
    return out or None

def _range(lo: Optional[float], hi: Optional[float]) -> Optional[MacroRange]:
    if lo is None and hi is None:
        return None
    return MacroRange(min=lo, max=hi)

# ------------------------------
# 검색
# ------------------------------

# 정적 경로를 먼저 선언 (/search → /{rid} 충돌 방지)
@router.get("/search", response_model=SearchResponse)
async def search_recipes(
    q: Optional[str] = None,
    cuisine: Optional[str] = None,
    diet: Optional[str] = None,
    excludeAllergens: Optional[str] = None,
    minCalories: Optional[float] = None,
    maxCalories: Optional[float] = None,
    minProtein: Optional[float] = None,
    maxProtein: Optional[float] = None,
    minCarbs: Optional[float] = None,
    maxCarbs: Optional[float] = None,
    minFats: Optional[float] = None,
    maxFats: Optional[float] = None,
    limit: Optional[int] = Query(None, ge=1, le=100),
    svc: RecipeService = Depends(get_recipe_service),
):
    filters = RecipeSearchFilters(
        query=q,
        cuisine=_csv(cuisine),
        dietaryTags=_csv(diet),
        excludeAllergens=_csv(excludeAllergens),
        calories=_range(minCalories, maxCalories),
        protein=_range(minProtein, maxProtein),
        carbs=_range(minCarbs, maxCarbs),
        fats=_range(minFats, maxFats),
        limit=limit,
    )
    return SearchResponse(results=await svc.search(filters))

@router.post("/search", response_model=SearchResponse)
async def search_recipes_body(
    filters: RecipeSearchFilters,
    svc: RecipeService = Depends(get_recipe_service),
):
    # 미량영양소 범위까지 포함한 전체 필터는 바디로
    return SearchResponse(results=await svc.search(filters))

@router.post("/search/personalized", response_model=SearchResponse)
async def search_personalized(
    overrides: Optional[RecipeSearchFilters] = Body(default=None),
    anon_id: str = Depends(get_or_set_anon_id),
    svc: RecipeService = Depends(get_recipe_service),
):
    # 저장된 선호(알레르기/식단/체중 목표)로 필터 구성 + 바디로 덮어쓰기
    return SearchResponse(results=await svc.personalized_search(anon_id, overrides))

# ------------------------------
# 단건 / 리뷰
# ------------------------------

@router.get("/{rid}", response_model=RecipeDoc)
async def get_recipe(rid: str, svc: RecipeService = Depends(get_recipe_service)):
    recipe = await svc.get_recipe(rid)
    if recipe is None:
        raise HTTPException(status_code=404, detail="Recipe not found")
    return recipe

@router.get("/{rid}/reviews", response_model=ReviewsResponse)
async def list_reviews(
    rid: str,
    limit: int = Query(20, ge=1, le=100),
    status: Optional[str] = None,
    svc: RecipeService = Depends(get_recipe_service),
):
    try:
        reviews = await svc.list_reviews(rid, limit, status)
    except ReviewValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return ReviewsResponse(reviews=reviews)

@router.post("/{rid}/reviews", status_code=201, response_model=ReviewCreatedOut)
async def submit_review(
    rid: str,
    body: ReviewIn,
    anon_id: str = Depends(get_or_set_anon_id),
    svc: RecipeService = Depends(get_recipe_service),
):
    try:
        review = await svc.submit_review(rid, anon_id, body.rating, body.comment)
    except ReviewValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return ReviewCreatedOut(reviewId=review.id)

@router.patch("/{rid}/reviews/{review_id}/moderate", status_code=204)
async def moderate_review(
    rid: str,
    review_id: str,
    body: ModerationIn,
    moderator_id: str = Depends(require_moderator_id),
    svc: RecipeService = Depends(get_recipe_service),
):
    try:
        await svc.moderate_review(rid, review_id, body.status, moderator_id, body.notes)
    except ReviewValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ReviewNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RatingRecountConflict as e:
        log.warning("moderation saved but rating recount conflicted: %s", e)
        raise HTTPException(status_code=409, detail="Rating update conflict, retry moderation")
    return Response(status_code=204)
