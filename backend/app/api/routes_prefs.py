# app/api/routes_prefs.py
# 사용자 선호 조회/저장 (개인화 검색 입력)

from __future__ import annotations
from typing import Any, Dict, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from pymongo.errors import PyMongoError

from app.core.deps import get_or_set_anon_id
from app.db.models.user_prefs import UserPrefsIn
from app.services.recipes import RecipeService, get_recipe_service

log = logging.getLogger(__name__)

router = APIRouter(prefix="/preferences", tags=["preferences"])

class PreferencesResponse(BaseModel):
    ok: bool
    anonId: str
    prefs: Optional[Dict[str, Any]] = None

@router.get("", response_model=PreferencesResponse)
async def get_preferences(
    anon_id: str = Depends(get_or_set_anon_id),
    svc: RecipeService = Depends(get_recipe_service),
):
    """사용자 선호 조회 (없으면 빈 dict)"""
    try:
        prefs = await svc.get_preferences(anon_id)
    except PyMongoError as e:
        log.warning("preferences read failed: %s", e)
        raise HTTPException(status_code=503, detail="Preferences store unavailable")
    return PreferencesResponse(ok=True, anonId=anon_id, prefs=prefs)

@router.put("", response_model=PreferencesResponse)
async def save_preferences(
    payload: UserPrefsIn,
    anon_id: str = Depends(get_or_set_anon_id),
    svc: RecipeService = Depends(get_recipe_service),
):
    """사용자 선호 저장 (Upsert, 보낸 필드만 갱신)"""
    try:
        saved = await svc.save_preferences(anon_id, payload)
    except PyMongoError as e:
        log.warning("preferences write failed: %s", e)
        raise HTTPException(status_code=503, detail="Preferences store unavailable")
    return PreferencesResponse(ok=True, anonId=anon_id, prefs=saved)
