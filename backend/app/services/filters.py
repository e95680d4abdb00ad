# app/services/filters.py
# 검색 질의문 생성 + 하드 제약 필터 (부수효과 없음)
# - build_query_text: 임베딩 입력 문자열
# - matches_filters: 레시피가 모든 제약을 만족하는지
# - build_preference_filters: 저장된 사용자 선호(user_preferences) → 필터 스펙

from __future__ import annotations
from typing import Any, Mapping, Optional

from app.db.models.recipe import RecipeDoc
from app.db.models.schemas import MacroRange, RecipeSearchFilters

DEFAULT_QUERY = "balanced healthy meal"

MACRO_FIELDS = ("calories", "protein", "carbs", "fats")

def build_query_text(filters: RecipeSearchFilters) -> str:
    parts = [(filters.query or "").strip()]
    if filters.cuisine:
        parts.append(f"Cuisine: {', '.join(filters.cuisine)}")
    if filters.dietaryTags:
        parts.append(f"Diet: {', '.join(filters.dietaryTags)}")
    text = ". ".join(p for p in parts if p)
    # 임베딩 제공자는 항상 비어있지 않은 입력을 받는다
    return text or DEFAULT_QUERY

def in_range(value: float, rng: Optional[MacroRange]) -> bool:
    if rng is None:
        return True
    if rng.min is not None and value < rng.min:
        return False
    if rng.max is not None and value > rng.max:
        return False
    return True

def matches_filters(recipe: RecipeDoc, filters: RecipeSearchFilters) -> bool:
    if filters.cuisine and recipe.cuisine not in filters.cuisine:
        return False
    if filters.dietaryTags and not any(t in recipe.dietaryTags for t in filters.dietaryTags):
        return False
    if filters.excludeAllergens and any(a in recipe.allergenTags for a in filters.excludeAllergens):
        return False

    macros = recipe.macrosPerServing
    for field in MACRO_FIELDS:
        if not in_range(getattr(macros, field), getattr(filters, field)):
            return False

    if filters.micronutrients:
        micros = recipe.micronutrientsPerServing
        for key, rng in filters.micronutrients.items():
            value = getattr(micros, key, None)
            if not in_range(value if value is not None else 0.0, rng):
                return False
    return True

# ------------------------------
# 사용자 선호 기반 필터
# ------------------------------

ACTIVE_LEVELS = {"high", "active", "very_active", "extra_active"}
SEDENTARY_LEVELS = {"low", "sedentary"}

# 미량영양소 기본 일일 목표 (선호에 없을 때)
DEFAULT_MICRO_TARGET = 10.0

def merge_range(current: Optional[MacroRange], incoming: MacroRange) -> MacroRange:
    """두 범위를 좁히는 방향으로 합침: min은 큰 쪽, max는 작은 쪽."""
    out = MacroRange(**(current.model_dump() if current else {}))
    if incoming.min is not None:
        out.min = incoming.min if out.min is None else max(out.min, incoming.min)
    if incoming.max is not None:
        out.max = incoming.max if out.max is None else min(out.max, incoming.max)
    return out

def _bmi(prefs: Mapping[str, Any]) -> Optional[float]:
    w = prefs.get("weight_kg")
    h = prefs.get("height_cm")
    if not w or not h:
        return None
    m = float(h) / 100.0
    return float(w) / (m * m)

def build_preference_filters(
    prefs: Optional[Mapping[str, Any]],
    overrides: Optional[RecipeSearchFilters] = None,
) -> RecipeSearchFilters:
    """
    user_preferences 문서(diet_tags/allergies/체중/활동량)를 검색 필터로 변환.
    overrides에 명시된 필드는 선호보다 우선한다.
    """
    prefs = prefs or {}
    base = {
        "dietaryTags": prefs.get("diet_tags") or None,
        "excludeAllergens": prefs.get("allergies") or None,
        "cuisine": prefs.get("cuisines") or None,
    }
    if overrides is not None:
        base.update(overrides.model_dump(exclude_unset=True, exclude_none=True))
    f = RecipeSearchFilters.model_validate(base)

    bmi = _bmi(prefs)
    if bmi is not None:
        if bmi >= 27:
            f.calories = merge_range(f.calories, MacroRange(max=600))
            f.fats = merge_range(f.fats, MacroRange(max=30))
            f.protein = merge_range(f.protein, MacroRange(min=25))
        elif bmi <= 19:
            f.calories = merge_range(f.calories, MacroRange(min=500))

    weight = prefs.get("weight_kg")
    target = prefs.get("target_weight_kg")
    if weight is not None and target is not None:
        diff = float(target) - float(weight)
        if abs(diff) > 1.5:
            if diff < 0:
                f.calories = merge_range(f.calories, MacroRange(max=650))
                f.protein = merge_range(f.protein, MacroRange(min=30))
            else:
                f.calories = merge_range(f.calories, MacroRange(min=600))
                f.carbs = merge_range(f.carbs, MacroRange(min=40))

    activity = prefs.get("activity_level")
    if activity in ACTIVE_LEVELS:
        f.protein = merge_range(f.protein, MacroRange(min=30))
        f.carbs = merge_range(f.carbs, MacroRange(min=35))
    elif activity in SEDENTARY_LEVELS:
        f.calories = merge_range(f.calories, MacroRange(max=550))

    if f.micronutrientFocus:
        focus = f.micronutrientFocus
        targets = prefs.get("micronutrient_targets") or {}
        minimum = max(0.5, float(targets.get(focus, DEFAULT_MICRO_TARGET)) * 0.15)
        micros = dict(f.micronutrients or {})
        micros[focus] = merge_range(micros.get(focus), MacroRange(min=minimum))
        f.micronutrients = micros
    return f
