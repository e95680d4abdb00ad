# app/data/fallback_recipes.py
# 최후 폴백용 큐레이션 레시피 (메모리 상주)
# 벡터 인덱스/임베딩 스캔 모두 비었을 때 검색 결과와 단건 조회에 사용

from __future__ import annotations
from typing import List, Optional, Sequence

from app.db.models.recipe import Macros, Micronutrients, RecipeDoc, Sustainability

def _make(
    id: str,
    title: str,
    meal: str,
    calories: float,
    protein: float,
    carbs: float,
    fats: float,
    summary: str,
    steps: List[str],
    dietary: List[str],
    allergens: List[str],
) -> RecipeDoc:
    return RecipeDoc(
        id=id,
        title=title,
        cuisine="Balanced",
        meal=meal,
        servings=1,
        prepTimeMin=10,
        cookTimeMin=15,
        instructions=" ".join(steps),
        summary=summary,
        dietaryTags=["balanced", *dietary],
        allergenTags=allergens,
        macrosPerServing=Macros(calories=calories, protein=protein, carbs=carbs, fats=fats, fiber=6),
        micronutrientsPerServing=Micronutrients(vitaminD=2.5, vitaminB12=2, iron=3, magnesium=80),
        sustainability=Sustainability(glycemicIndex=45, nutrientDensityScore=8, satietyIndex=70),
    )

FALLBACK_RECIPES: List[RecipeDoc] = [
    _make(
        "00000000-0000-4000-8000-000000000001",
        "Hearty Oatmeal Bowl", "breakfast", 420, 18, 55, 12,
        "Creamy oats layered with yogurt, berries, and healthy fats for a satiating start.",
        [
            "Cook oats in water or milk until creamy.",
            "Stir in chia seeds and almond butter.",
            "Top with yogurt and fresh blueberries before serving.",
        ],
        ["vegetarian"], ["dairy", "tree_nuts"],
    ),
    _make(
        "00000000-0000-4000-8000-000000000002",
        "Mediterranean Grain Bowl", "lunch", 520, 32, 48, 20,
        "Protein-packed quinoa bowl with greens, legumes, and a light dressing.",
        [
            "Combine quinoa, spinach, tomatoes, and chickpeas in a bowl.",
            "Drizzle with olive oil and season with salt and pepper.",
            "Top with crumbled feta before serving.",
        ],
        ["vegetarian", "high_protein"], ["dairy"],
    ),
    _make(
        "00000000-0000-4000-8000-000000000003",
        "Lean Protein Plate", "dinner", 610, 40, 35, 24,
        "Balanced dinner featuring grilled protein, complex carbs, and fiber-rich greens.",
        [
            "Season chicken and grill until cooked through.",
            "Roast sweet potato wedges with a drizzle of olive oil.",
            "Steam broccoli until tender-crisp and serve alongside.",
        ],
        ["high_protein", "gluten_free"], [],
    ),
    _make(
        "00000000-0000-4000-8000-000000000004",
        "Nut Butter Snack", "snack", 280, 12, 18, 16,
        "Crunchy rice cakes topped with nut butter, banana, and flax for a quick energy boost.",
        [
            "Spread peanut butter evenly over rice cakes.",
            "Layer banana slices on top.",
            "Finish with a sprinkle of ground flaxseed.",
        ],
        ["vegetarian"], ["peanuts"],
    ),
]

class StaticRecipeCorpus:
    """교체/비활성화 가능한 폴백 데이터 소스. 빈 리스트를 주면 사실상 꺼진다."""

    def __init__(self, recipes: Optional[Sequence[RecipeDoc]] = None):
        self.recipes: List[RecipeDoc] = list(FALLBACK_RECIPES if recipes is None else recipes)

    def __iter__(self):
        return iter(self.recipes)

    def __len__(self) -> int:
        return len(self.recipes)

    def get(self, recipe_id: str) -> Optional[RecipeDoc]:
        for r in self.recipes:
            if r.id == recipe_id:
                return r
        return None
