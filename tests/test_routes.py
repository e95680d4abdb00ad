# -*- coding: utf-8 -*-
# 라우터 통합 테스트: 메모리 저장소 + 비활성 벡터 인덱스로 서비스 교체
# TestClient를 with 없이 써서 startup(DB 연결)은 타지 않는다

from __future__ import annotations

import unittest

from fastapi.testclient import TestClient

from app.data.fallback_recipes import FALLBACK_RECIPES
from app.main import app
from app.services.recipes import build_recipe_service, get_recipe_service
from app.services.vector_index import VectorIndexClient

from conftest import FixedEmbedder, InMemoryRecipeStore, make_recipe


class RecipeRoutesTest(unittest.TestCase):
    def setUp(self) -> None:
        self.store = InMemoryRecipeStore()
        self.store.add(make_recipe("thai-1", cuisine="Thai", ratingSum=5, ratingCount=1), vector=[1.0, 0.0, 0.0])
        self.store.add(make_recipe("kor-1", cuisine="Korean", allergenTags=["peanuts"]), vector=[0.9, 0.1, 0.0])
        self.store.add(make_recipe("ita-1", cuisine="Italian", macros={"calories": 900}), vector=[0.5, 0.5, 0.0])
        self.embedder = FixedEmbedder([1.0, 0.0, 0.0])
        self.svc = build_recipe_service(self.store, index=VectorIndexClient(), embed=self.embedder)
        app.dependency_overrides[get_recipe_service] = lambda: self.svc
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    # 검색

    def test_get_search_applies_query_filters(self):
        r = self.client.get("/recipes/search", params={
            "q": "spicy", "excludeAllergens": "peanuts", "maxCalories": 700, "limit": 5,
        })
        self.assertEqual(r.status_code, 200)
        results = r.json()["results"]
        self.assertEqual([x["recipe"]["id"] for x in results], ["thai-1"])
        self.assertAlmostEqual(results[0]["similarity"], 1.0)
        self.assertAlmostEqual(results[0]["score"], 1.4)
        self.assertEqual(self.embedder.calls, ["spicy"])

    def test_get_search_orders_by_score(self):
        r = self.client.get("/recipes/search")
        ids = [x["recipe"]["id"] for x in r.json()["results"]]
        self.assertEqual(ids, ["thai-1", "kor-1", "ita-1"])

    def test_post_search_with_body(self):
        r = self.client.post("/recipes/search", json={"q": "dinner", "cuisine": ["Korean", "Italian"], "limit": 1})
        self.assertEqual(r.status_code, 200)
        self.assertEqual([x["recipe"]["id"] for x in r.json()["results"]], ["kor-1"])
        self.assertEqual(self.embedder.calls, ["dinner. Cuisine: Korean, Italian"])

    def test_search_falls_back_to_static_corpus(self):
        r = self.client.get("/recipes/search", params={"cuisine": "Balanced"})
        results = r.json()["results"]
        self.assertEqual(len(results), len(FALLBACK_RECIPES))
        self.assertAlmostEqual(results[0]["score"], 0.4)

    def test_search_limit_validation(self):
        self.assertEqual(self.client.get("/recipes/search", params={"limit": 0}).status_code, 422)

    def test_personalized_search_uses_stored_prefs(self):
        self.store.preferences["anon-1"] = {"allergies": ["peanuts"], "cuisines": ["Korean", "Thai"]}
        self.client.cookies.set("anon_id", "anon-1")
        r = self.client.post("/recipes/search/personalized")
        self.assertEqual(r.status_code, 200)
        self.assertEqual([x["recipe"]["id"] for x in r.json()["results"]], ["thai-1"])

    def test_personalized_search_without_prefs_issues_cookie(self):
        r = self.client.post("/recipes/search/personalized", json={"cuisine": ["Italian"]})
        self.assertEqual(r.status_code, 200)
        self.assertIn("anon_id", r.cookies)
        self.assertEqual([x["recipe"]["id"] for x in r.json()["results"]], ["ita-1"])

    # 단건

    def test_get_recipe(self):
        r = self.client.get("/recipes/kor-1")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["cuisine"], "Korean")

    def test_get_recipe_from_static_corpus(self):
        rid = FALLBACK_RECIPES[0].id
        r = self.client.get(f"/recipes/{rid}")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["title"], FALLBACK_RECIPES[0].title)

    def test_get_recipe_not_found(self):
        r = self.client.get("/recipes/nope")
        self.assertEqual(r.status_code, 404)
        self.assertEqual(r.json()["detail"], "Recipe not found")

    # 리뷰

    def _submit(self, rating=5, rid="kor-1"):
        return self.client.post(f"/recipes/{rid}/reviews", json={"rating": rating, "comment": "tasty"})

    def test_submit_review_pending(self):
        r = self._submit()
        self.assertEqual(r.status_code, 201)
        review_id = r.json()["reviewId"]
        self.assertEqual(self.store.reviews[review_id].moderationStatus, "pending")
        self.assertEqual(self.store.recipes["kor-1"].ratingCount, 0)

    def test_submit_review_out_of_range(self):
        self.assertEqual(self._submit(rating=6).status_code, 422)
        self.assertEqual(self._submit(rating=0).status_code, 422)
        self.assertEqual(self.store.reviews, {})

    def test_moderate_review_updates_rating(self):
        review_id = self._submit(rating=4).json()["reviewId"]
        r = self.client.patch(
            f"/recipes/kor-1/reviews/{review_id}/moderate",
            json={"status": "approved", "notes": "fine"},
            headers={"X-Moderator-Id": "mod-7"},
        )
        self.assertEqual(r.status_code, 204)
        recipe = self.store.recipes["kor-1"]
        self.assertEqual((recipe.ratingCount, recipe.ratingAverage), (1, 4.0))
        self.assertEqual(self.store.reviews[review_id].moderatedBy, "mod-7")

        listed = self.client.get("/recipes/kor-1/reviews", params={"status": "approved"}).json()["reviews"]
        self.assertEqual([x["id"] for x in listed], [review_id])

    def test_moderate_requires_moderator(self):
        review_id = self._submit().json()["reviewId"]
        r = self.client.patch(f"/recipes/kor-1/reviews/{review_id}/moderate", json={"status": "approved"})
        self.assertEqual(r.status_code, 400)
        self.assertEqual(self.store.reviews[review_id].moderationStatus, "pending")

    def test_moderate_invalid_status(self):
        review_id = self._submit().json()["reviewId"]
        r = self.client.patch(
            f"/recipes/kor-1/reviews/{review_id}/moderate",
            json={"status": "deleted"},
            headers={"X-Moderator-Id": "mod-7"},
        )
        self.assertEqual(r.status_code, 422)

    def test_moderate_unknown_review(self):
        r = self.client.patch(
            "/recipes/kor-1/reviews/missing/moderate",
            json={"status": "approved"},
            headers={"X-Moderator-Id": "mod-7"},
        )
        self.assertEqual(r.status_code, 404)

    def test_moderate_recount_conflict_is_409(self):
        review_id = self._submit().json()["reviewId"]

        async def always_stale(recipe_id, agg, expected_version):
            return False

        self.store.set_rating_aggregate = always_stale
        r = self.client.patch(
            f"/recipes/kor-1/reviews/{review_id}/moderate",
            json={"status": "approved"},
            headers={"X-Moderator-Id": "mod-7"},
        )
        self.assertEqual(r.status_code, 409)
        self.assertEqual(self.store.reviews[review_id].moderationStatus, "approved")

    def test_list_reviews_invalid_status(self):
        self.assertEqual(self.client.get("/recipes/kor-1/reviews", params={"status": "bogus"}).status_code, 422)

    # 선호

    def test_preferences_roundtrip_drives_personalized_search(self):
        self.client.cookies.set("anon_id", "anon-9")
        self.assertEqual(self.client.get("/preferences").json()["prefs"], {})

        r = self.client.put("/preferences", json={"allergies": ["peanuts"], "cuisines": ["Korean", "Thai"]})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["prefs"]["allergies"], ["peanuts"])

        # 부분 갱신: 기존 필드 유지
        self.client.put("/preferences", json={"activity_level": "moderate"})
        prefs = self.client.get("/preferences").json()["prefs"]
        self.assertEqual(prefs["cuisines"], ["Korean", "Thai"])
        self.assertEqual(prefs["activity_level"], "moderate")

        ids = [x["recipe"]["id"] for x in self.client.post("/recipes/search/personalized").json()["results"]]
        self.assertEqual(ids, ["thai-1"])

    def test_preferences_validation(self):
        self.assertEqual(self.client.put("/preferences", json={"weight_kg": -3}).status_code, 422)


if __name__ == "__main__":
    unittest.main()
