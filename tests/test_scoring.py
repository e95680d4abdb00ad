# -*- coding: utf-8 -*-

from __future__ import annotations

import math

import pytest

from app.services.scoring import (
    DEFAULT_LIMIT, Candidate, cosine_similarity, rank, rating_adjusted_score, rating_factor,
)

from conftest import make_recipe


def test_cosine_basic():
    assert cosine_similarity([1, 0], [1, 0]) == pytest.approx(1.0)
    assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)
    assert cosine_similarity([1, 1], [2, 2]) == pytest.approx(1.0)
    assert cosine_similarity([1, 2, 3], [3, 2, 1]) == pytest.approx(10 / 14)


def test_cosine_degenerate_inputs():
    assert cosine_similarity([], []) == 0.0
    assert cosine_similarity([0, 0], [1, 1]) == 0.0
    assert cosine_similarity([1, 0, 0], [1, 0]) == 0.0


def test_rating_factor_bounds():
    assert rating_factor(3) == pytest.approx(1.0)
    assert rating_factor(5) == pytest.approx(1.4)
    assert rating_factor(1) == pytest.approx(0.6)


def test_rating_adjusted_score_example():
    # similarity 0.8, 평균 4점 → 0.8 × 1.2
    assert rating_adjusted_score(0.8, 4) == pytest.approx(0.96)


def _cand(rid: str, score: float) -> Candidate:
    return Candidate(recipe=make_recipe(rid), similarity=score, score=score)


def test_rank_sorts_descending_and_truncates():
    cands = [_cand("a", 0.2), _cand("b", 0.9), _cand("c", 0.5)]
    out = rank(cands, 2)
    assert [c.recipe.id for c in out] == ["b", "c"]


def test_rank_ties_keep_input_order():
    cands = [_cand("a", 0.5), _cand("b", 0.7), _cand("c", 0.5), _cand("d", 0.5)]
    assert [c.recipe.id for c in rank(cands, 10)] == ["b", "a", "c", "d"]


def test_rank_default_limit():
    cands = [_cand(str(i), 1 / (i + 1)) for i in range(15)]
    out = rank(cands)
    assert len(out) == DEFAULT_LIMIT
    assert all(not math.isnan(c.score) for c in out)
