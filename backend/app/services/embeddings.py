# 목적: 텍스트 → 임베딩 벡터. 키 없거나 장애 시 결정적 해시 벡터로 대체해 검색을 막지 않는다.
# 저장: recipe_embeddings 컬렉션(레시피당 1건) + (설정 시) 벡터 인덱스 업서트

from __future__ import annotations
import hashlib
import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional

try:
    from openai import AsyncOpenAI
    _OPENAI_OK = True
except Exception:
    _OPENAI_OK = False

from app.core.config import settings
from app.db.models.recipe import EmbeddingDoc, RecipeDoc

if TYPE_CHECKING:
    from app.services.store import RecipeStore
    from app.services.vector_index import VectorIndexClient

log = logging.getLogger(__name__)

FALLBACK_DIMENSION = 64
FALLBACK_MODEL = f"hash-fallback-{FALLBACK_DIMENSION}"

@dataclass
class EmbeddingVector:
    vector: List[float]
    model: str

_client: Optional["AsyncOpenAI"] = None

def _get_client() -> Optional["AsyncOpenAI"]:
    global _client
    key = (settings.OPENAI_API_KEY or "").strip()
    if not (_OPENAI_OK and key):
        return None
    if _client is None:
        _client = AsyncOpenAI(api_key=key)
    return _client

def _normalize(vec: List[float]) -> List[float]:
    norm = math.sqrt(sum(v * v for v in vec))
    if norm == 0:
        return vec
    return [v / norm for v in vec]

def fallback_embedding(text: str, dimensions: int = FALLBACK_DIMENSION) -> EmbeddingVector:
    # sha256 바이트를 [-1, 1]로 펴서 단위벡터화. 같은 입력이면 항상 같은 벡터
    digest = hashlib.sha256((text or "").encode("utf-8")).digest()
    vec = [(digest[i % len(digest)] / 255) * 2 - 1 for i in range(dimensions)]
    return EmbeddingVector(vector=_normalize(vec), model=FALLBACK_MODEL)

async def embed_text(text: str) -> EmbeddingVector:
    text = (text or "").strip()
    client = _get_client()
    if client is not None and text:
        try:
            emb = await client.embeddings.create(model=settings.OPENAI_EMBED_MODEL, input=text)
            vec = list(emb.data[0].embedding)
            if vec:
                return EmbeddingVector(vector=vec, model=settings.OPENAI_EMBED_MODEL)
        except Exception as e:
            # 운영 안전: 임베딩 장애는 검색 파이프라인을 막지 않는다
            log.warning("embedding provider failed, using hash fallback: %s", e)
    return fallback_embedding(text)

def build_search_text(recipe: RecipeDoc) -> str:
    # 제목/요약/요리/식단 태그/식사 구분을 한 문서로 이어붙여 임베딩 입력 생성
    parts = [
        recipe.title,
        recipe.summary,
        f"Cuisine: {recipe.cuisine}" if recipe.cuisine else "",
        f"Meal: {recipe.meal}" if recipe.meal else "",
        f"Diet: {', '.join(recipe.dietaryTags)}" if recipe.dietaryTags else "",
    ]
    return "\n".join(p for p in parts if p).strip()

async def upsert_embedding_for_recipe(
    store: "RecipeStore",
    recipe: RecipeDoc,
    index: Optional["VectorIndexClient"] = None,
    embed=embed_text,
) -> EmbeddingDoc:
    # 레시피 한 건의 임베딩을 저장하고 embeddingId를 연결
    emb = await embed(build_search_text(recipe))
    doc = EmbeddingDoc(id=recipe.id, recipeId=recipe.id, vector=emb.vector, model=emb.model)
    await store.save_embedding(doc)
    await store.set_embedding_id(recipe.id, doc.id)

    if index is not None and index.enabled:
        await index.ensure_collection(len(doc.vector))
        await index.upsert([{"id": recipe.id, "vector": doc.vector, "payload": {"title": recipe.title}}])
    return doc
