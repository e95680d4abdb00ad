# 목적: 관리형 벡터 인덱스(Qdrant REST) 조회/적재
# 의존: httpx
# URL/컬렉션 미설정이면 비활성(enabled=False), 검색은 빈 리스트

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from app.core.config import settings

log = logging.getLogger(__name__)

class VectorIndexError(Exception):
    # 벡터 인덱스 응답 실패 (상태코드/본문 포함)
    def __init__(self, status_code: int, body: str):
        super().__init__(f"Vector DB request failed ({status_code}): {body}")
        self.status_code = status_code
        self.body = body

@dataclass
class VectorMatch:
    id: str
    score: float

class VectorIndexClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        collection: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.collection = collection or ""
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport  # 테스트용 MockTransport 주입

    @classmethod
    def from_settings(cls) -> "VectorIndexClient":
        return cls(
            base_url=settings.VECTOR_DB_URL,
            collection=settings.VECTOR_DB_COLLECTION,
            api_key=settings.VECTOR_DB_API_KEY,
            timeout=settings.VECTOR_DB_TIMEOUT,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.base_url and self.collection)

    def _headers(self) -> Dict[str, str]:
        h = {"Content-Type": "application/json"}
        if self.api_key:
            h["api-key"] = self.api_key
        return h

    async def _request(self, method: str, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/collections/{self.collection}{path}"
        async with httpx.AsyncClient(headers=self._headers(), timeout=self.timeout, transport=self._transport) as cli:
            r = await cli.request(method, url, json=body)
        if r.status_code >= 400:
            raise VectorIndexError(r.status_code, r.text)
        return r.json() if r.content else {}

    async def search(self, vector: List[float], top_k: int = 10) -> List[VectorMatch]:
        if not self.enabled:
            return []
        data = await self._request(
            "POST", "/points/search",
            {"vector": vector, "limit": top_k, "with_payload": False},
        )
        return [VectorMatch(id=str(m["id"]), score=float(m["score"])) for m in (data.get("result") or [])]

    async def ensure_collection(self, dimension: int) -> None:
        if not self.enabled:
            return
        try:
            await self._request("PUT", "", {"vectors": {"size": dimension, "distance": "Cosine"}})
        except VectorIndexError as e:
            # 이미 있으면 409: 무시
            if e.status_code != 409:
                raise

    async def upsert(self, points: List[Dict[str, Any]]) -> None:
        if not self.enabled or not points:
            return
        await self._request(
            "PUT", "/points",
            {"points": [
                {"id": p["id"], "vector": p["vector"], "payload": p.get("payload") or {}}
                for p in points
            ]},
        )
        log.info("vector index upsert: %d points -> %s", len(points), self.collection)
