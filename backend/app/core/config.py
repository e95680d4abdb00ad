# 환경변수 로딩 (.env)
from typing import List

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    MONGO_URI: str = "mongodb://localhost:27017"  # 필요 시 prod/staging로 분리
    MONGO_DB: str = "nutrition"

    # 임베딩: 키 없으면 해시 기반 폴백 벡터 사용
    OPENAI_API_KEY: str | None = None
    OPENAI_EMBED_MODEL: str = "text-embedding-3-small"

    # 벡터 인덱스(Qdrant REST). URL/컬렉션 둘 다 있어야 1단계 검색 활성화
    VECTOR_DB_URL: str | None = None
    VECTOR_DB_COLLECTION: str | None = None
    VECTOR_DB_API_KEY: str | None = None
    VECTOR_DB_TIMEOUT: float = 10.0

    SEARCH_DEFAULT_LIMIT: int = 10
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    class Config:
        env_file = ".env"

settings = Settings()
