# 컬렉션 인덱스 생성
# 앱 스타트업에서 한 번 ensure_indexes()를 await로 호출한다.

from app.db.init import get_db
from app.services.store import EMBEDDINGS, PREFERENCES, RECIPES, REVIEWS

async def ensure_recipe_indexes(db):
    col = db[RECIPES]
    await col.create_index("id", unique=True)
    await col.create_index("cuisine")
    await col.create_index("dietaryTags")
    await col.create_index("macrosPerServing.calories")

async def ensure_indexes(db=None):
    db = db if db is not None else get_db()

    await ensure_recipe_indexes(db)

    # 임베딩: 레시피당 1건
    await db[EMBEDDINGS].create_index("id", unique=True)
    await db[EMBEDDINGS].create_index("recipeId", unique=True)

    # 리뷰: 레시피별 최신순 조회 + 승인분 재집계
    await db[REVIEWS].create_index("id", unique=True)
    await db[REVIEWS].create_index([("recipeId", 1), ("createdAt", -1)])
    await db[REVIEWS].create_index([("recipeId", 1), ("moderationStatus", 1)])

    # 사용자 선호: anon_id당 1건
    await db[PREFERENCES].create_index("anon_id", unique=True)
