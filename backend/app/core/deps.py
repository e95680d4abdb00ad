# 공용 의존성/헬퍼 (익명 사용자 쿠키 발급, 모더레이터 식별)
import uuid
from typing import Optional

from fastapi import Header, HTTPException, Request, Response

COOKIE = "anon_id"
MAX_AGE = 60 * 60 * 24 * 365 * 2  # 2년

def get_or_set_anon_id(request: Request, response: Response) -> str:
    # 쿠키 없으면 발급, 있으면 그대로 사용
    v = request.cookies.get(COOKIE)
    if not v:
        v = uuid.uuid4().hex
        response.set_cookie(COOKIE, v, max_age=MAX_AGE, httponly=True, samesite="lax")
    return v

def require_moderator_id(x_moderator_id: Optional[str] = Header(default=None)) -> str:
    # 인증은 게이트웨이 담당. 여기서는 헤더 존재만 확인
    mid = (x_moderator_id or "").strip()
    if not mid:
        raise HTTPException(status_code=400, detail="Missing moderator context")
    return mid
