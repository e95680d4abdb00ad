# app/db/models/user_prefs.py
# 개인화 검색용 사용자 선호 (user_preferences 컬렉션, anon_id 단위 1건)
from typing import Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from app.db.models.schemas import MicronutrientKey

# 입력 바디 (프론트에서 보내는 값). 보낸 필드만 갱신
class UserPrefsIn(BaseModel):
    weight_kg: Optional[float] = Field(default=None, gt=0)
    height_cm: Optional[float] = Field(default=None, gt=0)
    target_weight_kg: Optional[float] = Field(default=None, gt=0)
    activity_level: Optional[str] = None   # low/sedentary/moderate/high/active ...
    diet_tags: Optional[List[str]] = None      # 예: ["vegan","high_protein"]
    allergies: Optional[List[str]] = None      # 예: ["dairy","peanuts"]
    cuisines: Optional[List[str]] = None
    micronutrient_targets: Optional[Dict[MicronutrientKey, float]] = None

# DB 저장 문서
class UserPrefsDoc(UserPrefsIn):
    anon_id: str
    updated_at: datetime = Field(default_factory=datetime.utcnow)
