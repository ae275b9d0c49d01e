from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

# 범위 검증(가중치 0~1, 점수 0~10)은 services/grade_tree.py 에서 일괄 처리


# ==========================================================
# [입력용 스키마]
# ==========================================================
class GradeEntryBase(BaseModel):
    name: str                                            # 항목 이름
    weight: float                                        # 상위 항목 내 가중치 (0 < w ≤ 1)
    entry_type: Literal["COMPONENT", "FINAL"] = "COMPONENT"
    notes: Optional[str] = None                          # 비고
    recorded_by: Optional[str] = None                    # 입력자


# ✅ 루트 항목 생성 (POST /grade-entries)
class GradeEntryCreate(GradeEntryBase):
    enrollment_id: int                                   # 소속 수강 ID


# ✅ 하위 항목 생성 (POST /grade-entries/{parent_id}/children)
class GradeEntryChildCreate(GradeEntryBase):
    pass


# ✅ 이름/가중치 수정 (PUT /grade-entries/{id})
class GradeEntryUpdate(BaseModel):
    name: Optional[str] = None
    weight: Optional[float] = None
    entry_type: Optional[Literal["COMPONENT", "FINAL"]] = None
    notes: Optional[str] = None


# ✅ 리프 점수 입력 (PATCH /grade-entries/{id}/score)
class ScoreUpdate(BaseModel):
    score: float                                         # 0 ~ 10
    recorded_by: Optional[str] = None


# ==========================================================
# [출력용 스키마]
# ==========================================================
class GradeEntry(BaseModel):
    id: int
    enrollment_id: int
    parent_id: Optional[int] = None
    name: str
    weight: float
    score: Optional[float] = None                        # 리프만 값 있음
    calculated_score: Optional[float] = None             # 내부 노드만 값 있음
    entry_type: str = "COMPONENT"
    is_leaf: bool = True
    recorded_by: Optional[str] = None
    recorded_at: Optional[datetime] = None
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class GradeEntryTree(GradeEntry):
    children: List[GradeEntryTree] = Field(default_factory=list)


class EstimatedGrade(BaseModel):
    enrollment_id: int
    estimated_score: Optional[float] = None              # 10점 만점 예상 점수 (공식 점수 아님)
    gpa_value: Optional[float] = None                    # 4.0 환산
    letter_grade: Optional[str] = None
    weights_balanced: bool                               # 루트 가중치 합 == 1 여부 (참고용)


GradeEntryTree.model_rebuild()
