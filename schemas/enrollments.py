from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import List, Literal, Optional

# ==========================================================
# [입력용 스키마]
# ==========================================================
class EnrollmentCreate(BaseModel):
    student_id: int                          # 학생 ID
    credits: int                             # 학점
    course_code: Optional[str] = None        # 과목 코드
    course_name: Optional[str] = None        # 과목 이름


class EnrollmentComplete(BaseModel):
    final_score: float                       # 공식 최종 점수 (0~10)


# ✅ 외부에서 받은 수강 기록으로 누적 GPA 계산 (POST /enrollments/gpa)
class EnrollmentRecord(BaseModel):
    id: Optional[int] = None
    credits: int = 0
    final_score: Optional[float] = None
    gpa_value: Optional[float] = None
    letter_grade: Optional[str] = None
    status: Optional[str] = None


class GpaRequest(BaseModel):
    enrollments: List[EnrollmentRecord]
    scale: Literal["SCALE_10", "SCALE_4"] = "SCALE_10"


# ==========================================================
# [출력용 스키마]
# ==========================================================
class Enrollment(EnrollmentCreate):
    id: int
    final_score: Optional[float] = None
    gpa_value: Optional[float] = None
    letter_grade: Optional[str] = None
    status: str
    enrolled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
