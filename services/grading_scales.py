"""
services/grading_scales.py

10점 만점 점수 → 4.0 GPA / 등급(letter) 변환과 학점 가중 누적 GPA 계산.
- 변환표는 이수 처리(수강 완료) 정책에서 정한 고정 구간을 그대로 적용한다.
"""

from enum import Enum
from typing import Any, Iterable, Optional

from services.exceptions import ValidationError


class GradeScale(str, Enum):
    SCALE_10 = "SCALE_10"      # 10점 만점
    SCALE_4 = "SCALE_4"        # 4.0 GPA
    PASS_FAIL = "PASS_FAIL"    # 통과/실패


# (하한, 4.0 환산, 등급): 위에서부터 처음 만족하는 구간 적용
SCALE_TABLE = (
    (9.0, 4.0, "A"),
    (8.5, 3.7, "A-"),
    (8.0, 3.5, "B+"),
    (7.0, 3.0, "B"),
    (6.5, 2.5, "C+"),
    (5.5, 2.0, "C"),
    (5.0, 1.5, "D+"),
    (4.0, 1.0, "D"),
)
FAILING = (0.0, "F")

PASSING_SCORE = 4.0        # 10점 만점 기준 통과 점수
PASS_FAIL_THRESHOLD = 5.0  # Pass/Fail 과목 통과 기준


def parse_scale(value) -> GradeScale:
    if isinstance(value, GradeScale):
        return value
    if value is None or not str(value).strip():
        raise ValidationError("Grading scale cannot be null or empty")
    try:
        return GradeScale(str(value).strip().upper())
    except ValueError:
        raise ValidationError(
            f"Unknown grading scale: {value}. Supported scales: SCALE_10, SCALE_4, PASS_FAIL",
            details={"scale": value},
        )


def _lookup(score10: float):
    for lower, gpa, letter in SCALE_TABLE:
        if score10 >= lower:
            return gpa, letter
    return FAILING


def to_gpa_scale4(score10: Optional[float]) -> Optional[float]:
    if score10 is None:
        return None
    return _lookup(score10)[0]


def to_letter_grade(score10: Optional[float]) -> Optional[str]:
    if score10 is None:
        return None
    return _lookup(score10)[1]


def is_passing(score10: Optional[float], scale=GradeScale.SCALE_10) -> bool:
    if score10 is None:
        return False
    if parse_scale(scale) is GradeScale.PASS_FAIL:
        return score10 >= PASS_FAIL_THRESHOLD
    return score10 >= PASSING_SCORE


def _field(record: Any, name: str):
    # ORM 객체 / pydantic 모델 / dict 모두 지원
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name, None)


def cumulative_gpa(enrollments: Iterable[Any], scale=GradeScale.SCALE_10) -> float:
    """
    학점 가중 평균: Σ(값 × 학점) / Σ(학점)
    - final_score가 있는 수강만 포함
    - SCALE_10은 final_score, SCALE_4는 gpa_value (없으면 final_score로 환산)
    - 대상이 없거나 학점 합이 0이면 0.0
    """
    scale = parse_scale(scale)
    if scale is GradeScale.PASS_FAIL:
        raise ValidationError("Cumulative GPA is only defined for SCALE_10 and SCALE_4")

    total_points = 0.0
    total_credits = 0
    for enrollment in enrollments:
        final_score = _field(enrollment, "final_score")
        if final_score is None:
            continue
        credits = _field(enrollment, "credits") or 0
        if scale is GradeScale.SCALE_4:
            value = _field(enrollment, "gpa_value")
            if value is None:
                value = to_gpa_scale4(final_score)
        else:
            value = final_score
        total_points += value * credits
        total_credits += credits

    if total_credits == 0:
        return 0.0
    return total_points / total_credits
