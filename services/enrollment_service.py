"""
services/enrollment_service.py

수강 이수/철회 처리와 학생 누적 GPA 조회
- final_score를 기록하는 유일한 경로는 complete_enrollment() (성적 트리 예상 점수와는 별개의 명시적 작업)
"""

import logging
from datetime import datetime
from typing import List

from sqlalchemy.orm import Session

from models.enrollments import Enrollment as EnrollmentModel
from services import grading_scales
from services.exceptions import InvalidOperationError, NotFoundError, ValidationError
from services.grade_tree import validate_score

logger = logging.getLogger(__name__)


class EnrollmentService:
    def __init__(self, db: Session):
        self.db = db

    def _commit(self, enrollment: EnrollmentModel) -> EnrollmentModel:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(enrollment)
        return enrollment

    # ==========================================================
    # [CRUD]
    # ==========================================================
    def create_enrollment(self, student_id: int, credits: int, course_code: str = None,
                          course_name: str = None) -> EnrollmentModel:
        if isinstance(credits, bool) or not isinstance(credits, int) or credits < 0:
            raise ValidationError("Credits must be a non-negative integer", details={"credits": credits})

        enrollment = EnrollmentModel(
            student_id=student_id,
            course_code=course_code,
            course_name=course_name,
            credits=credits,
            status="IN_PROGRESS",
            enrolled_at=datetime.now(),
        )
        self.db.add(enrollment)
        enrollment = self._commit(enrollment)
        logger.info("enrollment created: id=%s student_id=%s", enrollment.id, student_id)
        return enrollment

    def get_enrollment(self, enrollment_id: int) -> EnrollmentModel:
        enrollment = self.db.query(EnrollmentModel).filter(EnrollmentModel.id == enrollment_id).first()
        if enrollment is None:
            raise NotFoundError("Enrollment", enrollment_id)
        return enrollment

    def list_by_student(self, student_id: int) -> List[EnrollmentModel]:
        return (
            self.db.query(EnrollmentModel)
            .filter(EnrollmentModel.student_id == student_id)
            .order_by(EnrollmentModel.id)
            .all()
        )

    # ==========================================================
    # [이수 처리] 공식 final_score 기록
    # ==========================================================
    def complete_enrollment(self, enrollment_id: int, final_score: float) -> EnrollmentModel:
        final_score = validate_score(final_score)
        enrollment = self.get_enrollment(enrollment_id)
        if enrollment.status != "IN_PROGRESS":
            raise InvalidOperationError(
                f"Only in-progress enrollments can be completed (current status: {enrollment.status})",
                details={"id": enrollment_id, "status": enrollment.status},
            )

        enrollment.final_score = final_score
        enrollment.letter_grade = grading_scales.to_letter_grade(final_score)
        enrollment.gpa_value = grading_scales.to_gpa_scale4(final_score)
        enrollment.status = "COMPLETED"
        enrollment.completed_at = datetime.now()
        enrollment = self._commit(enrollment)

        logger.info(
            "enrollment completed: id=%s final_score=%s letter=%s",
            enrollment_id, final_score, enrollment.letter_grade,
        )
        return enrollment

    def withdraw_enrollment(self, enrollment_id: int) -> EnrollmentModel:
        enrollment = self.get_enrollment(enrollment_id)
        if enrollment.status == "COMPLETED":
            raise InvalidOperationError("Cannot withdraw from a completed enrollment", details={"id": enrollment_id})
        if enrollment.status == "WITHDRAWN":
            raise InvalidOperationError("Enrollment is already withdrawn", details={"id": enrollment_id})

        enrollment.status = "WITHDRAWN"
        enrollment.completed_at = datetime.now()
        enrollment = self._commit(enrollment)
        logger.info("enrollment withdrawn: id=%s", enrollment_id)
        return enrollment

    # ==========================================================
    # [GPA] 학생 누적 GPA
    # ==========================================================
    def student_gpa(self, student_id: int, scale="SCALE_10") -> dict:
        scale = grading_scales.parse_scale(scale)
        enrollments = self.list_by_student(student_id)
        graded = [e for e in enrollments if e.final_score is not None]

        return {
            "student_id": student_id,
            "scale": scale.value,
            "gpa": grading_scales.cumulative_gpa(enrollments, scale),
            "graded_enrollments": len(graded),
            "total_credits": sum(e.credits or 0 for e in graded),
            "earned_credits": sum(
                e.credits or 0 for e in graded
                if e.status == "COMPLETED" and grading_scales.is_passing(e.final_score)
            ),
        }
