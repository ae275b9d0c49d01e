from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.db import get_db
from schemas.enrollments import Enrollment as EnrollmentSchema, EnrollmentComplete, EnrollmentCreate, GpaRequest
from services import grading_scales
from services.enrollment_service import EnrollmentService

router = APIRouter(prefix="/enrollments", tags=["수강 정보"])


def get_service(db: Session = Depends(get_db)) -> EnrollmentService:
    return EnrollmentService(db)


def _to_dict(enrollment) -> dict:
    return EnrollmentSchema.model_validate(enrollment).model_dump()


# ==========================================================
# [1단계] CRUD 기본 라우터
# ==========================================================

# ✅ [CREATE] 수강 등록
@router.post("/")
def create_enrollment(enrollment: EnrollmentCreate, service: EnrollmentService = Depends(get_service)):
    created = service.create_enrollment(
        enrollment.student_id, enrollment.credits,
        course_code=enrollment.course_code, course_name=enrollment.course_name,
    )
    return {"success": True, "data": _to_dict(created), "message": "수강 정보가 추가되었습니다"}


# ==========================================================
# [2단계] 정적 라우터 (GPA / 학생별 조회)
# ==========================================================

# ✅ [CALC] 전달받은 수강 기록으로 누적 GPA 계산
@router.post("/gpa")
def calculate_gpa(request: GpaRequest):
    return {
        "success": True,
        "data": {
            "scale": request.scale,
            "gpa": grading_scales.cumulative_gpa(request.enrollments, request.scale),
        },
        "message": "누적 GPA 계산 성공",
    }


# ✅ [READ] 학생별 수강 목록
@router.get("/student/{student_id}")
def get_student_enrollments(student_id: int, service: EnrollmentService = Depends(get_service)):
    return {
        "success": True,
        "data": [_to_dict(e) for e in service.list_by_student(student_id)],
        "message": "학생 수강 목록 조회 성공",
    }


# ✅ [CALC] 학생 누적 GPA (scale=SCALE_10 | SCALE_4)
@router.get("/student/{student_id}/gpa")
def get_student_gpa(student_id: int, scale: str = "SCALE_10", service: EnrollmentService = Depends(get_service)):
    return {"success": True, "data": service.student_gpa(student_id, scale), "message": "누적 GPA 조회 성공"}


# ==========================================================
# [3단계] 완전 동적 라우터
# ==========================================================

# ✅ [READ] 특정 수강 조회
@router.get("/{enrollment_id}")
def read_enrollment(enrollment_id: int, service: EnrollmentService = Depends(get_service)):
    return {"success": True, "data": _to_dict(service.get_enrollment(enrollment_id)), "message": "수강 정보 조회 성공"}


# ✅ [UPDATE] 이수 처리 (공식 최종 점수 기록)
@router.post("/{enrollment_id}/complete")
def complete_enrollment(enrollment_id: int, payload: EnrollmentComplete,
                        service: EnrollmentService = Depends(get_service)):
    enrollment = service.complete_enrollment(enrollment_id, payload.final_score)
    return {"success": True, "data": _to_dict(enrollment), "message": "이수 처리되었습니다"}


# ✅ [UPDATE] 수강 철회
@router.post("/{enrollment_id}/withdraw")
def withdraw_enrollment(enrollment_id: int, service: EnrollmentService = Depends(get_service)):
    enrollment = service.withdraw_enrollment(enrollment_id)
    return {"success": True, "data": _to_dict(enrollment), "message": "수강이 철회되었습니다"}
