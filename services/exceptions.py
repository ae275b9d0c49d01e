"""
services/exceptions.py

성적 항목/수강 서비스에서 발생시키는 도메인 예외 모음.
- middlewares/error_handler.py 에서 status_code / code 를 그대로 읽어 ErrorResponse로 변환한다.
"""

from typing import Any, Dict, Optional


class GradeServiceError(Exception):
    """도메인 예외의 공통 부모"""

    code = "GRADE_SERVICE_ERROR"
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(GradeServiceError):
    """입력값 검증 실패 (빈 이름, 가중치/점수 범위 초과 등). 아무것도 저장되지 않음"""

    code = "VALIDATION_ERROR"
    status_code = 422


class InvalidOperationError(GradeServiceError):
    """현재 상태에서 허용되지 않는 작업 (예: 하위 항목이 있는 노드에 점수 입력)"""

    code = "INVALID_OPERATION"
    status_code = 409


class NotFoundError(GradeServiceError):
    """존재하지 않는 성적 항목 / 수강 ID"""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, resource_id: Any):
        super().__init__(
            f"{resource} not found with id: {resource_id}",
            details={"resource": resource, "id": resource_id},
        )
        self.resource = resource
        self.resource_id = resource_id
