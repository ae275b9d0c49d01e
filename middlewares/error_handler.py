import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from schemas.common import ErrorDetail, ErrorResponse
from services.exceptions import GradeServiceError

logger = logging.getLogger(__name__)


def _error_response(request: Request, status_code: int, code: str, message: str, details=None) -> JSONResponse:
    body = ErrorResponse(
        error=ErrorDetail(code=code, message=message, details=details or {}),
        latency_ms=0,
        trace_id=request.headers.get("X-Request-ID"),
    )
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def add_error_handlers(app: FastAPI):
    # ✅ 도메인 예외 (검증 실패 / 허용되지 않는 작업 / 없는 리소스)
    @app.exception_handler(GradeServiceError)
    async def grade_service_exception_handler(request: Request, exc: GradeServiceError):
        logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
        return _error_response(request, exc.status_code, exc.code, exc.message, exc.details)

    # ✅ 요청 형식 오류 (필수 필드 누락, 타입 불일치)
    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
        return _error_response(
            request, 422, "VALIDATION_ERROR", "Request validation failed",
            {"errors": jsonable_encoder(exc.errors())},
        )

    # ✅ 그 외 예외 (DB 오류 포함, 재시도 없이 500)
    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return _error_response(request, 500, "INTERNAL_ERROR", str(exc))
