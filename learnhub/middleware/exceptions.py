from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException
from learnhub.core.exceptions import AuthenticationRequiredError
from learnhub.schemas.response import ErrorResponse, ErrorDetail
from learnhub.utils.dates import utcnow
import logging
import uuid

logger = logging.getLogger(__name__)

def _get_error_code(status_code: int) -> str:
    code_map = {
        400: "BAD_REQUEST",
        401: "UNAUTHORIZED",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        409: "CONFLICT",
        422: "VALIDATION_ERROR",
        500: "INTERNAL_SERVER_ERROR",
        503: "SERVICE_UNAVAILABLE",
    }
    return code_map.get(status_code, f"HTTP_{status_code}")

def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())

def _render(request: Request, request_id: str, status_code: int, error: ErrorDetail, redirect_to: str = None) -> JSONResponse:
    error_response = ErrorResponse(
        error=error,
        timestamp=utcnow().isoformat(),
        path=str(request.url),
        request_id=request_id,
        redirect_to=redirect_to,
    )
    return JSONResponse(status_code=status_code, content=jsonable_encoder(error_response))

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    request_id = _request_id(request)
    errors = jsonable_encoder(exc.errors())
    logger.warning(f"[{request_id}] Validation error: {errors}", extra={"request_id": request_id})
    return _render(
        request, request_id, 422,
        ErrorDetail(code="VALIDATION_ERROR", message="Request validation failed", details={"validation_errors": errors}),
    )

async def authentication_required_handler(request: Request, exc: AuthenticationRequiredError):
    request_id = _request_id(request)
    logger.info(f"[{request_id}] Authentication required for {request.url.path}", extra={"request_id": request_id})
    return _render(
        request, request_id, 401,
        ErrorDetail(code="AUTH_REQUIRED", message=exc.message),
        redirect_to=exc.redirect_to,
    )

async def global_exception_handler(request: Request, exc: Exception):
    request_id = _request_id(request)

    if isinstance(exc, HTTPException):
        logger.warning(f"[{request_id}] HTTP {exc.status_code}: {exc.detail}", extra={"request_id": request_id})
        return _render(
            request, request_id, exc.status_code,
            ErrorDetail(
                code=_get_error_code(exc.status_code),
                message=exc.detail if isinstance(exc.detail, str) else str(exc.detail)
            ),
        )

    logger.error(f"[{request_id}] Unhandled exception: {exc}", exc_info=True, extra={"request_id": request_id})
    return _render(
        request, request_id, 500,
        ErrorDetail(
            code="INTERNAL_SERVER_ERROR",
            message="An unexpected error occurred",
            details={"error_type": type(exc).__name__}
        ),
    )
