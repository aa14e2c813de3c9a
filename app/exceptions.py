from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from typing import Any, Dict, Optional


class ErrorCode:
    INVALID_RANGE = "INVALID_RANGE"
    DURATION_TOO_SHORT = "DURATION_TOO_SHORT"
    INVALID_TIME_FORMAT = "INVALID_TIME_FORMAT"
    SLOT_TAKEN = "SLOT_TAKEN"
    RANGE_CONFLICT = "RANGE_CONFLICT"
    BLOCKED = "BLOCKED"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    OUTSIDE_BOOKING_WINDOW = "OUTSIDE_BOOKING_WINDOW"
    OUTSIDE_SCHEDULE = "OUTSIDE_SCHEDULE"
    BLOCK_OVERLAP = "BLOCK_OVERLAP"
    INTERNAL_ERROR = "INTERNAL_ERROR"


STATUS_BY_CODE = {
    ErrorCode.INVALID_RANGE: 400,
    ErrorCode.DURATION_TOO_SHORT: 400,
    ErrorCode.INVALID_TIME_FORMAT: 400,
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.SLOT_TAKEN: 409,
    ErrorCode.RANGE_CONFLICT: 409,
    ErrorCode.BLOCKED: 409,
    ErrorCode.BLOCK_OVERLAP: 409,
    ErrorCode.OUTSIDE_BOOKING_WINDOW: 422,
    ErrorCode.OUTSIDE_SCHEDULE: 422,
    ErrorCode.INTERNAL_ERROR: 500,
}


class APIException(HTTPException):
    def __init__(self, status_code: int, detail: str):
        super().__init__(status_code=status_code, detail=detail)


class SchedulingError(APIException):
    """An error with a machine-readable code and a human-readable message."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None, status_code: Optional[int] = None):
        super().__init__(status_code=status_code or STATUS_BY_CODE.get(code, 400), detail=message)
        self.code = code
        self.message = message
        self.details = details or {}

    def __repr__(self) -> str:
        return f"SchedulingError({self.code!r}, {self.message!r})"


def not_found(what: str) -> SchedulingError:
    return SchedulingError(ErrorCode.NOT_FOUND, f"{what} not found")


def create_error_response(error_message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> dict:
    """Create a standardized error response"""
    return {
        "success": False,
        "code": code,
        "message": error_message,
        "details": details or None,
    }


async def scheduling_exception_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.message, exc.code, exc.details),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Custom exception handler for HTTPException"""
    if isinstance(exc, SchedulingError):
        return await scheduling_exception_handler(request, exc)

    # Convert 403 from HTTPBearer to 401 for missing authentication
    if exc.status_code == 403 and "Not authenticated" in str(exc.detail):
        return JSONResponse(
            status_code=401,
            content=create_error_response("Authentication required", "UNAUTHORIZED")
        )

    code = {401: "UNAUTHORIZED", 403: "FORBIDDEN", 404: ErrorCode.NOT_FOUND}.get(exc.status_code)
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(str(exc.detail), code)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request body/query problems use the same envelope as service errors."""
    errors = [
        {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "message": err.get("msg")}
        for err in exc.errors()
    ]
    missing = [e["field"] for e, raw in zip(errors, exc.errors()) if raw.get("type") == "missing"]
    message = f"Missing required fields: {', '.join(missing)}" if missing else "Invalid request"
    return JSONResponse(
        status_code=400,
        content=create_error_response(message, ErrorCode.VALIDATION_ERROR, {"errors": errors}),
    )
