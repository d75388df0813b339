from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse


class ApiError(Exception):
    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message


class StoreError(ApiError):
    """Raised when the entity store rejects or cannot complete an operation."""

    def __init__(self, message: str, *, code: str = "STORE_UNAVAILABLE", status_code: int = 503):
        super().__init__(status_code=status_code, code=code, message=message)


class RecordNotFoundError(StoreError):
    def __init__(self, entity: str, record_id: str):
        super().__init__(
            f"{entity} {record_id} not found.",
            code="RECORD_NOT_FOUND",
            status_code=404,
        )
        self.entity = entity
        self.record_id = record_id


def validation_error(code: str, message: str) -> ApiError:
    return ApiError(status_code=422, code=code, message=message)


def get_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return str(request_id)
    return "unknown"


def error_response(request: Request, *, status_code: int, code: str, message: str) -> JSONResponse:
    payload = {
        "error": {
            "code": code,
            "message": message,
            "request_id": get_request_id(request),
        }
    }
    return JSONResponse(status_code=status_code, content=payload)
