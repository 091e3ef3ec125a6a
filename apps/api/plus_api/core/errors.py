"""
Classified request failures and the locked error envelope.

Envelope keys: error, message, request_id, details.
"""
from __future__ import annotations

from typing import Any, Optional

from fastapi.responses import JSONResponse


class ApiError(Exception):
    status_code: int = 500
    error: str = "internal_error"

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


def err_envelope(error: str, message: str, request_id: Optional[str], details: Any, status_code: int) -> JSONResponse:
    headers = {}
    if request_id:
        headers["X-Request-Id"] = request_id
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "request_id": request_id,
            "details": details,
        },
        headers=headers,
    )
