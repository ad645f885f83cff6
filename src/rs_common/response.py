"""Unified API response wrapper.

All API endpoints return this format:
{
    "code": 0,             // 0=success, non-0=error code
    "message": "success",
    "error_type": null,    // ErrorKind on failure
    "data": { ... },       // null on error
    "timestamp": "...",
    "request_id": "..."
}
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    error_type: str | None = None
    data: Any = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")


def success_response(data: Any = None, request_id: str | None = None) -> ApiResponse:
    resp = ApiResponse(code=0, message="success", data=data)
    if request_id:
        resp.request_id = request_id
    return resp


def error_response(
    code: int, message: str, error_type: str, request_id: str | None = None
) -> ApiResponse:
    resp = ApiResponse(code=code, message=message, error_type=error_type, data=None)
    if request_id:
        resp.request_id = request_id
    return resp
