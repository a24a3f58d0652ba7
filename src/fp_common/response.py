"""Unified API response envelope.

Every endpoint returns:
{
    "code": 0,           // 0=success, otherwise an AppError code
    "message": "success",
    "data": { ... },     // null on error
    "timestamp": "...",
    "request_id": "..."
}
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from fastapi import Request
from pydantic import BaseModel, Field


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")


def success_response(data: Any = None, request: Request | None = None) -> ApiResponse:
    resp = ApiResponse(code=0, message="success", data=data)
    if request is not None:
        # request_id is injected by RequestLogMiddleware
        resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


def error_response(code: int, message: str, request: Request | None = None) -> ApiResponse:
    resp = ApiResponse(code=code, message=message, data=None)
    if request is not None:
        resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
