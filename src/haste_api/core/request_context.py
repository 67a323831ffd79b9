from __future__ import annotations

from typing import Any
from uuid import uuid4

from fastapi import Request


def get_request_id(request: Request | None) -> str:
    if request is not None:
        cached = getattr(request.state, "request_id", None)
        if cached:
            return cached
        for header in ("x-request-id", "x-correlation-id"):
            value = request.headers.get(header)
            if value:
                request.state.request_id = value
                return value
        request.state.request_id = str(uuid4())
        return request.state.request_id
    return str(uuid4())


def log_context(request: Request, **fields: Any) -> dict[str, Any]:
    """Build the ``extra`` mapping attached to request-scoped log records."""
    context = {
        "request_id": get_request_id(request),
        "method": request.method,
        "path": request.url.path,
    }
    context.update(fields)
    return context
