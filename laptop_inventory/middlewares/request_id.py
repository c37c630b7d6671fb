from __future__ import annotations

import logging
import time
from contextvars import ContextVar
from typing import Any
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
logger = logging.getLogger("laptop_inventory.request")


def _request_fields(request: Request, status_code: int, started: float) -> dict[str, Any]:
    """Describe a finished request by its route template rather than its raw path."""

    route = request.scope.get("route")
    fields: dict[str, Any] = {
        "method": request.method,
        "route": getattr(route, "path", None) or request.url.path,
        "status": status_code,
        "duration_ms": round((time.perf_counter() - started) * 1000, 2),
    }
    path_params = request.scope.get("path_params") or {}
    if "laptop_id" in path_params:
        fields["laptop_id"] = path_params["laptop_id"]
    if "brand" in path_params:
        fields["brand"] = path_params["brand"]
    origin = request.headers.get("origin")
    if origin:
        fields["origin"] = origin
    return fields


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with a correlation id and log one line when it completes."""

    def __init__(self, app, header_name: str = "X-Request-ID") -> None:  # type: ignore[override]
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(self.header_name) or uuid4().hex
        token = request_id_ctx_var.set(request_id)
        request.state.request_id = request_id
        started = time.perf_counter()
        try:
            try:
                response = await call_next(request)
            except Exception:
                logger.exception(
                    "request.failed",
                    extra={"extra_data": _request_fields(request, 500, started)},
                )
                raise
            fields = _request_fields(request, response.status_code, started)
            logger.info("request.completed", extra={"extra_data": fields})
        finally:
            request_id_ctx_var.reset(token)
        response.headers[self.header_name] = request_id
        response.headers.setdefault("X-Response-Time", f"{fields['duration_ms']:.2f}ms")
        return response
