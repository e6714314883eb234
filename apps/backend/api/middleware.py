"""
Request tracking for the conversion API
"""
import time
import uuid
from typing import Callable, Dict, Any
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

import logging

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
QUIET_PATHS = ("/health", "/docs", "/openapi.json")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Gives every request an id and a start time, and logs its outcome.

    Routes read `request.state.request_id` and `request.state.start_time`
    to fill the `meta` block of the response envelope. A caller-supplied
    X-Request-ID is kept so logs line up with the client's.
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.in_flight: Dict[str, Dict[str, Any]] = {}

    @staticmethod
    def _request_id(request: Request) -> str:
        supplied = request.headers.get(REQUEST_ID_HEADER, "").strip()
        if supplied and len(supplied) <= 64:
            return supplied
        return uuid.uuid4().hex[:12]

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = self._request_id(request)
        route = f"{request.method} {request.url.path}"
        quiet = request.url.path.endswith(QUIET_PATHS)

        start_time = time.time()
        request.state.request_id = request_id
        request.state.start_time = start_time
        self.in_flight[request_id] = {"route": route, "start_time": start_time}

        if not quiet:
            upload_size = request.headers.get("content-length", "?")
            logger.info(f"[{request_id}] {route} started ({upload_size} bytes, {len(self.in_flight)} in flight)")

        try:
            response = await call_next(request)
        except Exception as e:
            elapsed_ms = int((time.time() - start_time) * 1000)
            logger.error(f"[{request_id}] {route} crashed after {elapsed_ms}ms: {e}")
            raise
        finally:
            self.in_flight.pop(request_id, None)

        elapsed_ms = int((time.time() - start_time) * 1000)
        if not quiet:
            log = logger.warning if response.status_code >= 500 else logger.info
            log(f"[{request_id}] {route} -> {response.status_code} in {elapsed_ms}ms")

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Process-Time"] = str(elapsed_ms)
        return response
