from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from src.core.observability import new_operation_id


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Reuse the caller's X-Request-ID or assign one, and echo it on the response."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or new_operation_id("req")
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response
