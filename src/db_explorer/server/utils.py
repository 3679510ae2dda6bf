"""Request id propagation for the HTTP layer."""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.types import ASGIApp

from ..logging_utils import new_request_id, request_id_context

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a request id to the current context for the lifetime of a request."""

    def __init__(self, app: ASGIApp, propagate: bool = True) -> None:
        super().__init__(app)
        self._propagate = propagate

    async def dispatch(self, request: Request, call_next):
        request_id = new_request_id(request.headers.get(REQUEST_ID_HEADER))
        token = request_id_context.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_context.reset(token)
        if self._propagate:
            response.headers[REQUEST_ID_HEADER] = request_id
        return response
