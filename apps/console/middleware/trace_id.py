"""Single source for request trace_id. Use scope for ASGI, request.scope for Starlette."""
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

SCOPE_KEY = "trace_id"
HEADER = "X-Trace-Id"


def ensure_trace_id(scope: dict) -> str:
    """Get or set trace_id on ASGI scope. Returns the same trace_id for the request lifecycle."""
    tid = scope.get(SCOPE_KEY)
    if tid and isinstance(tid, str):
        return tid
    tid = str(uuid.uuid4())[:16]
    scope[SCOPE_KEY] = tid
    return tid


class TraceIdMiddleware(BaseHTTPMiddleware):
    """Honours an incoming X-Trace-Id and echoes the request's trace_id back."""

    async def dispatch(self, request: Request, call_next):
        incoming = (request.headers.get(HEADER) or "").strip()
        if incoming:
            request.scope[SCOPE_KEY] = incoming[:64]
        tid = ensure_trace_id(request.scope)
        request.state.trace_id = tid
        response = await call_next(request)
        response.headers.setdefault(HEADER, tid)
        return response
