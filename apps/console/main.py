"""Точка входа FastAPI."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from apps.console.middleware.trace_id import TraceIdMiddleware, ensure_trace_id
from apps.console.routers import admin_auth, admin_views, functions, health, tables
from apps.console.utils.api_errors import INTERNAL_ERROR, function_error

logger = logging.getLogger(__name__)


def _is_function_path(path: str) -> bool:
    return path.startswith("/functions/")


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # shutdown


app = FastAPI(
    title="Misan Console",
    description="Administration: paramètres, tarifs, LLM, alertes et modèles d'emails",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(TraceIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, tags=["System"])
app.include_router(admin_auth.router, prefix="/v1/admin/auth", tags=["Admin Auth"])
app.include_router(admin_views.router, prefix="/v1/admin", tags=["Admin Tables"])
app.include_router(functions.router, prefix="/functions/v1", tags=["Functions"])
app.include_router(tables.router, prefix="/rest/v1", tags=["REST"])


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Function endpoints keep their {success, error} envelope for every HTTP error."""
    detail = exc.detail
    if not isinstance(detail, str):
        detail = str(detail) if detail else "Erreur"
    if _is_function_path(request.url.path):
        return function_error(detail, exc.status_code, trace_id=ensure_trace_id(request.scope))
    return JSONResponse(content={"detail": detail}, status_code=exc.status_code, headers=exc.headers)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Never leak a stack trace: log it with the trace_id and answer JSON."""
    path = request.url.path
    trace_id = ensure_trace_id(request.scope)
    logger.exception("Unhandled exception trace_id=%s path=%s", trace_id, path)
    if _is_function_path(path):
        return function_error(INTERNAL_ERROR, 500, trace_id=trace_id)
    resp = JSONResponse(content={"detail": "Erreur interne du serveur", "trace_id": trace_id}, status_code=500)
    resp.headers["X-Trace-Id"] = trace_id
    return resp
