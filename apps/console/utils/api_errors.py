"""Error envelope of the /functions/v1 endpoints."""
from __future__ import annotations

from fastapi.responses import JSONResponse

METHOD_NOT_ALLOWED = "Méthode non autorisée"
INVALID_BODY = "Corps de requête invalide"
NOT_AUTHENTICATED = "Non authentifié"
ACCESS_DENIED = "Accès refusé"
INTERNAL_ERROR = "Erreur interne"


def error_payload(message: str, *, trace_id: str | None = None, detail: str | None = None) -> dict:
    out = {"success": False, "error": message}
    if trace_id:
        out["trace_id"] = trace_id
    if detail:
        out["detail"] = detail
    return out


def function_error(
    message: str,
    status_code: int = 400,
    *,
    trace_id: str | None = None,
    detail: str | None = None,
) -> JSONResponse:
    resp = JSONResponse(error_payload(message, trace_id=trace_id, detail=detail), status_code=status_code)
    if trace_id:
        resp.headers["X-Trace-Id"] = trace_id
    return resp
