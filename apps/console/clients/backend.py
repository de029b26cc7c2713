"""HTTP client for the console backend: function calls and table access."""
from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from apps.console.config import get_settings

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """A backend call failed (transport error, HTTP error or ``success: false``)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _error_message(r: httpx.Response) -> str:
    try:
        body = r.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("error", "detail", "message"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return f"http_{r.status_code}"


class BackendClient:
    """Thin wrapper over an ``httpx.Client`` whose base URL points at the backend."""

    def __init__(self, http: Optional[httpx.Client] = None, *, access_token: Optional[str] = None):
        if http is None:
            s = get_settings()
            http = httpx.Client(base_url=s.backend_url, timeout=s.backend_timeout_seconds)
        self.http = http
        self.access_token = access_token

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        api_key = get_settings().backend_api_key
        if api_key:
            headers["apikey"] = api_key
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    def _request(self, method: str, url: str, **kwargs) -> Any:
        try:
            r = self.http.request(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as e:
            logger.error("backend %s %s failed: %s", method, url, e)
            raise BackendError(str(e)[:200] or "Erreur réseau") from e
        if r.status_code >= 400:
            message = _error_message(r)
            logger.error("backend %s %s status=%s error=%s", method, url, r.status_code, message)
            raise BackendError(message, r.status_code)
        if r.status_code == 204 or not r.content:
            return None
        try:
            return r.json()
        except ValueError as e:
            raise BackendError("Réponse invalide du serveur", r.status_code) from e

    def invoke(self, function_name: str, body: Optional[dict] = None) -> dict:
        """Call ``/functions/v1/<name>``; a ``success: false`` answer raises."""
        data = self._request("POST", f"/functions/v1/{function_name}", json=body or {})
        if not isinstance(data, dict):
            raise BackendError("Réponse invalide du serveur")
        if data.get("success") is False:
            raise BackendError(str(data.get("error") or "Erreur inconnue"))
        return data

    def select(self, table: str, params: Optional[dict] = None) -> list[dict]:
        data = self._request("GET", f"/rest/v1/{table}", params=params)
        return data if isinstance(data, list) else []

    def insert(self, table: str, row: dict) -> Optional[dict]:
        return self._request("POST", f"/rest/v1/{table}", json=row)

    def upsert(self, table: str, rows: list[dict]) -> Any:
        return self._request("POST", f"/rest/v1/{table}", json=rows)

    def update(self, table: str, row_id: str, row: dict) -> Optional[dict]:
        return self._request("PATCH", f"/rest/v1/{table}/{row_id}", json=row)

    def delete(self, table: str, row_id: str) -> None:
        self._request("DELETE", f"/rest/v1/{table}/{row_id}")
