"""HTTP client for the records backend.

Thin wrapper over ``requests`` that speaks the backend's JSON contract:
success bodies are JSON objects, failures carry an optional ``message``
and an optional machine ``code``. The session is injectable so tests can
hand in a FastAPI ``TestClient``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import requests

from app.config import setting
from app.errors import PersistenceError

logger = logging.getLogger(__name__)

GENERIC_SAVE_ERROR = "Não foi possível salvar a inspeção."

INSPECTIONS_PATH = "/api/inspections"
ARCHIVED_REPORTS_PATH = "/api/archived-reports"


@dataclass
class ApiResponse:
    status_code: int
    body: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def error_from_response(response: ApiResponse, fallback: str) -> PersistenceError:
    """Build a PersistenceError from a failure body, tolerating any shape."""
    body = response.body if isinstance(response.body, dict) else {}
    message = body.get("message")
    if not isinstance(message, str) or not message.strip():
        message = fallback
    code = body.get("code")
    if not isinstance(code, str) or not code.strip():
        code = None
    return PersistenceError(message, code=code, status_code=response.status_code)


class RecordsClient:
    def __init__(
        self,
        base_url: str | None = None,
        session: Any = None,
        timeout: float = 30,
    ) -> None:
        if base_url is None:
            base_url = setting("api_base_url")
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self._archived_reports: dict[str, list[dict]] = {}

    def _request(self, method: str, path: str, payload: dict | None = None, params: dict | None = None) -> ApiResponse:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(method, url, json=payload, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise PersistenceError(f"Falha de conexão com o servidor: {exc}", code="network_error") from exc
        try:
            body = resp.json()
        except ValueError:
            body = None
        return ApiResponse(resp.status_code, body)

    def post(self, path: str, payload: dict) -> ApiResponse:
        return self._request("POST", path, payload)

    def get(self, path: str, params: dict | None = None) -> ApiResponse:
        return self._request("GET", path, params=params)

    # -- inspections --------------------------------------------------------

    def create_inspection(self, data: dict) -> dict:
        resp = self.post(INSPECTIONS_PATH, data)
        if not resp.ok:
            raise error_from_response(resp, GENERIC_SAVE_ERROR)
        return resp.body

    def patch_inspection(self, inspection_id: str, data: dict) -> dict:
        resp = self._request("PATCH", f"{INSPECTIONS_PATH}/{inspection_id}", data)
        if not resp.ok:
            raise error_from_response(resp, GENERIC_SAVE_ERROR)
        return resp.body

    # -- archived reports ---------------------------------------------------

    def list_archived_reports(self, user_id: str) -> list[dict]:
        """Archived reports of *user_id*, cached until invalidated."""
        if user_id not in self._archived_reports:
            resp = self.get(ARCHIVED_REPORTS_PATH, params={"userId": user_id})
            if not resp.ok:
                raise error_from_response(resp, "Não foi possível carregar os relatórios.")
            self._archived_reports[user_id] = list(resp.body or [])
        return list(self._archived_reports[user_id])

    def invalidate_archived_reports(self) -> None:
        self._archived_reports.clear()
