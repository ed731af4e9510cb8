"""Settings of the Inspection Forms tool, stored through shared.config_store."""

from __future__ import annotations

from typing import Any

from shared.config_store import get_settings

TOOL_NAME = "inspection-forms"

DEFAULTS: dict[str, Any] = {
    "api_base_url": "http://localhost:8000",
    "default_user_id": "default-user-id",
    "archive_result_delay": 1.5,
    "archive_navigate_delay": 2.0,
    "reports_path": "/reports/history",
    "pdf_branding": {"show_company_logo": True, "show_firesafe_logo": True},
    "default_company_name": "Empresa Cliente",
}


def load_settings() -> dict[str, Any]:
    return get_settings(TOOL_NAME, DEFAULTS)


def setting(key: str) -> Any:
    return load_settings()[key]
