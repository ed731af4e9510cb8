"""Draft persistence for the Inspection Forms tool.

Provides save/load/list/delete operations for form drafts stored as JSON
files on disk, plus a small last-write-wins session cache used for state
that must survive a page reload before the backend knows about it (the
multi-form selection).

Part of the FireSafe ITM tool suite.
"""

from __future__ import annotations

import json
import re
from datetime import datetime
from pathlib import Path
from typing import Any

DATA_DIR = Path(__file__).resolve().parent.parent / "data" / "drafts"
CACHE_DIR = Path(__file__).resolve().parent.parent / "data" / "session"

DRAFT_PREFIX = "draft_"


def _ensure_dir() -> None:
    """Create the drafts directory if it does not exist."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)


def draft_key_for(form_title: str) -> str:
    """Draft key for a form, e.g. ``draft_Inspeção Semanal de Bomba``."""
    return f"{DRAFT_PREFIX}{form_title}"


def _filename(key: str) -> str:
    return re.sub(r"[^\w.-]+", "_", key) + ".json"


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return None


def save_form_draft(
    draft_key: str,
    form_id: str,
    state: dict,
    current_section: str | None = None,
) -> dict:
    """Save or update a form draft.

    Args:
        draft_key: Draft key, normally ``draft_key_for(schema.title)``.
        form_id: Schema id of the form (e.g. "wet-sprinkler").
        state: Serialized ``InspectionFormState``.
        current_section: Id of the section the inspector is on.

    Returns:
        The saved draft dict.
    """
    _ensure_dir()
    path = DATA_DIR / _filename(draft_key)

    now = datetime.now().isoformat()
    created_at = now
    existing = _read_json(path) if path.exists() else None
    if isinstance(existing, dict):
        created_at = existing.get("created_at", now)

    values = state.get("values", {})
    property_name = str(values.get("propertyName") or values.get("facilityName") or "").strip()

    draft = {
        "key": draft_key,
        "form_id": form_id,
        "state": state,
        "current_section": current_section,
        "property_name": property_name or "Sem nome",
        "created_at": created_at,
        "updated_at": now,
    }
    path.write_text(json.dumps(draft, indent=2, ensure_ascii=False), encoding="utf-8")
    return draft


def load_form_draft(draft_key: str) -> dict | None:
    """Load a draft by key, or None if missing or unreadable."""
    path = DATA_DIR / _filename(draft_key)
    if not path.exists():
        return None
    return _read_json(path)


def list_form_drafts() -> list[dict]:
    """Return summary info for all saved form drafts, newest first."""
    _ensure_dir()
    drafts: list[dict] = []
    for p in DATA_DIR.glob("*.json"):
        d = _read_json(p)
        if not isinstance(d, dict) or "key" not in d:
            continue
        drafts.append({
            "key": d["key"],
            "form_id": d.get("form_id", ""),
            "property_name": d.get("property_name", "Sem nome"),
            "updated_at": d.get("updated_at", ""),
            "created_at": d.get("created_at", ""),
        })
    drafts.sort(key=lambda d: d["updated_at"], reverse=True)
    return drafts


def delete_form_draft(draft_key: str) -> bool:
    """Delete a draft. True if the file existed and was removed."""
    path = DATA_DIR / _filename(draft_key)
    if path.exists():
        path.unlink()
        return True
    return False


class SessionCache:
    """Durable key-value cache, last write wins, no locking."""

    def __init__(self, directory: Path | None = None) -> None:
        self._directory = directory

    @property
    def directory(self) -> Path:
        return self._directory or CACHE_DIR

    def _path(self, key: str) -> Path:
        return self.directory / _filename(key)

    def get(self, key: str, default: Any = None) -> Any:
        path = self._path(key)
        if not path.exists():
            return default
        value = _read_json(path)
        return default if value is None else value

    def set(self, key: str, value: Any) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._path(key).write_text(json.dumps(value, ensure_ascii=False), encoding="utf-8")

    def delete(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()
