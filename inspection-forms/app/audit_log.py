"""Append-only JSONL audit trail for archived reports.

Stores one JSON object per line in date-partitioned files under data/audit/.
Files are named YYYY-MM-DD.jsonl.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from app.schema import AuditEntry

DATA_DIR = Path(__file__).resolve().parent.parent / "data" / "audit"

REPORT_ARCHIVED = "report_archived"
ARCHIVE_REPLAYED = "archive_replayed"


def _ensure_dir() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)


def _file_for_date(date_str: str) -> Path:
    return DATA_DIR / f"{date_str}.jsonl"


def _today_str() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


def log_action(
    action: str,
    report_id: str = "",
    inspection_id: str | None = None,
    details: dict | None = None,
) -> AuditEntry:
    """Append an entry to today's file and return it."""
    _ensure_dir()
    entry = AuditEntry(
        timestamp=datetime.now(timezone.utc).isoformat(),
        action=action,
        report_id=report_id,
        inspection_id=inspection_id or "",
        details=details or {},
    )
    with _file_for_date(_today_str()).open("a", encoding="utf-8") as f:
        f.write(json.dumps(entry.to_dict(), ensure_ascii=False) + "\n")
    return entry


def _read_entries(path: Path) -> list[AuditEntry]:
    entries: list[AuditEntry] = []
    if not path.exists():
        return entries
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                entries.append(AuditEntry.from_dict(json.loads(line)))
    return entries


def get_recent_entries(limit: int = 50) -> list[AuditEntry]:
    """Most recent entries across all files, newest first."""
    _ensure_dir()
    results: list[AuditEntry] = []
    for path in sorted(DATA_DIR.glob("*.jsonl"), key=lambda p: p.stem, reverse=True):
        entries = _read_entries(path)
        entries.reverse()
        results.extend(entries)
        if len(results) >= limit:
            break
    return results[:limit]


def get_entries_for_report(report_id: str) -> list[AuditEntry]:
    return [e for e in get_recent_entries(limit=10_000) if e.report_id == report_id]
