"""JSON-file record store behind the records API.

Inspections and archived reports are kept one JSON file per record under
data/records/. Ids are uuid4 strings; callers treat them as opaque.

Archiving is idempotent: a report already stored for the same form of the
same inspection, or with the same content fingerprint, is returned
untouched instead of creating a second one. Archiving a sub-form never
changes the parent inspection's status.
"""

from __future__ import annotations

import hashlib
import json
import uuid
from datetime import datetime, timezone
from pathlib import Path

from app.schema import STATUS_ARCHIVED, STATUS_DRAFT, ArchivedReportRecord

DATA_DIR = Path(__file__).resolve().parent.parent / "data" / "records"

FINGERPRINT_FIELDS = ("userId", "formTitle", "propertyName", "inspectionDate", "formData")


def _dir(kind: str) -> Path:
    path = DATA_DIR / kind
    path.mkdir(parents=True, exist_ok=True)
    return path


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_record_id() -> str:
    return str(uuid.uuid4())


def _load(kind: str, record_id: str) -> dict | None:
    path = _dir(kind) / f"{record_id}.json"
    if not path.exists():
        return None
    return json.loads(path.read_text(encoding="utf-8"))


def _save(kind: str, record: dict) -> None:
    path = _dir(kind) / f"{record['id']}.json"
    path.write_text(json.dumps(record, indent=2, ensure_ascii=False), encoding="utf-8")


def _all(kind: str) -> list[dict]:
    return [json.loads(p.read_text(encoding="utf-8")) for p in sorted(_dir(kind).glob("*.json"))]


# ---------------------------------------------------------------------------
# Inspections
# ---------------------------------------------------------------------------

def create_inspection(data: dict) -> dict:
    now = _now()
    record = {**data, "id": new_record_id(), "createdAt": now, "updatedAt": now}
    record.setdefault("status", STATUS_DRAFT)
    _save("inspections", record)
    return record


def get_inspection(inspection_id: str) -> dict | None:
    return _load("inspections", inspection_id)


def update_inspection(inspection_id: str, changes: dict) -> dict | None:
    record = get_inspection(inspection_id)
    if record is None:
        return None
    changes = {k: v for k, v in changes.items() if k not in ("id", "createdAt")}
    record.update(changes)
    record["updatedAt"] = _now()
    _save("inspections", record)
    return record


def list_inspections(status: str | None = None) -> list[dict]:
    records = _all("inspections")
    if status:
        records = [r for r in records if r.get("status") == status]
    records.sort(key=lambda r: r.get("updatedAt", ""), reverse=True)
    return records


# ---------------------------------------------------------------------------
# Archived reports
# ---------------------------------------------------------------------------

def fingerprint(payload: dict) -> str:
    """Content hash identifying a resubmission of the same report."""
    material = json.dumps([payload.get(k) for k in FINGERPRINT_FIELDS], ensure_ascii=False, default=str)
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


def get_archived_report(report_id: str) -> ArchivedReportRecord | None:
    data = _load("archived_reports", report_id)
    return ArchivedReportRecord.from_dict(data) if data else None


def list_archived_reports(user_id: str | None = None) -> list[ArchivedReportRecord]:
    reports = [ArchivedReportRecord.from_dict(d) for d in _all("archived_reports")]
    if user_id:
        reports = [r for r in reports if r.user_id == user_id]
    reports.sort(key=lambda r: r.archived_at, reverse=True)
    return reports


def form_key(payload: dict) -> str:
    return payload.get("formId") or payload.get("formTitle", "")


def _find_existing(inspection_id: str | None, key: str, digest: str) -> ArchivedReportRecord | None:
    for report in list_archived_reports():
        if inspection_id and report.inspection_id == inspection_id and (report.form_id or report.form_title) == key:
            return report
        if not inspection_id and report.fingerprint == digest:
            return report
    return None


def archive_report(payload: dict, inspection_id: str | None = None) -> tuple[ArchivedReportRecord, bool]:
    """Store a report snapshot. Returns ``(record, already_archived)``."""
    digest = fingerprint(payload)
    key = form_key(payload)
    existing = _find_existing(inspection_id, key, digest)
    if existing is not None:
        return existing, True

    record = ArchivedReportRecord(
        id=new_record_id(),
        user_id=payload["userId"],
        form_title=payload["formTitle"],
        property_name=payload.get("propertyName", ""),
        property_address=payload.get("propertyAddress", ""),
        inspection_date=payload["inspectionDate"],
        form_data=payload["formData"],
        signatures=payload["signatures"],
        pdf_data=payload.get("pdfData", ""),
        status=STATUS_ARCHIVED,
        general_information=dict(payload.get("general_information") or {}),
        inspection_id=inspection_id,
        form_id=payload.get("formId", ""),
        fingerprint=digest,
        archived_at=_now(),
    )
    _save("archived_reports", record.to_dict())
    if inspection_id:
        parent = get_inspection(inspection_id) or {}
        archived = dict(parent.get("archivedReports") or {})
        archived[key] = record.id
        update_inspection(inspection_id, {"archivedReports": archived})
    return record, False
