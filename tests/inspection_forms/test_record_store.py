"""Tests for app/record_store.py — JSON-file records behind the API."""

from __future__ import annotations

import json

from app import record_store
from app.schema import STATUS_DRAFT

PAYLOAD = {
    "userId": "u-1",
    "formTitle": "Inspeção Semanal de Bomba",
    "propertyName": "Depósito Central",
    "inspectionDate": "2024-03-15",
    "formData": "{}",
    "signatures": "{}",
    "pdfData": "",
}


def test_fingerprint_ignores_pdf_bytes():
    assert record_store.fingerprint(PAYLOAD) == record_store.fingerprint({**PAYLOAD, "pdfData": "QUJD"})
    assert record_store.fingerprint(PAYLOAD) != record_store.fingerprint({**PAYLOAD, "userId": "u-2"})


def test_update_protects_identity():
    record = record_store.create_inspection({"facilityName": "Depósito"})
    updated = record_store.update_inspection(record["id"], {"id": "other", "createdAt": "x", "progress": 40})
    assert updated["id"] == record["id"]
    assert updated["createdAt"] == record["createdAt"]
    assert updated["progress"] == 40
    assert record_store.update_inspection("missing", {"progress": 1}) is None


def test_archive_is_idempotent_by_fingerprint():
    first, already = record_store.archive_report(PAYLOAD)
    assert already is False
    again, already = record_store.archive_report({**PAYLOAD, "pdfData": "QUJD"})
    assert already is True
    assert again.id == first.id
    assert again.archived_at == first.archived_at


def test_archive_for_inspection_records_report_on_parent():
    inspection = record_store.create_inspection({"facilityName": "Depósito"})
    report, _ = record_store.archive_report({**PAYLOAD, "formId": "weekly-pump"}, inspection["id"])
    stored = record_store.get_inspection(inspection["id"])
    assert stored["status"] == STATUS_DRAFT
    assert stored["archivedReports"] == {"weekly-pump": report.id}
    assert report.inspection_id == inspection["id"]
    assert report.form_id == "weekly-pump"


def test_sub_forms_of_one_inspection_are_archived_separately():
    inspection = record_store.create_inspection({})
    pump, _ = record_store.archive_report({**PAYLOAD, "formId": "weekly-pump"}, inspection["id"])
    tank, already = record_store.archive_report(
        {**PAYLOAD, "formId": "water-tank", "formTitle": "Tanques de Armazenamento de Água"}, inspection["id"]
    )
    assert already is False
    assert tank.id != pump.id

    changed = {**PAYLOAD, "formId": "water-tank", "formData": json.dumps({"x": 1})}
    again, already = record_store.archive_report(changed, inspection["id"])
    assert already is True
    assert again.id == tank.id
    assert record_store.get_inspection(inspection["id"])["archivedReports"] == {
        "weekly-pump": pump.id,
        "water-tank": tank.id,
    }


def test_form_key_falls_back_to_title():
    assert record_store.form_key(PAYLOAD) == "Inspeção Semanal de Bomba"
    assert record_store.form_key({**PAYLOAD, "formId": "weekly-pump"}) == "weekly-pump"


def test_same_content_for_two_inspections_stores_two_reports():
    one = record_store.create_inspection({})
    two = record_store.create_inspection({})
    record_store.archive_report(PAYLOAD, one["id"])
    _, already = record_store.archive_report(PAYLOAD, two["id"])
    assert already is False
    assert len(record_store.list_archived_reports()) == 2
