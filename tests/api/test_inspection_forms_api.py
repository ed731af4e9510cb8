"""Tests for inspection-forms/app/api.py — FastAPI endpoints."""

from __future__ import annotations

import base64
import json

import pytest
from fastapi.testclient import TestClient

import app.audit_log as audit_mod
import app.record_store as record_mod

PDF_B64 = base64.b64encode(b"%PDF-1.4 minimal").decode("ascii")


@pytest.fixture()
def client():
    from app.api import app as _app
    return TestClient(_app)


def _report(**overrides) -> dict:
    payload = {
        "userId": "u-1",
        "formId": "weekly-pump",
        "formTitle": "Inspeção Semanal de Bomba",
        "propertyName": "Depósito Central",
        "propertyAddress": "Rua X, 100",
        "inspectionDate": "2024-03-15",
        "formData": json.dumps({"pump_condition": "nao"}),
        "signatures": json.dumps({"inspectorName": "Carlos Souza"}),
        "pdfData": PDF_B64,
        "status": "archived",
        "general_information": {"nome_propriedade": "Depósito Central"},
    }
    payload.update(overrides)
    return payload


def _inspection(client, **overrides) -> dict:
    body = {"companyId": "c-1", "facilityName": "Depósito Central", "address": "Rua X, 100"}
    body.update(overrides)
    resp = client.post("/api/inspections", json=body)
    assert resp.status_code == 201
    return resp.json()


# ── Forms ─────────────────────────────────────────────────────────────────


def test_list_forms(client):
    resp = client.get("/api/forms")
    assert resp.status_code == 200
    forms = {f["form_id"]: f for f in resp.json()}
    assert set(forms) == {"wet-sprinkler", "foam-water", "weekly-pump", "monthly-pump", "water-tank"}
    assert "anual" in forms["wet-sprinkler"]["frequencies"]
    assert forms["weekly-pump"]["estimated_time"] == "10-15 min"


def test_get_form(client):
    resp = client.get("/api/forms/water-tank")
    assert resp.status_code == 200
    data = resp.json()
    assert data["title"] == "Tanques de Armazenamento de Água"
    assert [s["section_id"] for s in data["sections"]][0] == "general"


def test_get_unknown_form(client):
    resp = client.get("/api/forms/dry-pipe")
    assert resp.status_code == 404
    assert resp.json() == {"message": "Formulário desconhecido: dry-pipe", "code": "form_not_found"}


# ── Validation ────────────────────────────────────────────────────────────


def test_validate_reports_missing_and_bad_values(client):
    resp = client.post("/api/forms/weekly-pump/validate", json={
        "values": {"propertyName": "Depósito", "date": "31/02/2024", "pump_condition": "talvez"},
    })
    assert resp.status_code == 200
    data = resp.json()
    assert data["valid"] is False
    assert data["missing_fields"] == ["propertyAddress", "inspector", "inspectorSignature", "clientSignature"]
    assert set(data["field_errors"]) == {"date", "pump_condition"}


def test_validate_hides_sections_by_frequency(client):
    values = {
        "propertyName": "P", "address": "A", "inspector": "I", "date": "2024-03-15",
        "frequency": "trimestral", "inspectorSignature": "I", "clientSignature": "C",
    }
    resp = client.post("/api/forms/water-tank/validate", json={"values": values, "selected_frequency": "trimestral"})
    assert resp.json()["valid"] is True


def test_validate_selected_sections(client):
    resp = client.post("/api/forms/weekly-pump/validate", json={"values": {}, "section_ids": ["pumphouse"]})
    assert resp.json()["valid"] is True


def test_malformed_body_uses_error_contract(client):
    resp = client.post("/api/forms/weekly-pump/validate", json={"values": "nope"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "invalid_payload"
    assert resp.json()["message"].startswith("Dados inválidos")


# ── Inspections ──────────────────────────────────────────────────────────


class TestInspections:
    def test_create(self, client):
        record = _inspection(client, selectedForms=["weekly-pump"])
        assert record["id"]
        assert record["status"] == "draft"
        assert record["selectedForms"] == ["weekly-pump"]

    def test_missing_parent_fields(self, client):
        resp = client.post("/api/inspections", json={"facilityName": "Depósito"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["code"] == "missing_parent_fields"
        assert "companyId" in body["message"] and "address" in body["message"]

    def test_progress_out_of_range(self, client):
        record = _inspection(client)
        resp = client.patch(f"/api/inspections/{record['id']}", json={"progress": 150})
        assert resp.status_code == 400
        assert resp.json()["code"] == "invalid_payload"

    def test_patch_and_get(self, client):
        record = _inspection(client)
        resp = client.patch(f"/api/inspections/{record['id']}", json={"progress": 50, "completedForms": ["x"]})
        assert resp.status_code == 200
        fetched = client.get(f"/api/inspections/{record['id']}").json()
        assert fetched["progress"] == 50
        assert fetched["completedForms"] == ["x"]
        assert fetched["facilityName"] == "Depósito Central"
        assert fetched["createdAt"] == record["createdAt"]

    def test_unknown_inspection(self, client):
        assert client.get("/api/inspections/nope").json()["code"] == "inspection_not_found"
        resp = client.patch("/api/inspections/nope", json={"progress": 10})
        assert resp.status_code == 404

    def test_list_and_drafts(self, client):
        first = _inspection(client)
        second = _inspection(client)
        client.patch(f"/api/inspections/{second['id']}", json={"status": "completed"})
        assert len(client.get("/api/inspections").json()) == 2
        drafts = client.get("/api/inspections/drafts").json()
        assert [d["id"] for d in drafts] == [first["id"]]
        assert [r["id"] for r in client.get("/api/inspections", params={"status": "completed"}).json()] == [
            second["id"]
        ]


# ── Archived reports ─────────────────────────────────────────────────────


class TestArchive:
    def test_create_then_replay(self, client):
        first = client.post("/api/archived-reports", json=_report())
        assert first.status_code == 201
        assert first.json()["already"] is False
        assert "pdfData" not in first.json()["report"]

        second = client.post("/api/archived-reports", json=_report())
        assert second.status_code == 200
        assert second.json()["already"] is True
        assert second.json()["id"] == first.json()["id"]
        assert len(record_mod.list_archived_reports()) == 1

    def test_different_content_is_a_new_report(self, client):
        client.post("/api/archived-reports", json=_report())
        resp = client.post("/api/archived-reports", json=_report(formData=json.dumps({"pump_condition": "sim"})))
        assert resp.status_code == 201
        assert len(record_mod.list_archived_reports()) == 2

    def test_inspection_scoped_archive(self, client):
        inspection = _inspection(client)
        path = f"/api/inspections/{inspection['id']}/archive"
        first = client.post(path, json=_report())
        assert first.status_code == 201

        # Any resubmission of the same form returns the stored report
        second = client.post(path, json=_report(formData="{}"))
        assert second.status_code == 200
        assert second.json()["id"] == first.json()["id"]

        stored = client.get(f"/api/inspections/{inspection['id']}").json()
        assert stored["status"] == "draft"
        assert stored["archivedReports"] == {"weekly-pump": first.json()["id"]}

    def test_sub_forms_under_one_parent(self, client):
        inspection = _inspection(client, selectedForms=["weekly-pump", "water-tank"])
        path = f"/api/inspections/{inspection['id']}/archive"
        pump = client.post(path, json=_report())
        tank = client.post(path, json=_report(formId="water-tank", formTitle="Tanques de Armazenamento de Água"))
        assert (pump.status_code, tank.status_code) == (201, 201)
        assert tank.json()["already"] is False
        assert tank.json()["report"]["formTitle"] == "Tanques de Armazenamento de Água"
        assert len(record_mod.list_archived_reports()) == 2

        resp = client.patch(
            f"/api/inspections/{inspection['id']}",
            json={"progress": 100, "status": "completed", "completedForms": ["weekly-pump", "water-tank"]},
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "completed"

    def test_patch_archived_parent_is_rejected(self, client):
        inspection = _inspection(client)
        client.patch(f"/api/inspections/{inspection['id']}", json={"status": "archived"})
        resp = client.patch(f"/api/inspections/{inspection['id']}", json={"progress": 10})
        assert resp.status_code == 409
        assert resp.json()["code"] == "inspection_archived"

    def test_archive_unknown_inspection(self, client):
        resp = client.post("/api/inspections/nope/archive", json=_report())
        assert resp.status_code == 404
        assert record_mod.list_archived_reports() == []

    @pytest.mark.parametrize("overrides, code", [
        ({"status": "draft"}, "invalid_status"),
        ({"inspectionDate": "ontem"}, "invalid_date"),
        ({"pdfData": "***"}, "invalid_pdf"),
    ])
    def test_rejected_payloads(self, client, overrides, code):
        resp = client.post("/api/archived-reports", json=_report(**overrides))
        assert resp.status_code == 400
        assert resp.json()["code"] == code
        assert record_mod.list_archived_reports() == []

    def test_missing_required_key(self, client):
        payload = _report()
        del payload["formData"]
        resp = client.post("/api/archived-reports", json=payload)
        assert resp.status_code == 400
        assert resp.json()["code"] == "invalid_payload"

    def test_list_by_user_without_pdf(self, client):
        client.post("/api/archived-reports", json=_report())
        client.post("/api/archived-reports", json=_report(userId="u-2"))
        reports = client.get("/api/archived-reports", params={"userId": "u-1"}).json()
        assert len(reports) == 1
        assert reports[0]["userId"] == "u-1"
        assert "pdfData" not in reports[0]
        assert len(client.get("/api/archived-reports").json()) == 2

    def test_get_report_includes_pdf(self, client):
        report_id = client.post("/api/archived-reports", json=_report()).json()["id"]
        data = client.get(f"/api/archived-reports/{report_id}").json()
        assert data["pdfData"] == PDF_B64
        assert data["general_information"]["nome_propriedade"] == "Depósito Central"

    def test_download_pdf(self, client):
        report_id = client.post("/api/archived-reports", json=_report()).json()["id"]
        resp = client.get(f"/api/archived-reports/{report_id}/pdf")
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/pdf"
        assert "Inspecao_Semanal_de_Bomba_2024-03-15.pdf" in resp.headers["content-disposition"]
        assert resp.content.startswith(b"%PDF")

    def test_download_without_pdf(self, client):
        report_id = client.post("/api/archived-reports", json=_report(pdfData="")).json()["id"]
        resp = client.get(f"/api/archived-reports/{report_id}/pdf")
        assert resp.status_code == 404
        assert resp.json()["code"] == "pdf_not_found"

    def test_unknown_report(self, client):
        resp = client.get("/api/archived-reports/nope")
        assert resp.status_code == 404
        assert resp.json()["code"] == "report_not_found"

    def test_audit_trail(self, client):
        report_id = client.post("/api/archived-reports", json=_report()).json()["id"]
        client.post("/api/archived-reports", json=_report())
        actions = [e.action for e in audit_mod.get_entries_for_report(report_id)]
        assert actions == [audit_mod.ARCHIVE_REPLAYED, audit_mod.REPORT_ARCHIVED]
        assert audit_mod.get_recent_entries(1)[0].action == audit_mod.ARCHIVE_REPLAYED
