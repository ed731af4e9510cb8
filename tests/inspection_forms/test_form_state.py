"""Tests for app/form_state.py — the single-form editing session."""

from __future__ import annotations

import pytest

import app.draft_store as draft_mod
from app.errors import FormLockedError
from app.form_state import FormSession
from app.schema import STATUS_ARCHIVED, InspectionFormState

SIGNATURE_IMAGE = "data:image/png;base64,iVBORw0KGgo="


@pytest.fixture()
def wet_session(registry):
    return FormSession(registry.get_schema("wet-sprinkler"), registry.milestones("wet-sprinkler"))


@pytest.fixture()
def pump_session(registry, weekly_pump_state):
    return FormSession(registry.get_schema("weekly-pump"), registry.milestones("weekly-pump"), weekly_pump_state)


# ── Values and frequency ─────────────────────────────────────────────────


def test_mismatched_state_rejected(registry):
    with pytest.raises(ValueError, match="belongs to"):
        FormSession(registry.get_schema("weekly-pump"), [], InspectionFormState("water-tank"))


def test_set_value_keeps_unknown_ids(wet_session):
    wet_session.set_value("legacyField", "x")
    assert wet_session.state.values["legacyField"] == "x"


def test_frequency_routes_through_selection(wet_session):
    wet_session.set_value("frequency", "mensal")
    assert wet_session.state.selected_frequency == "mensal"
    assert [s.section_id for s in wet_session.visible_sections()] == [
        "general", "daily", "weekly", "monthly", "observations", "signatures",
    ]

    wet_session.set_value("frequency", "")
    assert wet_session.state.selected_frequency is None


def test_frequency_outside_form_rejected(registry):
    session = FormSession(registry.get_schema("water-tank"), registry.milestones("water-tank"))
    with pytest.raises(ValueError, match="Frequência inválida"):
        session.select_frequency("semanal")
    session.select_frequency("trimestral")
    assert session.state.values["frequency"] == "trimestral"


def test_update_values_moves_progress(wet_session):
    assert wet_session.progress() == 0
    wet_session.update_values({
        "propertyName": "Depósito Central",
        "propertyAddress": "Rua X, 100",
        "inspector": "Carlos Souza",
        "date": "2024-03-15",
    })
    assert wet_session.progress() == 11
    assert wet_session.milestone_status()[0][1] is True


# ── Sections ─────────────────────────────────────────────────────────────


def test_complete_section_reports_missing(wet_session):
    errors = wet_session.complete_section("general")
    assert len(errors) == 5
    assert wet_session.errors == errors
    assert "general" not in wet_session.state.completed_section_ids


def test_complete_section_marks_when_valid(pump_session):
    assert pump_session.complete_section("pumphouse") == []
    assert "pumphouse" in pump_session.state.completed_section_ids
    assert pump_session.progress() == 75


def test_complete_section_runs_custom_validator(pump_session):
    errors = pump_session.complete_section("pumphouse", lambda data: data["pump_condition"] == "sim")
    assert len(errors) == 1
    assert "pumphouse" not in pump_session.state.completed_section_ids


def test_complete_unknown_section(pump_session):
    with pytest.raises(KeyError):
        pump_session.complete_section("nope")


def test_navigation(pump_session):
    assert pump_session.can_advance("general")
    assert pump_session.next_section("general") == "pumphouse"
    assert pump_session.can_archive()


# ── Signatures ───────────────────────────────────────────────────────────


class TestSignaturePad:
    def test_stroke_and_clear(self, wet_session):
        pad = wet_session.signature_pad("inspector")
        assert not pad.has_content
        pad.stroke_completed(SIGNATURE_IMAGE)
        assert wet_session.state.signature("inspector").signature_image == SIGNATURE_IMAGE
        pad.clear()
        assert not pad.has_content

    def test_empty_stroke_ignored(self, wet_session):
        pad = wet_session.signature_pad("client")
        pad.stroke_completed(SIGNATURE_IMAGE)
        pad.stroke_completed("")
        assert pad.has_content

    def test_set_signer_keeps_date_when_blank(self, wet_session):
        pad = wet_session.signature_pad("client")
        pad.set_signer("Ana Lima", "2024-03-15")
        pad.set_signer("Ana L. Lima")
        block = wet_session.state.signature("client")
        assert (block.signer_name, block.signer_date) == ("Ana L. Lima", "2024-03-15")

    def test_unknown_role(self, wet_session):
        with pytest.raises(ValueError):
            wet_session.signature_pad("witness")


# ── Lock ─────────────────────────────────────────────────────────────────


class TestArchivedLock:
    def test_mutations_refused(self, pump_session):
        pump_session.state.status = STATUS_ARCHIVED
        assert pump_session.locked
        with pytest.raises(FormLockedError):
            pump_session.set_value("propertyName", "Outro")
        with pytest.raises(FormLockedError):
            pump_session.complete_section("pumphouse")
        with pytest.raises(FormLockedError):
            pump_session.signature_pad("inspector")
        assert pump_session.state.values["propertyName"] == "Depósito Central"

    def test_pad_opened_before_archive_is_blocked(self, pump_session):
        pad = pump_session.signature_pad("inspector")
        pump_session.state.status = STATUS_ARCHIVED
        with pytest.raises(FormLockedError):
            pad.clear()
        assert pad.has_content


# ── Drafts ───────────────────────────────────────────────────────────────


def test_save_and_resume_draft(registry, pump_session):
    pump_session.complete_section("pumphouse")
    draft = pump_session.save_draft(current_section="pumpsystems")
    assert draft["key"] == "draft_Inspeção Semanal de Bomba"
    assert draft["property_name"] == "Depósito Central"

    resumed = FormSession.resume(registry.get_schema("weekly-pump"), registry.milestones("weekly-pump"))
    assert resumed.state.to_dict() == pump_session.state.to_dict()


def test_resume_without_draft_is_blank(registry):
    session = FormSession.resume(registry.get_schema("foam-water"), registry.milestones("foam-water"))
    assert session.state.values == {}


def test_resume_ignores_draft_of_another_form(registry):
    schema = registry.get_schema("weekly-pump")
    draft_mod.save_form_draft(draft_mod.draft_key_for(schema.title), "monthly-pump", {"schema_id": "monthly-pump"})
    session = FormSession.resume(schema, registry.milestones("weekly-pump"))
    assert session.state.schema_id == "weekly-pump"
