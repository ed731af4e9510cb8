"""Tests for app/multi_form.py — parent inspection and sub-form progress."""

from __future__ import annotations

import pytest

from app.draft_store import SessionCache
from app.errors import FormLockedError, MissingParentFieldsError
from app.multi_form import SELECTION_CACHE_KEY, MultiFormOrchestrator, estimated_minutes
from app.notifications import TONE_ERROR, RecordingNotifier
from app.schema import STATUS_COMPLETED, STATUS_DRAFT, MultiFormInspection

FOUR_FORMS = ["wet-sprinkler", "weekly-pump", "monthly-pump", "water-tank"]


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def orchestrator(registry, fake_client, notifier):
    inspection = MultiFormInspection(
        inspection_id="insp-1",
        facility_name="Depósito Central",
        address="Rua X, 100",
        company_id="c-1",
    )
    orch = MultiFormOrchestrator(registry, fake_client, notifier, inspection=inspection)
    orch.select_forms(FOUR_FORMS)
    return orch


# ── Selection ────────────────────────────────────────────────────────────


class TestSelection:
    def test_select_is_idempotent(self, orchestrator):
        orchestrator.select_forms(FOUR_FORMS)
        first = list(orchestrator.inspection.selected_sub_form_ids)
        orchestrator.select_forms(FOUR_FORMS)
        assert orchestrator.inspection.selected_sub_form_ids == first == FOUR_FORMS

    def test_duplicates_collapse_in_order(self, orchestrator):
        orchestrator.select_forms(["water-tank", "weekly-pump", "water-tank"])
        assert orchestrator.inspection.selected_sub_form_ids == ["water-tank", "weekly-pump"]

    def test_unknown_form_rejected(self, orchestrator):
        with pytest.raises(ValueError, match="dry-pipe"):
            orchestrator.select_forms(["weekly-pump", "dry-pipe"])
        assert orchestrator.inspection.selected_sub_form_ids == FOUR_FORMS

    def test_selection_survives_reload(self, registry, fake_client, notifier, orchestrator):
        reloaded = MultiFormOrchestrator(registry, fake_client, notifier)
        assert reloaded.inspection.selected_sub_form_ids == FOUR_FORMS

    def test_cached_unknown_ids_dropped(self, registry, fake_client, notifier):
        SessionCache().set(SELECTION_CACHE_KEY, ["weekly-pump", "retired-form"])
        orch = MultiFormOrchestrator(registry, fake_client, notifier)
        assert orch.inspection.selected_sub_form_ids == ["weekly-pump"]

    def test_clear_selection(self, orchestrator):
        orchestrator.clear_selection()
        assert orchestrator.inspection.selected_sub_form_ids == []
        assert SessionCache().get(SELECTION_CACHE_KEY) is None


# ── Parent inspection ────────────────────────────────────────────────────


class TestParentInspection:
    def test_missing_fields_listed(self, registry, fake_client, notifier):
        orch = MultiFormOrchestrator(registry, fake_client, notifier,
                                     inspection=MultiFormInspection(facility_name="Depósito"))
        assert orch.missing_parent_fields() == ["companyId", "address"]
        with pytest.raises(MissingParentFieldsError) as exc:
            orch.create_or_update_parent()
        assert exc.value.missing == ["companyId", "address"]
        assert fake_client.created == []

    def test_create_then_update(self, registry, fake_client, notifier):
        inspection = MultiFormInspection(facility_name="Depósito", address="Rua X", company_id="c-1")
        orch = MultiFormOrchestrator(registry, fake_client, notifier, inspection=inspection)
        orch.select_forms(["weekly-pump"])

        assert orch.create_or_update_parent() == "insp-1"
        assert fake_client.created[0]["selectedForms"] == ["weekly-pump"]
        assert fake_client.created[0]["status"] == STATUS_DRAFT

        assert orch.create_or_update_parent() == "insp-1"
        assert len(fake_client.created) == 1
        assert fake_client.patches[0][0] == "insp-1"


# ── Progress ─────────────────────────────────────────────────────────────


class TestProgress:
    def test_one_of_four(self, orchestrator, fake_client):
        assert orchestrator.mark_sub_form_complete("weekly-pump") is True
        assert orchestrator.progress == 25
        assert fake_client.patches[-1] == ("insp-1", {
            "progress": 25,
            "status": STATUS_DRAFT,
            "completedForms": ["weekly-pump"],
        })

    def test_all_four_completes_inspection(self, orchestrator, fake_client):
        for form_id in FOUR_FORMS:
            orchestrator.mark_sub_form_complete(form_id)
        assert orchestrator.progress == 100
        assert fake_client.patches[-1][1]["status"] == STATUS_COMPLETED
        assert orchestrator.inspection.status == STATUS_COMPLETED
        assert orchestrator.next_pending() is None

    def test_completed_inspection_is_locked(self, orchestrator):
        for form_id in FOUR_FORMS:
            orchestrator.mark_sub_form_complete(form_id)
        with pytest.raises(FormLockedError):
            orchestrator.select_forms(["weekly-pump"])
        with pytest.raises(FormLockedError):
            orchestrator.mark_sub_form_complete("weekly-pump")

    def test_rounding_half_up(self, registry, fake_client, notifier):
        orch = MultiFormOrchestrator(registry, fake_client, notifier,
                                     inspection=MultiFormInspection(inspection_id="i"))
        orch.select_forms(["wet-sprinkler", "weekly-pump", "water-tank"])
        orch.mark_sub_form_complete("weekly-pump")
        assert orch.progress == 33
        orch.mark_sub_form_complete("water-tank")
        assert orch.progress == 67

    def test_marking_twice_is_harmless(self, orchestrator):
        orchestrator.mark_sub_form_complete("weekly-pump")
        orchestrator.mark_sub_form_complete("weekly-pump")
        assert orchestrator.progress == 25

    def test_unselected_form_rejected(self, orchestrator):
        with pytest.raises(ValueError, match="não selecionado"):
            orchestrator.mark_sub_form_complete("foam-water")

    def test_deselected_completion_not_counted(self, orchestrator):
        orchestrator.mark_sub_form_complete("weekly-pump")
        orchestrator.select_forms(["wet-sprinkler", "water-tank"])
        assert orchestrator.progress == 0
        assert orchestrator.is_complete("weekly-pump")

    def test_failed_save_keeps_local_mark(self, orchestrator, fake_client, notifier):
        fake_client.fail_patches = True
        assert orchestrator.mark_sub_form_complete("weekly-pump") is False
        assert orchestrator.is_complete("weekly-pump")
        assert orchestrator.progress == 25
        assert notifier.notifications[-1].tone == TONE_ERROR
        assert notifier.notifications[-1].message == "Servidor indisponível [unavailable]"

        fake_client.fail_patches = False
        assert orchestrator.save_progress() is True
        assert fake_client.patches[-1][1]["progress"] == 25

    def test_failed_final_save_leaves_status_draft(self, orchestrator, fake_client):
        for form_id in FOUR_FORMS[:3]:
            orchestrator.mark_sub_form_complete(form_id)
        fake_client.fail_patches = True
        orchestrator.mark_sub_form_complete(FOUR_FORMS[3])
        assert orchestrator.progress == 100
        assert orchestrator.inspection.status == STATUS_DRAFT

    def test_save_without_parent(self, registry, fake_client, notifier):
        orch = MultiFormOrchestrator(registry, fake_client, notifier)
        orch.select_forms(["weekly-pump"])
        assert orch.mark_sub_form_complete("weekly-pump") is False
        assert fake_client.patches == []
        assert notifier.tones() == [TONE_ERROR]


# ── Derived ──────────────────────────────────────────────────────────────


def test_estimated_minutes():
    assert estimated_minutes("15-20 min") == 20
    assert estimated_minutes("10 min") == 10
    assert estimated_minutes("") == 0


def test_total_estimated_time(orchestrator):
    assert orchestrator.total_estimated_minutes() == 20 + 15 + 20 + 30


def test_next_pending_follows_selection_order(orchestrator):
    orchestrator.mark_sub_form_complete("wet-sprinkler")
    assert orchestrator.next_pending() == "weekly-pump"


def test_additional_notes(orchestrator):
    orchestrator.mark_sub_form_complete("water-tank")
    notes = orchestrator.additional_notes()
    assert notes.startswith("Formulários selecionados: Sistema de Sprinklers de Tubo Molhado")
    assert notes.endswith("Progresso: 1/4 formulários concluídos")
