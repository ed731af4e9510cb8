"""Multi-form inspection orchestration.

One site visit often covers several systems (sprinklers, pumps, tanks),
each with its own checklist. The orchestrator keeps the parent inspection
(company + facility) and the set of selected sub-forms, tracks which ones
are done, and pushes the aggregate progress to the backend.

Sub-form completion is one-way: there is no operation to un-complete a
sub-form, and reopening one for edits keeps it complete.
"""

from __future__ import annotations

import logging
import re

from app.archive_client import RecordsClient
from app.draft_store import SessionCache
from app.errors import FormLockedError, MissingParentFieldsError, PersistenceError
from app.notifications import TONE_ERROR, Notification, Notifier
from app.progress import round_half_up
from app.registry import SchemaRegistry
from app.schema import STATUS_COMPLETED, STATUS_DRAFT, MultiFormInspection
from app.validation import is_blank

logger = logging.getLogger(__name__)

SELECTION_CACHE_KEY = "currentInspectionForms"

_MINUTES_RE = re.compile(r"(\d+)")


def estimated_minutes(estimated_time: str) -> int:
    """Upper bound of a ``"15-20 min"`` range (``20``), 0 when absent."""
    numbers = _MINUTES_RE.findall(estimated_time or "")
    return int(numbers[-1]) if numbers else 0


class MultiFormOrchestrator:
    def __init__(
        self,
        registry: SchemaRegistry,
        client: RecordsClient,
        notifier: Notifier,
        cache: SessionCache | None = None,
        inspection: MultiFormInspection | None = None,
    ) -> None:
        self.registry = registry
        self.client = client
        self.notifier = notifier
        self.cache = cache or SessionCache()
        self.inspection = inspection or MultiFormInspection()
        if not self.inspection.selected_sub_form_ids:
            cached = self.cache.get(SELECTION_CACHE_KEY, [])
            self.inspection.selected_sub_form_ids = [i for i in cached if i in registry]

    @property
    def locked(self) -> bool:
        return self.inspection.status == STATUS_COMPLETED

    def _check_unlocked(self) -> None:
        if self.locked:
            raise FormLockedError("Inspeção concluída não pode ser alterada.")

    # -- selection ----------------------------------------------------------

    def select_forms(self, form_ids: list[str]) -> None:
        """Replace the selection. Same input twice leaves the same state."""
        self._check_unlocked()
        unknown = [f for f in form_ids if f not in self.registry]
        if unknown:
            raise ValueError(f"Formulários desconhecidos: {', '.join(unknown)}")
        selected = list(dict.fromkeys(form_ids))
        self.inspection.selected_sub_form_ids = selected
        self.cache.set(SELECTION_CACHE_KEY, selected)

    def clear_selection(self) -> None:
        self.cache.delete(SELECTION_CACHE_KEY)
        self.inspection.selected_sub_form_ids = []

    # -- parent inspection --------------------------------------------------

    def missing_parent_fields(self) -> list[str]:
        missing = []
        if is_blank(self.inspection.company_id):
            missing.append("companyId")
        if is_blank(self.inspection.facility_name):
            missing.append("facilityName")
        if is_blank(self.inspection.address):
            missing.append("address")
        return missing

    def require_parent_fields(self) -> None:
        missing = self.missing_parent_fields()
        if missing:
            raise MissingParentFieldsError(missing)

    def _parent_payload(self) -> dict:
        return {
            "companyId": self.inspection.company_id,
            "facilityName": self.inspection.facility_name,
            "address": self.inspection.address,
            "inspectionDate": self.inspection.inspection_date,
            "selectedForms": list(self.inspection.selected_sub_form_ids),
            "completedForms": sorted(self.completed_ids()),
            "progress": self.progress,
            "status": self.inspection.status,
            "additionalNotes": self.additional_notes(),
        }

    def create_or_update_parent(self) -> str:
        """Create the parent inspection, or patch it once it has an id.

        Raises MissingParentFieldsError before any request, and
        PersistenceError when the backend refuses.
        """
        self._check_unlocked()
        self.require_parent_fields()
        payload = self._parent_payload()
        if self.inspection.inspection_id is None:
            record = self.client.create_inspection(payload)
            self.inspection.inspection_id = str(record["id"])
            logger.info("Created parent inspection %s", self.inspection.inspection_id)
        else:
            self.client.patch_inspection(self.inspection.inspection_id, payload)
            logger.info("Updated parent inspection %s", self.inspection.inspection_id)
        return self.inspection.inspection_id

    # -- completion ---------------------------------------------------------

    def completed_ids(self) -> set[str]:
        return self.inspection.completed_sub_form_ids & set(self.inspection.selected_sub_form_ids)

    @property
    def progress(self) -> int:
        selected = self.inspection.selected_sub_form_ids
        if not selected:
            return 0
        return round_half_up(100 * len(self.completed_ids()) / len(selected))

    def is_complete(self, form_id: str) -> bool:
        return form_id in self.inspection.completed_sub_form_ids

    def mark_sub_form_complete(self, form_id: str) -> bool:
        """Mark *form_id* done and persist the new progress.

        The local mark is kept even when the save fails; the user is told
        and ``save_progress`` can be retried. Returns whether the save went
        through.
        """
        self._check_unlocked()
        if form_id not in self.inspection.selected_sub_form_ids:
            raise ValueError(f"Formulário não selecionado: {form_id}")
        self.inspection.completed_sub_form_ids.add(form_id)
        return self.save_progress()

    def save_progress(self) -> bool:
        progress = self.progress
        if self.inspection.inspection_id is None:
            self.notifier.notify(Notification(
                "Progresso não salvo",
                "A inspeção ainda não foi criada. Salve os dados da instalação primeiro.",
                TONE_ERROR,
            ))
            return False
        status = STATUS_COMPLETED if progress == 100 else STATUS_DRAFT
        try:
            self.client.patch_inspection(self.inspection.inspection_id, {
                "progress": progress,
                "status": status,
                "completedForms": sorted(self.completed_ids()),
            })
        except PersistenceError as exc:
            logger.exception("Could not save progress of inspection %s", self.inspection.inspection_id)
            self.notifier.notify(Notification("Erro ao salvar progresso", exc.display_message(), TONE_ERROR))
            return False
        self.inspection.status = status
        return True

    # -- derived ------------------------------------------------------------

    def next_pending(self) -> str | None:
        for form_id in self.inspection.selected_sub_form_ids:
            if form_id not in self.inspection.completed_sub_form_ids:
                return form_id
        return None

    def total_estimated_minutes(self) -> int:
        total = 0
        for form_id in self.inspection.selected_sub_form_ids:
            schema = self.registry.get_schema(form_id)
            if schema is not None:
                total += estimated_minutes(schema.estimated_time)
        return total

    def additional_notes(self) -> str:
        titles = []
        for form_id in self.inspection.selected_sub_form_ids:
            schema = self.registry.get_schema(form_id)
            titles.append(schema.title if schema else form_id)
        selected = len(self.inspection.selected_sub_form_ids)
        return (
            f"Formulários selecionados: {', '.join(titles)}\n"
            f"Progresso: {len(self.completed_ids())}/{selected} formulários concluídos"
        )
