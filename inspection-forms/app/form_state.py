"""Editing session for a single inspection form.

``FormSession`` owns one ``InspectionFormState`` and is the only thing that
mutates it: field values, frequency selection, section completion and
signature capture all go through here. Progress and the advance/archive
predicates are recomputed from the state on every call.
"""

from __future__ import annotations

from typing import Any, Callable

from app import draft_store
from app.errors import FormLockedError
from app.progress import (
    Milestone,
    can_advance,
    can_archive,
    compute_progress,
    milestone_status,
    next_section_id,
    visible_sections,
)
from app.schema import (
    ROLE_CLIENT,
    ROLE_INSPECTOR,
    STATUS_ARCHIVED,
    FormSchema,
    FormSection,
    InspectionFormState,
    SignatureBlock,
)
from app.validation import (
    CustomValidator,
    FormValidator,
    required_field_ids,
    values_for_validation,
)

FREQUENCY_FIELD = "frequency"


class SignaturePad:
    """Signature capture driven by explicit stroke events.

    The canvas widget calls ``stroke_completed`` with the rendered image each
    time the signer lifts the pen, and ``clear`` when the pad is reset.
    """

    def __init__(self, block: SignatureBlock, guard: Callable[[], None] | None = None):
        self.block = block
        self._guard = guard

    @property
    def has_content(self) -> bool:
        return bool(self.block.signature_image)

    def _before_change(self) -> None:
        if self._guard is not None:
            self._guard()

    def stroke_completed(self, image: str) -> None:
        if not image:
            return
        self._before_change()
        self.block.signature_image = image

    def clear(self) -> None:
        self._before_change()
        self.block.signature_image = None

    def set_signer(self, name: str, signer_date: str = "") -> None:
        self._before_change()
        self.block.signer_name = name
        if signer_date:
            self.block.signer_date = signer_date


class FormSession:
    def __init__(
        self,
        schema: FormSchema,
        milestones: list[Milestone],
        state: InspectionFormState | None = None,
    ) -> None:
        if state is not None and state.schema_id != schema.form_id:
            raise ValueError(f"State belongs to {state.schema_id}, not {schema.form_id}")
        self.schema = schema
        self.milestones = list(milestones)
        self.state = state or InspectionFormState(schema_id=schema.form_id)
        self.validator = FormValidator()

    # -- locking ------------------------------------------------------------

    @property
    def locked(self) -> bool:
        return self.state.status == STATUS_ARCHIVED

    def _check_unlocked(self) -> None:
        if self.locked:
            raise FormLockedError(f"Formulário {self.schema.form_id} já foi arquivado.")

    # -- mutations ----------------------------------------------------------

    def set_value(self, field_id: str, value: Any) -> None:
        """Store a value. Unknown ids are kept so the snapshot stays faithful."""
        self._check_unlocked()
        if field_id == FREQUENCY_FIELD:
            self.select_frequency(value or None)
            return
        self.state.values[field_id] = value

    def update_values(self, values: dict[str, Any]) -> None:
        for field_id, value in values.items():
            self.set_value(field_id, value)

    def select_frequency(self, frequency: str | None) -> None:
        self._check_unlocked()
        allowed = self.schema.frequency_values()
        if frequency is not None and allowed and frequency not in allowed:
            raise ValueError(f"Frequência inválida para {self.schema.form_id}: {frequency}")
        self.state.selected_frequency = frequency
        self.state.values[FREQUENCY_FIELD] = frequency or ""

    def complete_section(self, section_id: str, custom_validator: CustomValidator | None = None) -> list[str]:
        """Validate one section and mark it complete when it passes.

        Returns the full error list; empty means the section was marked.
        """
        self._check_unlocked()
        if self.schema.get_section(section_id) is None:
            raise KeyError(section_id)
        errors = self.validator.validate(
            required_field_ids(self.schema, [section_id]),
            values_for_validation(self.schema, self.state),
            dict(self.state.values),
            self.schema.field_labels(),
            custom_validator,
        )
        if not errors:
            self.state.completed_section_ids.add(section_id)
        return errors

    def signature_pad(self, role: str) -> SignaturePad:
        if role not in (ROLE_INSPECTOR, ROLE_CLIENT):
            raise ValueError(f"Unknown signature role: {role}")
        self._check_unlocked()
        return SignaturePad(self.state.signature(role), self._check_unlocked)

    # -- derived ------------------------------------------------------------

    @property
    def errors(self) -> list[str]:
        return list(self.validator.errors)

    def visible_sections(self) -> list[FormSection]:
        return visible_sections(self.schema, self.state.selected_frequency)

    def progress(self) -> int:
        return compute_progress(self.schema, self.state, self.milestones)

    def milestone_status(self) -> list[tuple[Milestone, bool]]:
        return milestone_status(self.schema, self.state, self.milestones)

    def can_advance(self, section_id: str) -> bool:
        return can_advance(self.schema, section_id, self.state)

    def next_section(self, section_id: str) -> str | None:
        return next_section_id(self.schema, section_id, self.state.selected_frequency)

    def can_archive(self) -> bool:
        return can_archive(self.schema, self.state)

    # -- drafts -------------------------------------------------------------

    @property
    def draft_key(self) -> str:
        return draft_store.draft_key_for(self.schema.title)

    def save_draft(self, current_section: str | None = None) -> dict:
        return draft_store.save_form_draft(
            self.draft_key, self.schema.form_id, self.state.to_dict(), current_section
        )

    @classmethod
    def resume(cls, schema: FormSchema, milestones: list[Milestone]) -> FormSession:
        """Open a session from the saved draft of *schema*, or a blank one."""
        draft = draft_store.load_form_draft(draft_store.draft_key_for(schema.title))
        if draft and draft.get("form_id") == schema.form_id and draft.get("state"):
            return cls(schema, milestones, InspectionFormState.from_dict(draft["state"]))
        return cls(schema, milestones)
