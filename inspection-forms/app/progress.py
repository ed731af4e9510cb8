"""Section visibility, progress milestones and transition predicates.

Progress is deliberately *not* derived from the schema's ``required``
flags. Each form declares an ordered list of named milestones with its
own notion of "complete enough to proceed"; progress is the share of
milestones that currently hold. ``can_advance`` and ``can_archive`` on the
other hand look at the schema's required fields.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable

from app.schema import (
    ROLE_CLIENT,
    ROLE_INSPECTOR,
    STATUS_ARCHIVED,
    FormSchema,
    FormSection,
    InspectionFormState,
)
from app.validation import (
    FieldError,
    is_blank,
    required_field_ids,
    validate_required_fields,
    values_for_validation,
)

MilestoneCheck = Callable[[FormSchema, InspectionFormState], bool]


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (25.5 -> 26)."""
    return int(math.floor(value + 0.5))


# ---------------------------------------------------------------------------
# Visibility
# ---------------------------------------------------------------------------

def compute_section_visible(section: FormSection, selected_frequency: str | None) -> bool:
    """A conditional section shows only for the frequencies it lists.

    Sections that are not conditional, or list no frequencies, always show.
    """
    if not section.conditional_display or not section.required_frequencies:
        return True
    return selected_frequency in section.required_frequencies


def visible_sections(schema: FormSchema, selected_frequency: str | None) -> list[FormSection]:
    return [s for s in schema.sections if compute_section_visible(s, selected_frequency)]


def visible_section_ids(schema: FormSchema, selected_frequency: str | None) -> list[str]:
    return [s.section_id for s in visible_sections(schema, selected_frequency)]


# ---------------------------------------------------------------------------
# Milestones
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Milestone:
    name: str
    label: str
    check: MilestoneCheck


def fields_filled(*field_ids: str) -> MilestoneCheck:
    """Every listed value is non-blank."""
    def check(schema: FormSchema, state: InspectionFormState) -> bool:
        return all(not is_blank(state.values.get(fid)) for fid in field_ids)
    return check


def any_field_filled(*field_ids: str) -> MilestoneCheck:
    """At least one of the listed values is non-blank (legacy aliases)."""
    def check(schema: FormSchema, state: InspectionFormState) -> bool:
        return any(not is_blank(state.values.get(fid)) for fid in field_ids)
    return check


def all_of(*checks: MilestoneCheck) -> MilestoneCheck:
    def check(schema: FormSchema, state: InspectionFormState) -> bool:
        return all(c(schema, state) for c in checks)
    return check


def frequency_selected() -> MilestoneCheck:
    def check(schema: FormSchema, state: InspectionFormState) -> bool:
        return bool(state.selected_frequency)
    return check


def section_completed(section_id: str) -> MilestoneCheck:
    """The section was marked complete, or is hidden for the chosen frequency."""
    def check(schema: FormSchema, state: InspectionFormState) -> bool:
        if section_id in state.completed_section_ids:
            return True
        section = schema.get_section(section_id)
        if section is None:
            return False
        return state.selected_frequency is not None and not compute_section_visible(
            section, state.selected_frequency
        )
    return check


def signatures_captured() -> MilestoneCheck:
    def check(schema: FormSchema, state: InspectionFormState) -> bool:
        return (
            state.signature(ROLE_INSPECTOR).is_complete()
            and state.signature(ROLE_CLIENT).is_complete()
        )
    return check


def milestone_status(
    schema: FormSchema,
    state: InspectionFormState,
    milestones: list[Milestone],
) -> list[tuple[Milestone, bool]]:
    return [(m, bool(m.check(schema, state))) for m in milestones]


def compute_progress(
    schema: FormSchema,
    state: InspectionFormState,
    milestones: list[Milestone],
) -> int:
    """Percentage (0-100) of milestones that hold for *state*."""
    if not milestones:
        return 0
    done = sum(1 for _, ok in milestone_status(schema, state, milestones) if ok)
    return round_half_up(100 * done / len(milestones))


# ---------------------------------------------------------------------------
# Transition predicates
# ---------------------------------------------------------------------------

def missing_required_fields(
    schema: FormSchema,
    state: InspectionFormState,
    section_ids: list[str] | None = None,
) -> list[FieldError]:
    """Required-field errors for the given sections (default: visible ones)."""
    if section_ids is None:
        section_ids = visible_section_ids(schema, state.selected_frequency)
    return validate_required_fields(
        required_field_ids(schema, section_ids),
        values_for_validation(schema, state),
        schema.field_labels(),
    )


def can_advance(schema: FormSchema, current_section_id: str, state: InspectionFormState) -> bool:
    """True unless the current section has unmet required fields."""
    return not missing_required_fields(schema, state, [current_section_id])


def can_archive(schema: FormSchema, state: InspectionFormState) -> bool:
    """Visible required fields filled and both signature blocks complete."""
    if state.status == STATUS_ARCHIVED:
        return False
    if missing_required_fields(schema, state):
        return False
    return signatures_captured()(schema, state)


def next_section_id(
    schema: FormSchema,
    current_section_id: str,
    selected_frequency: str | None,
) -> str | None:
    """The next visible section after *current_section_id*, if any."""
    ids = visible_section_ids(schema, selected_frequency)
    if current_section_id not in ids:
        return ids[0] if ids else None
    index = ids.index(current_section_id)
    return ids[index + 1] if index + 1 < len(ids) else None
