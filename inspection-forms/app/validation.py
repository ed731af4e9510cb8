"""Validation engine for inspection forms.

Two kinds of rule feed one error list: required fields declared by the
schema, and a caller-supplied custom validator. Errors are always
reported in full and in a stable order so the inspector can fix
everything in one pass.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Union

from app.dates import parse_date_strict
from app.errors import DateParseError
from app.schema import (
    DATE_INPUT,
    NUMERIC_INPUT,
    RADIO_TRISTATE,
    SIGNATURE,
    SINGLE_SELECT,
    FormSchema,
    InspectionFormState,
)

GENERIC_CUSTOM_ERROR = "O formulário contém itens inválidos. Revise os campos antes de continuar."
REQUIRED_MESSAGE = "Campo obrigatório não preenchido: {label}"

# A custom validator passes (True), fails generically (False) or lists
# its failures explicitly.
CustomValidatorResult = Union[bool, list[str]]
CustomValidator = Callable[[dict], CustomValidatorResult]


@dataclass(frozen=True)
class FieldError:
    field_id: str
    label: str
    message: str

    def __str__(self) -> str:
        return self.message


def is_blank(value: Any) -> bool:
    """Absent, or a string that is empty after trimming."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def humanize_field_id(field_id: str) -> str:
    """``weeklySupplyPressure`` / ``weekly_supply`` -> readable label."""
    text = re.sub(r"([A-Z])", r" \1", field_id).replace("_", " ").strip()
    text = re.sub(r"\s+", " ", text)
    return text[:1].upper() + text[1:]


def validate_required_fields(
    required_field_ids: Iterable[str],
    values: dict[str, Any],
    labels: dict[str, str] | None = None,
) -> list[FieldError]:
    """Return one error per missing required field, in ``required_field_ids`` order."""
    labels = labels or {}
    errors: list[FieldError] = []
    for field_id in required_field_ids:
        if is_blank(values.get(field_id)):
            label = labels.get(field_id) or humanize_field_id(field_id)
            errors.append(FieldError(field_id, label, REQUIRED_MESSAGE.format(label=label)))
    return errors


def run_custom_validator(validator: CustomValidator | None, form_data: dict) -> list[str]:
    """Run *validator* and normalize its tri-state result to a message list.

    ``True`` passes, ``False`` yields a single generic message, and a list
    of strings is taken as the itemized failures (an empty list passes).
    """
    if validator is None:
        return []
    result = validator(form_data)
    if result is True:
        return []
    if result is False:
        return [GENERIC_CUSTOM_ERROR]
    if isinstance(result, (list, tuple)):
        return [str(message) for message in result]
    raise TypeError(
        f"Custom validator must return bool or list[str], got {type(result).__name__}"
    )


def merge_errors(field_errors: Iterable[FieldError | str], custom_errors: Iterable[str]) -> list[str]:
    """Field errors first, then custom errors. No deduplication."""
    return [str(e) for e in field_errors] + [str(e) for e in custom_errors]


# ---------------------------------------------------------------------------
# Schema-aware helpers
# ---------------------------------------------------------------------------

def values_for_validation(schema: FormSchema, state: InspectionFormState) -> dict[str, Any]:
    """Form values plus signature fields resolved from the signature blocks.

    A signature field counts as filled only when its block has both an
    image and a signer name.
    """
    values = dict(state.values)
    for f in schema.iter_fields():
        if f.field_type == SIGNATURE and f.role:
            block = state.signature(f.role)
            values[f.field_id] = block.signer_name if block.is_complete() else ""
    return values


def required_field_ids(schema: FormSchema, section_ids: Iterable[str]) -> list[str]:
    """Required field ids of the given sections, in schema order."""
    wanted = set(section_ids)
    ids: list[str] = []
    for section in schema.sections:
        if section.section_id in wanted:
            ids.extend(section.required_field_ids())
    return ids


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    try:
        float(str(value).replace(",", "."))
    except ValueError:
        return False
    return True


def validate_field_values(schema: FormSchema, values: dict[str, Any]) -> list[FieldError]:
    """Type/format checks for fields that carry a value.

    Blank values are skipped here; required-ness is a separate pass.
    """
    errors: list[FieldError] = []
    for f in schema.iter_fields():
        value = values.get(f.field_id)
        if not is_blank(value):
            if f.field_type == NUMERIC_INPUT and not _is_number(value):
                errors.append(FieldError(f.field_id, f.label, f"{f.label} deve ser um número."))
            elif f.field_type == DATE_INPUT:
                try:
                    parse_date_strict(value)
                except DateParseError:
                    errors.append(FieldError(f.field_id, f.label, f"{f.label} deve ser uma data válida."))
            elif f.field_type in (SINGLE_SELECT, RADIO_TRISTATE) and f.options:
                if str(value) not in f.option_values():
                    allowed = ", ".join(o.label for o in f.options)
                    errors.append(FieldError(f.field_id, f.label, f"{f.label} deve ser um de: {allowed}."))

        if f.include_field is not None and f.include_field.field_type == NUMERIC_INPUT:
            companion = values.get(f.companion_id)
            if not is_blank(companion) and not _is_number(companion):
                label = f"{f.label} ({f.include_field.label})"
                errors.append(FieldError(f.companion_id, label, f"{label} deve ser um número."))
    return errors


class FormValidator:
    """Holds the error list of the latest validation attempt.

    ``errors`` is reset at the start of every attempt, so a fix that
    introduces a different error never leaves the old one behind.
    """

    def __init__(self) -> None:
        self.errors: list[str] = []

    def validate(
        self,
        required_ids: Iterable[str],
        values: dict[str, Any],
        form_data: dict,
        labels: dict[str, str] | None = None,
        custom_validator: CustomValidator | None = None,
    ) -> list[str]:
        self.errors = []
        field_errors = validate_required_fields(required_ids, values, labels)
        custom_errors = run_custom_validator(custom_validator, form_data)
        self.errors = merge_errors(field_errors, custom_errors)
        return list(self.errors)

    @property
    def ok(self) -> bool:
        return not self.errors
