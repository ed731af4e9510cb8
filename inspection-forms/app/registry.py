"""Read-only lookup table of form definitions.

The registry is constructed once at process start from the static
definitions and handed to its consumers. Every consistency problem
(duplicate form id, duplicate field id within a form, unknown field
type, missing milestones) is raised while building it, never at
request time.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable

from app.errors import ConfigurationError, DuplicateSchemaError
from app.progress import Milestone
from app.schema import FIELD_TYPES, SIGNATURE, SIGNATURE_ROLES, FieldRef, FormField, FormSchema


@dataclass(frozen=True)
class FormDefinition:
    schema: FormSchema
    milestones: tuple[Milestone, ...]


def _check_definition(definition: FormDefinition, known_frequencies: frozenset[str]) -> None:
    schema = definition.schema
    seen_sections: set[str] = set()
    seen_fields: set[str] = set()
    for section in schema.sections:
        if section.section_id in seen_sections:
            raise ConfigurationError(f"{schema.form_id}: duplicate section id {section.section_id}")
        seen_sections.add(section.section_id)
        unknown = section.required_frequencies - known_frequencies
        if unknown:
            raise ConfigurationError(
                f"{schema.form_id}/{section.section_id}: unknown frequencies {sorted(unknown)}"
            )
        for f in section.fields:
            if f.field_id in seen_fields:
                raise ConfigurationError(f"{schema.form_id}: duplicate field id {f.field_id}")
            seen_fields.add(f.field_id)
            if f.field_type not in FIELD_TYPES:
                raise ConfigurationError(f"{schema.form_id}/{f.field_id}: unknown type {f.field_type}")
            if f.field_type == SIGNATURE and f.role not in SIGNATURE_ROLES:
                raise ConfigurationError(f"{schema.form_id}/{f.field_id}: signature without role")
    if not definition.milestones:
        raise ConfigurationError(f"{schema.form_id}: no progress milestones declared")
    names = [m.name for m in definition.milestones]
    if len(names) != len(set(names)):
        raise ConfigurationError(f"{schema.form_id}: duplicate milestone names")


class SchemaRegistry:
    """Immutable ``form_id -> FormDefinition`` table."""

    def __init__(
        self,
        definitions: Iterable[FormDefinition],
        known_frequencies: Iterable[str] = (),
    ) -> None:
        frequencies = frozenset(known_frequencies)
        table: dict[str, FormDefinition] = {}
        for definition in definitions:
            form_id = definition.schema.form_id
            if form_id in table:
                raise DuplicateSchemaError(form_id)
            _check_definition(definition, frequencies)
            table[form_id] = definition
        self._definitions = MappingProxyType(table)

    def __contains__(self, form_id: object) -> bool:
        return form_id in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    def get_schema(self, form_id: str) -> FormSchema | None:
        definition = self._definitions.get(form_id)
        return definition.schema if definition else None

    def list_schemas(self) -> list[FormSchema]:
        return [d.schema for d in self._definitions.values()]

    def milestones(self, form_id: str) -> list[Milestone]:
        definition = self._definitions.get(form_id)
        return list(definition.milestones) if definition else []

    def resolve_field(self, ref: FieldRef) -> FormField | None:
        """Look a field up by (form id, field id)."""
        schema = self.get_schema(ref.form_id)
        return schema.get_field(ref.field_id) if schema else None
