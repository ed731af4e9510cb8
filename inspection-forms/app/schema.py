"""Data models for the Inspection Forms tool.

Form schemas (sections, fields, options) are frozen dataclasses built once
from the static definitions. Per-inspection state, signature blocks,
multi-form inspections and archived report snapshots are plain dataclasses
with the usual ``to_dict`` / ``from_dict`` pair for JSON persistence.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

# Field types
RADIO_TRISTATE = "radio-tristate"
TEXT_INPUT = "text-input"
NUMERIC_INPUT = "numeric-input"
DATE_INPUT = "date-input"
SINGLE_SELECT = "single-select"
MULTI_LINE_TEXT = "multi-line-text"
BOOLEAN_CHECKBOX = "boolean-checkbox"
SIGNATURE = "signature"
SECTION_HEADER = "section-header"
SUBSECTION_HEADER = "subsection-header"

FIELD_TYPES = frozenset({
    RADIO_TRISTATE,
    TEXT_INPUT,
    NUMERIC_INPUT,
    DATE_INPUT,
    SINGLE_SELECT,
    MULTI_LINE_TEXT,
    BOOLEAN_CHECKBOX,
    SIGNATURE,
    SECTION_HEADER,
    SUBSECTION_HEADER,
})

# Header fields carry a label only and never hold a value.
DISPLAY_ONLY_TYPES = frozenset({SECTION_HEADER, SUBSECTION_HEADER})

# Form status
STATUS_DRAFT = "draft"
STATUS_COMPLETED = "completed"
STATUS_ARCHIVED = "archived"

ROLE_INSPECTOR = "inspector"
ROLE_CLIENT = "client"
SIGNATURE_ROLES = (ROLE_INSPECTOR, ROLE_CLIENT)


@dataclass(frozen=True)
class FieldOption:
    value: str
    label: str


@dataclass(frozen=True)
class IncludeField:
    """Companion sub-field shown next to a radio answer (e.g. a psi reading)."""

    label: str
    field_type: str = NUMERIC_INPUT
    unit: str = ""


@dataclass(frozen=True)
class FormField:
    """A single field within a form section."""

    field_id: str
    field_type: str
    label: str
    required: bool = False
    options: tuple[FieldOption, ...] = ()
    include_field: IncludeField | None = None
    help_text: str = ""
    placeholder: str = ""
    unit: str = ""
    role: str = ""             # signature fields only: inspector | client

    @property
    def companion_id(self) -> str:
        """Key under which the companion sub-field value is stored."""
        return f"{self.field_id}_value"

    @property
    def holds_value(self) -> bool:
        return self.field_type not in DISPLAY_ONLY_TYPES

    def option_values(self) -> list[str]:
        return [o.value for o in self.options]

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class FormSection:
    """An ordered group of fields, optionally gated by inspection frequency."""

    section_id: str
    title: str
    fields: tuple[FormField, ...] = ()
    required_frequencies: frozenset[str] = frozenset()
    conditional_display: bool = False
    description: str = ""

    def required_field_ids(self) -> list[str]:
        return [f.field_id for f in self.fields if f.required and f.holds_value]

    def to_dict(self) -> dict:
        d = asdict(self)
        d["required_frequencies"] = sorted(self.required_frequencies)
        return d


@dataclass(frozen=True)
class FormSchema:
    """Complete, versioned description of one inspection form."""

    form_id: str
    title: str
    version: str
    sections: tuple[FormSection, ...] = ()
    description: str = ""
    frequencies: tuple[FieldOption, ...] = ()
    estimated_time: str = ""

    def iter_fields(self):
        for section in self.sections:
            yield from section.fields

    def get_section(self, section_id: str) -> FormSection | None:
        for section in self.sections:
            if section.section_id == section_id:
                return section
        return None

    def get_field(self, field_id: str) -> FormField | None:
        for f in self.iter_fields():
            if f.field_id == field_id:
                return f
        return None

    def field_labels(self) -> dict[str, str]:
        return {f.field_id: f.label for f in self.iter_fields()}

    def frequency_values(self) -> list[str]:
        return [o.value for o in self.frequencies]

    def to_dict(self) -> dict:
        return {
            "form_id": self.form_id,
            "title": self.title,
            "version": self.version,
            "description": self.description,
            "estimated_time": self.estimated_time,
            "frequencies": [asdict(o) for o in self.frequencies],
            "sections": [s.to_dict() for s in self.sections],
        }


@dataclass(frozen=True)
class FieldRef:
    """Cross-schema field reference; field ids are only unique per schema."""

    form_id: str
    field_id: str


# ---------------------------------------------------------------------------
# Per-inspection state
# ---------------------------------------------------------------------------

@dataclass
class PropertyRef:
    name: str = ""
    address: str = ""

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> PropertyRef:
        return cls(**{k: v for k, v in d.items() if k in cls.__dataclass_fields__})


@dataclass
class SignatureBlock:
    """One signer's block. Inspector and client are both required to archive."""

    role: str
    signer_name: str = ""
    signer_date: str = ""
    signature_image: str | None = None   # opaque blob reference (data URL)

    def is_complete(self) -> bool:
        return bool(self.signature_image) and bool(self.signer_name.strip())

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> SignatureBlock:
        return cls(**{k: v for k, v in d.items() if k in cls.__dataclass_fields__})


@dataclass
class InspectionFormState:
    """Mutable state of one form being filled in."""

    schema_id: str
    values: dict[str, Any] = field(default_factory=dict)
    selected_frequency: str | None = None
    completed_section_ids: set[str] = field(default_factory=set)
    company_id: str | None = None
    property_ref: PropertyRef = field(default_factory=PropertyRef)
    status: str = STATUS_DRAFT
    signatures: dict[str, SignatureBlock] = field(
        default_factory=lambda: {role: SignatureBlock(role=role) for role in SIGNATURE_ROLES}
    )
    inspection_id: str | None = None     # parent inspection, once persisted

    def signature(self, role: str) -> SignatureBlock:
        return self.signatures.setdefault(role, SignatureBlock(role=role))

    def to_dict(self) -> dict:
        return {
            "schema_id": self.schema_id,
            "values": dict(self.values),
            "selected_frequency": self.selected_frequency,
            "completed_section_ids": sorted(self.completed_section_ids),
            "company_id": self.company_id,
            "property_ref": self.property_ref.to_dict(),
            "status": self.status,
            "signatures": {role: s.to_dict() for role, s in self.signatures.items()},
            "inspection_id": self.inspection_id,
        }

    @classmethod
    def from_dict(cls, d: dict) -> InspectionFormState:
        state = cls(
            schema_id=d["schema_id"],
            values=dict(d.get("values", {})),
            selected_frequency=d.get("selected_frequency"),
            completed_section_ids=set(d.get("completed_section_ids", [])),
            company_id=d.get("company_id"),
            property_ref=PropertyRef.from_dict(d.get("property_ref", {})),
            status=d.get("status", STATUS_DRAFT),
            inspection_id=d.get("inspection_id"),
        )
        for role, block in d.get("signatures", {}).items():
            state.signatures[role] = SignatureBlock.from_dict(block)
        return state


@dataclass
class MultiFormInspection:
    """A visit covering several independently-schemaed sub-forms."""

    inspection_id: str | None = None
    selected_sub_form_ids: list[str] = field(default_factory=list)
    completed_sub_form_ids: set[str] = field(default_factory=set)
    facility_name: str = ""
    address: str = ""
    company_id: str | None = None
    inspection_date: str = ""
    status: str = STATUS_DRAFT

    def to_dict(self) -> dict:
        d = asdict(self)
        d["completed_sub_form_ids"] = sorted(self.completed_sub_form_ids)
        return d

    @classmethod
    def from_dict(cls, d: dict) -> MultiFormInspection:
        filtered = {k: v for k, v in d.items() if k in cls.__dataclass_fields__}
        inspection = cls(**filtered)
        inspection.completed_sub_form_ids = set(d.get("completed_sub_form_ids", []))
        return inspection


@dataclass
class ArchivedReportRecord:
    """Immutable point-in-time snapshot stored by the records backend."""

    id: str
    user_id: str
    form_title: str
    property_name: str
    property_address: str
    inspection_date: str
    form_data: str            # JSON-serialized raw form
    signatures: str           # JSON-serialized signature blocks
    pdf_data: str = ""        # base64
    status: str = STATUS_ARCHIVED
    general_information: dict = field(default_factory=dict)
    inspection_id: str | None = None
    form_id: str = ""
    fingerprint: str = ""
    archived_at: str = ""

    def to_dict(self) -> dict:
        return asdict(self)

    def to_api(self, include_pdf: bool = True) -> dict:
        """camelCase representation used on the wire."""
        d = {
            "id": self.id,
            "userId": self.user_id,
            "formTitle": self.form_title,
            "propertyName": self.property_name,
            "propertyAddress": self.property_address,
            "inspectionDate": self.inspection_date,
            "formData": self.form_data,
            "signatures": self.signatures,
            "status": self.status,
            "general_information": dict(self.general_information),
            "inspectionId": self.inspection_id,
            "formId": self.form_id,
            "archivedAt": self.archived_at,
        }
        if include_pdf:
            d["pdfData"] = self.pdf_data
        return d

    @classmethod
    def from_dict(cls, d: dict) -> ArchivedReportRecord:
        return cls(**{k: v for k, v in d.items() if k in cls.__dataclass_fields__})


@dataclass
class AuditEntry:
    """A single audit trail entry."""

    timestamp: str
    action: str                # report_archived | archive_replayed
    report_id: str = ""
    inspection_id: str = ""
    details: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> AuditEntry:
        return cls(**{k: v for k, v in d.items() if k in cls.__dataclass_fields__})
