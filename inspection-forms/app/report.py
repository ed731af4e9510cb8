"""Bridges form state to the shared PDF renderer.

``build_document`` turns a schema + state (plus the already resolved
general information and signatures) into the renderer's input;
``render_pdf`` is the default renderer collaborator of the archive
workflow and reports any failure as ``RendererError``.
"""

from __future__ import annotations

import logging
from typing import Any

from app.dates import format_br_date
from app.errors import RendererError
from app.progress import visible_sections
from app.schema import (
    BOOLEAN_CHECKBOX,
    DISPLAY_ONLY_TYPES,
    SIGNATURE,
    FormField,
    FormSchema,
    InspectionFormState,
)
from shared.pdf_renderer import (
    InspectionDocument,
    ReportItem,
    ReportSection,
    render_inspection_document,
)

logger = logging.getLogger(__name__)

# Sections whose content is already drawn elsewhere in the report.
_SKIPPED_SECTIONS = frozenset({"general", "signatures"})


def _answer(f: FormField, value: Any) -> str:
    if value is None or value == "":
        return ""
    if f.field_type == BOOLEAN_CHECKBOX:
        return "Sim" if value is True or str(value).lower() in ("true", "sim", "1") else "Não"
    for option in f.options:
        if option.value == str(value):
            return option.label
    return str(value)


def _item(f: FormField, values: dict) -> ReportItem:
    if f.field_type in DISPLAY_ONLY_TYPES:
        return ReportItem(f.label, is_header=True)
    note = ""
    if f.include_field is not None:
        companion = values.get(f.companion_id)
        if companion not in (None, ""):
            unit = f.include_field.unit
            note = f"{companion} {unit}".strip()
    return ReportItem(f.label, _answer(f, values.get(f.field_id)), note)


def build_document(
    schema: FormSchema,
    state: InspectionFormState,
    general_info: dict,
    general_information: dict,
    signatures: dict,
    company_name: str = "",
    company_logo: str | None = None,
    logo_config: dict | None = None,
) -> InspectionDocument:
    logo_config = logo_config or {}
    sections = []
    for section in visible_sections(schema, state.selected_frequency):
        if section.section_id in _SKIPPED_SECTIONS:
            continue
        items = [_item(f, state.values) for f in section.fields if f.field_type != SIGNATURE]
        if items:
            sections.append(ReportSection(section.title, items))
    display_information = dict(general_information)
    if "data_inspecao" in display_information:
        display_information["data_inspecao"] = format_br_date(display_information["data_inspecao"])
    return InspectionDocument(
        title=schema.title,
        general_info=general_info,
        general_information=display_information,
        sections=sections,
        signatures=signatures,
        company_name=company_name,
        company_logo=company_logo,
        show_company_logo=bool(logo_config.get("show_company_logo", True)),
        show_firesafe_logo=bool(logo_config.get("show_firesafe_logo", True)),
    )


def render_pdf(document: InspectionDocument) -> bytes:
    try:
        return render_inspection_document(document)
    except Exception as exc:
        logger.exception("PDF rendering failed for %s", document.title)
        raise RendererError(str(exc) or type(exc).__name__) from exc
