"""Normalized "general information" summary embedded in archived reports.

Forms were written over several years and name the same attribute in
different ways (``propertyName`` vs ``facilityName``, ``date`` vs
``inspectionDate`` ...). Every summary key is resolved from an ordered
chain of accessors; the first one yielding a non-empty value wins. The
order of each chain is part of the report contract.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable

from app.dates import normalize_inspection_date
from app.schema import ROLE_CLIENT, ROLE_INSPECTOR, InspectionFormState, PropertyRef, SignatureBlock
from app.validation import is_blank


@dataclass(frozen=True)
class InfoSource:
    """Everything the accessors may read from."""

    values: dict[str, Any]
    form_title: str = ""
    company_name: str = ""
    frequency_label: str = ""
    property_ref: PropertyRef = field(default_factory=PropertyRef)
    signatures: dict[str, SignatureBlock] = field(default_factory=dict)


Accessor = Callable[[InfoSource], Any]


def _value(key: str) -> Accessor:
    return lambda src: src.values.get(key)


def _company(src: InfoSource) -> Any:
    return src.company_name


def _property_name(src: InfoSource) -> Any:
    return src.property_ref.name


def _property_address(src: InfoSource) -> Any:
    return src.property_ref.address


def _frequency_label(src: InfoSource) -> Any:
    return src.frequency_label


def _form_title(src: InfoSource) -> Any:
    return src.form_title


def _inspector_signer(src: InfoSource) -> Any:
    block = src.signatures.get(ROLE_INSPECTOR)
    return block.signer_name if block else None


GENERAL_INFO_CHAINS: dict[str, tuple[Accessor, ...]] = {
    "empresa": (_company, _value("companyName"), _value("empresa")),
    "nome_propriedade": (_value("propertyName"), _value("facilityName"), _property_name),
    "id_propriedade": (_value("propertyId"), _value("contractNumber")),
    "endereco": (_value("propertyAddress"), _value("address"), _property_address),
    "tipo_edificacao": (_value("buildingType"), _value("occupancyType")),
    "area_total_piso_ft2": (_value("totalFloorArea"), _value("floorArea")),
    "data_inspecao": (_value("date"), _value("inspectionDate")),
    "tipo_inspecao": (_frequency_label, _value("inspectionType"), _form_title),
    "proxima_inspecao_programada": (_value("nextInspectionDate"), _value("nextScheduledInspection")),
    "nome_inspetor": (_value("inspector"), _value("inspectorName"), _inspector_signer),
    "licenca_inspetor": (_value("inspectorLicense"), _value("licenseNumber")),
    "observacoes_adicionais": (_value("additionalNotes"), _value("observations"), _value("notes")),
    "temperatura_f": (_value("temperatureF"), _value("temperature")),
    "condicoes_climaticas": (_value("weatherConditions"), _value("weather")),
    "velocidade_vento_mph": (_value("windSpeedMph"), _value("windSpeed")),
}

NUMERIC_KEYS = frozenset({"area_total_piso_ft2", "temperatura_f", "velocidade_vento_mph"})

LEGACY_CHAINS: dict[str, tuple[Accessor, ...]] = {
    "propertyName": (_value("propertyName"), _value("facilityName")),
    "propertyAddress": (_value("propertyAddress"), _value("address")),
    "propertyPhone": (_value("propertyPhone"), _value("phone")),
    "inspector": (_value("inspector"), _value("inspectorName")),
    "date": (_value("date"), _value("inspectionDate")),
    "contractNumber": (_value("contractNumber"),),
}


def first_present(chain: tuple[Accessor, ...], source: InfoSource) -> Any:
    """Value of the first accessor that yields something non-blank, else None."""
    for accessor in chain:
        value = accessor(source)
        if not is_blank(value):
            return value
    return None


def _to_number(value: Any) -> float | int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    try:
        number = float(str(value).replace(",", "."))
    except ValueError:
        return None
    return int(number) if number.is_integer() else number


def source_for(
    state: InspectionFormState,
    form_title: str,
    company_name: str = "",
    frequency_label: str = "",
) -> InfoSource:
    return InfoSource(
        values=state.values,
        form_title=form_title,
        company_name=company_name,
        frequency_label=frequency_label,
        property_ref=state.property_ref,
        signatures=state.signatures,
    )


def build_general_information(source: InfoSource, today: date | None = None) -> dict[str, Any]:
    """Resolve every summary key. The inspection date is always canonical ISO."""
    info: dict[str, Any] = {}
    for key, chain in GENERAL_INFO_CHAINS.items():
        value = first_present(chain, source)
        if key == "data_inspecao":
            info[key] = normalize_inspection_date(value, today)
        elif key in NUMERIC_KEYS:
            info[key] = _to_number(value)
        else:
            info[key] = "" if value is None else str(value).strip()
    return info


def build_legacy_general_info(source: InfoSource) -> dict[str, str]:
    """The older flat header block still drawn at the top of every PDF."""
    info: dict[str, str] = {}
    for key, chain in LEGACY_CHAINS.items():
        value = first_present(chain, source)
        info[key] = "" if value is None else str(value).strip()
    return info


def resolve_signatures(state: InspectionFormState, inspection_date: str) -> dict[str, Any]:
    """Flatten both signature blocks for the renderer and the snapshot.

    A blank inspector name falls back to the form's inspector field; blank
    dates fall back to the inspection date.
    """
    inspector = state.signature(ROLE_INSPECTOR)
    client = state.signature(ROLE_CLIENT)
    inspector_name = inspector.signer_name.strip() or str(
        first_present((_value("inspector"), _value("inspectorName")), InfoSource(values=state.values)) or ""
    ).strip()
    return {
        "inspectorName": inspector_name,
        "inspectorDate": inspector.signer_date or inspection_date,
        "inspectorSignature": inspector.signature_image,
        "clientName": client.signer_name.strip(),
        "clientDate": client.signer_date or inspection_date,
        "clientSignature": client.signature_image,
    }
