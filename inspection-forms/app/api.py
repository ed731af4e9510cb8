"""FastAPI backend for the Inspection Forms tool.

Provides endpoints for listing inspection forms and their schemas,
validating form values, managing parent inspections and archiving
report snapshots (idempotently) with their generated PDFs.

Every failure answers with ``{"message": ..., "code": ...}``.

Part of the FireSafe ITM tool suite.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from app import audit_log, record_store
from app.dates import parse_date_strict
from app.errors import DateParseError
from app.form_definitions import build_default_registry
from app.progress import visible_section_ids
from app.schema import STATUS_ARCHIVED, STATUS_DRAFT
from app.validation import required_field_ids, validate_field_values, validate_required_fields
from shared.pdf_renderer import decode_base64_pdf, report_filename

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
logging.getLogger("multipart").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

app = FastAPI(title="Inspection Forms API")

registry = build_default_registry()


class ApiError(Exception):
    def __init__(self, status_code: int, message: str, code: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code


@app.exception_handler(ApiError)
async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message, "code": exc.code})


@app.exception_handler(RequestValidationError)
async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"Dados inválidos: {where} - {first.get('msg', '')}".strip(" -")
    return JSONResponse(status_code=400, content={"message": message, "code": "invalid_payload"})


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class ValidateRequest(BaseModel):
    """Values of one form, plus the frequency that decides visible sections."""

    values: dict[str, Any]
    selected_frequency: str | None = None
    section_ids: list[str] | None = None


class InspectionCreate(BaseModel):
    companyId: str | None = None
    facilityName: str = ""
    address: str = ""
    inspectionDate: str = ""
    selectedForms: list[str] = []
    completedForms: list[str] = []
    progress: int = Field(0, ge=0, le=100)
    status: str = STATUS_DRAFT
    additionalNotes: str = ""


class InspectionPatch(BaseModel):
    companyId: str | None = None
    facilityName: str | None = None
    address: str | None = None
    inspectionDate: str | None = None
    selectedForms: list[str] | None = None
    completedForms: list[str] | None = None
    progress: int | None = Field(None, ge=0, le=100)
    status: str | None = None
    additionalNotes: str | None = None


class ArchiveRequest(BaseModel):
    userId: str
    formTitle: str
    formId: str = ""
    propertyName: str = ""
    propertyAddress: str = ""
    inspectionDate: str
    formData: str
    signatures: str
    pdfData: str = ""
    status: str = STATUS_ARCHIVED
    general_information: dict[str, Any] = {}


# ---------------------------------------------------------------------------
# Endpoints: forms
# ---------------------------------------------------------------------------

@app.get("/api/forms")
def list_forms() -> list[dict[str, Any]]:
    """List every inspection form with its metadata."""
    return [
        {
            "form_id": s.form_id,
            "title": s.title,
            "description": s.description,
            "version": s.version,
            "estimated_time": s.estimated_time,
            "frequencies": s.frequency_values(),
        }
        for s in registry.list_schemas()
    ]


def _schema_or_404(form_id: str):
    schema = registry.get_schema(form_id)
    if schema is None:
        raise ApiError(404, f"Formulário desconhecido: {form_id}", "form_not_found")
    return schema


@app.get("/api/forms/{form_id}")
def get_form(form_id: str) -> dict[str, Any]:
    return _schema_or_404(form_id).to_dict()


@app.post("/api/forms/{form_id}/validate")
def validate_form(form_id: str, request: ValidateRequest) -> dict[str, Any]:
    """Required-field and field-format checks for the visible sections."""
    schema = _schema_or_404(form_id)
    section_ids = request.section_ids
    if section_ids is None:
        section_ids = visible_section_ids(schema, request.selected_frequency)
    required = validate_required_fields(
        required_field_ids(schema, section_ids), request.values, schema.field_labels()
    )
    field_errors = validate_field_values(schema, request.values)
    errors = [str(e) for e in required] + [str(e) for e in field_errors]
    return {
        "form_id": form_id,
        "valid": not errors,
        "errors": errors,
        "missing_fields": [e.field_id for e in required],
        "field_errors": {e.field_id: e.message for e in field_errors},
    }


# ---------------------------------------------------------------------------
# Endpoints: inspections
# ---------------------------------------------------------------------------

@app.post("/api/inspections", status_code=201)
def create_inspection(request: InspectionCreate) -> dict[str, Any]:
    missing = [
        name for name in ("companyId", "facilityName", "address")
        if not (getattr(request, name) or "").strip()
    ]
    if missing:
        raise ApiError(400, "Campos obrigatórios ausentes: " + ", ".join(missing), "missing_parent_fields")
    record = record_store.create_inspection(request.model_dump())
    logger.info("Inspection %s created for %s", record["id"], record["facilityName"])
    return record


@app.get("/api/inspections")
def list_inspections(status: str | None = None) -> list[dict[str, Any]]:
    return record_store.list_inspections(status)


@app.get("/api/inspections/drafts")
def list_draft_inspections() -> list[dict[str, Any]]:
    return record_store.list_inspections(STATUS_DRAFT)


def _inspection_or_404(inspection_id: str) -> dict:
    record = record_store.get_inspection(inspection_id)
    if record is None:
        raise ApiError(404, f"Inspeção não encontrada: {inspection_id}", "inspection_not_found")
    return record


@app.get("/api/inspections/{inspection_id}")
def get_inspection(inspection_id: str) -> dict[str, Any]:
    return _inspection_or_404(inspection_id)


@app.patch("/api/inspections/{inspection_id}")
def patch_inspection(inspection_id: str, request: InspectionPatch) -> dict[str, Any]:
    record = _inspection_or_404(inspection_id)
    if record.get("status") == STATUS_ARCHIVED:
        raise ApiError(409, "Inspeção arquivada não pode ser alterada.", "inspection_archived")
    changes = request.model_dump(exclude_unset=True)
    return record_store.update_inspection(inspection_id, changes)


# ---------------------------------------------------------------------------
# Endpoints: archived reports
# ---------------------------------------------------------------------------

def _archive(request: ArchiveRequest, inspection_id: str | None) -> JSONResponse:
    if request.status != STATUS_ARCHIVED:
        raise ApiError(400, f"Status inválido para arquivamento: {request.status}", "invalid_status")
    try:
        parse_date_strict(request.inspectionDate)
    except DateParseError:
        raise ApiError(400, f"Data de inspeção inválida: {request.inspectionDate}", "invalid_date")
    if request.pdfData:
        try:
            decode_base64_pdf(request.pdfData)
        except ValueError:
            raise ApiError(400, "PDF inválido.", "invalid_pdf")

    record, already = record_store.archive_report(request.model_dump(), inspection_id)
    if already:
        audit_log.log_action(audit_log.ARCHIVE_REPLAYED, record.id, inspection_id)
        logger.info("Archive replay for report %s", record.id)
    else:
        audit_log.log_action(
            audit_log.REPORT_ARCHIVED, record.id, inspection_id,
            {"form_title": record.form_title, "user_id": record.user_id},
        )
        logger.info("Report %s archived (%s)", record.id, record.form_title)
    return JSONResponse(
        status_code=200 if already else 201,
        content={"already": already, "id": record.id, "report": record.to_api(include_pdf=False)},
    )


@app.post("/api/archived-reports")
def create_archived_report(request: ArchiveRequest) -> JSONResponse:
    return _archive(request, None)


@app.post("/api/inspections/{inspection_id}/archive")
def archive_inspection(inspection_id: str, request: ArchiveRequest) -> JSONResponse:
    _inspection_or_404(inspection_id)
    return _archive(request, inspection_id)


@app.get("/api/archived-reports")
def list_archived_reports(user_id: str | None = Query(None, alias="userId")) -> list[dict[str, Any]]:
    return [r.to_api(include_pdf=False) for r in record_store.list_archived_reports(user_id)]


def _report_or_404(report_id: str):
    report = record_store.get_archived_report(report_id)
    if report is None:
        raise ApiError(404, f"Relatório não encontrado: {report_id}", "report_not_found")
    return report


@app.get("/api/archived-reports/{report_id}")
def get_archived_report(report_id: str) -> dict[str, Any]:
    return _report_or_404(report_id).to_api()


@app.get("/api/archived-reports/{report_id}/pdf")
def download_archived_report_pdf(report_id: str) -> Response:
    report = _report_or_404(report_id)
    if not report.pdf_data:
        raise ApiError(404, "Relatório sem PDF.", "pdf_not_found")
    filename = report_filename(report.form_title, parse_date_strict(report.inspection_date))
    return Response(
        content=decode_base64_pdf(report.pdf_data),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
