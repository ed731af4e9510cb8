"""Archive workflow: validate, render, persist, reconcile.

One ``ArchiveWorkflow.run()`` call walks the states

    idle -> validating -> generating_pdf -> persisting -> reconciling
         -> succeeded | already_archived | failed

strictly in that order and always returns an ``ArchiveOutcome``; nothing
escapes to the caller. Every failure leaves the form state exactly as it
was so the inspector can retry without re-entering data. Only a
reconciled success touches caches and drafts, locks the form and
navigates away.
"""

from __future__ import annotations

import base64
import json
import logging
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable

from app import draft_store
from app.archive_client import ARCHIVED_REPORTS_PATH, INSPECTIONS_PATH, RecordsClient, error_from_response
from app.config import load_settings
from app.errors import PersistenceError
from app.form_state import FormSession
from app.general_info import (
    build_general_information,
    build_legacy_general_info,
    resolve_signatures,
    source_for,
)
from app.notifications import (
    TONE_ERROR,
    TONE_INFO,
    TONE_PROGRESS,
    TONE_SUCCESS,
    Notification,
    Notifier,
    summarize_errors,
)
from app.progress import visible_section_ids
from app.report import build_document, render_pdf
from app.schema import STATUS_ARCHIVED
from app.validation import CustomValidator, required_field_ids, values_for_validation
from shared.pdf_renderer import InspectionDocument

logger = logging.getLogger(__name__)

IDLE = "idle"
VALIDATING = "validating"
GENERATING_PDF = "generating_pdf"
PERSISTING = "persisting"
RECONCILING = "reconciling"
SUCCEEDED = "succeeded"
ALREADY_ARCHIVED = "already_archived"
FAILED = "failed"

TERMINAL_STATES = frozenset({SUCCEEDED, ALREADY_ARCHIVED, FAILED})

GENERIC_ARCHIVE_ERROR = "Não foi possível arquivar o relatório."
STEP_COUNT = 3

Renderer = Callable[[InspectionDocument], bytes]


@dataclass
class ArchiveOutcome:
    state: str
    errors: list[str] = field(default_factory=list)
    message: str = ""
    code: str | None = None
    report_id: str | None = None
    record: dict | None = None

    @property
    def succeeded(self) -> bool:
        return self.state in (SUCCEEDED, ALREADY_ARCHIVED)

    @property
    def already_archived(self) -> bool:
        return self.state == ALREADY_ARCHIVED


def archive_path(inspection_id: str | None) -> str:
    """Inspection-scoped endpoint when the inspection exists, else create."""
    if inspection_id:
        return f"{INSPECTIONS_PATH}/{inspection_id}/archive"
    return ARCHIVED_REPORTS_PATH


class ArchiveWorkflow:
    def __init__(
        self,
        session: FormSession,
        client: RecordsClient,
        notifier: Notifier,
        renderer: Renderer = render_pdf,
        custom_validator: CustomValidator | None = None,
        user_id: str | None = None,
        company_name: str | None = None,
        company_logo: str | None = None,
        sleep: Callable[[float], None] = time.sleep,
        today: date | None = None,
    ) -> None:
        self.session = session
        self.client = client
        self.notifier = notifier
        self.renderer = renderer
        self.custom_validator = custom_validator
        settings = load_settings()
        self.user_id = user_id or settings["default_user_id"]
        self.company_name = company_name or settings["default_company_name"]
        self.company_logo = company_logo
        self.logo_config = dict(settings["pdf_branding"])
        self.result_delay = float(settings["archive_result_delay"])
        self.navigate_delay = float(settings["archive_navigate_delay"])
        self.reports_path = settings["reports_path"]
        self._sleep = sleep
        self._today = today
        self.state = IDLE
        self.history: list[str] = [IDLE]

    @property
    def busy(self) -> bool:
        """True while an attempt is between idle and a terminal state."""
        return self.state not in TERMINAL_STATES and self.state != IDLE

    def _enter(self, state: str) -> None:
        self.state = state
        self.history.append(state)

    def _step(self, number: int, message: str) -> None:
        self.notifier.notify(Notification(f"Etapa {number}/{STEP_COUNT}", message, TONE_PROGRESS))

    def _fail(self, title: str, message: str, errors: list[str] | None = None, code: str | None = None) -> ArchiveOutcome:
        self._enter(FAILED)
        self.notifier.notify(Notification(title, message, TONE_ERROR))
        return ArchiveOutcome(FAILED, errors=list(errors or [message]), message=message, code=code)

    # -- steps --------------------------------------------------------------

    def _validate(self) -> list[str]:
        schema, state = self.session.schema, self.session.state
        visible = visible_section_ids(schema, state.selected_frequency)
        return self.session.validator.validate(
            required_field_ids(schema, visible),
            values_for_validation(schema, state),
            dict(state.values),
            schema.field_labels(),
            self.custom_validator,
        )

    def _frequency_label(self) -> str:
        frequency = self.session.state.selected_frequency
        for option in self.session.schema.frequencies:
            if option.value == frequency:
                return option.label
        return ""

    def _build_payload(self) -> dict[str, Any]:
        """Render the PDF and assemble the archive request body."""
        schema, state = self.session.schema, self.session.state
        source = source_for(state, schema.title, self.company_name, self._frequency_label())
        general_information = build_general_information(source, self._today)
        inspection_date = general_information["data_inspecao"]
        signatures = resolve_signatures(state, inspection_date)
        document = build_document(
            schema,
            state,
            build_legacy_general_info(source),
            general_information,
            signatures,
            company_name=self.company_name,
            company_logo=self.company_logo,
            logo_config=self.logo_config,
        )
        pdf_bytes = self.renderer(document)
        return {
            "userId": self.user_id,
            "formId": schema.form_id,
            "formTitle": schema.title,
            "propertyName": general_information["nome_propriedade"],
            "propertyAddress": general_information["endereco"],
            "inspectionDate": inspection_date,
            "formData": json.dumps(state.values, ensure_ascii=False, default=str, sort_keys=True),
            "signatures": json.dumps(signatures, ensure_ascii=False, sort_keys=True),
            "pdfData": base64.b64encode(pdf_bytes).decode("ascii"),
            "status": STATUS_ARCHIVED,
            "general_information": general_information,
        }

    def _reconcile(self, body: dict) -> ArchiveOutcome:
        already = bool(body.get("already"))
        record = body.get("report") if isinstance(body.get("report"), dict) else None
        report_id = body.get("id") or (record or {}).get("id")

        try:
            self.client.invalidate_archived_reports()
        except Exception:
            logger.exception("Could not invalidate the archived reports cache")
        try:
            draft_store.delete_form_draft(self.session.draft_key)
        except OSError:
            logger.exception("Could not delete the draft %s", self.session.draft_key)
        self.session.state.status = STATUS_ARCHIVED
        self._step(3, "Finalizando...")

        if already:
            self._enter(ALREADY_ARCHIVED)
            message = "Este relatório já havia sido arquivado anteriormente."
            notice = Notification("Relatório já arquivado", message, TONE_INFO)
        else:
            self._enter(SUCCEEDED)
            message = "O relatório foi gerado e arquivado com sucesso."
            notice = Notification("Relatório arquivado", message, TONE_SUCCESS)
        logger.info("Archive of %s finished: %s (report %s)", self.session.schema.form_id, self.state, report_id)

        self._sleep(self.result_delay)
        self.notifier.notify(notice)
        self._sleep(self.navigate_delay)
        self.notifier.navigate(self.reports_path)
        return ArchiveOutcome(self.state, message=message, report_id=report_id, record=record)

    # -- entry point --------------------------------------------------------

    def run(self) -> ArchiveOutcome:
        self.state = IDLE
        self.history = [IDLE]

        self._enter(VALIDATING)
        try:
            errors = self._validate()
        except Exception as exc:
            logger.exception("Validation of %s raised", self.session.schema.form_id)
            return self._fail("Erro na Validação", str(exc) or type(exc).__name__)
        if errors:
            return self._fail("Formulário Incompleto", summarize_errors(errors), errors)

        self._enter(GENERATING_PDF)
        self._step(1, "Gerando PDF...")
        try:
            payload = self._build_payload()
        except Exception as exc:
            logger.exception("Renderer failed while archiving %s", self.session.schema.form_id)
            return self._fail("Erro na Geração do PDF", str(exc) or type(exc).__name__)

        self._enter(PERSISTING)
        self._step(2, "Arquivando relatório...")
        try:
            response = self.client.post(archive_path(self.session.state.inspection_id), payload)
            if not response.ok:
                raise error_from_response(response, GENERIC_ARCHIVE_ERROR)
        except PersistenceError as exc:
            logger.exception("Archive request for %s failed", self.session.schema.form_id)
            return self._fail("Erro no Arquivamento", exc.display_message(), code=exc.code)
        except Exception:
            logger.exception("Archive request for %s raised", self.session.schema.form_id)
            return self._fail("Erro no Arquivamento", GENERIC_ARCHIVE_ERROR)

        self._enter(RECONCILING)
        body = response.body if isinstance(response.body, dict) else {}
        return self._reconcile(body)
