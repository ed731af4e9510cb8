"""Inspection Forms -- Streamlit dashboard.

Drives the form engine end to end: pick a form, choose the inspection
frequency, fill the visible sections, capture both signatures, save a
draft, download the PDF and archive the report through the records API.
The multi-form page groups several systems under one parent inspection
and tracks which of them have been archived.
Run the API (``uvicorn app.api:app``) alongside it for archiving.
"""

from __future__ import annotations

import base64
import sys
from pathlib import Path

import streamlit as st

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from app import draft_store
from app.archive import ArchiveWorkflow
from app.archive_client import RecordsClient
from app.config import setting
from app.dates import format_br_date
from app.errors import MissingParentFieldsError, PersistenceError
from app.form_definitions import build_default_registry
from app.form_state import FormSession
from app.general_info import build_general_information, build_legacy_general_info, resolve_signatures, source_for
from app.multi_form import MultiFormOrchestrator
from app.notifications import TONE_ERROR, TONE_SUCCESS, Notification
from app.report import build_document
from app.schema import (
    BOOLEAN_CHECKBOX,
    DATE_INPUT,
    DISPLAY_ONLY_TYPES,
    MULTI_LINE_TEXT,
    NUMERIC_INPUT,
    RADIO_TRISTATE,
    ROLE_CLIENT,
    ROLE_INSPECTOR,
    SIGNATURE,
    SINGLE_SELECT,
    FormField,
)
from shared.pdf_renderer import render_for_download

# -- Page config --------------------------------------------------------------

st.set_page_config(page_title="Inspection Forms -- FireSafe ITM", layout="wide")

_ICONS = {"progress": "⏳", "info": "ℹ️", "success": "✅", "error": "⚠️"}

FORM_PAGE = "form"
MULTI_PAGE = "multi"


class StreamlitNotifier:
    def notify(self, notification: Notification) -> None:
        st.toast(f"**{notification.title}** {notification.message}", icon=_ICONS.get(notification.tone))

    def navigate(self, path: str) -> None:
        st.session_state.page = path


@st.cache_resource
def _registry():
    return build_default_registry()


registry = _registry()
client = RecordsClient()
notifier = StreamlitNotifier()

# -- Session state ------------------------------------------------------------

_DEFAULTS = {"form_id": None, "session": None, "page": FORM_PAGE, "orchestrator": None, "sub_form_of": None}
for _k, _v in _DEFAULTS.items():
    if _k not in st.session_state:
        st.session_state[_k] = _v


def _open_form(form_id: str, inspection_id: str | None = None) -> None:
    """Load *form_id* from its draft; a parent id ties it to the multi-form inspection."""
    opened = FormSession.resume(registry.get_schema(form_id), registry.milestones(form_id))
    if inspection_id is not None:
        opened.state.inspection_id = inspection_id
    st.session_state.form_id = form_id
    st.session_state.session = opened
    st.session_state.sub_form_of = inspection_id


def _orchestrator() -> MultiFormOrchestrator:
    if st.session_state.orchestrator is None:
        st.session_state.orchestrator = MultiFormOrchestrator(registry, client, notifier)
    return st.session_state.orchestrator


# -- Sidebar ------------------------------------------------------------------

with st.sidebar:
    st.markdown("### Formulários")
    titles = {s.form_id: s.title for s in registry.list_schemas()}
    form_ids = list(titles)
    current_id = st.session_state.form_id if st.session_state.form_id in titles else form_ids[0]
    chosen = st.selectbox("Formulário", form_ids, index=form_ids.index(current_id), format_func=titles.get)
    if chosen != st.session_state.form_id:
        _open_form(chosen)
        st.session_state.page = FORM_PAGE
    if st.button("Inspeção multi-formulário", use_container_width=True):
        st.session_state.page = MULTI_PAGE
    if st.button("Relatórios arquivados", use_container_width=True):
        st.session_state.page = "/reports/history"

    drafts = draft_store.list_form_drafts()
    if drafts:
        st.markdown("### Rascunhos")
    for draft in drafts:
        if draft["form_id"] not in titles:
            continue
        label = f"{titles[draft['form_id']]} -- {draft['property_name']} ({format_br_date(draft['updated_at'])})"
        if st.button(label, key=f"draft:{draft['key']}", use_container_width=True):
            _open_form(draft["form_id"])
            st.session_state.page = FORM_PAGE
            st.rerun()

session: FormSession = st.session_state.session

# -- Multi-form page ----------------------------------------------------------

if st.session_state.page == MULTI_PAGE:
    orchestrator = _orchestrator()
    inspection = orchestrator.inspection
    locked = orchestrator.locked
    st.title("Inspeção Multi-Formulário")
    if locked:
        st.success("Inspeção concluída -- todos os formulários foram arquivados.")

    col_a, col_b = st.columns(2)
    with col_a:
        company_id = st.text_input("Empresa *", value=inspection.company_id or "", disabled=locked)
        facility_name = st.text_input("Instalação *", value=inspection.facility_name, disabled=locked)
    with col_b:
        address = st.text_input("Endereço *", value=inspection.address, disabled=locked)
        inspection_date = st.text_input("Data da inspeção", value=inspection.inspection_date,
                                        placeholder="AAAA-MM-DD", disabled=locked)
    if not locked:
        inspection.company_id = company_id or None
        inspection.facility_name = facility_name
        inspection.address = address
        inspection.inspection_date = inspection_date

    picked = st.multiselect("Sistemas inspecionados", form_ids, default=inspection.selected_sub_form_ids,
                            format_func=titles.get, disabled=locked)
    if not locked and picked != inspection.selected_sub_form_ids:
        orchestrator.select_forms(picked)

    selected = inspection.selected_sub_form_ids
    st.progress(
        orchestrator.progress / 100,
        text=f"{len(orchestrator.completed_ids())}/{len(selected)} formulários concluídos ({orchestrator.progress}%)",
    )
    st.caption(f"Tempo estimado total: {orchestrator.total_estimated_minutes()} min")

    col_parent, col_progress, col_clear = st.columns(3)
    with col_parent:
        if st.button("Salvar dados da instalação", use_container_width=True, disabled=locked):
            try:
                orchestrator.create_or_update_parent()
            except MissingParentFieldsError as exc:
                st.error(str(exc))
            except PersistenceError as exc:
                st.error(exc.display_message())
            else:
                notifier.notify(Notification("Inspeção salva", "Os dados da instalação foram salvos.", TONE_SUCCESS))
    with col_progress:
        if st.button("Salvar progresso", use_container_width=True,
                     disabled=locked or inspection.inspection_id is None):
            if orchestrator.save_progress():
                notifier.notify(Notification("Progresso salvo", f"Progresso: {orchestrator.progress}%", TONE_SUCCESS))
    with col_clear:
        if st.button("Limpar seleção", use_container_width=True, disabled=locked):
            orchestrator.clear_selection()
            st.rerun()

    if inspection.inspection_id is None:
        st.caption("Salve os dados da instalação para abrir os formulários.")
    pending = orchestrator.next_pending()
    for form_id in selected:
        sub_schema = registry.get_schema(form_id)
        done = orchestrator.is_complete(form_id)
        col_title, col_open = st.columns([4, 1])
        marker = " (próximo)" if form_id == pending else ""
        col_title.markdown(f"{'✅' if done else '⬜'} **{sub_schema.title}** -- {sub_schema.estimated_time}{marker}")
        if col_open.button("Abrir", key=f"open:{form_id}", disabled=inspection.inspection_id is None):
            _open_form(form_id, inspection.inspection_id)
            st.session_state.page = FORM_PAGE
            st.rerun()
    st.stop()

# -- Reports page -------------------------------------------------------------

if st.session_state.page != FORM_PAGE:
    st.title("Relatórios Arquivados")
    try:
        reports = client.list_archived_reports(setting("default_user_id"))
    except PersistenceError as exc:
        st.error(exc.display_message())
        reports = []
    for report in reports:
        st.markdown(
            f"**{report['formTitle']}** -- {report['propertyName']} ({format_br_date(report['inspectionDate'])})"
        )
    if st.button("Voltar ao formulário"):
        st.session_state.page = FORM_PAGE
        st.rerun()
    st.stop()

# -- Form page ----------------------------------------------------------------

schema = session.schema
st.title(schema.title)
st.caption(f"{schema.description} -- tempo estimado {schema.estimated_time}")
st.progress(session.progress() / 100, text=f"Progresso: {session.progress()}%")

if session.locked:
    st.info("Formulário Arquivado - Somente Leitura")

if schema.frequencies:
    options = [""] + schema.frequency_values()
    labels = {o.value: o.label for o in schema.frequencies}
    current = session.state.selected_frequency or ""
    picked = st.selectbox(
        "Frequência da Inspeção", options, index=options.index(current),
        format_func=lambda v: labels.get(v, "Selecione..."), disabled=session.locked,
    )
    if picked != current:
        session.select_frequency(picked or None)
        st.rerun()


def _render_field(f: FormField) -> None:
    key = f"{schema.form_id}:{f.field_id}"
    value = session.state.values.get(f.field_id)
    disabled = session.locked
    if f.field_type in DISPLAY_ONLY_TYPES:
        st.markdown(f"**{f.label}**")
        return
    label = f"{f.label} *" if f.required else f.label
    if f.field_type == RADIO_TRISTATE:
        values = [o.value for o in f.options]
        index = values.index(value) if value in values else None
        new = st.radio(label, values, index=index, key=key, horizontal=True, disabled=disabled,
                       format_func=lambda v: {o.value: o.label for o in f.options}[v])
        if f.include_field is not None:
            companion = st.text_input(f.include_field.label, value=str(session.state.values.get(f.companion_id) or ""),
                                      key=f"{key}:value", disabled=disabled)
            if not disabled and companion != (session.state.values.get(f.companion_id) or ""):
                session.set_value(f.companion_id, companion)
    elif f.field_type == SINGLE_SELECT:
        values = [""] + [o.value for o in f.options]
        labels = {o.value: o.label for o in f.options}
        new = st.selectbox(label, values, index=values.index(value) if value in values else 0, key=key,
                           format_func=lambda v: labels.get(v, "Selecione..."), disabled=disabled)
    elif f.field_type == MULTI_LINE_TEXT:
        new = st.text_area(label, value=value or "", key=key, disabled=disabled)
    elif f.field_type == BOOLEAN_CHECKBOX:
        new = st.checkbox(label, value=bool(value), key=key, disabled=disabled)
    elif f.field_type in (NUMERIC_INPUT, DATE_INPUT):
        new = st.text_input(label, value=str(value or ""), key=key, disabled=disabled,
                            placeholder="AAAA-MM-DD" if f.field_type == DATE_INPUT else f.unit)
    else:
        new = st.text_input(label, value=value or "", key=key, disabled=disabled, placeholder=f.placeholder)
    if not disabled and new != value and not (new in ("", None) and value is None):
        session.set_value(f.field_id, new)


def _render_signature(f: FormField) -> None:
    pad = session.signature_pad(f.role) if not session.locked else None
    block = session.state.signature(f.role)
    st.markdown(f"**{f.label}**")
    name = st.text_input("Nome", value=block.signer_name, key=f"sig:{f.role}:name", disabled=pad is None)
    signed_on = st.text_input("Data", value=block.signer_date, key=f"sig:{f.role}:date", disabled=pad is None)
    upload = st.file_uploader("Imagem da assinatura", type=["png", "jpg"], key=f"sig:{f.role}:img",
                              disabled=pad is None)
    if pad is None:
        return
    if name != block.signer_name or signed_on != block.signer_date:
        pad.set_signer(name, signed_on)
    if upload is not None:
        encoded = base64.b64encode(upload.getvalue()).decode("ascii")
        pad.stroke_completed(f"data:{upload.type};base64,{encoded}")
    if pad.has_content and st.button("Limpar assinatura", key=f"sig:{f.role}:clear"):
        pad.clear()
        st.rerun()


for section in session.visible_sections():
    done = section.section_id in session.state.completed_section_ids
    with st.expander(f"{'✅ ' if done else ''}{section.title}", expanded=not done):
        if section.description:
            st.caption(section.description)
        for f in section.fields:
            if f.field_type == SIGNATURE and f.role in (ROLE_INSPECTOR, ROLE_CLIENT):
                _render_signature(f)
            else:
                _render_field(f)
        if not session.locked and st.button("Concluir seção", key=f"complete:{section.section_id}"):
            errors = session.complete_section(section.section_id)
            for message in errors:
                st.error(message)
            if not errors:
                st.rerun()

with st.expander("Marcos de progresso"):
    for milestone, ok in session.milestone_status():
        st.markdown(f"{'✅' if ok else '⬜'} {milestone.label}")

# -- Actions ------------------------------------------------------------------

col_save, col_pdf, col_archive = st.columns(3)

with col_save:
    if st.button("Salvar Rascunho", use_container_width=True, disabled=session.locked):
        session.save_draft()
        notifier.notify(Notification("Rascunho Salvo", "O progresso do formulário foi salvo com sucesso.",
                                     TONE_SUCCESS))

with col_pdf:
    source = source_for(session.state, schema.title)
    general_information = build_general_information(source)
    document = build_document(
        schema, session.state, build_legacy_general_info(source), general_information,
        resolve_signatures(session.state, general_information["data_inspecao"]),
    )
    try:
        pdf_bytes, filename = render_for_download(document)
    except Exception as exc:
        notifier.notify(Notification("Erro na Geração", f"Não foi possível gerar o PDF: {exc}", TONE_ERROR))
    else:
        st.download_button("Gerar PDF", data=pdf_bytes, file_name=filename, mime="application/pdf",
                           use_container_width=True)

with col_archive:
    workflow = ArchiveWorkflow(session, client, notifier)
    if st.button("Enviar e Arquivar", use_container_width=True, disabled=session.locked):
        with st.spinner("Arquivando..."):
            outcome = workflow.run()
        if not outcome.succeeded:
            for message in outcome.errors:
                st.error(message)
        else:
            orchestrator = st.session_state.orchestrator
            if (
                orchestrator is not None
                and not orchestrator.locked
                and st.session_state.sub_form_of is not None
                and st.session_state.sub_form_of == orchestrator.inspection.inspection_id
                and schema.form_id in orchestrator.inspection.selected_sub_form_ids
            ):
                orchestrator.mark_sub_form_complete(schema.form_id)
                st.session_state.page = MULTI_PAGE
            st.rerun()
