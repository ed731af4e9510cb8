"""Inspection report PDF rendering (fpdf2).

Takes a fully prepared ``InspectionDocument`` (no form logic here) and lays
it out: header with branding, general information, one block per checklist
section, a non-conformity summary and the signature blocks. The same input
can be rendered for download (bytes + filename) or for archiving (base64).
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
import re
import unicodedata
from dataclasses import dataclass, field
from datetime import date

from fpdf import FPDF
from fpdf.errors import FPDFException

logger = logging.getLogger(__name__)

NEGATIVE_ANSWERS = frozenset({"nao", "não"})

GENERAL_INFORMATION_LABELS = (
    ("empresa", "Empresa"),
    ("nome_propriedade", "Propriedade"),
    ("id_propriedade", "ID da Propriedade"),
    ("endereco", "Endereço"),
    ("tipo_edificacao", "Tipo de Edificação"),
    ("area_total_piso_ft2", "Área Total (ft²)"),
    ("data_inspecao", "Data da Inspeção"),
    ("tipo_inspecao", "Tipo de Inspeção"),
    ("proxima_inspecao_programada", "Próxima Inspeção"),
    ("nome_inspetor", "Inspetor"),
    ("licenca_inspetor", "Licença do Inspetor"),
    ("temperatura_f", "Temperatura (°F)"),
    ("condicoes_climaticas", "Condições Climáticas"),
    ("velocidade_vento_mph", "Vento (mph)"),
    ("observacoes_adicionais", "Observações"),
)


@dataclass
class ReportItem:
    label: str
    value: str = ""
    note: str = ""
    is_header: bool = False


@dataclass
class ReportSection:
    title: str
    items: list[ReportItem] = field(default_factory=list)


@dataclass
class InspectionDocument:
    title: str
    general_info: dict = field(default_factory=dict)
    general_information: dict = field(default_factory=dict)
    sections: list[ReportSection] = field(default_factory=list)
    signatures: dict = field(default_factory=dict)
    company_name: str = ""
    company_logo: str | None = None      # data URL
    show_company_logo: bool = True
    show_firesafe_logo: bool = True


def _latin1(text: object) -> str:
    """fpdf2 core fonts are latin-1 only."""
    return str(text).encode("latin-1", "replace").decode("latin-1")


def _decode_data_url(data_url: str) -> io.BytesIO:
    payload = data_url.split(",", 1)[1] if data_url.startswith("data:") else data_url
    return io.BytesIO(base64.b64decode(payload, validate=True))


def _display(value: object) -> str:
    if value is None or value == "":
        return "-"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def non_conformities(document: InspectionDocument) -> list[tuple[str, ReportItem]]:
    """(section title, item) for every answer recorded as "Não"."""
    found = []
    for section in document.sections:
        for item in section.items:
            if not item.is_header and item.value.strip().lower() in NEGATIVE_ANSWERS:
                found.append((section.title, item))
    return found


class _ReportPDF(FPDF):
    report_title = ""

    def footer(self):
        self.set_y(-15)
        self.set_font("Helvetica", "", 8)
        self.cell(0, 10, _latin1(f"{self.report_title} - Página {self.page_no()}"), align="R")


def _heading(pdf: FPDF, text: str) -> None:
    pdf.ln(3)
    pdf.set_font("Helvetica", "B", 12)
    pdf.set_fill_color(230, 230, 230)
    pdf.cell(0, 8, _latin1(text), fill=True, new_x="LMARGIN", new_y="NEXT")
    pdf.ln(1)


def _row(pdf: FPDF, label: str, value: str) -> None:
    pdf.set_font("Helvetica", "B", 9)
    pdf.cell(55, 6, _latin1(label))
    pdf.set_font("Helvetica", "", 9)
    pdf.multi_cell(0, 6, _latin1(value), new_x="LMARGIN", new_y="NEXT")


def _signature_block(pdf: FPDF, label: str, name: str, signed_on: str, image: str | None) -> None:
    pdf.set_font("Helvetica", "B", 10)
    pdf.cell(0, 6, _latin1(label), new_x="LMARGIN", new_y="NEXT")
    if image:
        try:
            pdf.image(_decode_data_url(image), w=50, h=20)
        except (ValueError, OSError, FPDFException) as exc:
            logger.warning("Signature image for %s could not be embedded: %s", label, exc)
            pdf.set_font("Helvetica", "I", 9)
            pdf.cell(0, 6, _latin1("[assinatura não disponível]"), new_x="LMARGIN", new_y="NEXT")
    _row(pdf, "Nome:", _display(name))
    _row(pdf, "Data:", _display(signed_on))
    pdf.ln(2)


def render_inspection_document(document: InspectionDocument) -> bytes:
    """Build the report PDF and return its bytes."""
    pdf = _ReportPDF()
    pdf.report_title = document.title
    pdf.set_auto_page_break(auto=True, margin=20)
    pdf.add_page()

    # Header
    if document.show_firesafe_logo:
        pdf.set_font("Helvetica", "B", 16)
        pdf.set_text_color(210, 4, 45)
        pdf.cell(0, 8, "FIRESAFE ITM", new_x="LMARGIN", new_y="NEXT")
        pdf.set_text_color(0, 0, 0)
    if document.show_company_logo and document.company_logo:
        try:
            pdf.image(_decode_data_url(document.company_logo), x=160, y=10, w=35)
        except (ValueError, OSError, FPDFException) as exc:
            logger.warning("Company logo could not be embedded: %s", exc)
    pdf.set_font("Helvetica", "B", 14)
    pdf.multi_cell(0, 8, _latin1(document.title), new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "", 10)
    if document.company_name:
        pdf.cell(0, 6, _latin1(document.company_name), new_x="LMARGIN", new_y="NEXT")
    pdf.cell(0, 6, _latin1("Relatório de Inspeção, Teste e Manutenção - NFPA 25"), new_x="LMARGIN", new_y="NEXT")

    # General information
    _heading(pdf, "Informações Gerais")
    if document.general_information:
        for key, label in GENERAL_INFORMATION_LABELS:
            _row(pdf, label, _display(document.general_information.get(key)))
    else:
        for key, value in document.general_info.items():
            _row(pdf, key, _display(value))

    # Checklist sections
    for section in document.sections:
        _heading(pdf, section.title)
        for item in section.items:
            if item.is_header:
                pdf.set_font("Helvetica", "BU", 10)
                pdf.multi_cell(0, 6, _latin1(item.label), new_x="LMARGIN", new_y="NEXT")
                continue
            pdf.set_font("Helvetica", "", 9)
            pdf.multi_cell(0, 5, _latin1(item.label), new_x="LMARGIN", new_y="NEXT")
            answer = _display(item.value)
            if item.note:
                answer = f"{answer} ({item.note})"
            pdf.set_font("Helvetica", "B", 9)
            pdf.cell(8)
            pdf.multi_cell(0, 5, _latin1(f"Resposta: {answer}"), new_x="LMARGIN", new_y="NEXT")

    # Non-conformities
    found = non_conformities(document)
    _heading(pdf, "Resumo de Não Conformidades")
    pdf.set_font("Helvetica", "", 9)
    if found:
        for section_title, item in found:
            pdf.multi_cell(0, 5, _latin1(f"- [{section_title}] {item.label}"), new_x="LMARGIN", new_y="NEXT")
    else:
        pdf.cell(0, 6, _latin1("Nenhuma não conformidade registrada."), new_x="LMARGIN", new_y="NEXT")

    # Signatures
    sig = document.signatures
    _heading(pdf, "Assinaturas")
    _signature_block(pdf, "Inspetor", sig.get("inspectorName", ""), sig.get("inspectorDate", ""),
                     sig.get("inspectorSignature"))
    _signature_block(pdf, "Cliente", sig.get("clientName", ""), sig.get("clientDate", ""),
                     sig.get("clientSignature"))

    return bytes(pdf.output())


def report_filename(title: str, on: date | None = None) -> str:
    ascii_title = unicodedata.normalize("NFKD", title).encode("ascii", "ignore").decode("ascii")
    safe = re.sub(r"[^A-Za-z0-9-]+", "_", ascii_title).strip("_") or "Relatorio"
    return f"{safe}_{(on or date.today()).isoformat()}.pdf"


def render_for_download(document: InspectionDocument) -> tuple[bytes, str]:
    """PDF bytes plus a file name for the browser download."""
    return render_inspection_document(document), report_filename(document.title)


def render_base64(document: InspectionDocument) -> str:
    """PDF as base64 text, to travel inside a JSON body."""
    return base64.b64encode(render_inspection_document(document)).decode("ascii")


def decode_base64_pdf(pdf_data: str) -> bytes:
    """Inverse of ``render_base64``; raises ValueError on bad input."""
    try:
        return base64.b64decode(pdf_data, validate=True)
    except binascii.Error as exc:
        raise ValueError("PDF data is not valid base64") from exc
