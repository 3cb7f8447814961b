from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from io import BytesIO
from pathlib import Path
from typing import Optional, Tuple

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from charts import render_radar_chart
from scoring import REPORT_COPY, ReportContent

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
LOGO_PATH = BASE_DIR / "static" / "logo.png"
FONT_DIR = BASE_DIR / "fonts"
PDF_FONT_FAMILY = "Lato"
PDF_FONT_REGULAR_PATH = FONT_DIR / "Lato-Regular.ttf"
PDF_FONT_BOLD_PATH = FONT_DIR / "Lato-Bold.ttf"

DEFAULT_RENDER_TIMEOUT = 30.0

BASE_TEXT_COLOR = "#34495e"
HEADING_COLOR = "#B31B1B"
ACCENT_COLOR = "#F57C00"
MUTED_COLOR = "#7f8c8d"
CARD_FILL_COLOR = "#f9f9f9"

_RENDER_POOL = ThreadPoolExecutor(max_workers=4, thread_name_prefix="pdf-render")


class ReportRenderError(RuntimeError):
    pass


def hex_to_rgb(value: str) -> Tuple[int, int, int]:
    value = value.lstrip("#")
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


def report_filename(name: str) -> str:
    slug = re.sub(r"\s+", "-", name.strip())
    return f"EI-Report-{slug}.pdf"


def sanitize_for_pdf(text: str, unicode_font: bool = False) -> str:
    replacements = {
        "’": "'",
        "‘": "'",
        "“": '"',
        "”": '"',
        "–": "-",
        "—": "-",
        "…": "...",
        " ": " ",
    }
    for src, dest in replacements.items():
        text = text.replace(src, dest)
    if not unicode_font:
        # Core fonts only cover latin-1.
        text = text.encode("latin-1", "replace").decode("latin-1")
    return text


class ReportPDF(FPDF):
    def __init__(self):
        super().__init__(format="A4")
        self.set_auto_page_break(auto=True, margin=20)
        self.set_margins(20, 20, 20)

        self.regular_family = "Helvetica"
        self.regular_style = ""
        self.bold_family = "Helvetica"
        self.bold_style = "B"
        self.has_unicode_font = False
        try:
            if PDF_FONT_REGULAR_PATH.exists():
                self.add_font(PDF_FONT_FAMILY, "", str(PDF_FONT_REGULAR_PATH))
                self.regular_family = PDF_FONT_FAMILY
                self.bold_family = PDF_FONT_FAMILY
                self.bold_style = ""
                self.has_unicode_font = True
            if self.has_unicode_font and PDF_FONT_BOLD_PATH.exists():
                self.add_font(PDF_FONT_FAMILY, "B", str(PDF_FONT_BOLD_PATH))
                self.bold_style = "B"
        except RuntimeError:
            self.regular_family = "Helvetica"
            self.regular_style = ""
            self.bold_family = "Helvetica"
            self.bold_style = "B"
            self.has_unicode_font = False

    def clean(self, text: str) -> str:
        return sanitize_for_pdf(text, self.has_unicode_font)

    def regular(self, size: float, color: str = BASE_TEXT_COLOR) -> None:
        self.set_font(self.regular_family, self.regular_style, size)
        self.set_text_color(*hex_to_rgb(color))

    def bold(self, size: float, color: str = BASE_TEXT_COLOR) -> None:
        self.set_font(self.bold_family, self.bold_style, size)
        self.set_text_color(*hex_to_rgb(color))

    def page_heading(self, text: str) -> None:
        self.bold(18, HEADING_COLOR)
        self.cell(0, 12, self.clean(text), align="C", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.ln(6)

    def rule(self, gap: float = 6) -> None:
        self.ln(gap)
        self.set_draw_color(*hex_to_rgb(ACCENT_COLOR))
        self.set_line_width(0.6)
        self.line(self.l_margin, self.get_y(), self.w - self.r_margin, self.get_y())
        self.ln(gap)

    def card(self, bar_color: str, heading: str, heading_color: str, body: str) -> None:
        """Heading and body text with a coloured bar down the left edge."""
        top = self.get_y()
        inset = self.l_margin + 6
        self.set_x(inset)
        self.bold(13, heading_color)
        self.cell(0, 7, self.clean(heading), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.set_x(inset)
        self.regular(11)
        self.multi_cell(0, 6, self.clean(body), align="L", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        bottom = self.get_y() + 2
        self.set_fill_color(*hex_to_rgb(bar_color))
        self.rect(self.l_margin, top - 1, 2, bottom - top + 1, style="F")
        self.set_y(bottom + 4)


def _cover_page(pdf: ReportPDF, report: ReportContent, chart_png: bytes) -> None:
    pdf_text = REPORT_COPY.get("pdf", {})
    pdf.add_page()

    if LOGO_PATH.exists():
        logo_width = 30
        pdf.image(str(LOGO_PATH), x=(pdf.w - logo_width) / 2, w=logo_width)
        pdf.ln(4)

    pdf.bold(20, HEADING_COLOR)
    pdf.multi_cell(0, 10, pdf.clean(pdf_text.get("title", "")), align="C", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.regular(13, MUTED_COLOR)
    pdf.cell(0, 8, pdf.clean(pdf_text.get("subtitle", "")), align="C", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.rule()

    for label_key, value in (
        ("name_label", report.name),
        ("organization_label", report.organization),
        ("date_label", report.display_date),
    ):
        pdf.bold(12)
        pdf.cell(35, 7, pdf.clean(pdf_text.get(label_key, "")))
        pdf.regular(12)
        pdf.cell(0, 7, pdf.clean(value), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    pdf.ln(8)
    chart_width = (pdf.w - pdf.l_margin - pdf.r_margin) * 0.9
    pdf.image(BytesIO(chart_png), x=(pdf.w - chart_width) / 2, w=chart_width)
    pdf.ln(4)
    pdf.regular(11, MUTED_COLOR)
    pdf.multi_cell(0, 6, pdf.clean(pdf_text.get("chart_caption", "")), align="C")


def _summary_page(pdf: ReportPDF, report: ReportContent) -> None:
    pdf_text = REPORT_COPY.get("pdf", {})
    pdf.add_page()
    pdf.page_heading(pdf_text.get("summary_heading", ""))

    pdf.set_fill_color(*hex_to_rgb(CARD_FILL_COLOR))
    pdf.bold(15)
    pdf.cell(0, 10, pdf.clean(pdf_text.get("key_insights", "")), fill=True, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    for label_key, titles in (
        ("highest_label", report.strongest_titles),
        ("lowest_label", report.weakest_titles),
    ):
        pdf.bold(11)
        pdf.multi_cell(
            0,
            7,
            pdf.clean(f"{pdf_text.get(label_key, '')} {', '.join(titles)}"),
            fill=True,
            align="L",
            new_x=XPos.LMARGIN,
            new_y=YPos.NEXT,
        )
    pdf.ln(8)

    score_line = pdf_text.get("score_line", "Score: {score} / 50 - {label}")
    for result in report.categories:
        pdf.card(
            bar_color=result.tier.color,
            heading=result.title,
            heading_color=HEADING_COLOR,
            body=score_line.format(score=result.score, label=result.tier.label),
        )


def _understanding_page(pdf: ReportPDF, report: ReportContent) -> None:
    pdf_text = REPORT_COPY.get("pdf", {})
    pdf.add_page()
    pdf.page_heading(pdf_text.get("understanding_heading", ""))
    pdf.regular(11)
    pdf.multi_cell(0, 6, pdf.clean(pdf_text.get("understanding_intro", "")), align="C", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(8)
    for entry in report.legend:
        pdf.card(
            bar_color=entry.tier.color,
            heading=entry.heading,
            heading_color=entry.tier.color,
            body=entry.description,
        )


def _next_steps_page(pdf: ReportPDF, report: ReportContent) -> None:
    pdf_text = REPORT_COPY.get("pdf", {})
    pdf.add_page()
    pdf.page_heading(pdf_text.get("next_steps_heading", ""))
    pdf.regular(11)
    pdf.multi_cell(0, 6, pdf.clean(pdf_text.get("next_steps_intro", "")), align="L", new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    for step in report.next_steps:
        pdf.ln(5)
        pdf.bold(13, HEADING_COLOR)
        pdf.cell(0, 8, pdf.clean(step.title), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.regular(11)
        pdf.multi_cell(0, 6, pdf.clean(step.text), align="L", new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    pdf.rule(gap=10)
    pdf.regular(11, MUTED_COLOR)
    pdf.multi_cell(0, 6, pdf.clean(pdf_text.get("footer_contact", "")), align="C")


def generate_pdf_report(report: ReportContent, chart_png: bytes) -> BytesIO:
    pdf = ReportPDF()
    pdf.set_title(REPORT_COPY.get("pdf", {}).get("title", "EI Assessment Results"))
    pdf.set_author(report.organization)

    _cover_page(pdf, report, chart_png)
    _summary_page(pdf, report)
    _understanding_page(pdf, report)
    _next_steps_page(pdf, report)

    buffer = BytesIO()
    pdf.output(buffer)
    buffer.seek(0)
    return buffer


def _render(report: ReportContent, chart_png: Optional[bytes]) -> BytesIO:
    if chart_png is None:
        chart_png = render_radar_chart(report.scores)
    return generate_pdf_report(report, chart_png)


def render_report(
    report: ReportContent,
    chart_png: Optional[bytes] = None,
    timeout: float = DEFAULT_RENDER_TIMEOUT,
) -> BytesIO:
    """Render chart and PDF on a worker thread, waiting at most ``timeout`` seconds.

    Raises :class:`ReportRenderError` on any failure; a partial document is never returned.
    """
    future = _RENDER_POOL.submit(_render, report, chart_png)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError as exc:
        future.cancel()
        logger.warning("PDF render for %s exceeded %.1fs", report.organization, timeout)
        raise ReportRenderError(f"Rendering took longer than {timeout:g} seconds") from exc
    except Exception as exc:
        raise ReportRenderError(f"Rendering failed: {exc}") from exc
