from __future__ import annotations

import base64
import binascii
import logging
import os
import threading
from typing import Dict, Optional, Tuple

from dotenv import load_dotenv
from flask import Flask, jsonify, redirect, render_template, request, send_file, session, url_for

from charts import render_radar_chart
from questionnaire import ANSWER_VALUES, CATEGORIES, LIKERT_OPTIONS, question_offset
from report_pdf import LOGO_PATH, ReportRenderError, render_report, report_filename
from scoring import MAX_CATEGORY_SCORE, MIN_CATEGORY_SCORE, build_report
from sheets import (
    Submission,
    connect_result_store,
    result_store_configured,
    save_submission_in_background,
)
from wizard import RESULTS, SECTION, WELCOME, AssessmentWizard, WizardError

load_dotenv()

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(name)s - %(message)s")
logger = logging.getLogger("ei_assessment.routes")

app = Flask(__name__)
app.config.update(
    SECRET_KEY=os.getenv("SECRET_KEY", "replace-this-with-a-random-value"),
    GOOGLE_SHEET_ID=os.getenv("GOOGLE_SHEET_ID"),
    GOOGLE_API_JSON=os.getenv("GOOGLE_API_JSON"),
    GOOGLE_APPLICATION_CREDENTIALS=os.getenv("GOOGLE_APPLICATION_CREDENTIALS"),
    PDF_RENDER_TIMEOUT=float(os.getenv("PDF_RENDER_TIMEOUT", "30")),
    GOOGLE_SHEETS_TIMEOUT=float(os.getenv("GOOGLE_SHEETS_TIMEOUT", "10")),
    RESULT_STORE=None,
    RESULT_STORE_CONNECTED=False,
)

SESSION_KEY = "assessment"
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
_STORE_LOCK = threading.Lock()

COPY: Dict[str, Dict[str, str]] = {
    "site": {
        "title": "Emotional Intelligence (EI) Self-Assessment",
        "footer": "© Carnelian. Questions about your results? hello@carnelianco.com",
    },
    "welcome": {
        "tagline": "Assess your skills in self-awareness, managing emotions, motivation, empathy, and social skills.",
        "name_label": "Your Name",
        "organization_label": "Your Organization",
        "start_button": "Start Assessment",
    },
    "assessment": {
        "section_heading": "Section {current} of {total}",
        "progress": "{answered} of {total} questions answered",
        "next_button": "Next Section",
        "previous_button": "Previous",
        "submit_button": "Submit & View Results",
    },
    "results": {
        "title": "Your Results",
        "lede": "View your scores, strengths, and areas for improvement",
        "chart_caption": "This chart visualizes your scores across the five key areas, showing your unique emotional intelligence profile at a glance.",
        "strength_heading": "Area of Strength",
        "strength_text": "Your highest score is in:",
        "improvement_heading": "Area for Improvement",
        "improvement_text": "An area with potential for growth is:",
        "breakdown": "Detailed Breakdown",
        "score_line": "Score: {score} / 50",
        "download_pdf": "Download Report",
        "thanks": "Thank you for taking the assessment. Your detailed PDF report will include all scores and interpretations.",
        "start_over": "Start Over",
    },
    "errors": {
        "missing_identity": "Please fill out both your name and organization.",
        "section_incomplete": "Please answer all questions in this section to continue.",
        "incomplete_submission": "Please answer all questions before submitting.",
        "wrong_step": "That step is not available right now. Please continue from where you left off.",
        "incomplete_pdf": "Unable to export PDF because answers are incomplete.",
        "pdf_failed": "Sorry, we couldn't generate your PDF at this time. Please try again.",
    },
    "api": {
        "missing_data": "Missing required data.",
        "invalid_scores": "Scores must be whole numbers between 10 and 50.",
        "invalid_chart": "chartImage must be a base64-encoded PNG.",
        "saved": "Results saved successfully!",
        "save_failed": "Failed to save results.",
        "pdf_failed": "Error generating PDF",
    },
}


class PayloadError(ValueError):
    pass


def get_result_store():
    with _STORE_LOCK:
        if app.config["RESULT_STORE"] is None and not app.config["RESULT_STORE_CONNECTED"]:
            settings = (
                app.config["GOOGLE_SHEET_ID"],
                app.config["GOOGLE_API_JSON"],
                app.config["GOOGLE_APPLICATION_CREDENTIALS"],
            )
            store = connect_result_store(*settings, timeout=app.config["GOOGLE_SHEETS_TIMEOUT"])
            app.config["RESULT_STORE"] = store
            # Missing settings stay missing; a failed connection is retried on the next submission.
            app.config["RESULT_STORE_CONNECTED"] = store is not None or not result_store_configured(*settings)
        return app.config["RESULT_STORE"]


def load_wizard() -> AssessmentWizard:
    return AssessmentWizard.from_session(session.get(SESSION_KEY))


def store_wizard(wizard: AssessmentWizard) -> None:
    session[SESSION_KEY] = wizard.to_session()


def error_text(key: str) -> str:
    return COPY["errors"].get(key, COPY["errors"]["wrong_step"])


def redirect_for(wizard: AssessmentWizard):
    if wizard.step == SECTION:
        return redirect(url_for("assessment"))
    if wizard.step == RESULTS:
        return redirect(url_for("results"))
    return redirect(url_for("welcome"))


def read_submission_payload(payload) -> Tuple[str, str, Dict[str, int]]:
    if not isinstance(payload, dict):
        raise PayloadError(COPY["api"]["missing_data"])

    name = payload.get("name")
    organization = payload.get("organization")
    scores = payload.get("scores")
    if not isinstance(name, str) or not name.strip():
        raise PayloadError(COPY["api"]["missing_data"])
    if not isinstance(organization, str) or not organization.strip():
        raise PayloadError(COPY["api"]["missing_data"])
    if not isinstance(scores, dict) or any(scores.get(code) is None for code in CATEGORIES):
        raise PayloadError(COPY["api"]["missing_data"])

    parsed: Dict[str, int] = {}
    for code in CATEGORIES:
        value = scores[code]
        if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
            raise PayloadError(COPY["api"]["invalid_scores"])
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise PayloadError(COPY["api"]["invalid_scores"]) from None
        if not MIN_CATEGORY_SCORE <= number <= MAX_CATEGORY_SCORE:
            raise PayloadError(COPY["api"]["invalid_scores"])
        parsed[code] = number
    return name.strip(), organization.strip(), parsed


def decode_chart_image(value) -> Optional[bytes]:
    """Accept a bare base64 PNG or a ``data:image/png;base64,`` URL."""
    if not value:
        return None
    if not isinstance(value, str):
        raise PayloadError(COPY["api"]["invalid_chart"])
    if value.startswith("data:"):
        header, _, value = value.partition(",")
        if header != "data:image/png;base64":
            raise PayloadError(COPY["api"]["invalid_chart"])
    try:
        data = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        raise PayloadError(COPY["api"]["invalid_chart"]) from None
    if not data.startswith(PNG_SIGNATURE):
        raise PayloadError(COPY["api"]["invalid_chart"])
    return data


@app.context_processor
def inject_copy():
    return {
        "copy": COPY,
        "logo_url": url_for("static", filename="logo.png") if LOGO_PATH.exists() else None,
    }


@app.route("/", methods=["GET", "POST"])
def welcome():
    wizard = load_wizard()

    if request.method == "POST":
        if wizard.step != WELCOME:
            wizard.restart()
        name = request.form.get("name", "")
        organization = request.form.get("organization", "")
        try:
            wizard.start(name, organization)
        except WizardError as exc:
            return render_template(
                "welcome.html",
                error=error_text(exc.key),
                submitted={"name": name, "organization": organization},
            )
        store_wizard(wizard)
        return redirect(url_for("assessment"))

    if wizard.step != WELCOME:
        return redirect_for(wizard)
    return render_template("welcome.html", error=None, submitted={})


def render_section(wizard: AssessmentWizard, error: Optional[str] = None):
    collector = wizard.collector
    return render_template(
        "section.html",
        wizard=wizard,
        section=wizard.current_section,
        section_number=wizard.section_index + 1,
        section_count=len(wizard.sections),
        offset=question_offset(wizard.section_index, wizard.sections),
        options=LIKERT_OPTIONS,
        answers=collector.answers,
        answered=collector.answered_count,
        total=collector.total_questions,
        progress_percent=round(collector.progress_fraction() * 100),
        error=error,
    )


@app.route("/assessment", methods=["GET", "POST"])
def assessment():
    wizard = load_wizard()
    if wizard.step != SECTION:
        return redirect_for(wizard)

    if request.method == "GET":
        return render_section(wizard)

    for question in wizard.current_section.questions:
        raw_value = request.form.get(question.field_name)
        if raw_value is None or not raw_value.isdigit():
            continue
        value = int(raw_value)
        if value in ANSWER_VALUES:
            wizard.collector.record_answer(question.id, value)

    action = request.form.get("action", "next")
    try:
        if action == "previous":
            wizard.previous_section()
        elif action == "submit":
            wizard.submit()
        else:
            wizard.next_section()
    except WizardError as exc:
        store_wizard(wizard)
        return render_section(wizard, error=error_text(exc.key))

    store_wizard(wizard)
    if wizard.step == RESULTS:
        save_submission_in_background(get_result_store, Submission(wizard.name, wizard.organization, wizard.scores))
        return redirect(url_for("results"))
    return redirect(url_for("assessment"))


def render_results(wizard: AssessmentWizard, error: Optional[str] = None, status: int = 200):
    report = build_report(wizard.name, wizard.organization, wizard.scores or {})
    try:
        chart_png = render_radar_chart(report.scores)
        chart_url = "data:image/png;base64," + base64.b64encode(chart_png).decode("ascii")
    except Exception:
        logger.exception("Error rendering results chart")
        chart_url = None
    return (
        render_template("result.html", report=report, chart_url=chart_url, error=error),
        status,
    )


@app.get("/results")
def results():
    wizard = load_wizard()
    if wizard.step != RESULTS:
        return redirect_for(wizard)
    return render_results(wizard)


@app.post("/export/pdf")
def export_pdf():
    wizard = load_wizard()
    if wizard.step != RESULTS:
        return (error_text("incomplete_pdf"), 400)

    report = build_report(wizard.name, wizard.organization, wizard.scores or {})
    try:
        pdf_buffer = render_report(report, timeout=app.config["PDF_RENDER_TIMEOUT"])
    except ReportRenderError:
        logger.exception("Error generating PDF")
        return render_results(wizard, error=error_text("pdf_failed"), status=500)

    return send_file(
        pdf_buffer,
        mimetype="application/pdf",
        as_attachment=True,
        download_name=report_filename(report.name),
    )


@app.post("/restart")
def restart():
    session.pop(SESSION_KEY, None)
    return redirect(url_for("welcome"))


@app.post("/api/save-results")
def api_save_results():
    try:
        name, organization, scores = read_submission_payload(request.get_json(silent=True))
    except PayloadError as exc:
        return jsonify(message=str(exc)), 400

    store = get_result_store()
    if store is None:
        logger.error("Error saving to Google Sheet: result logging is not configured")
        return jsonify(message=COPY["api"]["save_failed"]), 500
    try:
        store.append_result(Submission(name, organization, scores))
    except Exception:
        logger.exception("Error saving to Google Sheet")
        return jsonify(message=COPY["api"]["save_failed"]), 500
    return jsonify(message=COPY["api"]["saved"]), 200


@app.post("/api/generate-pdf")
def api_generate_pdf():
    payload = request.get_json(silent=True)
    try:
        name, organization, scores = read_submission_payload(payload)
        chart_png = decode_chart_image(payload.get("chartImage"))
    except PayloadError as exc:
        return jsonify(message=str(exc)), 400

    report = build_report(name, organization, scores)
    try:
        pdf_buffer = render_report(report, chart_png, timeout=app.config["PDF_RENDER_TIMEOUT"])
    except ReportRenderError:
        logger.exception("Error generating PDF")
        return (COPY["api"]["pdf_failed"], 500)

    return send_file(
        pdf_buffer,
        mimetype="application/pdf",
        as_attachment=True,
        download_name=report_filename(name),
    )


@app.get("/health")
def health_check():
    return {"status": "ok"}


if __name__ == "__main__":
    app.run(debug=True, port=5000)
