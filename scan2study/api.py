"""
API Blueprint - OCR, summary and Q&A proxy endpoints

Each endpoint has a plain handler returning (payload, status) so the
server-rendered pages can drive the same logic without an HTTP round trip.
"""
from typing import Any, Dict, Tuple

from flask import Blueprint, current_app, jsonify, request

from scan2study.services import llm_service, ocr_service

api_bp = Blueprint('api', __name__, url_prefix='/api')

Result = Tuple[Dict[str, Any], int]

NOT_A_PDF = "Please upload a PDF file."
NO_TEXT_EXTRACTED = "No text could be extracted from the PDF."
TEXT_REQUIRED = "Text is required and must be a non-empty string."
QUESTION_REQUIRED = "Question is required and must be a non-empty string."
INTERNAL_ERROR = "Internal server error"
SUMMARY_FAILED = "Failed to generate summary."
ANSWER_FAILED = "Failed to answer question."


def non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def size_limit_message(limit: int) -> str:
    mb = limit / (1024 * 1024)
    label = f"{mb:g}MB" if mb >= 1 else f"{limit // 1024}KB"
    return f"File size exceeds {label} limit. Please upload a smaller file."


# ============ Handlers ============

def handle_ocr(file) -> Result:
    try:
        if file is None or not (getattr(file, "filename", "") or ""):
            return {"error": NOT_A_PDF}, 400

        filename = file.filename
        if not ocr_service.is_pdf(filename, getattr(file, "mimetype", "")):
            return {"error": NOT_A_PDF}, 400

        limit = current_app.config["MAX_UPLOAD_BYTES"]
        data = file.read()
        if len(data) > limit:
            return {"error": size_limit_message(limit)}, 400

        ok, msg = ocr_service.ocr_ready()
        if not ok:
            return {"error": msg}, 500

        text, err = ocr_service.ocr_pdf_bytes(data, filename)
        if err:
            return {"error": err}, 500
        if not text:
            return {"error": NO_TEXT_EXTRACTED}, 400

        return {"text": text, "fileName": filename}, 200
    except Exception:
        current_app.logger.exception("Error processing OCR request")
        return {"error": INTERNAL_ERROR}, 500


def handle_summary(payload: Any) -> Result:
    try:
        text = payload.get("text") if isinstance(payload, dict) else None
        if not non_empty_str(text):
            return {"error": TEXT_REQUIRED}, 400

        ok, msg = llm_service.client_ready()
        if not ok:
            return {"error": msg}, 500

        return {"summary": llm_service.summarize(text)}, 200
    except Exception:
        current_app.logger.exception("Error generating summary")
        return {"error": SUMMARY_FAILED}, 500


def handle_qa(payload: Any) -> Result:
    try:
        body = payload if isinstance(payload, dict) else {}
        text = body.get("text")
        question = body.get("question")
        if not non_empty_str(text):
            return {"error": TEXT_REQUIRED}, 400
        if not non_empty_str(question):
            return {"error": QUESTION_REQUIRED}, 400

        ok, msg = llm_service.client_ready()
        if not ok:
            return {"error": msg}, 500

        return {"answer": llm_service.answer_question(text, question)}, 200
    except Exception:
        current_app.logger.exception("Error answering question")
        return {"error": ANSWER_FAILED}, 500


# ============ API Routes ============

@api_bp.route("/ocr", methods=["POST"])
def ocr():
    body, status = handle_ocr(request.files.get("file"))
    return jsonify(body), status


@api_bp.route("/summary", methods=["POST"])
def summary():
    body, status = handle_summary(request.get_json(silent=True))
    return jsonify(body), status


@api_bp.route("/qa", methods=["POST"])
def qa():
    body, status = handle_qa(request.get_json(silent=True))
    return jsonify(body), status


class LocalApi:
    """Transport for the pages: calls the handlers in-process."""

    def parse(self, file) -> Result:
        return handle_ocr(file)

    def summarize(self, text: str) -> Result:
        return handle_summary({"text": text})

    def ask(self, text: str, question: str) -> Result:
        return handle_qa({"text": text, "question": question})
