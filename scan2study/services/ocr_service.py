"""OCR.space wrapper.

Sends an uploaded PDF to the OCR provider and folds the per-page results
into one block of text.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Tuple

import requests
from flask import current_app

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"

UPSTREAM_FAILED = "Failed to process PDF. Please try again."
EXTRACTION_FAILED = "Failed to extract text from PDF."


def is_pdf(filename: str, mimetype: str) -> bool:
    return (mimetype or "") == PDF_MIME or (filename or "").lower().endswith(".pdf")


def ocr_ready() -> Tuple[bool, str]:
    key = (current_app.config.get("OCR_API_KEY") or "").strip()
    if not key:
        return False, "OCR_API_KEY is not configured."
    return True, ""


def join_parsed_results(payload: Dict[str, Any]) -> str:
    """Join the text of every page that parsed cleanly, blank line between pages."""
    parts: List[str] = []
    for result in payload.get("ParsedResults") or []:
        if not isinstance(result, dict):
            continue
        if result.get("FileParseExitCode") != 1:
            continue
        txt = (result.get("ParsedText") or "").strip()
        if txt:
            parts.append(txt)
    return "\n\n".join(parts)


def provider_error(payload: Dict[str, Any]) -> str:
    msg = payload.get("ErrorMessage")
    if isinstance(msg, list):
        msg = " ".join(str(m) for m in msg if m)
    return (msg or "").strip() or EXTRACTION_FAILED


def ocr_pdf_bytes(data: bytes, filename: str) -> Tuple[str, str]:
    """Run OCR over a PDF. Returns (text, error); text may be empty without an error."""
    cfg = current_app.config
    res = requests.post(
        cfg["OCR_API_URL"],
        headers={"apikey": cfg["OCR_API_KEY"].strip()},
        files={"file": (filename, data, PDF_MIME)},
        data={
            "language": cfg.get("OCR_LANGUAGE") or "eng",
            "isOverlayRequired": "false",
        },
        timeout=cfg.get("OCR_TIMEOUT") or 60,
    )
    if not res.ok:
        logger.error("OCR.space API error: %s %s", res.status_code, res.reason)
        return "", UPSTREAM_FAILED

    payload = res.json()
    if payload.get("IsErroredOnProcessing"):
        err = provider_error(payload)
        logger.error("OCR processing error: %s", err)
        return "", err

    text = join_parsed_results(payload)
    logger.info("OCR parsed %s: %d page(s), %d chars",
                filename, len(payload.get("ParsedResults") or []), len(text))
    return text, ""
