"""OpenAI wrapper.

Summaries and reading-grounded answers for the study page.
"""
from __future__ import annotations

import logging
from typing import Any, Tuple

from flask import current_app

try:
    from openai import OpenAI
except Exception:
    OpenAI = None

logger = logging.getLogger(__name__)

SUMMARY_FALLBACK = "Failed to extract summary."
ANSWER_FALLBACK = "Failed to extract answer."
NOT_SURE = "I'm not sure based on this reading alone."

SUMMARY_SYSTEM = """
You are a study assistant for university students.
When given a course reading, you write a short, focused summary of it.

Your goals:
- Help the student quickly grasp the main ideas, arguments and structure of the text.
- Use plain language an undergraduate with no background in the subject can follow.
- Briefly explain any important terms or concepts the student may not know.

Format your response as 4-6 bullet points.
Each bullet should be 1-3 sentences long.
""".strip()

ANSWER_SYSTEM = f"""
You are a study assistant for university students.
The user gives you a course reading and a question about it.
Answer only from the reading.
If the answer is not clearly supported by the text, say:
"{NOT_SURE}"
Do not make anything up. Keep answers short and clear (3-6 sentences at most).
""".strip()


def summary_prompt(text: str) -> str:
    return f"""
Summarize the following course reading for a student who needs it for class, homework and exams.

Cover:
- The author's main thesis or central question.
- 2-4 key arguments or ideas.
- Important concepts, terms or definitions, explained simply.
- The major conclusions or implications.

Keep it short but dense with information, and do not copy long sentences verbatim.

Reading:

{text}
""".strip()


def answer_prompt(text: str, question: str) -> str:
    return (
        f"Here is the course reading:\n\n{text}\n\n"
        f"The student asks:\n\n{question}\n\n"
        "Answer based only on the reading."
    )


def client_ready() -> Tuple[bool, str]:
    if OpenAI is None:
        return False, "OpenAI SDK not installed"
    key = (current_app.config.get("OPENAI_API_KEY") or "").strip()
    if not key:
        return False, "OPENAI_API_KEY is not configured."
    return True, ""


def model_name() -> str:
    return (current_app.config.get("OPENAI_MODEL") or "").strip() or "gpt-4.1"


def get_client():
    ok, _ = client_ready()
    if not ok:
        return None
    key = current_app.config["OPENAI_API_KEY"].strip()
    return OpenAI(api_key=key, timeout=current_app.config.get("LLM_TIMEOUT") or 60)


def first_text_segment(res: Any, fallback: str) -> str:
    """Content of the first choice that carries text, else the fallback."""
    for choice in getattr(res, "choices", None) or []:
        message = getattr(choice, "message", None)
        content = getattr(message, "content", None)
        if isinstance(content, str) and content.strip():
            return content
    return fallback


def complete(system: str, prompt: str, max_tokens: int, fallback: str) -> str:
    """One chat completion. Provider errors propagate to the caller."""
    client = get_client()
    if client is None:
        _, msg = client_ready()
        raise RuntimeError(msg or "Client not available")
    res = client.chat.completions.create(
        model=model_name(),
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": prompt},
        ],
        max_tokens=max_tokens,
    )
    return first_text_segment(res, fallback)


def summarize(text: str) -> str:
    return complete(
        SUMMARY_SYSTEM,
        summary_prompt(text),
        current_app.config.get("SUMMARY_MAX_TOKENS") or 1024,
        SUMMARY_FALLBACK,
    )


def answer_question(text: str, question: str) -> str:
    return complete(
        ANSWER_SYSTEM,
        answer_prompt(text, question),
        current_app.config.get("ANSWER_MAX_TOKENS") or 512,
        ANSWER_FALLBACK,
    )
