"""
Upload and study flows

View state for the two pages:
- UploadPanel: file selection and parsing (idle -> selected -> parsing -> error)
- StudyView: summary, chat transcript and text export for one loaded reading

Both talk to the API through a transport object exposing parse(file),
summarize(text) and ask(text, question), each returning (payload, status).
"""
import enum
import re
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import markdown as md
from markupsafe import Markup, escape

from scan2study.services.ocr_service import is_pdf
from scan2study.storage import Reading, ReadingStore

NOT_A_PDF = "Please upload a PDF file."
PARSE_FAILED = "Failed to parse PDF"
EMPTY_PARSE = "No text could be extracted from the PDF. Please try a different file."
UNEXPECTED = "An unexpected error occurred. Please try again."
NOTHING_TO_EXPORT = "No text available to download. Please upload a PDF first."
NOTHING_TO_SUMMARIZE = "No text available to summarize. Please upload a PDF first."
ASK_PENDING = "Please wait for the current answer."
SUMMARY_APOLOGY = "Sorry, I couldn't generate a summary"

STUDY_URL = "/study"


def _ok(status: int) -> bool:
    return 200 <= status < 300


def _error_of(body: Dict[str, Any], default: str) -> str:
    err = body.get("error") if isinstance(body, dict) else None
    return err if isinstance(err, str) and err.strip() else default


def render_markdown(text: str) -> Markup:
    """Markdown to HTML, with any raw HTML in the text escaped first."""
    html = md.markdown(str(escape(text or "")), extensions=["sane_lists"])
    return Markup(html)


# ============ Upload ============

class UploadState(enum.Enum):
    IDLE = "idle"
    SELECTED = "selected"
    PARSING = "parsing"
    ERROR = "error"


class UploadPanel:
    def __init__(self, transport, store: ReadingStore, parse_on_select: bool = True):
        self.transport = transport
        self.store = store
        self.parse_on_select = parse_on_select
        self.state = UploadState.IDLE
        self.selected = None
        self.error: Optional[str] = None

    @property
    def is_parsing(self) -> bool:
        return self.state is UploadState.PARSING

    @property
    def status_line(self) -> str:
        if self.is_parsing:
            return "Parsing PDF…"
        return self.error or "Ready to parse"

    @property
    def button_label(self) -> str:
        if self.is_parsing:
            return "Parsing your PDF…"
        return "Retry" if self.error else "Continue"

    def select(self, file) -> Optional[str]:
        """Pick a file. Returns the page to navigate to, if parsing succeeded."""
        if self.is_parsing:
            return None
        if file is None:
            self.selected = None
            self.error = None
            self.state = UploadState.IDLE
            return None

        if not is_pdf(getattr(file, "filename", ""), getattr(file, "mimetype", "")):
            self.selected = None
            self.error = NOT_A_PDF
            self.state = UploadState.ERROR
            return None

        self.selected = file
        self.error = None
        self.state = UploadState.SELECTED
        if self.parse_on_select:
            return self.parse()
        return None

    def retry(self) -> Optional[str]:
        return self.parse()

    def parse(self) -> Optional[str]:
        if self.selected is None or self.is_parsing:
            return None
        self.state = UploadState.PARSING
        self.error = None
        try:
            # a previous attempt may have read the upload to the end
            stream = getattr(self.selected, "stream", None)
            if stream is not None and hasattr(stream, "seek"):
                stream.seek(0)
            body, status = self.transport.parse(self.selected)
            if not _ok(status):
                return self._fail(_error_of(body, PARSE_FAILED))

            text = body.get("text")
            if not isinstance(text, str) or not text.strip():
                return self._fail(EMPTY_PARSE)

            self.store.save(text, body.get("fileName"))
        except Exception:
            return self._fail(UNEXPECTED)

        self.state = UploadState.SELECTED
        return STUDY_URL

    def _fail(self, message: str) -> None:
        self.error = message
        self.state = UploadState.ERROR
        return None


# ============ Study ============

class ChatRole(enum.Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class ChatMessage:
    role: ChatRole
    content: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)


class SummaryState(enum.Enum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    DONE = "done"


def export_filename(file_name: Optional[str]) -> str:
    stem = re.sub(r"\.[^/.]+$", "", file_name) if file_name else ""
    return f"{stem or 'reading'}.txt"


def export_reading(text: Optional[str], file_name: Optional[str]) -> Tuple[str, bytes]:
    """Plain-text download of the reading. Raises ValueError when there is no text."""
    if not isinstance(text, str) or not text.strip():
        raise ValueError(NOTHING_TO_EXPORT)
    return export_filename(file_name), text.encode("utf-8")


class StudyView:
    """
    State of one mounted study page.

    The transcript only ever grows; failures set `error` and leave the
    messages already shown alone.
    """

    def __init__(self, reading: Optional[Reading], transport):
        self.reading = reading
        self.transport = transport
        self.messages: List[ChatMessage] = []
        self.summary: Optional[str] = None
        self.summary_state = SummaryState.NOT_STARTED
        self.is_asking = False
        self.is_summarizing = False
        self.error: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def has_document(self) -> bool:
        return self.reading is not None

    @property
    def file_name(self) -> Optional[str]:
        return self.reading.file_name if self.reading else None

    def _claim(self, flag: str) -> bool:
        with self._lock:
            if getattr(self, flag):
                return False
            setattr(self, flag, True)
            return True

    def _release(self, flag: str) -> None:
        with self._lock:
            setattr(self, flag, False)

    def ensure_summary(self) -> None:
        """Seed the transcript with a summary, once per view."""
        if not self.has_document:
            return
        with self._lock:
            if self.summary_state is not SummaryState.NOT_STARTED:
                return
            self.summary_state = SummaryState.IN_PROGRESS
        try:
            body, status = self.transport.summarize(self.reading.text)
            if _ok(status):
                content = body.get("summary") or ""
            else:
                content = f"{SUMMARY_APOLOGY}: {_error_of(body, 'Failed to generate summary.')}"
        except Exception:
            content = f"{SUMMARY_APOLOGY}. {UNEXPECTED}"
        # questions asked while the summary was pending stay after it
        with self._lock:
            self.messages.insert(0, ChatMessage(ChatRole.ASSISTANT, content))
            self.summary_state = SummaryState.DONE

    def generate_summary(self) -> None:
        """Summary shown on its own, for pages without the auto summary."""
        if not self.has_document or not self.reading.text.strip():
            self.error = NOTHING_TO_SUMMARIZE
            return
        if not self._claim("is_summarizing"):
            return
        self.error = None
        try:
            body, status = self.transport.summarize(self.reading.text)
            if _ok(status):
                self.summary = body.get("summary")
            else:
                self.error = _error_of(body, "Failed to generate summary")
        except Exception:
            self.error = UNEXPECTED
        finally:
            self._release("is_summarizing")

    def ask(self, question: str) -> bool:
        """Ask about the reading. Returns False when nothing was sent."""
        question = (question or "").strip()
        if not question or not self.has_document:
            return False
        if not self._claim("is_asking"):
            self.error = ASK_PENDING
            return False
        self.error = None
        with self._lock:
            self.messages.append(ChatMessage(ChatRole.USER, question))
        try:
            body, status = self.transport.ask(self.reading.text, question)
            if _ok(status):
                with self._lock:
                    self.messages.append(ChatMessage(ChatRole.ASSISTANT, body.get("answer") or ""))
                # drop a refusal shown while this answer was pending
                self.error = None
            else:
                self.error = _error_of(body, "Failed to get an answer")
        except Exception:
            self.error = UNEXPECTED
        finally:
            self._release("is_asking")
        return True

    def export(self) -> Optional[Tuple[str, bytes]]:
        try:
            return export_reading(self.reading.text if self.reading else None, self.file_name)
        except ValueError as e:
            self.error = str(e)
            return None


# One mounted view per browser; mounting again replaces it.
VIEWS: Dict[str, StudyView] = {}
VIEWS_LOCK = threading.Lock()


def mount_view(bid: str, reading: Optional[Reading], transport) -> StudyView:
    view = StudyView(reading, transport)
    with VIEWS_LOCK:
        VIEWS[bid] = view
    return view


def current_view(bid: str) -> Optional[StudyView]:
    with VIEWS_LOCK:
        return VIEWS.get(bid)
