"""
Test Configuration and Fixtures
"""
import io
from types import SimpleNamespace

import pytest
from scan2study import create_app, db
from scan2study import study
from scan2study.services import llm_service, ocr_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing"""
    app = create_app('testing')

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client (a fresh browser)"""
    return app.test_client()


@pytest.fixture(autouse=True)
def reset_views():
    """Mounted study views are per process; start each test clean"""
    study.VIEWS.clear()
    yield
    study.VIEWS.clear()


class FakeOcrResponse:
    def __init__(self, payload=None, status_code=200, reason="OK"):
        self.payload = payload if payload is not None else {}
        self.status_code = status_code
        self.reason = reason

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        return self.payload


def ocr_payload(*pages):
    return {
        "IsErroredOnProcessing": False,
        "ParsedResults": [{"FileParseExitCode": 1, "ParsedText": p} for p in pages],
    }


@pytest.fixture
def ocr_calls(monkeypatch):
    """Replace the OCR.space call; set `.response` to control the reply"""
    calls = []
    calls_ns = SimpleNamespace(calls=calls, response=FakeOcrResponse(ocr_payload("Page1", "Page2")), raises=None)

    def fake_post(url, **kwargs):
        calls.append(SimpleNamespace(url=url, **kwargs))
        if calls_ns.raises is not None:
            raise calls_ns.raises
        return calls_ns.response

    monkeypatch.setattr(ocr_service.requests, "post", fake_post)
    return calls_ns


class FakeCompletions:
    def __init__(self):
        self.calls = []
        self.content = "A reply."
        self.raises = None

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.raises is not None:
            raise self.raises
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture
def llm(monkeypatch):
    """Replace the OpenAI client; inspect `.calls`, steer with `.content`/`.raises`"""
    completions = FakeCompletions()
    fake_client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    monkeypatch.setattr(llm_service, "get_client", lambda: fake_client)
    return completions


def pdf_upload(name="reading.pdf", data=b"%PDF-1.4 test", content_type="application/pdf"):
    return (io.BytesIO(data), name, content_type)
