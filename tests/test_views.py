"""
Page and Storage Tests
"""
import io

import pytest
from conftest import FakeOcrResponse, ocr_payload, pdf_upload
from werkzeug.datastructures import FileStorage
from scan2study import db
from scan2study.api import LocalApi
from scan2study.models import StoredValue
from scan2study.storage import FILE_NAME_KEY, TEXT_KEY, ReadingStore
from scan2study.study import UploadPanel, UploadState


def browser_of(client):
    with client.session_transaction() as sess:
        return sess.get('browser_id')


def load_reading(client, text='Page1\n\nPage2', file_name='reading.pdf'):
    """Put a reading into this browser's storage"""
    client.get('/')
    bid = browser_of(client)
    ReadingStore(bid).save(text, file_name)
    return bid


class TestReadingStore:
    """Test per-browser persistence of the reading"""

    def test_round_trip(self, app):
        store = ReadingStore('browser-a')
        store.save('Some text', 'a.pdf')
        reading = store.load()
        assert reading.text == 'Some text'
        assert reading.file_name == 'a.pdf'

    def test_default_file_name(self, app):
        store = ReadingStore('browser-b')
        store.save('Some text', None)
        assert store.load().file_name == 'document.pdf'

    def test_one_key_without_the_other_is_no_document(self, app):
        StoredValue.put_value('browser-c', TEXT_KEY, 'orphan text')
        db.session.commit()
        assert ReadingStore('browser-c').load() is None

        StoredValue.put_value('browser-d', FILE_NAME_KEY, 'orphan.pdf')
        db.session.commit()
        assert ReadingStore('browser-d').load() is None

    def test_browsers_are_isolated(self, app):
        ReadingStore('browser-e').save('mine', 'e.pdf')
        assert ReadingStore('browser-f').load() is None

    def test_new_upload_replaces_previous(self, app):
        store = ReadingStore('browser-g')
        store.save('first', 'one.pdf')
        store.save('second', 'two.pdf')
        reading = store.load()
        assert (reading.text, reading.file_name) == ('second', 'two.pdf')
        assert StoredValue.query.filter_by(browser_id='browser-g').count() == 2


class TestUploadPage:
    """Test the upload page"""

    def test_page_loads(self, client):
        response = client.get('/')
        assert response.status_code == 200
        assert b'Ready to parse' in response.data

    def test_non_pdf_shows_error(self, client, ocr_calls):
        response = client.post('/', data={'file': pdf_upload('notes.txt', content_type='text/plain')},
                               content_type='multipart/form-data')
        assert response.status_code == 200
        assert b'Please upload a PDF file.' in response.data
        assert ocr_calls.calls == []

    def test_pdf_is_parsed_stored_and_redirected(self, client, ocr_calls):
        response = client.post('/', data={'file': pdf_upload('reading.pdf')},
                               content_type='multipart/form-data')
        assert response.status_code == 302
        assert response.headers['Location'].endswith('/study')

        reading = ReadingStore(browser_of(client)).load()
        assert reading.text == 'Page1\n\nPage2'
        assert reading.file_name == 'reading.pdf'

    def test_parse_failure_shows_server_message(self, client, ocr_calls):
        ocr_calls.response = FakeOcrResponse({'IsErroredOnProcessing': False, 'ParsedResults': []})
        response = client.post('/', data={'file': pdf_upload('blank.pdf')},
                               content_type='multipart/form-data')
        assert response.status_code == 200
        assert b'No text could be extracted from the PDF.' in response.data
        assert b'Retry' in response.data
        assert ReadingStore(browser_of(client)).load() is None


class TestUploadRetry:
    """Retrying a failed parse resends the whole upload"""

    def test_retry_sends_same_bytes(self, app, ocr_calls):
        data = b'%PDF-1.4 real bytes'
        upload = FileStorage(stream=io.BytesIO(data), filename='reading.pdf', content_type='application/pdf')
        store = ReadingStore('browser-retry')
        panel = UploadPanel(LocalApi(), store)

        ocr_calls.response = FakeOcrResponse(status_code=503, reason='Service Unavailable')
        assert panel.select(upload) is None
        assert panel.state is UploadState.ERROR

        ocr_calls.response = FakeOcrResponse(ocr_payload('Recovered'))
        assert panel.retry() == '/study'

        assert [call.files['file'][1] for call in ocr_calls.calls] == [data, data]
        assert store.load().text == 'Recovered'


class TestStudyPage:
    """Test the study page"""

    def test_no_document(self, client, llm):
        response = client.get('/study')
        assert response.status_code == 200
        assert b'No document loaded' in response.data
        assert llm.calls == []

    def test_auto_summary_once_per_mount(self, client, llm):
        load_reading(client)
        llm.content = '- Thesis: things'

        response = client.get('/study')
        assert b'reading.pdf' in response.data
        assert b'Thesis: things' in response.data
        assert len(llm.calls) == 1

        llm.content = 'An answer.'
        client.post('/study/ask', data={'question': 'What?'})
        assert len(llm.calls) == 2

    def test_reload_discards_transcript(self, client, llm):
        load_reading(client)
        client.get('/study')
        llm.content = 'Answer one.'
        response = client.post('/study/ask', data={'question': 'First question?'})
        assert b'First question?' in response.data
        assert b'Answer one.' in response.data

        response = client.get('/study')
        assert b'First question?' not in response.data

    def test_ask_error_keeps_transcript(self, client, llm):
        load_reading(client)
        llm.content = 'Summary text.'
        client.get('/study')

        llm.raises = RuntimeError('down')
        response = client.post('/study/ask', data={'question': 'Anything?'})
        assert response.status_code == 200
        assert b'Summary text.' in response.data
        assert b'Failed to answer question.' in response.data

    def test_ask_without_mounted_view_redirects(self, client, llm):
        load_reading(client)
        response = client.post('/study/ask', data={'question': 'Why?'})
        assert response.status_code == 302
        assert llm.calls == []

    def test_manual_summary_variant(self, app, client, llm, monkeypatch):
        monkeypatch.setitem(app.config, 'AUTO_SUMMARY', False)
        load_reading(client)

        response = client.get('/study')
        assert b'Generate summary' in response.data
        assert llm.calls == []

        llm.content = '- Key point'
        response = client.post('/study/summary')
        assert b'Key point' in response.data
        assert len(llm.calls) == 1

    def test_download(self, client, llm):
        text = 'Page1\n\nPage2 – naïve'
        load_reading(client, text=text, file_name='reading.pdf')

        response = client.get('/study/download')
        assert response.status_code == 200
        assert response.mimetype == 'text/plain'
        assert 'reading.txt' in response.headers['Content-Disposition']
        assert response.data == text.encode('utf-8')

    def test_download_without_document(self, client):
        response = client.get('/study/download')
        assert response.status_code == 400
        assert b'No text available to download. Please upload a PDF first.' in response.data
        assert b'No document loaded' in response.data


class TestAboutPage:
    def test_page_loads(self, client):
        response = client.get('/about')
        assert response.status_code == 200
        assert b'Scan2Study' in response.data
