import io
import zipfile
from types import SimpleNamespace

import pytest
from docx import Document
from youtube_transcript_api import TranscriptsDisabled

from learning_service.text_extraction import DOCX_CONTENT_TYPE, ExtractionError, extract_text
from learning_service.transcripts import TranscriptError, TranscriptService, extract_video_id


@pytest.mark.parametrize(
    "url",
    [
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        "https://youtube.com/watch?v=dQw4w9WgXcQ&t=42s",
        "https://youtu.be/dQw4w9WgXcQ",
        "https://www.youtube.com/embed/dQw4w9WgXcQ",
        "https://www.youtube.com/shorts/dQw4w9WgXcQ",
        "youtube.com/watch?v=dQw4w9WgXcQ",
        "dQw4w9WgXcQ",
    ],
)
def test_extract_video_id(url):
    assert extract_video_id(url) == "dQw4w9WgXcQ"


def test_extract_video_id_rejects_other_hosts():
    assert extract_video_id("https://vimeo.com/12345") is None
    assert extract_video_id("") is None


class FakeTranscriptApi:
    def __init__(self, snippets=None, error=None):
        self.snippets = snippets or []
        self.error = error
        self.calls = []

    def fetch(self, video_id, languages=("en",)):
        self.calls.append((video_id, list(languages)))
        if self.error:
            raise self.error
        return [SimpleNamespace(text=text, start=0.0, duration=1.0) for text in self.snippets]


def test_transcript_service_joins_snippets():
    api = FakeTranscriptApi(snippets=["Hello", "  ", "world "])
    service = TranscriptService(api=api)

    assert service.get_text("https://youtu.be/dQw4w9WgXcQ") == "Hello world"
    assert api.calls == [("dQw4w9WgXcQ", ["en"])]


def test_transcript_service_errors():
    with pytest.raises(TranscriptError):
        TranscriptService(api=FakeTranscriptApi()).get_text("https://vimeo.com/1")
    with pytest.raises(TranscriptError):
        TranscriptService(api=FakeTranscriptApi()).get_text("dQw4w9WgXcQ")
    disabled = FakeTranscriptApi(error=TranscriptsDisabled("dQw4w9WgXcQ"))
    with pytest.raises(TranscriptError):
        TranscriptService(api=disabled).get_text("dQw4w9WgXcQ")


def test_extract_text_decodes_plain_text():
    assert extract_text("Déjà vu".encode("utf-8"), "notes.txt", "text/plain") == "Déjà vu"
    assert extract_text(b"") == ""


def _docx_bytes(*paragraphs):
    doc = Document()
    for text in paragraphs:
        doc.add_paragraph(text)
    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def test_extract_text_reads_word_documents():
    data = _docx_bytes("Week 1: Variables", "", "Week 2: Loops")
    assert extract_text(data, "syllabus.docx", "application/octet-stream") == "Week 1: Variables\nWeek 2: Loops"
    assert extract_text(data, None, DOCX_CONTENT_TYPE).startswith("Week 1")


def test_extract_text_rejects_broken_word_document():
    with pytest.raises(ExtractionError):
        extract_text(b"this is not a zip archive", "syllabus.docx", None)


def test_extract_text_rejects_other_binary_uploads():
    zipped = io.BytesIO()
    with zipfile.ZipFile(zipped, "w") as archive:
        archive.writestr("notes.txt", "hello")
    with pytest.raises(ExtractionError):
        extract_text(zipped.getvalue(), "notes.zip", "application/zip")
    with pytest.raises(ExtractionError):
        extract_text(b"\x89PNG\r\n\x1a\n\x00\x00", "diagram.png", "image/png")
