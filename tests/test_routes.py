import io

import pytest
from docx import Document
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError

from agents.base_agent import LLMError
from agents.comprehension_agent import ComprehensionAgent
from agents.quiz_agent import QuizAgent
from helpers import DummyLLMMixin, StubChapterWriter, StubOutlineAgent
from learning_service import storage
from learning_service.database import get_db
from learning_service.dependencies import (
    get_comprehension_agent,
    get_course_assembler,
    get_quiz_agent,
    get_transcript_service,
)
from learning_service.main import app
from learning_service.transcripts import TranscriptError
from manager.course_assembler import CourseAssembler


class DummyQuizAgent(DummyLLMMixin, QuizAgent):
    pass


class DummyComprehensionAgent(DummyLLMMixin, ComprehensionAgent):
    pass


class StubTranscripts:
    def get_text(self, url):
        if "broken" in url:
            raise TranscriptError("Transcripts are disabled for this video.")
        return "Welcome to the video about recursion."


def _quiz_payload():
    return {
        "questions": [
            {"question": f"Q{n}?", "options": ["a", "b", "c", "d"], "correct_answer": "b"} for n in range(5)
        ]
    }


@pytest.fixture
def overrides(session_factory):
    state = {"outline": StubOutlineAgent(), "writer": StubChapterWriter(), "quiz": None, "ask": None}

    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_course_assembler] = lambda: CourseAssembler(
        state["outline"], state["writer"], max_workers=2
    )
    app.dependency_overrides[get_quiz_agent] = lambda: state["quiz"] or DummyQuizAgent(_quiz_payload())
    app.dependency_overrides[get_comprehension_agent] = lambda: state["ask"] or DummyComprehensionAgent("42")
    app.dependency_overrides[get_transcript_service] = StubTranscripts
    yield state
    app.dependency_overrides.clear()


@pytest.fixture
def client(overrides):
    return TestClient(app)


def _register(client, email="ada@example.com"):
    response = client.post(
        "/api/auth/register", json={"email": email, "password": "secret1", "full_name": "Ada Lovelace"}
    )
    assert response.status_code == 201, response.text
    return response.json()


def _create_course(client, kind="fullcourse"):
    response = client.post(
        f"/api/{kind}/create",
        data={"title": "ignored"},
        files={"file": ("syllabus.txt", b"Intro to Python programming", "text/plain")},
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_register_login_and_me(client):
    user = _register(client)
    assert user["email"] == "ada@example.com"
    assert client.get("/api/auth/me").json()["id"] == user["id"]

    client.post("/api/auth/logout")
    assert client.get("/api/auth/me").status_code == 401

    assert client.post("/api/auth/login", json={"email": "ada@example.com", "password": "nope12"}).status_code == 401
    response = client.post("/api/auth/login", json={"email": "ADA@example.com", "password": "secret1"})
    assert response.status_code == 200
    assert client.get("/api/auth/me").status_code == 200


def test_duplicate_registration_rejected(client):
    _register(client)
    response = client.post(
        "/api/auth/register", json={"email": "ada@example.com", "password": "secret1", "full_name": "Ada"}
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Email already exists"


def test_endpoints_require_session(client):
    assert client.get("/api/fullcourse").status_code == 401
    assert client.post("/api/quiz/submit", json={"topic_id": 1, "answers": ["a"], "correct_answers": ["a"]}).status_code == 401


def test_create_full_course_and_gate_chapters(client):
    _register(client)
    course = _create_course(client)

    assert course["course_type"] == "FULL"
    assert [t["order_index"] for t in course["topics"]] == [1, 2, 3, 4, 5]
    assert [t["unlocked"] for t in course["topics"]] == [True, False, False, False, False]

    listed = client.get("/api/fullcourse").json()
    assert [c["id"] for c in listed] == [course["id"]]
    assert client.get("/api/oneshot").json() == []

    first = course["topics"][0]["id"]
    result = client.post(
        "/api/quiz/submit", json={"topic_id": first, "answers": list("ABCDE"), "correct_answers": list("ABCDE")}
    ).json()
    assert result == {
        "score": 5,
        "total": 5,
        "percentage": 100.0,
        "next_difficulty": "Hard",
        "message": "Excellent work!",
    }

    detail = client.get(f"/api/fullcourse/{course['id']}").json()
    assert [t["unlocked"] for t in detail["topics"]] == [True, True, False, False, False]

    progress = client.get(f"/api/quiz/progress/{course['id']}").json()
    assert len(progress) == 1
    assert progress[0]["difficulty"] == "Hard"


def test_create_oneshot_course_with_failed_chapter(client, overrides):
    overrides["writer"] = StubChapterWriter(failing={1})
    _register(client)
    course = _create_course(client, kind="oneshot")

    assert len(course["topics"]) == 4
    assert course["topics"][1]["title"] == "Chapter 2"
    assert "Content generation failed" in course["topics"][1]["content"]


def test_outline_failure_returns_500_and_no_course(client, overrides):
    overrides["outline"] = StubOutlineAgent(fail=True)
    _register(client)
    response = client.post("/api/fullcourse/create", data={"title": "Python"})

    assert response.status_code == 500
    assert response.json()["detail"] == "AI generation failed"
    assert client.get("/api/fullcourse").json() == []


def test_course_detail_is_private(client):
    _register(client)
    course = _create_course(client)
    client.post("/api/auth/logout")
    _register(client, email="bob@example.com")

    assert client.get(f"/api/fullcourse/{course['id']}").status_code == 404
    assert client.get("/api/fullcourse/9999").status_code == 404


def test_submit_rejects_mismatched_answers(client):
    _register(client)
    course = _create_course(client)
    response = client.post(
        "/api/quiz/submit",
        json={"topic_id": course["topics"][0]["id"], "answers": ["A", "B"], "correct_answers": ["A"]},
    )
    assert response.status_code == 422


def test_submit_unknown_topic_returns_404(client):
    _register(client)
    response = client.post("/api/quiz/submit", json={"topic_id": 9999, "answers": ["A"], "correct_answers": ["A"]})
    assert response.status_code == 404


def test_chapter_quiz_difficulty_follows_previous_chapter(client):
    _register(client)
    topics = _create_course(client)["topics"]

    first_quiz = client.get(f"/api/quiz/chapter/{topics[0]['id']}").json()
    assert first_quiz["difficulty"] == "Easy"
    assert len(first_quiz["questions"]) == 5

    client.post(
        "/api/quiz/submit", json={"topic_id": topics[0]["id"], "answers": ["A", "B"], "correct_answers": ["A", "X"]}
    )
    assert client.get(f"/api/quiz/chapter/{topics[1]['id']}").json()["difficulty"] == "Medium"
    assert client.get(f"/api/quiz/chapter/{topics[1]['id']}?difficulty=Hard").json()["difficulty"] == "Hard"


def test_quiz_generation_failure_returns_502(client, overrides):
    overrides["quiz"] = DummyQuizAgent(LLMError("down"))
    _register(client)
    topics = _create_course(client)["topics"]
    assert client.get(f"/api/quiz/chapter/{topics[0]['id']}").status_code == 502
    assert client.get("/api/quiz/chapter/9999").status_code == 404


def test_full_test_and_default_notebook(client):
    _register(client)
    topic_id = _create_course(client)["topics"][0]["id"]

    questions = client.get(f"/api/quiz/full-test/{topic_id}").json()
    assert len(questions) == 5
    notebook = client.get(f"/api/quiz/notebook/{topic_id}").json()
    assert [cell["type"] for cell in notebook["cells"]] == ["markdown", "code"]


def test_document_chat(client):
    _register(client)
    uploaded = client.post(
        "/api/doc-comprehension/upload", files={"file": ("notes.txt", b"The answer is 42.", "text/plain")}
    ).json()
    assert uploaded["text"] == "The answer is 42."
    assert uploaded["session_id"]

    empty = client.post("/api/doc-comprehension/upload", files={"file": ("empty.txt", b"", "text/plain")}).json()
    assert empty["text"] == "Sample text"

    answer = client.post(
        "/api/doc-comprehension/ask",
        json={"question": "What is the answer?", "session_id": uploaded["session_id"], "text": uploaded["text"]},
    )
    assert answer.json() == {"answer": "42"}


def test_video_chat(client, overrides):
    _register(client)
    extracted = client.post("/api/video-comprehension/extract", json={"url": "https://youtu.be/dQw4w9WgXcQ"})
    assert extracted.status_code == 200
    assert "recursion" in extracted.json()["text"]

    broken = client.post("/api/video-comprehension/extract", json={"url": "https://youtu.be/broken"})
    assert broken.status_code == 400

    overrides["ask"] = DummyComprehensionAgent(LLMError("down"))
    failed = client.post(
        "/api/video-comprehension/ask", json={"question": "Topic?", "session_id": "s", "text": "transcript"}
    )
    assert failed.status_code == 502


def test_chapters_of_another_users_course_are_hidden(client):
    _register(client)
    course = _create_course(client)
    topic_id = course["topics"][0]["id"]
    client.post("/api/auth/logout")
    _register(client, email="bob@example.com")

    assert client.get(f"/api/quiz/chapter/{topic_id}").status_code == 404
    assert client.get(f"/api/quiz/full-test/{topic_id}").status_code == 404
    assert client.get(f"/api/quiz/notebook/{topic_id}").status_code == 404
    submitted = client.post(
        "/api/quiz/submit", json={"topic_id": topic_id, "answers": ["A"], "correct_answers": ["A"]}
    )
    assert submitted.status_code == 404
    assert client.get(f"/api/quiz/progress/{course['id']}").json() == []


def test_submit_returns_score_when_progress_cannot_be_saved(client, monkeypatch):
    async def failing_upsert(db, **kwargs):
        raise SQLAlchemyError("database is locked")

    monkeypatch.setattr(storage, "upsert_progress", failing_upsert)
    _register(client)
    course = _create_course(client)

    response = client.post(
        "/api/quiz/submit",
        json={"topic_id": course["topics"][0]["id"], "answers": ["A", "B"], "correct_answers": ["A", "B"]},
    )
    assert response.status_code == 200
    assert response.json()["score"] == 2
    assert response.json()["next_difficulty"] == "Hard"
    assert client.get(f"/api/quiz/progress/{course['id']}").json() == []


def test_document_chat_reads_word_files_and_rejects_other_binaries(client):
    _register(client)
    doc = Document()
    doc.add_paragraph("Recursion calls itself.")
    buffer = io.BytesIO()
    doc.save(buffer)

    uploaded = client.post(
        "/api/doc-comprehension/upload",
        files={"file": ("notes.docx", buffer.getvalue(), "application/octet-stream")},
    )
    assert uploaded.status_code == 200
    assert uploaded.json()["text"] == "Recursion calls itself."

    rejected = client.post(
        "/api/doc-comprehension/upload", files={"file": ("archive.bin", b"\x00\x01\x02binary", "application/octet-stream")}
    )
    assert rejected.status_code == 400
