import time
from types import SimpleNamespace
from typing import Any, Dict, List

from agents.base_agent import LLMConfig
from agents.outline_agent import OutlineGenerationError
from schemas.chapter_content import ChapterContent, ChapterFailed, ChapterOk
from schemas.course_outline import chapter_count_for


class DummyLLMMixin:
    """Replaces the gateway call with canned responses queued per test."""

    llm_config = LLMConfig(api_key="dummy-key")

    def __init__(self, *responses: Any) -> None:
        super().__init__(llm_config=self.llm_config)
        self.responses: List[Any] = list(responses)
        self.calls: List[Dict[str, Any]] = []

    def call_llm(self, messages, *, json_mode=False, max_tokens=1024):  # type: ignore[override]
        self.calls.append({"messages": messages, "json_mode": json_mode, "max_tokens": max_tokens})
        response = self.responses.pop(0) if self.responses else {}
        if isinstance(response, Exception):
            raise response
        return response


def fake_completion(content: str) -> SimpleNamespace:
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeLLMClient:
    """Mimics ``client.chat.completions.create`` of the OpenAI SDK."""

    def __init__(self, content: str = "{}", error: Exception | None = None) -> None:
        self.requests: List[Dict[str, Any]] = []
        self._content = content
        self._error = error
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs: Any) -> SimpleNamespace:
        self.requests.append(kwargs)
        if self._error is not None:
            raise self._error
        return fake_completion(self._content)


class StubOutlineAgent:
    def __init__(self, fail: bool = False, title: str = "Python Basics") -> None:
        self.fail = fail
        self.title = title

    def generate(self, input_json: Dict[str, Any]) -> Dict[str, Any]:
        if self.fail:
            raise OutlineGenerationError("model unavailable")
        count = chapter_count_for(input_json["course_type"])
        return {"title": self.title, "topics": [f"Chapter {i}" for i in range(1, count + 1)]}


class StubChapterWriter:
    def __init__(self, failing=(), raising=(), delays=None) -> None:
        self.failing = set(failing)
        self.raising = set(raising)
        self.delays = delays or {}
        self.finished: List[int] = []

    def generate(self, input_json: Dict[str, Any]):
        title = input_json["chapter_title"]
        position = input_json["position"]
        time.sleep(self.delays.get(position, 0))
        if position in self.raising:
            raise RuntimeError("worker crashed")
        if position in self.failing:
            return ChapterFailed(title=title, reason="timeout")
        chapter = ChapterContent(
            title=title,
            content=f"## {title}\n\nBody of {title}.",
            ai_summary=f"{title} introduces the basics. It ends with an example.",
        )
        self.finished.append(position)
        return ChapterOk(chapter=chapter)


