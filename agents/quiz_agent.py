from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from agents.base_agent import BaseAgent, LLMError
from schemas.agent_io import QuizInput
from schemas.quiz import Question, Quiz
from validators.quiz_validator import validate_question, validate_quiz

logger = logging.getLogger(__name__)

CHAPTER_QUIZ_QUESTIONS = 5
FULL_TEST_QUESTIONS = 15
DEFAULT_SUBJECT = "AI Basics"

_LETTERS = "ABCDEFGH"


class QuizGenerationError(RuntimeError):
    """Raised when the model output cannot be turned into a valid quiz."""


def _resolve_correct_answer(q: Dict[str, Any], options: List[str]) -> Optional[str]:
    answer = q.get("correct_answer")
    if answer is None:
        answer = q.get("correctAnswer") or q.get("answer") or q.get("correctOption")
    if answer is None and q.get("correct_index") is not None:
        try:
            return options[int(q["correct_index"])]
        except (TypeError, ValueError, IndexError):
            return None
    if answer is None:
        return None

    answer = str(answer).strip()
    if answer in options:
        return answer
    # "B" or "B." style letter answers
    letter = answer.rstrip(".):").upper()
    if len(letter) == 1 and letter in _LETTERS and _LETTERS.index(letter) < len(options):
        return options[_LETTERS.index(letter)]
    return answer


class QuizAgent(BaseAgent):
    name = "quiz"

    def _normalize_questions(self, payload: Any) -> List[Dict[str, Any]]:
        """
        Adapt common LLM quiz formats into a list of Question dicts:
        {"question": str, "options": [str, ...], "correct_answer": str, "explanation": str}
        Questions that cannot be repaired are dropped.
        """
        if isinstance(payload, list):
            questions_raw: Any = payload
        elif isinstance(payload, dict):
            questions_raw = (
                payload.get("questions")
                or payload.get("items")
                or payload.get("quiz")
                or payload.get("test")
                or []
            )
        else:
            questions_raw = []

        questions: List[Dict[str, Any]] = []
        if not isinstance(questions_raw, list):
            return questions

        for q in questions_raw:
            if not isinstance(q, dict):
                continue
            text = q.get("question") or q.get("prompt") or q.get("text") or ""
            options = q.get("options") or q.get("choices") or q.get("answers") or []
            if isinstance(options, dict):
                # e.g. {"A": "...", "B": "..."} -> ["...", "..."]
                options = list(options.values())
            if not isinstance(options, list):
                continue
            options = [str(o).strip() for o in options]

            candidate = {
                "question": str(text).strip(),
                "options": options,
                "correct_answer": _resolve_correct_answer(q, options),
                "explanation": str(q.get("explanation") or q.get("rationale") or "").strip(),
            }
            problems = validate_question(candidate)
            if problems:
                logger.debug("Dropping quiz question %r: %s", candidate["question"][:80], problems)
                continue
            questions.append(candidate)

        return questions

    def _request(self, prompt_id: str, quiz_input: QuizInput, question_count: int) -> Any:
        content = (quiz_input.content or "").strip() or DEFAULT_SUBJECT
        prompt = self.render_prompt(
            prompt_id,
            content=content,
            difficulty=quiz_input.difficulty.value,
            question_count=question_count,
        )
        try:
            return self.validate_json(self.complete(prompt))
        except (LLMError, ValueError) as exc:
            raise QuizGenerationError(f"Quiz generation failed: {exc}") from exc

    def generate(self, input_json: Dict[str, Any]) -> Dict[str, Any]:
        quiz_input = QuizInput.model_validate(input_json)
        raw_payload = self._request("chapter_quiz", quiz_input, CHAPTER_QUIZ_QUESTIONS)
        questions = self._normalize_questions(raw_payload)[:CHAPTER_QUIZ_QUESTIONS]

        # The requested tier wins over whatever label the model echoes back.
        normalized = {"difficulty": quiz_input.difficulty.value, "questions": questions}
        ok, issues = validate_quiz(normalized, CHAPTER_QUIZ_QUESTIONS)
        if not ok:
            raise QuizGenerationError("Unusable quiz: " + "; ".join(issues))
        return Quiz.model_validate(normalized).to_json()

    def generate_full_test(self, input_json: Dict[str, Any]) -> List[Dict[str, Any]]:
        quiz_input = QuizInput.model_validate(input_json)
        raw_payload = self._request("full_test", quiz_input, FULL_TEST_QUESTIONS)
        questions = self._normalize_questions(raw_payload)[:FULL_TEST_QUESTIONS]
        if not questions:
            raise QuizGenerationError("Full test response contained no usable questions.")
        if len(questions) < FULL_TEST_QUESTIONS:
            logger.warning("Full test has %d of %d questions", len(questions), FULL_TEST_QUESTIONS)
        return [Question.model_validate(q).model_dump() for q in questions]
