from __future__ import annotations

from typing import Any, Dict, List, Tuple


def validate_question(question: Dict[str, Any]) -> List[str]:
    issues: List[str] = []
    if not str(question.get("question") or "").strip():
        issues.append("question text is empty")
    options = question.get("options") or []
    if len(options) < 2:
        issues.append("needs at least 2 options")
    matches = options.count(question.get("correct_answer"))
    if matches != 1:
        issues.append(f"correct_answer matches {matches} options, expected exactly 1")
    return issues


def validate_quiz(quiz: Dict[str, Any], expected_questions: int) -> Tuple[bool, List[str]]:
    issues: List[str] = []
    questions = quiz.get("questions") or []

    if len(questions) != expected_questions:
        issues.append(f"Quiz must contain exactly {expected_questions} questions, got {len(questions)}.")

    for i, question in enumerate(questions):
        for problem in validate_question(question):
            issues.append(f"Question {i}: {problem}.")

    return (len(issues) == 0, issues)
