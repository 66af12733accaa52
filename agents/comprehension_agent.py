from __future__ import annotations

from typing import Any, Dict

from agents.base_agent import BaseAgent, LLMError
from schemas.agent_io import AskInput

PROMPT_IDS = {
    "document": "ask_document",
    "video": "ask_video",
}


class AnswerGenerationError(RuntimeError):
    """Raised when a grounded answer could not be produced."""


class ComprehensionAgent(BaseAgent):
    name = "comprehension"

    def generate(self, input_json: Dict[str, Any]) -> Dict[str, Any]:
        """
        Answers a question using only the text the client echoed back.
        Input: {"question": "...", "text": "...", "source": "document|video"}
        Output: {"answer": "..."}
        """
        ask_input = AskInput.model_validate(input_json)
        prompt_id = PROMPT_IDS.get(ask_input.source)
        if prompt_id is None:
            raise ValueError(f"Unknown comprehension source '{ask_input.source}'.")

        prompt = self.render_prompt(prompt_id, question=ask_input.question, text=ask_input.text)
        try:
            answer = self.complete(prompt)
        except LLMError as exc:
            raise AnswerGenerationError(str(exc)) from exc
        return {"answer": str(answer).strip()}
