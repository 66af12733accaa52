from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from jinja2 import Template
from openai import OpenAI

logger = logging.getLogger(__name__)

PROMPTS_PATH = Path(__file__).resolve().parent / "prompts.yaml"

_DOTENV_LOADED = False


class LLMError(RuntimeError):
    """Raised when the text-completion gateway fails or returns nothing."""


def _load_env_once() -> None:
    global _DOTENV_LOADED

    if _DOTENV_LOADED:
        return
    env_path = Path(__file__).resolve().parents[1] / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path, override=False)
        logger.info("Loaded environment variables from %s", env_path)
    _DOTENV_LOADED = True


@dataclass
class LLMConfig:
    provider: str = "openai"
    model: str = field(default_factory=lambda: os.getenv("LEARNAI_MODEL", "gpt-4o-mini"))
    # Prefer LEARNAI_API_KEY, fall back to OPENAI_API_KEY from .env
    api_key: Optional[str] = field(
        default_factory=lambda: os.getenv("LEARNAI_API_KEY") or os.getenv("OPENAI_API_KEY")
    )
    # Any OpenAI-compatible endpoint (Groq, a local server, ...)
    base_url: Optional[str] = field(default_factory=lambda: os.getenv("LEARNAI_BASE_URL") or None)
    temperature: float = 0.3


def build_llm_client(config: LLMConfig) -> OpenAI:
    """Construct the process-wide gateway client that agents get injected with."""
    if config.provider != "openai":
        raise NotImplementedError(f"LLM provider '{config.provider}' is not supported.")
    if not config.api_key:
        raise LLMError("No API key configured. Set LEARNAI_API_KEY or OPENAI_API_KEY.")
    return OpenAI(api_key=config.api_key, base_url=config.base_url)


@dataclass
class PromptMessage:
    role: str
    template: Template


@dataclass
class PromptDefinition:
    description: str
    messages: List[PromptMessage]
    max_tokens: int
    response_format: Optional[str] = None


@dataclass
class RenderedPrompt:
    prompt_id: str
    messages: List[Dict[str, str]]
    max_tokens: int
    json_mode: bool


@lru_cache(maxsize=1)
def load_prompt_definitions(path: Path = PROMPTS_PATH) -> Dict[str, PromptDefinition]:
    """Read prompt templates from YAML and compile them with Jinja2."""
    if not path.exists():
        raise FileNotFoundError(f"Prompt definition file not found: {path}")

    with path.open("r", encoding="utf-8") as handle:
        raw_prompts = yaml.safe_load(handle)

    definitions: Dict[str, PromptDefinition] = {}
    for key, value in raw_prompts.items():
        try:
            description = value["description"]
            messages = value["messages"]
            max_tokens = int(value["max_tokens"])
        except KeyError as exc:
            raise ValueError(f"Prompt '{key}' is missing required field: {exc}") from exc

        compiled_messages = [
            PromptMessage(
                role=message["role"],
                template=Template(message["template"], trim_blocks=True, lstrip_blocks=True),
            )
            for message in messages
        ]

        definitions[key] = PromptDefinition(
            description=description,
            messages=compiled_messages,
            max_tokens=max_tokens,
            response_format=value.get("response_format"),
        )

    return definitions


class BaseAgent(ABC):
    name: str = "base"

    def __init__(self, llm_client: Any | None = None, llm_config: LLMConfig | None = None) -> None:
        _load_env_once()
        self.llm_config = llm_config or LLMConfig()
        self._llm_client = llm_client
        self._prompts = load_prompt_definitions()

    @abstractmethod
    def generate(self, input_json: Dict[str, Any]) -> Any:
        raise NotImplementedError

    def render_prompt(self, prompt_id: str, **context: Any) -> RenderedPrompt:
        definition = self._prompts.get(prompt_id)
        if definition is None:
            raise KeyError(f"Prompt '{prompt_id}' not found.")
        messages = [
            {"role": message.role, "content": message.template.render(**context).strip()}
            for message in definition.messages
        ]
        return RenderedPrompt(
            prompt_id=prompt_id,
            messages=messages,
            max_tokens=definition.max_tokens,
            json_mode=definition.response_format == "json_object",
        )

    def complete(self, prompt: RenderedPrompt) -> Dict[str, Any] | List[Any] | str:
        return self.call_llm(prompt.messages, json_mode=prompt.json_mode, max_tokens=prompt.max_tokens)

    def call_llm(
        self,
        messages: List[Dict[str, str]],
        *,
        json_mode: bool = False,
        max_tokens: int = 1024,
    ) -> Dict[str, Any] | List[Any] | str:
        if self._llm_client is None:
            raise LLMError(f"No LLM client was injected into agent '{self.name}'.")

        logger.info(
            "Calling LLM provider=%s model=%s agent=%s max_tokens=%d",
            self.llm_config.provider,
            self.llm_config.model,
            self.name,
            max_tokens,
        )

        request_kwargs: Dict[str, Any] = {
            "model": self.llm_config.model,
            "messages": messages,
            "temperature": self.llm_config.temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            request_kwargs["response_format"] = {"type": "json_object"}

        try:
            completion = self._llm_client.chat.completions.create(**request_kwargs)
        except Exception as exc:
            raise LLMError(f"Chat completion failed for agent '{self.name}': {exc}") from exc

        content = completion.choices[0].message.content or ""
        if not content.strip():
            raise LLMError(f"LLM returned empty output for agent '{self.name}'.")
        return content

    def validate_json(self, json_data: str | Dict[str, Any] | List[Any]) -> Dict[str, Any] | List[Any]:
        if isinstance(json_data, (dict, list)):
            return json_data
        text = (json_data or "").strip()
        # Strip Markdown-style JSON fences if present
        if text.startswith("```"):
            lines = text.splitlines()
            lines = lines[1:]
            if lines and lines[-1].strip().startswith("```"):
                lines = lines[:-1]
            text = "\n".join(lines).strip()
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            # Fallback: attempt to extract the outermost object or array
            for opener, closer in (("{", "}"), ("[", "]")):
                start = text.find(opener)
                end = text.rfind(closer)
                if start != -1 and end != -1 and end > start:
                    candidate = text[start : end + 1]
                    try:
                        return json.loads(candidate)
                    except json.JSONDecodeError as exc:
                        logger.debug("Failed to decode extracted LLM JSON snippet: %s", exc)
            logger.debug("Failed to decode LLM JSON. Raw text: %s", text[:500])
            raise ValueError("Invalid JSON returned from LLM") from None
