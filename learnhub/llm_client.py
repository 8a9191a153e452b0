"""Language-model client wrapper — isolates all OpenAI SDK calls.

Works against any OpenAI-compatible endpoint: OpenAI itself, Azure OpenAI
deployments, or a local Ollama server exposing ``/v1``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from time import perf_counter
from typing import Any, List, Optional, Protocol

from .config import LanguageModelConfig
from .errors import LanguageModelError

_logger = logging.getLogger("learnhub.llm")


class LanguageModel(Protocol):
    def generate(self, prompt: str) -> str:
        ...

    def generate_with_complex_reasoning(self, prompt: str) -> str:
        ...


class EmbeddingModel(Protocol):
    def embed(self, text: str) -> List[float]:
        ...


def _short_error(exc: Exception, max_len: int = 240) -> str:
    text = " ".join(str(exc).split())
    if len(text) <= max_len:
        return text
    return f"{text[: max_len - 3].rstrip()}..."


def _as_text(value: Any) -> str:
    """Best-effort extraction of text payloads across SDK response shapes."""
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        parts = [_as_text(item) for item in value]
        return "\n".join([p for p in parts if p.strip()])
    if isinstance(value, dict):
        for key in ("content", "text", "value"):
            v = value.get(key)
            if isinstance(v, (str, list, dict)):
                text = _as_text(v)
                if text.strip():
                    return text
        return ""
    for attr in ("content", "text", "value"):
        v = getattr(value, attr, None)
        if isinstance(v, (str, list, dict)):
            text = _as_text(v)
            if text.strip():
                return text
    return ""


def _extract_response_text(response: Any) -> str:
    """Normalize chat-completion text output."""
    choices = getattr(response, "choices", None)
    if isinstance(choices, list) and choices:
        message = getattr(choices[0], "message", None)
        text = _as_text(message)
        if text.strip():
            return text
    raise LanguageModelError("Model returned an empty completion")


@dataclass
class OpenAILanguageModel:
    """Completion + embedding capabilities over an OpenAI-compatible client."""

    client: Any
    model: str
    reasoning_model: Optional[str] = None
    embedding_model: str = "nomic-embed-text"
    temperature: float = 0.7
    reasoning_temperature: float = 0.3

    def _complete(self, model: str, prompt: str, temperature: float) -> str:
        started = perf_counter()
        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
            )
        except Exception as exc:
            raise LanguageModelError(
                f"Completion with {model} failed: {_short_error(exc)}"
            ) from exc
        text = _extract_response_text(response)
        _logger.debug(
            "llm_completion",
            extra={
                "event": "llm_completion",
                "model": model,
                "duration_ms": round((perf_counter() - started) * 1000, 2),
            },
        )
        return text

    def generate(self, prompt: str) -> str:
        return self._complete(self.model, prompt, self.temperature)

    def generate_with_complex_reasoning(self, prompt: str) -> str:
        """Lower-temperature completion on the reasoning model (used for grading)."""
        return self._complete(
            self.reasoning_model or self.model,
            prompt,
            self.reasoning_temperature,
        )

    def embed(self, text: str) -> List[float]:
        try:
            response = self.client.embeddings.create(
                model=self.embedding_model,
                input=text,
            )
        except Exception as exc:
            raise LanguageModelError(
                f"Embedding with {self.embedding_model} failed: {_short_error(exc)}"
            ) from exc
        data = getattr(response, "data", None)
        if not data:
            raise LanguageModelError("Embedding response contained no vectors")
        return [float(v) for v in data[0].embedding]


def _build_openai_client(config: LanguageModelConfig) -> Any:
    from openai import OpenAI

    kwargs = {"api_key": config.api_key, "timeout": config.timeout_seconds}
    if config.base_url:
        kwargs["base_url"] = config.base_url
    return OpenAI(**kwargs)


def get_language_model() -> Optional[OpenAILanguageModel]:
    """Return a configured model client, or None when config is missing.

    Callers fall back to offline mode on None.
    """
    try:
        config = LanguageModelConfig.from_env()
    except EnvironmentError as exc:
        _logger.warning(
            "llm_unconfigured",
            extra={"event": "llm_unconfigured", "reason": str(exc)},
        )
        return None

    try:
        client = _build_openai_client(config)
    except Exception as exc:
        _logger.warning(
            "llm_init_failed",
            extra={"event": "llm_init_failed", "reason": _short_error(exc)},
        )
        return None

    return OpenAILanguageModel(
        client=client,
        model=config.model,
        reasoning_model=config.reasoning_model,
        embedding_model=config.embedding_model,
    )
