"""Environment-driven settings for the pipeline and the model client."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _get_env(name: str, required: bool = True) -> Optional[str]:
    val = os.environ.get(name)
    if required and not val:
        raise EnvironmentError(
            f"Missing required environment variable: {name}. "
            f"Set it in .env or export it."
        )
    return val


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    return max(minimum, value)


def _env_float(name: str, default: float, minimum: float = 0.0) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = float(raw.strip())
    except ValueError:
        return default
    return max(minimum, value)


@dataclass(frozen=True)
class QualityThresholds:
    """Tunable constants of the quality validator's diversity scoring."""

    answer_weight: float = 0.4
    text_weight: float = 0.6
    min_diversity: float = 0.5
    math_tolerance: float = 0.01

    @classmethod
    def from_env(cls) -> "QualityThresholds":
        return cls(
            answer_weight=_env_float("LEARNHUB_DIVERSITY_ANSWER_WEIGHT", 0.4),
            text_weight=_env_float("LEARNHUB_DIVERSITY_TEXT_WEIGHT", 0.6),
            min_diversity=_env_float("LEARNHUB_MIN_DIVERSITY", 0.5),
        )


@dataclass(frozen=True)
class LanguageModelConfig:
    base_url: Optional[str]
    api_key: str
    model: str
    reasoning_model: str
    embedding_model: str
    timeout_seconds: float = 120.0

    @classmethod
    def from_env(cls) -> "LanguageModelConfig":
        """Build the client config; raises ``EnvironmentError`` when unset."""
        model = _get_env("LEARNHUB_LLM_MODEL")
        base_url = _get_env("LEARNHUB_LLM_BASE_URL", required=False)
        # Local OpenAI-compatible servers (Ollama) accept any key.
        api_key = _get_env("LEARNHUB_LLM_API_KEY", required=base_url is None)
        return cls(
            base_url=base_url,
            api_key=api_key or "ollama",
            model=model,
            reasoning_model=_get_env("LEARNHUB_LLM_REASONING_MODEL", required=False)
            or model,
            embedding_model=_get_env("LEARNHUB_EMBEDDING_MODEL", required=False)
            or "nomic-embed-text",
            timeout_seconds=_env_float("LEARNHUB_LLM_TIMEOUT_SECONDS", 120.0, minimum=1.0),
        )


def grading_max_workers() -> int:
    return _env_int("LEARNHUB_GRADING_MAX_WORKERS", 4, minimum=1)
