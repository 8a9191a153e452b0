"""JSON helpers with defensive parsing of model output."""

from __future__ import annotations

import json
import re
from typing import Any, Dict


def extract_json(raw: str) -> Dict[str, Any]:
    """Extract the first JSON object from a possibly-noisy string.

    Handles common LLM quirks: markdown fences, leading prose, ``<think>``
    blocks emitted by reasoning models.
    Raises ``ValueError`` if no valid JSON object is found.
    """
    if not isinstance(raw, str):
        raise ValueError(f"Expected text from model, got {type(raw).__name__}")
    # Reasoning models may prefix their answer with a think block
    cleaned = re.sub(r"<think>[\s\S]*?</think>", "", raw)
    # Strip markdown code fences
    cleaned = re.sub(r"```(?:json)?", "", cleaned).strip()
    # Try full string first
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        data = None
    if isinstance(data, dict):
        return data
    # Find first { ... } block
    match = re.search(r"\{[\s\S]*\}", cleaned)
    if match:
        try:
            data = json.loads(match.group())
        except json.JSONDecodeError:
            data = None
        if isinstance(data, dict):
            return data
    raise ValueError(f"Could not extract JSON from model output: {raw[:200]}")
