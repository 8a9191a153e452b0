"""Pure text/number helpers shared by the quality and grading agents."""

from __future__ import annotations

import math
import re
from itertools import combinations
from typing import List, Sequence, Tuple

_NUMBER_RE = re.compile(r"\b\d+(?:\.\d+)?\b")


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties away from zero on the positive side.

    ``round()`` uses banker's rounding, which would turn 2.5 into 2.
    """
    return int(math.floor(value + 0.5))


def extract_numbers(text: str) -> List[float]:
    """Return every integer/decimal token in *text*, in order of appearance."""
    if not text:
        return []
    return [float(token) for token in _NUMBER_RE.findall(text)]


def format_number(value: float) -> str:
    if math.isfinite(value) and value == int(value):
        return str(int(value))
    return f"{value:g}"


def word_set(text: str) -> set:
    return set(text.lower().split())


def jaccard_similarity(text_a: str, text_b: str) -> float:
    """Jaccard similarity of the lower-cased whitespace word sets."""
    words_a = word_set(text_a)
    words_b = word_set(text_b)
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


def diversity_score(
    items: Sequence[Tuple[str, float]],
    answer_weight: float = 0.4,
    text_weight: float = 0.6,
) -> float:
    """Score how different a batch of ``(text, answer)`` pairs are, in [0, 1].

    Combines answer uniqueness (distinct rounded answers over batch size)
    with text diversity (one minus mean pairwise Jaccard similarity).
    A batch of zero or one item is trivially diverse.
    """
    if len(items) <= 1:
        return 1.0

    rounded = set()
    for _, answer in items:
        # All NaN answers count as one distinct value; each infinity keeps its sign.
        if math.isnan(answer):
            rounded.add("nan")
        elif math.isinf(answer):
            rounded.add(answer)
        else:
            rounded.add(round_half_up(answer))
    answer_diversity = len(rounded) / len(items)

    similarities = [
        jaccard_similarity(a[0], b[0]) for a, b in combinations(items, 2)
    ]
    avg_similarity = sum(similarities) / len(similarities) if similarities else 0.0
    text_diversity = 1.0 - avg_similarity

    score = answer_diversity * answer_weight + text_diversity * text_weight
    return max(0.0, min(1.0, score))
