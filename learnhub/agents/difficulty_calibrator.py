"""DifficultyCalibratorAgent — derives age-appropriate generation settings."""

from __future__ import annotations

import math
from typing import Any, Dict, List, Tuple

from ..models.context import StructuredPromptContext, WorkflowContext
from ..models.schemas import (
    DifficultySettings,
    NumberRange,
    StructuredCalibration,
)
from .base import EducationalAgent


_GRADE_MAX: Dict[int, int] = {
    1: 10,
    2: 20,
    3: 50,
    4: 100,
    5: 200,
    6: 500,
    7: 1000,
    8: 2000,
}
_DIFFICULTY_SCALE = {"easy": 0.5, "medium": 0.75, "hard": 1.0}

_TYPE_COMPLEXITY = {
    "addition": "simple",
    "subtraction": "simple",
    "multiplication": "moderate",
    "division": "moderate",
    "fraction_addition": "complex",
    "decimal_addition": "complex",
    "word_problem_mixed": "complex",
    "area_calculation": "moderate",
}
_COMPLEXITY_ORDER = ("simple", "moderate", "complex")
_LOAD_ORDER = ("low", "medium", "high")

_BASE_OPERATIONS: Dict[str, List[str]] = {
    "addition": ["single-digit", "double-digit", "carrying"],
    "subtraction": ["single-digit", "double-digit", "borrowing"],
    "multiplication": ["single-digit", "by-10", "double-digit"],
    "division": ["by-single-digit", "remainder", "exact-division"],
    "fraction_addition": [
        "proper-fractions",
        "like-denominators",
        "unlike-denominators",
    ],
    "decimal_addition": ["tenths", "hundredths", "decimal-operations"],
}
_EARLY_GRADE_EXCLUDED = ("double-digit", "borrowing", "carrying")


def number_range_for(grade: int, difficulty: str) -> NumberRange:
    """Grade base range scaled down for easier difficulties."""
    base_max = _GRADE_MAX.get(min(grade, 8), 10)
    scaled = math.floor(base_max * _DIFFICULTY_SCALE.get(difficulty, 1.0))
    return NumberRange(min=1, max=max(1, scaled))


def _shift(order: Tuple[str, ...], value: str, step: int) -> str:
    index = order.index(value) + step
    return order[max(0, min(len(order) - 1, index))]


def analyze_complexity(grade: int, difficulty: str, question_type: str) -> Tuple[str, str]:
    complexity = _TYPE_COMPLEXITY.get(question_type, "moderate")
    load = "medium"

    if grade <= 2:
        complexity, load = "simple", "low"
    elif grade >= 6 and complexity == "simple":
        complexity = "moderate"

    if difficulty == "hard":
        complexity = _shift(_COMPLEXITY_ORDER, complexity, 1)
        load = _shift(_LOAD_ORDER, load, 1)
    elif difficulty == "easy":
        complexity = _shift(_COMPLEXITY_ORDER, complexity, -1)
        if load == "medium":
            load = "low"
    return complexity, load


def allowed_operations(grade: int, question_type: str, difficulty: str) -> List[str]:
    operations = list(_BASE_OPERATIONS.get(question_type, ["basic"]))
    if grade <= 2:
        operations = [
            op for op in operations
            if not any(excluded in op for excluded in _EARLY_GRADE_EXCLUDED)
        ]
    if difficulty == "easy":
        return operations[:1]
    if difficulty == "medium":
        return operations[:2]
    return operations


def _structured_grade(raw: Any, default: int = 5) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


class DifficultyCalibratorAgent(EducationalAgent):
    name = "DifficultyCalibratorAgent"
    description = (
        "Calibrates difficulty settings to ensure age-appropriate "
        "mathematical challenges"
    )

    def process_structured(
        self, context: StructuredPromptContext
    ) -> StructuredCalibration:
        grade = _structured_grade(context.context.get("grade"))
        if grade <= 2:
            simple_range = NumberRange(min=1, max=10)
        elif grade <= 4:
            simple_range = NumberRange(min=1, max=50)
        else:
            simple_range = NumberRange(min=1, max=100)
        return StructuredCalibration(
            difficulty_level=str(context.context.get("difficulty") or "easy"),
            number_range=simple_range,
            operations_allowed=["addition", "subtraction"],
        )

    def run(self, context: WorkflowContext) -> WorkflowContext:
        # Caller-supplied settings win; only fill what is missing.
        settings = context.difficulty_settings
        if settings is not None and settings.number_range is not None:
            return context

        complexity, load = analyze_complexity(
            context.grade, context.difficulty, context.question_type
        )
        calibrated = DifficultySettings(
            number_range=number_range_for(context.grade, context.difficulty),
            complexity=complexity,
            cognitive_load=load,
            allowed_operations=allowed_operations(
                context.grade, context.question_type, context.difficulty
            ),
        )
        if settings is None:
            context.difficulty_settings = calibrated
        else:
            settings.number_range = calibrated.number_range
        return context
