"""QualityValidatorAgent — verifies generated questions and scores the batch.

Each question is checked for structure, arithmetic correctness, grade fit and
pedagogical soundness; the batch as a whole gets a diversity score. Problems
are diagnostics: they land in ``quality_checks.issues`` and
``workflow.warnings`` and never abort the pipeline.
"""

from __future__ import annotations

import logging
import math
import operator
from typing import Callable, Dict, List, Optional, Tuple

from ..config import QualityThresholds
from ..models.context import StructuredPromptContext, WorkflowContext
from ..models.schemas import (
    GeneratedQuestion,
    NumberRange,
    QualityChecks,
    StructuredQualitySummary,
)
from ..util.text_metrics import diversity_score, extract_numbers, format_number
from .base import EducationalAgent

_logger = logging.getLogger("learnhub.agents.quality")


QUESTION_TYPE_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "addition": ("add", "plus", "sum", "total", "altogether"),
    "subtraction": ("subtract", "minus", "difference", "less", "remove"),
    "multiplication": ("multiply", "times", "product", "groups of"),
    "division": ("divide", "divided by", "quotient", "share", "equal groups"),
    "fraction_addition": ("fraction", "numerator", "denominator", "parts"),
    "decimal_addition": ("decimal", "point", "tenths", "hundredths"),
}

# Binary operations whose result can be recomputed from the first two numbers.
_RECOMPUTE: Dict[str, Callable[[float, float], float]] = {
    "addition": operator.add,
    "subtraction": operator.sub,
    "multiplication": operator.mul,
    "division": operator.truediv,
}

MIN_TEXT_LENGTH = 10
MAX_WORDS = 50
MIN_EXPLANATION_LENGTH = 5

# (max grade, max operand, max |answer|); grades above the last tier only
# get the answer ceiling.
_GRADE_TIERS = ((2, 20.0, 50.0), (4, 100.0, 500.0))
_UPPER_ANSWER_CEILING = 5000.0


def _answer_ceiling(grade: int) -> float:
    for max_grade, _, ceiling in _GRADE_TIERS:
        if grade <= max_grade:
            return ceiling
    return _UPPER_ANSWER_CEILING


def _operand_ceiling(grade: int) -> Optional[float]:
    for max_grade, ceiling, _ in _GRADE_TIERS:
        if grade <= max_grade:
            return ceiling
    return None


def check_structure(question: GeneratedQuestion) -> List[str]:
    issues: List[str] = []
    if not question.text or len(question.text) < MIN_TEXT_LENGTH:
        issues.append("Question text is too short or missing")
    if not math.isfinite(question.answer):
        issues.append("Answer is not a valid number")
    return issues


def expected_answer(numbers: List[float], question_type: str) -> Optional[float]:
    """Recompute the answer from the first two numbers; None when unverifiable."""
    op = _RECOMPUTE.get(question_type)
    if op is None or len(numbers) < 2:
        return None
    a, b = numbers[0], numbers[1]
    if question_type == "division" and b == 0:
        return None
    return op(a, b)


def check_mathematical_accuracy(
    question: GeneratedQuestion,
    question_type: str,
    tolerance: float = 0.01,
) -> List[str]:
    """Return at most one mathematical-error issue for *question*."""
    numbers = extract_numbers(question.text)
    expected = expected_answer(numbers, question_type)
    if expected is None:
        return []
    if abs(expected - question.answer) > tolerance:
        return [
            f"Mathematical error: expected answer {format_number(expected)}, "
            f"got {format_number(question.answer)}"
        ]
    return []


def check_operand_count(question: GeneratedQuestion, question_type: str) -> List[str]:
    if question_type not in _RECOMPUTE:
        return []
    if len(extract_numbers(question.text)) < 2:
        return [
            "Question should contain at least two numbers for mathematical operations"
        ]
    return []


def check_age_appropriateness(
    question: GeneratedQuestion,
    grade: int,
    number_range: Optional[NumberRange] = None,
) -> List[str]:
    issues: List[str] = []
    operand_ceiling = _operand_ceiling(grade)

    for num in extract_numbers(question.text):
        shown = format_number(num)
        if number_range is not None and not (
            number_range.min <= num <= number_range.max
        ):
            issues.append(
                f"Number {shown} is outside age-appropriate range "
                f"({format_number(number_range.min)}-{format_number(number_range.max)})"
            )
        if operand_ceiling is not None and num > operand_ceiling:
            issues.append(f"Number {shown} too large for grade {grade}")

    if abs(question.answer) > _answer_ceiling(grade):
        issues.append(
            f"Answer {format_number(question.answer)} may be too large for grade {grade}"
        )
    return issues


def check_pedagogical_soundness(
    question: GeneratedQuestion, question_type: str
) -> List[str]:
    issues: List[str] = []
    if len(question.text.split()) > MAX_WORDS:
        issues.append("Question text may be too long and complex")

    explanation = (question.explanation or "").strip()
    if len(explanation) < MIN_EXPLANATION_LENGTH:
        issues.append("Question lacks proper explanation for educational value")

    keywords = QUESTION_TYPE_KEYWORDS.get(question_type)
    if keywords:
        lowered = question.text.lower()
        if not any(keyword in lowered for keyword in keywords):
            issues.append(f"Question content doesn't match {question_type} type")
    return issues


class QualityValidatorAgent(EducationalAgent):
    name = "QualityValidatorAgent"
    description = (
        "Validates question quality for mathematical accuracy and "
        "educational appropriateness"
    )

    def __init__(self, thresholds: Optional[QualityThresholds] = None) -> None:
        self.thresholds = thresholds or QualityThresholds()

    def process_structured(
        self, context: StructuredPromptContext
    ) -> StructuredQualitySummary:
        return StructuredQualitySummary()

    def run(self, context: WorkflowContext) -> WorkflowContext:
        if not context.questions:
            context.workflow.warnings.append("No questions to validate")
            return context

        checks = self.validate_questions(context)
        context.quality_checks = checks
        if checks.issues:
            context.workflow.warnings.extend(checks.issues)

        _logger.info(
            "quality_validated",
            extra={
                "event": "quality_validated",
                "agent": self.name,
                "question_count": len(context.questions),
                "issue_count": len(checks.issues),
                "diversity_score": round(checks.diversity_score, 3),
            },
        )
        return context

    def validate_questions(self, context: WorkflowContext) -> QualityChecks:
        questions = context.questions or []
        number_range = (
            context.difficulty_settings.number_range
            if context.difficulty_settings
            else None
        )
        checks = QualityChecks()

        for index, question in enumerate(questions, 1):
            structural = check_structure(question) + check_operand_count(
                question, context.question_type
            )
            math_issues = check_mathematical_accuracy(
                question, context.question_type, self.thresholds.math_tolerance
            )
            age_issues = check_age_appropriateness(
                question, context.grade, number_range
            )
            pedagogy_issues = check_pedagogical_soundness(
                question, context.question_type
            )

            if math_issues:
                checks.mathematical_accuracy = False
            if age_issues:
                checks.age_appropriateness = False
            if pedagogy_issues:
                checks.pedagogical_soundness = False

            for issue in structural + math_issues + age_issues + pedagogy_issues:
                checks.issues.append(f"Question {index}: {issue}")

        checks.diversity_score = diversity_score(
            [(q.text, q.answer) for q in questions],
            answer_weight=self.thresholds.answer_weight,
            text_weight=self.thresholds.text_weight,
        )
        if len(questions) > 1 and checks.diversity_score < self.thresholds.min_diversity:
            checks.issues.append("Questions lack sufficient diversity")
        return checks
