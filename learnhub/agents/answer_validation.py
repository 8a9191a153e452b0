"""AnswerValidationAgent — partial-credit grading of free-text answers.

Each answer is graded by the language model's reasoning capability on a
0-10 scale. Grading is all-or-nothing: a model failure or an unparseable
grading payload fails the whole submission, never a partial result.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from contextvars import copy_context
from time import perf_counter
from typing import List, Optional, Sequence, Tuple

from pydantic import ValidationError

from ..config import grading_max_workers
from ..errors import (
    AnswerValidationError,
    EmptySubmissionError,
    SubmissionValidationError,
)
from ..llm_client import LanguageModel
from ..models.schemas import (
    AnswerSubmission,
    GradingResponse,
    QuestionValidationResult,
    StudentAnswer,
    ValidationResult,
)
from ..observability.context import request_scope
from ..util.jsonio import extract_json
from ..util.text_metrics import round_half_up

_logger = logging.getLogger("learnhub.agents.answers")

MAX_SCORE_PER_QUESTION = 10
STRENGTH_THRESHOLD = 8


GRADING_PROMPT_TEMPLATE = """\
You are an expert educational grader. Validate this student answer with partial credit scoring.

QUESTION: {question}

STUDENT ANSWER: {answer}

GRADING GUIDELINES:
- Score 0-10 (0 = completely wrong, 10 = perfect)
- Score >= 8 is considered correct
- Provide constructive feedback (encouraging + improvement tips)
- Be fair and educational, not just right/wrong

RESPONSE FORMAT (JSON only):
{{
  "score": <number 0-10>,
  "feedback": "<constructive feedback>",
  "isCorrect": <boolean>
}}

Respond with ONLY the JSON object, no additional text."""


# Ordered: the first matching entry names the topic.
TOPIC_KEYWORDS: Sequence[Tuple[Tuple[str, ...], str]] = (
    (("addition", "+", "add"), "Addition operations"),
    (("subtraction", "-", "subtract"), "Subtraction operations"),
    (("multiplication", "×", "multiply"), "Multiplication operations"),
    (("division", "÷", "divide"), "Division operations"),
    (("fraction", "numerator", "denominator"), "Fraction concepts"),
    (("decimal", "tenths", "hundredths"), "Decimal concepts"),
    (("water cycle", "evaporation"), "Water cycle understanding"),
)


def build_grading_prompt(answer: StudentAnswer) -> str:
    return GRADING_PROMPT_TEMPLATE.format(
        question=answer.question_text,
        answer=answer.student_answer,
    )


def extract_topic(question_text: str) -> Optional[str]:
    """Name the concept a question exercises, or None when nothing fits."""
    lowered = question_text.lower()
    for keywords, topic in TOPIC_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return topic
    words = question_text.split()
    if len(words) > 3:
        return f"Understanding of {' '.join(words[:3])}"
    return None


def parse_grading_response(raw: str) -> GradingResponse:
    """Validate the model's grading JSON; raises ``ValueError`` when malformed."""
    data = extract_json(raw)
    try:
        return GradingResponse.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid grading payload: {exc.errors()[0]['msg']}") from exc


def overall_feedback(results: List[QuestionValidationResult], percentage: int) -> str:
    correct = sum(1 for r in results if r.is_correct)
    summary = f"You scored {percentage}% ({correct}/{len(results)} questions correct)."
    if percentage >= 90:
        return (
            f"Excellent work! {summary} Your understanding is very strong. "
            "Keep up the great work!"
        )
    if percentage >= 75:
        return (
            f"Good job! {summary} You have a solid grasp of the material. "
            "Review the areas below for improvement."
        )
    if percentage >= 60:
        return (
            f"Fair performance. {summary} You're on the right track, but need "
            "more practice in some areas. Focus on the improvement areas below."
        )
    return (
        f"Keep learning! {summary} Don't be discouraged, everyone learns at "
        "their own pace. Review the material and try again when ready."
    )


def analyze_performance(
    results: List[QuestionValidationResult],
) -> Tuple[List[str], List[str]]:
    strengths: List[str] = []
    areas: List[str] = []
    for result in results:
        topic = extract_topic(result.question_text)
        if topic is None:
            continue
        bucket = strengths if result.score >= STRENGTH_THRESHOLD else areas
        if topic not in bucket:
            bucket.append(topic)
    return strengths, areas


def _require(value: str, message: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise SubmissionValidationError(message)


def validate_submission(submission: AnswerSubmission) -> None:
    _require(submission.session_id, "Session ID is required")
    _require(submission.student_id, "Student ID is required")
    _require(submission.student_email, "Student email is required")
    if not submission.answers:
        raise EmptySubmissionError("No answers provided in submission (empty submission)")
    for answer in submission.answers:
        for value in (answer.question_id, answer.question_text, answer.student_answer):
            _require(
                value,
                "Each answer must have questionId, questionText, and studentAnswer",
            )


class AnswerValidationAgent:
    name = "AnswerValidationAgent"
    description = "AI validation with partial credit scoring and constructive feedback"

    def __init__(
        self,
        language_model: LanguageModel,
        max_workers: Optional[int] = None,
    ) -> None:
        self.language_model = language_model
        self.max_workers = max_workers or grading_max_workers()

    def _grade(self, answer: StudentAnswer) -> QuestionValidationResult:
        raw = self.language_model.generate_with_complex_reasoning(
            build_grading_prompt(answer)
        )
        graded = parse_grading_response(raw)
        return QuestionValidationResult(
            question_id=answer.question_id,
            question_text=answer.question_text,
            student_answer=answer.student_answer,
            score=graded.score,
            max_score=MAX_SCORE_PER_QUESTION,
            feedback=graded.feedback,
            is_correct=graded.is_correct,
        )

    def _grade_all(self, answers: List[StudentAnswer]) -> List[QuestionValidationResult]:
        if self.max_workers <= 1 or len(answers) == 1:
            return [self._grade(answer) for answer in answers]
        workers = min(self.max_workers, len(answers))
        # One context copy per task, taken here so workers see the request id.
        contexts = [copy_context() for _ in answers]
        with ThreadPoolExecutor(max_workers=workers) as executor:
            # map() yields in submission order; the first failure propagates.
            return list(
                executor.map(
                    lambda ctx, answer: ctx.run(self._grade, answer),
                    contexts,
                    answers,
                )
            )

    def validate_answers(self, submission: AnswerSubmission) -> ValidationResult:
        validate_submission(submission)

        with request_scope(submission.session_id):
            started = perf_counter()
            try:
                results = self._grade_all(list(submission.answers))
            except Exception as exc:
                _logger.error(
                    "answer_validation_failed",
                    extra={
                        "event": "answer_validation_failed",
                        "agent": self.name,
                        "reason": str(exc),
                    },
                )
                raise AnswerValidationError(
                    f"{self.name} validation failed: {exc}"
                ) from exc

            total_score = sum(r.score for r in results)
            max_score = MAX_SCORE_PER_QUESTION * len(results)
            percentage = round_half_up(total_score / max_score * 100)
            strengths, areas = analyze_performance(results)

            _logger.info(
                "answer_validation_complete",
                extra={
                    "event": "answer_validation_complete",
                    "agent": self.name,
                    "question_count": len(results),
                    "percentage_score": percentage,
                    "duration_ms": round((perf_counter() - started) * 1000, 2),
                },
            )
            return ValidationResult(
                success=True,
                session_id=submission.session_id,
                total_score=total_score,
                max_score=max_score,
                percentage_score=percentage,
                questions=results,
                overall_feedback=overall_feedback(results, percentage),
                strengths=strengths,
                areas_for_improvement=areas,
            )
