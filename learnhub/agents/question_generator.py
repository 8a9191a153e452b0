"""QuestionGeneratorAgent — generates questions with curriculum context."""

from __future__ import annotations

import logging
import random
import re
from time import perf_counter
from typing import Optional, Tuple

from ..llm_client import LanguageModel
from ..models.context import WorkflowContext
from ..models.schemas import (
    GeneratedQuestion,
    NumberRange,
    QuestionMetadata,
)
from .base import EducationalAgent

_logger = logging.getLogger("learnhub.agents.generator")

_ANSWER_NUMBER_RE = re.compile(r"[+-]?\d*\.?\d+")
_INLINE_EQUATION_RE = re.compile(r"(\d+\s*[+\-*/]\s*\d+)\s*=\s*(\d+)")
_DEFAULT_RANGE = NumberRange(min=1, max=20)


def _readable_type(question_type: str) -> str:
    return question_type.replace("_", " ")


def build_prompt(context: WorkflowContext, question_index: int) -> str:
    """Prompt for one question, enriched with curriculum and difficulty data."""
    qtype = _readable_type(context.question_type)
    lines = [
        f"Generate a grade {context.grade} {context.difficulty} difficulty "
        f"{qtype} math question.",
        "",
    ]

    curriculum = context.curriculum_context
    if curriculum and curriculum.learning_objectives:
        lines.append("Learning Objectives:")
        lines.extend(f"- {obj}" for obj in curriculum.learning_objectives)
        lines.append("")

    if curriculum and curriculum.similar_questions:
        lines.append(
            "Here are some examples of similar questions to inspire your "
            "generation (create something in a similar style but different):"
        )
        lines.append("")
        for i, example in enumerate(curriculum.similar_questions[:3], 1):
            lines.append(f"Example {i}: {example.question}")
            if example.explanation:
                lines.append(f"Explanation: {example.explanation}")
            lines.append("")

    settings = context.difficulty_settings
    if settings:
        if settings.number_range:
            rng = settings.number_range
            lines.append(f"Number Range: Use numbers between {rng.min:g} and {rng.max:g}")
            if context.question_type == "division" and rng.max > 20:
                lines.append(
                    "IMPORTANT: For division problems, keep divisors small (<=12) "
                    "to ensure age-appropriate difficulty."
                )
        if settings.allowed_operations:
            lines.append(f"Allowed Operations: {', '.join(settings.allowed_operations)}")
        lines.append("")

    lines.append("Requirements:")
    lines.append(f"- Is appropriate for grade {context.grade} students")
    lines.append(f"- Has {context.difficulty} difficulty level")
    lines.append(f"- Focuses on {qtype} skills")
    lines.append("- Uses age-appropriate numbers and context")
    if question_index > 0:
        lines.append(
            f"- Is different from the previous {question_index} question(s) in this set"
        )
    lines.append("")
    lines.append("Format your response as:")
    lines.append("Question: [your question here]")
    lines.append("Answer: [numeric answer]")
    lines.append("Explanation: [brief explanation of the solution method]")
    return "\n".join(lines)


def parse_question_response(response: str) -> Tuple[str, float, str]:
    """Pull ``(question, answer, explanation)`` out of a labelled response."""
    question = ""
    answer = 0.0
    explanation = ""

    for line in response.splitlines():
        clean = line.strip()
        lowered = clean.lower()
        if lowered.startswith("question:"):
            question = clean[len("question:"):].strip()
        elif lowered.startswith("answer:"):
            match = _ANSWER_NUMBER_RE.search(clean[len("answer:"):])
            if match:
                answer = float(match.group())
        elif lowered.startswith("explanation:"):
            explanation = clean[len("explanation:"):].strip()

    if not question:
        question = response.strip()
        match = _INLINE_EQUATION_RE.search(response)
        if match:
            question = f"What is {match.group(1)}?"
            answer = float(match.group(2))

    return question, answer, explanation


def _offline_question(
    question_type: str, number_range: NumberRange, seed: str
) -> Tuple[str, float, str]:
    """Deterministic templated question used when no model is injected."""
    rnd = random.Random(seed)
    lo = max(1, int(number_range.min))
    hi = max(lo + 1, int(number_range.max))
    a, b = rnd.randint(lo, hi), rnd.randint(lo, hi)

    if question_type == "subtraction":
        a, b = max(a, b), min(a, b)
        return (
            f"What is {a} minus {b}?",
            a - b,
            f"Subtract {b} from {a} to get {a - b}.",
        )
    if question_type == "multiplication":
        b = rnd.randint(1, min(12, hi))
        a = rnd.randint(1, max(1, hi // b))
        return (
            f"What is {a} times {b}?",
            a * b,
            f"Multiply {a} by {b} to get {a * b}.",
        )
    if question_type == "division":
        divisor = rnd.randint(2, max(2, min(12, hi // 2)))
        quotient = rnd.randint(1, max(1, hi // divisor))
        dividend = quotient * divisor
        return (
            f"What is {dividend} divided by {divisor}?",
            quotient,
            f"Divide {dividend} into {divisor} equal groups of {quotient}.",
        )
    if question_type == "pattern":
        step = rnd.randint(1, max(1, hi // 10))
        start = rnd.randint(lo, max(lo, hi - 4 * step))
        terms = [start + step * i for i in range(4)]
        return (
            "What number comes next in the pattern "
            + ", ".join(str(t) for t in terms)
            + "?",
            start + step * 4,
            f"Each number increases by {step}.",
        )
    if question_type == "area_calculation":
        return (
            f"A rectangle is {a} units long and {b} units wide. What is its area?",
            a * b,
            f"Area is length times width: {a} x {b} = {a * b}.",
        )
    if question_type == "decimal_addition":
        x, y = a / 10, b / 10
        return (
            f"What is the sum of the decimal numbers {x:g} and {y:g}?",
            round(x + y, 2),
            f"Line up the decimal point and add the tenths to get {x + y:g}.",
        )
    if question_type == "fraction_addition":
        denominator = rnd.randint(4, max(4, min(12, hi)))
        n1, n2 = rnd.randint(1, denominator // 2), rnd.randint(1, denominator // 2)
        return (
            f"Add the fractions {n1}/{denominator} and {n2}/{denominator}. "
            "How many parts is the numerator of the total?",
            n1 + n2,
            f"With like denominators, add the numerators: {n1} + {n2}.",
        )
    return (
        f"What is the sum of {a} and {b}?",
        a + b,
        f"Add {a} and {b} together to get {a + b}.",
    )


class QuestionGeneratorAgent(EducationalAgent):
    name = "QuestionGeneratorAgent"
    description = (
        "Generates questions using vector database context and intelligent "
        "model routing"
    )

    def __init__(self, language_model: Optional[LanguageModel] = None) -> None:
        self.language_model = language_model

    @staticmethod
    def _use_reasoning_model(context: WorkflowContext) -> bool:
        complexity = (
            context.difficulty_settings.complexity
            if context.difficulty_settings
            else None
        )
        return complexity == "complex" or context.difficulty == "hard"

    @staticmethod
    def _confidence(context: WorkflowContext, answer: float, explanation: str) -> float:
        confidence = 0.5
        if context.curriculum_context and context.curriculum_context.similar_questions:
            confidence += 0.2
        if context.difficulty_settings:
            confidence += 0.1
        if len(explanation) > 10:
            confidence += 0.1
        if 0 < answer < 10000:
            confidence += 0.1
        return min(1.0, confidence)

    def _generate_one(self, context: WorkflowContext, index: int) -> GeneratedQuestion:
        started = perf_counter()
        if self.language_model is None:
            number_range = (
                context.difficulty_settings.number_range
                if context.difficulty_settings and context.difficulty_settings.number_range
                else _DEFAULT_RANGE
            )
            seed = f"{context.question_type}:{context.grade}:{context.difficulty}:{index}"
            text, answer, explanation = _offline_question(
                context.question_type, number_range, seed
            )
            model_used = "offline"
        else:
            prompt = build_prompt(context, index)
            if self._use_reasoning_model(context):
                raw = self.language_model.generate_with_complex_reasoning(prompt)
                model_used = "reasoning"
            else:
                raw = self.language_model.generate(prompt)
                model_used = "standard"
            text, answer, explanation = parse_question_response(raw)

        has_vector_context = bool(
            context.curriculum_context and context.curriculum_context.similar_questions
        )
        return GeneratedQuestion(
            text=text,
            answer=answer,
            explanation=explanation or None,
            confidence=self._confidence(context, answer, explanation),
            metadata=QuestionMetadata(
                model_used=model_used,
                generation_time_ms=round((perf_counter() - started) * 1000, 2),
                vector_context=has_vector_context,
            ),
        )

    def run(self, context: WorkflowContext) -> WorkflowContext:
        if context.questions is None:
            context.questions = []
        for index in range(context.count):
            context.questions.append(self._generate_one(context, index))
        _logger.info(
            "questions_generated",
            extra={
                "event": "questions_generated",
                "agent": self.name,
                "question_count": len(context.questions),
                "offline": self.language_model is None,
            },
        )
        return context
