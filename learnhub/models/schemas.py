"""Pydantic schemas for generated content, quality verdicts and grading."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Serializes with the camelCase names used by callers; accepts both."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Question taxonomy ───────────────────────────────────────────────
QUESTION_TYPES = [
    "addition",
    "subtraction",
    "multiplication",
    "division",
    "fraction_addition",
    "decimal_addition",
    "pattern",
    "word_problem_mixed",
    "area_calculation",
]
QuestionType = Literal[
    "addition",
    "subtraction",
    "multiplication",
    "division",
    "fraction_addition",
    "decimal_addition",
    "pattern",
    "word_problem_mixed",
    "area_calculation",
]
DifficultyLevel = Literal["easy", "medium", "hard"]


# ── Generation parameters ───────────────────────────────────────────
class NumberRange(CamelModel):
    min: float
    max: float

    @model_validator(mode="after")
    def _validate_bounds(self) -> "NumberRange":
        if self.min > self.max:
            raise ValueError("number range min must not exceed max")
        return self


class DifficultySettings(CamelModel):
    number_range: Optional[NumberRange] = None
    complexity: Literal["simple", "moderate", "complex"] = "moderate"
    cognitive_load: Literal["low", "medium", "high"] = "medium"
    allowed_operations: List[str] = Field(default_factory=list)


class SimilarQuestion(CamelModel):
    question: str
    explanation: Optional[str] = None
    score: float = 0.0


class CurriculumContext(CamelModel):
    learning_objectives: List[str] = Field(default_factory=list)
    prerequisite_skills: List[str] = Field(default_factory=list)
    similar_questions: List[SimilarQuestion] = Field(default_factory=list)


class GenerationRequest(CamelModel):
    question_type: QuestionType
    grade: int = Field(..., ge=1, le=12)
    difficulty: DifficultyLevel
    count: int = Field(default=1, ge=1, le=20)
    difficulty_settings: Optional[DifficultySettings] = None
    curriculum_context: Optional[CurriculumContext] = None


# ── Generated content ───────────────────────────────────────────────
class QuestionMetadata(CamelModel):
    model_used: str = "offline"
    generation_time_ms: float = 0.0
    vector_context: bool = False


class GeneratedQuestion(CamelModel):
    text: str
    answer: float
    explanation: Optional[str] = None
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    metadata: QuestionMetadata = Field(default_factory=QuestionMetadata)


class EnhancedQuestion(CamelModel):
    original_text: str
    enhanced_text: str
    context_type: Literal["real-world", "story", "visual", "none"]
    engagement_score: float = Field(..., ge=0.0, le=1.0)


# ── Quality verdicts ────────────────────────────────────────────────
class QualityChecks(CamelModel):
    mathematical_accuracy: bool = True
    age_appropriateness: bool = True
    pedagogical_soundness: bool = True
    diversity_score: float = Field(default=1.0, ge=0.0, le=1.0)
    issues: List[str] = Field(default_factory=list)


class StructuredQualitySummary(CamelModel):
    is_valid: bool = True
    quality_score: float = 0.95
    passes_validation: bool = True
    structured_prompt_used: bool = True
    mathematical_accuracy: float = 1.0
    educational_value: float = 0.9


class StructuredCalibration(CamelModel):
    difficulty_level: str
    number_range: NumberRange
    operations_allowed: List[str]
    cognitive_load: Literal["low", "medium", "high"] = "low"
    confidence_score: float = 0.95
    structured_prompt_used: bool = True


# ── Answer submission / grading ─────────────────────────────────────
class StudentAnswer(CamelModel):
    model_config = ConfigDict(frozen=True)

    question_id: str
    question_text: str
    student_answer: str


class AnswerSubmission(CamelModel):
    model_config = ConfigDict(frozen=True)

    session_id: str
    student_id: str
    student_email: str
    answers: List[StudentAnswer] = Field(default_factory=list)
    submitted_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class GradingResponse(CamelModel):
    """JSON payload the grading model must return for one answer."""

    score: float = Field(..., ge=0.0, le=10.0, strict=True)
    feedback: str = Field(..., min_length=1)
    is_correct: StrictBool


class QuestionValidationResult(CamelModel):
    question_id: str
    question_text: str
    student_answer: str
    score: float
    max_score: int = 10
    feedback: str
    is_correct: bool


class ValidationResult(CamelModel):
    success: bool = True
    session_id: str
    total_score: float
    max_score: int
    percentage_score: int
    questions: List[QuestionValidationResult]
    overall_feedback: str
    strengths: List[str] = Field(default_factory=list)
    areas_for_improvement: List[str] = Field(default_factory=list)


class StructuredWorkflowResult(CamelModel):
    agent_results: Dict[
        str, Union[StructuredQualitySummary, StructuredCalibration]
    ] = Field(default_factory=dict)
