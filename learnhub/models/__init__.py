"""Pydantic data models for agent communication."""

from .schemas import (
    AnswerSubmission,
    DifficultySettings,
    EnhancedQuestion,
    GeneratedQuestion,
    GenerationRequest,
    GradingResponse,
    NumberRange,
    QualityChecks,
    QuestionValidationResult,
    StructuredCalibration,
    StructuredQualitySummary,
    StructuredWorkflowResult,
    StudentAnswer,
    ValidationResult,
)
from .context import (
    AgentContext,
    StructuredPromptContext,
    WorkflowContext,
    WorkflowState,
)

__all__ = [
    "AnswerSubmission",
    "DifficultySettings",
    "EnhancedQuestion",
    "GeneratedQuestion",
    "GenerationRequest",
    "GradingResponse",
    "NumberRange",
    "QualityChecks",
    "QuestionValidationResult",
    "StructuredCalibration",
    "StructuredQualitySummary",
    "StructuredWorkflowResult",
    "StudentAnswer",
    "ValidationResult",
    "AgentContext",
    "StructuredPromptContext",
    "WorkflowContext",
    "WorkflowState",
]
