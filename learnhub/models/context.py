"""Per-request data carriers threaded through the generation pipeline."""

from __future__ import annotations

from time import time
from typing import Any, Dict, List, Optional, Union

from pydantic import Field

from .schemas import (
    CamelModel,
    CurriculumContext,
    DifficultyLevel,
    DifficultySettings,
    EnhancedQuestion,
    GeneratedQuestion,
    GenerationRequest,
    QualityChecks,
    QuestionType,
)


class WorkflowState(CamelModel):
    """Diagnostic log: errors/warnings are append-only."""

    current_step: str = "initialized"
    start_time: float = Field(default_factory=time)
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class WorkflowContext(CamelModel):
    """Mutable context owned by one generation request."""

    question_type: QuestionType
    grade: int = Field(..., ge=1, le=12)
    difficulty: DifficultyLevel
    count: int = Field(default=1, ge=1, le=20)
    difficulty_settings: Optional[DifficultySettings] = None
    curriculum_context: Optional[CurriculumContext] = None

    questions: Optional[List[GeneratedQuestion]] = None
    quality_checks: Optional[QualityChecks] = None
    enhanced_questions: Optional[List[EnhancedQuestion]] = None

    workflow: WorkflowState = Field(default_factory=WorkflowState)

    @classmethod
    def from_request(cls, request: GenerationRequest) -> "WorkflowContext":
        return cls(**request.model_dump())


class StructuredPromptContext(CamelModel):
    """Alternate pipeline input carrying a pre-rendered prompt."""

    structured_prompt: str
    context: Dict[str, Any] = Field(default_factory=dict)


AgentContext = Union[WorkflowContext, StructuredPromptContext]
