"""Generation pipeline: calibrate → generate → validate → enhance."""

from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from ..agents.base import EducationalAgent
from ..agents.context_enhancer import ContextEnhancerAgent
from ..agents.difficulty_calibrator import DifficultyCalibratorAgent
from ..agents.quality_validator import QualityValidatorAgent
from ..agents.question_generator import QuestionGeneratorAgent
from ..config import QualityThresholds
from ..errors import GenerationRequestError
from ..llm_client import LanguageModel
from ..models.context import StructuredPromptContext, WorkflowContext
from ..models.schemas import GenerationRequest, StructuredWorkflowResult
from ..observability.context import request_scope

_logger = logging.getLogger("learnhub.workflow")

_REQUIRED_FIELDS = ("question_type", "grade", "difficulty")


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _coerce_request(request: Union[GenerationRequest, Mapping[str, Any]]) -> GenerationRequest:
    """Validate caller input before any agent runs."""
    if isinstance(request, GenerationRequest):
        return request
    missing = [
        name for name in _REQUIRED_FIELDS
        if request.get(name) is None and request.get(_camel(name)) is None
    ]
    if missing:
        raise GenerationRequestError(
            f"Missing required generation parameters: {', '.join(missing)}"
        )
    try:
        return GenerationRequest.model_validate(dict(request))
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise GenerationRequestError(
            f"Invalid generation request ({location}): {first['msg']}"
        ) from exc


class GenerationWorkflow:
    """Runs agents in order over one context; agent errors never halt it."""

    def __init__(self, agents: Sequence[EducationalAgent]) -> None:
        self.agents = list(agents)

    def run(
        self,
        request: Union[GenerationRequest, Mapping[str, Any], WorkflowContext, StructuredPromptContext],
        request_id: Optional[str] = None,
    ) -> Union[WorkflowContext, StructuredWorkflowResult]:
        if isinstance(request, StructuredPromptContext):
            with request_scope(request_id):
                return self._run_structured(request)

        if isinstance(request, WorkflowContext):
            context = request
        else:
            context = WorkflowContext.from_request(_coerce_request(request))

        with request_scope(request_id):
            return self._run_context(context)

    def _run_context(self, context: WorkflowContext) -> WorkflowContext:
        started = perf_counter()
        for agent in self.agents:
            context.workflow.current_step = agent.name
            errors_before = len(context.workflow.errors)
            warnings_before = len(context.workflow.warnings)
            step_started = perf_counter()

            context = agent.process(context)

            _logger.info(
                "agent_step",
                extra={
                    "event": "agent_step",
                    "agent": agent.name,
                    "duration_ms": round((perf_counter() - step_started) * 1000, 2),
                    "error_count": len(context.workflow.errors) - errors_before,
                    "warning_count": len(context.workflow.warnings) - warnings_before,
                },
            )

        _logger.info(
            "workflow_complete",
            extra={
                "event": "workflow_complete",
                "question_count": len(context.questions or []),
                "error_count": len(context.workflow.errors),
                "warning_count": len(context.workflow.warnings),
                "duration_ms": round((perf_counter() - started) * 1000, 2),
            },
        )
        return context

    def _run_structured(self, context: StructuredPromptContext) -> StructuredWorkflowResult:
        result = StructuredWorkflowResult()
        for agent in self.agents:
            summary = agent.process(context)
            if summary is not None:
                result.agent_results[agent.name] = summary
        return result


def build_default_workflow(
    language_model: Optional[LanguageModel] = None,
    thresholds: Optional[QualityThresholds] = None,
    enhancer: Optional[ContextEnhancerAgent] = None,
) -> GenerationWorkflow:
    """Standard stage order; ``language_model=None`` generates offline."""
    return GenerationWorkflow(
        [
            DifficultyCalibratorAgent(),
            QuestionGeneratorAgent(language_model),
            QualityValidatorAgent(thresholds or QualityThresholds.from_env()),
            enhancer or ContextEnhancerAgent(),
        ]
    )
