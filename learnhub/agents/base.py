"""Shared contract for every generation-pipeline stage."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional, Union

from pydantic import BaseModel

from ..models.context import (
    AgentContext,
    StructuredPromptContext,
    WorkflowContext,
)

_logger = logging.getLogger("learnhub.agents")


class EducationalAgent(ABC):
    """A pipeline stage: ``process(context) -> context``.

    Subclasses implement :meth:`run` for workflow contexts and may override
    :meth:`process_structured` for structured-prompt contexts. ``process``
    never raises: failures in ``run`` become a ``workflow.errors`` entry
    prefixed with the agent name.
    """

    name: str = "EducationalAgent"
    description: str = ""

    def process(
        self, context: AgentContext
    ) -> Union[WorkflowContext, Optional[BaseModel]]:
        if isinstance(context, StructuredPromptContext):
            try:
                return self.process_structured(context)
            except Exception:
                # No workflow log on this path; the stage is left out of the result.
                _logger.exception(
                    "agent_failed",
                    extra={"event": "agent_failed", "agent": self.name},
                )
                return None
        try:
            return self.run(context)
        except Exception as exc:
            _logger.exception(
                "agent_failed",
                extra={"event": "agent_failed", "agent": self.name},
            )
            context.workflow.errors.append(f"{self.name}: {exc}")
            return context

    @abstractmethod
    def run(self, context: WorkflowContext) -> WorkflowContext:
        """Stage logic for a workflow context."""

    def process_structured(
        self, context: StructuredPromptContext
    ) -> Optional[BaseModel]:
        """Summary for a structured-prompt context; None when not supported."""
        return None
