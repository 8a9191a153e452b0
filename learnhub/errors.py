"""Fatal, request-aborting errors raised by the pipeline."""

from __future__ import annotations


class LearnHubError(Exception):
    """Base class for request-aborting failures."""


class GenerationRequestError(LearnHubError, ValueError):
    """Raised when a generation request is missing required parameters."""


class SubmissionValidationError(LearnHubError, ValueError):
    """Raised when an answer submission fails its preconditions."""


class EmptySubmissionError(SubmissionValidationError):
    """Raised when a submission carries no answers."""


class AnswerValidationError(LearnHubError, RuntimeError):
    """Raised when grading a submission fails (model or parse failure)."""


class LanguageModelError(LearnHubError, RuntimeError):
    """Raised when the language-model backend call fails."""
