"""Generation pipeline: stage order, error accumulation, request checks."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from learnhub.agents.base import EducationalAgent
from learnhub.agents.difficulty_calibrator import (
    DifficultyCalibratorAgent,
    allowed_operations,
    analyze_complexity,
    number_range_for,
)
from learnhub.errors import GenerationRequestError, LanguageModelError
from learnhub.models.context import StructuredPromptContext, WorkflowContext
from learnhub.models.schemas import (
    QUESTION_TYPES,
    DifficultySettings,
    GenerationRequest,
    NumberRange,
    StructuredCalibration,
    StructuredQualitySummary,
    StructuredWorkflowResult,
)
from learnhub.observability.context import get_request_id
from learnhub.orchestration.workflow import GenerationWorkflow, build_default_workflow


class _RecordingAgent(EducationalAgent):
    description = "test double"

    def __init__(self, name, log):
        self.name = name
        self.log = log

    def run(self, context):
        self.log.append((self.name, context.workflow.current_step, get_request_id()))
        return context


class _ExplodingAgent(EducationalAgent):
    name = "ExplodingAgent"

    def run(self, context):
        raise RuntimeError("stage blew up")


class _CannedModel:
    def __init__(self, reply):
        self.reply = reply
        self.calls = []

    def generate(self, prompt):
        self.calls.append(("standard", prompt))
        return self.reply

    def generate_with_complex_reasoning(self, prompt):
        self.calls.append(("reasoning", prompt))
        return self.reply


class _OfflineModel:
    def generate(self, prompt):
        raise LanguageModelError("model offline")

    def generate_with_complex_reasoning(self, prompt):
        raise LanguageModelError("model offline")


_REPLY = "Question: What is the sum of 8 and 5?\nAnswer: 13\nExplanation: Add 8 and 5 to get 13."


def _request(**overrides):
    payload = {"question_type": "addition", "grade": 3, "difficulty": "medium", "count": 2}
    payload.update(overrides)
    return payload


# ── Full pipeline ───────────────────────────────────────────────────


def test_offline_pipeline_runs_every_stage():
    context = build_default_workflow().run(_request(grade=2, difficulty="easy", count=3))

    assert isinstance(context, WorkflowContext)
    assert context.workflow.errors == []
    assert context.workflow.current_step == "ContextEnhancerAgent"
    assert context.difficulty_settings.number_range.max == 10
    assert len(context.questions) == 3
    assert len(context.enhanced_questions) == 3
    assert all(q.metadata.model_used == "offline" for q in context.questions)

    checks = context.quality_checks
    assert checks is not None
    assert checks.mathematical_accuracy is True
    assert checks.age_appropriateness is True
    assert checks.pedagogical_soundness is True


def test_offline_generation_is_deterministic():
    first = build_default_workflow().run(_request())
    second = build_default_workflow().run(_request())
    assert [q.text for q in first.questions] == [q.text for q in second.questions]


@pytest.mark.parametrize("question_type", QUESTION_TYPES)
def test_offline_questions_are_arithmetically_correct(question_type):
    context = build_default_workflow().run(_request(question_type=question_type, count=3))
    assert context.workflow.errors == []
    assert context.quality_checks.mathematical_accuracy is True


def test_model_backed_pipeline_routes_by_difficulty():
    model = _CannedModel(_REPLY)
    context = build_default_workflow(model).run(_request(count=1))

    question = context.questions[0]
    assert question.text == "What is the sum of 8 and 5?"
    assert question.answer == 13
    assert question.explanation == "Add 8 and 5 to get 13."
    assert question.metadata.model_used == "standard"
    assert question.confidence == pytest.approx(0.8)
    assert [kind for kind, _ in model.calls] == ["standard"]

    hard_model = _CannedModel(_REPLY)
    hard = build_default_workflow(hard_model).run(_request(count=1, difficulty="hard"))
    assert hard.questions[0].metadata.model_used == "reasoning"
    assert [kind for kind, _ in hard_model.calls] == ["reasoning"]


def test_model_failure_is_recorded_and_pipeline_continues():
    context = build_default_workflow(_OfflineModel()).run(_request())

    assert context.workflow.errors == ["QuestionGeneratorAgent: model offline"]
    assert "No questions to validate" in context.workflow.warnings
    assert "No questions to enhance" in context.workflow.warnings
    assert context.workflow.current_step == "ContextEnhancerAgent"


def test_stage_error_does_not_stop_later_stages():
    log = []
    workflow = GenerationWorkflow([
        _RecordingAgent("First", log),
        _ExplodingAgent(),
        _RecordingAgent("Last", log),
    ])

    context = workflow.run(_request())

    assert context.workflow.errors == ["ExplodingAgent: stage blew up"]
    assert [entry[0] for entry in log] == ["First", "Last"]
    assert context.workflow.current_step == "Last"


def test_current_step_names_the_running_agent():
    log = []
    workflow = GenerationWorkflow([_RecordingAgent("A", log), _RecordingAgent("B", log)])
    workflow.run(GenerationRequest(**_request()))
    assert [(name, step) for name, step, _ in log] == [("A", "A"), ("B", "B")]


def test_request_id_is_bound_for_the_run_only():
    log = []
    workflow = GenerationWorkflow([_RecordingAgent("A", log)])
    workflow.run(_request(), request_id="req-42")
    assert log[0][2] == "req-42"
    assert get_request_id() is None

    workflow.run(_request())
    assert log[1][2]


def test_existing_context_is_processed_in_place():
    log = []
    context = WorkflowContext(question_type="division", grade=4, difficulty="hard")
    result = GenerationWorkflow([_RecordingAgent("A", log)]).run(context)
    assert result is context


# ── Request validation ──────────────────────────────────────────────


def test_missing_parameters_fail_before_any_agent_runs():
    log = []
    workflow = GenerationWorkflow([_RecordingAgent("A", log)])

    with pytest.raises(GenerationRequestError, match="Missing required generation parameters: question_type"):
        workflow.run({"grade": 2, "difficulty": "easy"})
    assert log == []


def test_camel_case_request_is_accepted():
    context = build_default_workflow().run(
        {"questionType": "subtraction", "grade": 2, "difficulty": "easy", "count": 1}
    )
    assert context.question_type == "subtraction"
    assert len(context.questions) == 1


@pytest.mark.parametrize(
    "overrides,fragment",
    [
        ({"grade": 0}, "grade"),
        ({"question_type": "calculus"}, "question_?[Tt]ype"),
        ({"count": 50}, "count"),
    ],
)
def test_invalid_parameters_raise_generation_request_error(overrides, fragment):
    with pytest.raises(GenerationRequestError, match=fragment):
        build_default_workflow().run(_request(**overrides))


# ── Structured prompt path ──────────────────────────────────────────


def test_structured_prompt_collects_agent_summaries():
    result = build_default_workflow().run(
        StructuredPromptContext(
            structured_prompt="Generate grade 2 addition",
            context={"grade": 2, "difficulty": "medium"},
        )
    )

    assert isinstance(result, StructuredWorkflowResult)
    assert set(result.agent_results) == {"DifficultyCalibratorAgent", "QualityValidatorAgent"}

    calibration = result.agent_results["DifficultyCalibratorAgent"]
    assert isinstance(calibration, StructuredCalibration)
    assert calibration.number_range.max == 10
    assert calibration.difficulty_level == "medium"
    assert calibration.operations_allowed == ["addition", "subtraction"]

    summary = result.agent_results["QualityValidatorAgent"]
    assert isinstance(summary, StructuredQualitySummary)
    assert summary.quality_score == pytest.approx(0.95)


# ── Difficulty calibration ──────────────────────────────────────────


@pytest.mark.parametrize(
    "grade,difficulty,expected_max",
    [(1, "easy", 5), (2, "easy", 10), (3, "medium", 37), (4, "hard", 100), (12, "hard", 2000)],
)
def test_number_range_scales_with_grade_and_difficulty(grade, difficulty, expected_max):
    number_range = number_range_for(grade, difficulty)
    assert number_range.min == 1
    assert number_range.max == expected_max


def test_complexity_and_load_adjustments():
    assert analyze_complexity(2, "hard", "fraction_addition") == ("moderate", "medium")
    assert analyze_complexity(7, "easy", "addition") == ("simple", "low")
    assert analyze_complexity(5, "hard", "decimal_addition") == ("complex", "high")


def test_early_grades_drop_multi_digit_operations():
    assert allowed_operations(2, "addition", "hard") == ["single-digit"]
    assert allowed_operations(5, "subtraction", "medium") == ["single-digit", "double-digit"]
    assert allowed_operations(5, "pattern", "hard") == ["basic"]


def test_calibrator_keeps_caller_number_range():
    context = WorkflowContext(
        question_type="addition",
        grade=2,
        difficulty="easy",
        difficulty_settings=DifficultySettings(number_range=NumberRange(min=1, max=50)),
    )
    DifficultyCalibratorAgent().process(context)
    assert context.difficulty_settings.number_range.max == 50


def test_calibrator_fills_only_missing_range():
    context = WorkflowContext(
        question_type="addition",
        grade=3,
        difficulty="medium",
        difficulty_settings=DifficultySettings(complexity="complex"),
    )
    DifficultyCalibratorAgent().process(context)
    assert context.difficulty_settings.complexity == "complex"
    assert context.difficulty_settings.number_range.max == 37


def test_number_range_rejects_inverted_bounds():
    with pytest.raises(ValueError):
        NumberRange(min=10, max=1)


class _BrokenStructuredAgent(EducationalAgent):
    name = "BrokenStructuredAgent"

    def run(self, context):
        return context

    def process_structured(self, context):
        raise KeyError("structured_prompt")


def test_structured_prompt_with_non_numeric_grade_uses_default_range():
    result = build_default_workflow().run(
        StructuredPromptContext(structured_prompt="x", context={"grade": "five"})
    )

    calibration = result.agent_results["DifficultyCalibratorAgent"]
    assert calibration.number_range.max == 100
    assert "QualityValidatorAgent" in result.agent_results


def test_structured_stage_failure_is_skipped_not_raised():
    workflow = GenerationWorkflow([_BrokenStructuredAgent(), DifficultyCalibratorAgent()])

    result = workflow.run(StructuredPromptContext(structured_prompt="x", context={"grade": 3}))

    assert set(result.agent_results) == {"DifficultyCalibratorAgent"}
    assert result.agent_results["DifficultyCalibratorAgent"].number_range.max == 50
