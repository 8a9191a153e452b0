"""Answer validation: scoring arithmetic, feedback tiers, failure wrapping."""

from __future__ import annotations

import json
import sys
import threading
import time
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from learnhub.agents.answer_validation import (
    AnswerValidationAgent,
    extract_topic,
    overall_feedback,
    parse_grading_response,
)
from learnhub.errors import (
    AnswerValidationError,
    EmptySubmissionError,
    SubmissionValidationError,
)
from learnhub.models.schemas import (
    AnswerSubmission,
    QuestionValidationResult,
    StudentAnswer,
)


def _grade_json(score, feedback="Keep going.", is_correct=None):
    if is_correct is None:
        is_correct = score >= 8
    return json.dumps({"score": score, "feedback": feedback, "isCorrect": is_correct})


class _ScriptedGrader:
    """Returns the canned grading payload whose question text is in the prompt."""

    def __init__(self, replies, delays=None):
        self.replies = replies
        self.delays = delays or {}
        self.prompts = []
        self._lock = threading.Lock()

    def generate(self, prompt):
        raise AssertionError("grading must use the reasoning capability")

    def generate_with_complex_reasoning(self, prompt):
        with self._lock:
            self.prompts.append(prompt)
        for question, reply in self.replies.items():
            if f"QUESTION: {question}\n" in prompt:
                time.sleep(self.delays.get(question, 0))
                if isinstance(reply, Exception):
                    raise reply
                return reply
        raise AssertionError(f"unexpected prompt: {prompt[:80]}")


def _submission(questions, session_id="session-1"):
    return AnswerSubmission(
        session_id=session_id,
        student_id="student-7",
        student_email="learner@example.com",
        answers=[
            StudentAnswer(question_id=f"q{i}", question_text=text, student_answer="my answer")
            for i, text in enumerate(questions, 1)
        ],
    )


def _agent(grader, max_workers=1):
    return AnswerValidationAgent(grader, max_workers=max_workers)


# ── Score aggregation ───────────────────────────────────────────────


def test_partial_credit_totals_and_percentage():
    questions = ["What is 5 + 3?", "What is 9 - 4?", "What is 6 × 2?"]
    grader = _ScriptedGrader({
        questions[0]: _grade_json(10),
        questions[1]: _grade_json(5),
        questions[2]: _grade_json(0),
    })

    result = _agent(grader).validate_answers(_submission(questions))

    assert result.success is True
    assert result.session_id == "session-1"
    assert result.total_score == 15
    assert result.max_score == 30
    assert result.percentage_score == 50
    assert [q.score for q in result.questions] == [10, 5, 0]
    assert all(q.max_score == 10 for q in result.questions)
    assert len(grader.prompts) == 3


def test_perfect_submission_reports_one_hundred_percent():
    questions = ["What is 1 + 1?", "What is 2 + 2?", "What is 3 + 3?"]
    grader = _ScriptedGrader({q: _grade_json(10) for q in questions})

    result = _agent(grader).validate_answers(_submission(questions))

    assert result.percentage_score == 100
    assert "100%" in result.overall_feedback
    assert "3/3 questions correct" in result.overall_feedback
    assert result.overall_feedback.startswith("Excellent work!")


def test_fractional_total_rounds_half_up():
    questions = ["What is 1 + 1?", "What is 2 + 2?"]
    grader = _ScriptedGrader({
        questions[0]: _grade_json(8),
        questions[1]: _grade_json(7),
    })

    result = _agent(grader).validate_answers(_submission(questions))

    assert result.total_score == 15
    assert result.max_score == 20
    assert result.percentage_score == 75
    assert "75%" in result.overall_feedback
    assert result.overall_feedback.startswith("Good job!")

    questions = ["What is 1 + 1?", "What is 2 + 2?", "What is 3 + 3?", "What is 4 + 4?"]
    grader = _ScriptedGrader({
        questions[0]: _grade_json(10),
        questions[1]: _grade_json(10),
        questions[2]: _grade_json(5),
        questions[3]: _grade_json(0),
    })
    result = _agent(grader).validate_answers(_submission(questions))
    # 25 / 40 = 62.5% rounds up, not to even.
    assert result.percentage_score == 63


def test_model_is_correct_flag_is_echoed_verbatim():
    questions = ["What is 5 + 3?"]
    grader = _ScriptedGrader({questions[0]: _grade_json(5, is_correct=True)})

    result = _agent(grader).validate_answers(_submission(questions))

    assert result.questions[0].is_correct is True
    assert result.questions[0].score == 5


def test_results_preserve_submission_order_under_concurrency():
    questions = [f"What is {n} + {n}?" for n in range(1, 6)]
    # Earlier questions finish later.
    delays = {q: 0.05 * (len(questions) - i) for i, q in enumerate(questions)}
    grader = _ScriptedGrader(
        {q: _grade_json(i * 2, feedback=f"fb-{i}") for i, q in enumerate(questions, 1)},
        delays=delays,
    )

    result = _agent(grader, max_workers=5).validate_answers(_submission(questions))

    assert [q.question_id for q in result.questions] == ["q1", "q2", "q3", "q4", "q5"]
    assert [q.feedback for q in result.questions] == [f"fb-{i}" for i in range(1, 6)]
    assert result.total_score == 30


# ── Strengths / areas for improvement ───────────────────────────────


def test_high_scores_become_strengths_and_low_scores_become_areas():
    questions = ["What is 5 + 3?", "What is 9 - 4?", "What is 7 + 8?"]
    grader = _ScriptedGrader({
        questions[0]: _grade_json(9),
        questions[1]: _grade_json(4),
        questions[2]: _grade_json(10),
    })

    result = _agent(grader).validate_answers(_submission(questions))

    assert result.strengths == ["Addition operations"]
    assert result.areas_for_improvement == ["Subtraction operations"]


def test_extract_topic_falls_back_to_leading_words():
    assert extract_topic("How does the water cycle work?") == "Water cycle understanding"
    assert extract_topic("Name the capital of France please") == "Understanding of Name the capital"
    assert extract_topic("Name it") is None


def test_overall_feedback_tiers():
    results = [
        QuestionValidationResult(
            question_id="q1",
            question_text="What is 1 + 1?",
            student_answer="2",
            score=6,
            feedback="ok",
            is_correct=False,
        )
    ]
    assert overall_feedback(results, 60).startswith("Fair performance.")
    assert overall_feedback(results, 59).startswith("Keep learning!")
    assert "You scored 59% (0/1 questions correct)." in overall_feedback(results, 59)


# ── Preconditions ───────────────────────────────────────────────────


def test_empty_submission_is_rejected_before_grading():
    grader = _ScriptedGrader({})
    with pytest.raises(EmptySubmissionError, match="No answers provided") as excinfo:
        _agent(grader).validate_answers(_submission([]))
    assert "empty" in str(excinfo.value)
    assert grader.prompts == []


@pytest.mark.parametrize(
    "overrides,message",
    [
        ({"session_id": ""}, "Session ID is required"),
        ({"student_id": "  "}, "Student ID is required"),
        ({"student_email": ""}, "Student email is required"),
    ],
)
def test_missing_identity_fields_are_rejected(overrides, message):
    payload = {
        "session_id": "s1",
        "student_id": "st1",
        "student_email": "a@example.com",
        "answers": [StudentAnswer(question_id="q1", question_text="What is 1 + 1?", student_answer="2")],
    }
    payload.update(overrides)
    with pytest.raises(SubmissionValidationError, match=message):
        _agent(_ScriptedGrader({})).validate_answers(AnswerSubmission(**payload))


def test_blank_answer_fields_are_rejected():
    submission = AnswerSubmission(
        session_id="s1",
        student_id="st1",
        student_email="a@example.com",
        answers=[StudentAnswer(question_id="q1", question_text="What is 1 + 1?", student_answer="")],
    )
    with pytest.raises(SubmissionValidationError, match="questionId, questionText, and studentAnswer"):
        _agent(_ScriptedGrader({})).validate_answers(submission)


def test_submission_accepts_camel_case_payload():
    submission = AnswerSubmission.model_validate({
        "sessionId": "s-camel",
        "studentId": "st1",
        "studentEmail": "a@example.com",
        "answers": [{"questionId": "q1", "questionText": "What is 2 + 2?", "studentAnswer": "4"}],
    })
    grader = _ScriptedGrader({"What is 2 + 2?": _grade_json(10)})

    result = _agent(grader).validate_answers(submission)
    dumped = result.model_dump(by_alias=True)

    assert dumped["sessionId"] == "s-camel"
    assert dumped["percentageScore"] == 100
    assert dumped["questions"][0]["isCorrect"] is True


# ── Failure wrapping ────────────────────────────────────────────────


def test_malformed_grading_payload_fails_whole_submission():
    questions = ["What is 1 + 1?", "What is 2 + 2?"]
    grader = _ScriptedGrader({
        questions[0]: _grade_json(10),
        questions[1]: "I think the student did fine",
    })

    with pytest.raises(AnswerValidationError, match="AnswerValidationAgent validation failed"):
        _agent(grader).validate_answers(_submission(questions))


def test_model_failure_is_wrapped_with_cause():
    questions = ["What is 1 + 1?"]
    grader = _ScriptedGrader({questions[0]: TimeoutError("model timed out")})

    with pytest.raises(AnswerValidationError) as excinfo:
        _agent(grader).validate_answers(_submission(questions))

    assert "AnswerValidationAgent validation failed" in str(excinfo.value)
    assert "model timed out" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, TimeoutError)


def test_concurrent_failure_also_fails_whole_submission():
    questions = ["What is 1 + 1?", "What is 2 + 2?", "What is 3 + 3?"]
    grader = _ScriptedGrader({
        questions[0]: _grade_json(10),
        questions[1]: RuntimeError("connection reset"),
        questions[2]: _grade_json(10),
    })

    with pytest.raises(AnswerValidationError, match="connection reset"):
        _agent(grader, max_workers=3).validate_answers(_submission(questions))


@pytest.mark.parametrize(
    "payload",
    [
        '{"score": 12, "feedback": "Great", "isCorrect": true}',
        '{"score": -1, "feedback": "Hmm", "isCorrect": false}',
        '{"score": "9", "feedback": "Great", "isCorrect": true}',
        '{"score": 9, "feedback": "", "isCorrect": true}',
        '{"score": 9, "feedback": "Great", "isCorrect": "yes"}',
        '{"score": 9, "feedback": "Great"}',
    ],
)
def test_parse_grading_response_rejects_out_of_contract_payloads(payload):
    with pytest.raises(ValueError, match="Invalid grading payload"):
        parse_grading_response(payload)


def test_parse_grading_response_accepts_fenced_json():
    graded = parse_grading_response('```json\n{"score": 7.5, "feedback": "Close", "isCorrect": false}\n```')
    assert graded.score == 7.5
    assert graded.is_correct is False


def test_request_id_reaches_concurrent_grading_calls():
    from learnhub.observability.context import get_request_id

    seen = []
    lock = threading.Lock()

    class _ContextRecordingGrader:
        def generate(self, prompt):
            raise AssertionError("grading must use the reasoning capability")

        def generate_with_complex_reasoning(self, prompt):
            with lock:
                seen.append((get_request_id(), threading.current_thread().name))
            time.sleep(0.02)
            return _grade_json(10)

    questions = ["What is 1 + 1?", "What is 2 + 2?", "What is 3 + 3?"]
    _agent(_ContextRecordingGrader(), max_workers=3).validate_answers(
        _submission(questions, session_id="sess-1")
    )

    assert [rid for rid, _ in seen] == ["sess-1"] * 3
    assert all(name != threading.main_thread().name for _, name in seen)
    assert get_request_id() is None
