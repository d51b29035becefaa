from datetime import datetime, timedelta, timezone

import pytest

from gradeflow.core.errors import InvalidStateError, ValidationError
from gradeflow.models.assessment import Assessment
from gradeflow.models.enums import SubmissionStatus
from gradeflow.services.state_machine import (
    Action,
    apply_submit,
    is_late,
    missing_required_answers,
    next_status,
)

END = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_submit_before_deadline_is_submitted():
    assert next_status(SubmissionStatus.DRAFT, Action.SUBMIT, now=END - timedelta(seconds=1), end_date=END) == SubmissionStatus.SUBMITTED


def test_submit_exactly_at_deadline_is_not_late():
    assert next_status(SubmissionStatus.DRAFT, Action.SUBMIT, now=END, end_date=END) == SubmissionStatus.SUBMITTED


def test_submit_one_second_after_deadline_is_late():
    assert next_status(SubmissionStatus.DRAFT, Action.SUBMIT, now=END + timedelta(seconds=1), end_date=END) == SubmissionStatus.LATE


def test_no_deadline_is_never_late():
    assert next_status(SubmissionStatus.DRAFT, Action.SUBMIT, now=END, end_date=None) == SubmissionStatus.SUBMITTED


def test_naive_deadline_treated_as_utc():
    assert is_late(END + timedelta(minutes=1), END.replace(tzinfo=None)) is True


@pytest.mark.parametrize("current", [SubmissionStatus.SUBMITTED, SubmissionStatus.LATE, SubmissionStatus.GRADED])
def test_grade_transitions_end_in_graded(current):
    assert next_status(current, Action.GRADE) == SubmissionStatus.GRADED


@pytest.mark.parametrize(
    "current, action",
    [
        (SubmissionStatus.DRAFT, Action.GRADE),
        (SubmissionStatus.SUBMITTED, Action.SUBMIT),
        (SubmissionStatus.LATE, Action.SUBMIT),
        (SubmissionStatus.GRADED, Action.SUBMIT),
    ],
)
def test_illegal_transitions_raise(current, action):
    with pytest.raises(InvalidStateError):
        next_status(current, action)


def test_missing_required_answers():
    questions = [
        {"type": "short_answer", "points": 1},
        {"type": "essay", "points": 1},
        {"type": "essay", "points": 1, "required": False},
    ]
    answers = [{"question_index": 0, "answer": "x"}, {"question_index": 1, "answer": "  "}]
    assert missing_required_answers(questions, answers) == [1]


def _full_answers(seed_quiz_questions):
    return [{"question_index": i, "answer": "x"} for i in range(len(seed_quiz_questions))]


def test_apply_submit_sets_status_and_timestamp(db, seed, make_submission):
    assessment = db.get(Assessment, seed.quiz_id)
    sub = make_submission(seed.quiz_id, seed.student_id, status=SubmissionStatus.DRAFT)
    sub.answers = _full_answers(assessment.questions)

    when = datetime.now(timezone.utc)
    assert apply_submit(db, assessment, sub, now=when) == SubmissionStatus.SUBMITTED
    assert sub.submitted_at == when
    assert sub.is_late is False


def test_apply_submit_rejects_missing_answers(db, seed, make_submission):
    assessment = db.get(Assessment, seed.quiz_id)
    sub = make_submission(seed.quiz_id, seed.student_id, status=SubmissionStatus.DRAFT)
    sub.answers = [{"question_index": 0, "answer": "B"}]

    with pytest.raises(ValidationError) as exc:
        apply_submit(db, assessment, sub)
    assert exc.value.field == "answers"
    assert sub.status == SubmissionStatus.DRAFT


def test_apply_submit_rejects_attempt_collision(db, seed, make_submission):
    assessment = db.get(Assessment, seed.quiz_id)
    make_submission(seed.quiz_id, seed.student_id, attempt_number=1)
    draft = make_submission(seed.quiz_id, seed.student_id, attempt_number=2, status=SubmissionStatus.DRAFT)
    draft.answers = _full_answers(assessment.questions)
    # simulate a client that reused an attempt number
    draft.attempt_number = 1

    with pytest.raises(ValidationError) as exc:
        apply_submit(db, assessment, draft)
    assert exc.value.field == "attempt_number"
