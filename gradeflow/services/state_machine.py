"""Submission status transitions.

    draft --submit--> submitted | late --grade--> graded --grade--> graded

Anything else raises InvalidStateError.
"""

import enum
import logging
from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.orm import Session

from gradeflow.core.errors import InvalidStateError, ValidationError
from gradeflow.models.enums import SubmissionStatus
from gradeflow.models.submission import Submission
from gradeflow.services.scoring import is_blank

logger = logging.getLogger(__name__)


class Action(str, enum.Enum):
    SUBMIT = "submit"
    GRADE = "grade"


# (current status, action) -> allowed targets
TRANSITIONS: dict[tuple[SubmissionStatus, Action], frozenset[SubmissionStatus]] = {
    (SubmissionStatus.DRAFT, Action.SUBMIT): frozenset(
        {SubmissionStatus.SUBMITTED, SubmissionStatus.LATE}
    ),
    (SubmissionStatus.SUBMITTED, Action.GRADE): frozenset({SubmissionStatus.GRADED}),
    (SubmissionStatus.LATE, Action.GRADE): frozenset({SubmissionStatus.GRADED}),
    (SubmissionStatus.GRADED, Action.GRADE): frozenset({SubmissionStatus.GRADED}),
}


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; treat them as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_late(submitted_at: datetime, end_date: datetime | None) -> bool:
    if end_date is None:
        return False
    return as_utc(submitted_at) > as_utc(end_date)


def next_status(
    current: SubmissionStatus,
    action: Action,
    *,
    now: datetime | None = None,
    end_date: datetime | None = None,
) -> SubmissionStatus:
    allowed = TRANSITIONS.get((SubmissionStatus(current), Action(action)))
    if not allowed:
        raise InvalidStateError(
            f"Cannot {Action(action).value} a submission with status '{SubmissionStatus(current).value}'."
        )

    if action == Action.SUBMIT:
        if now is None:
            now = datetime.now(timezone.utc)
        return SubmissionStatus.LATE if is_late(now, end_date) else SubmissionStatus.SUBMITTED

    return SubmissionStatus.GRADED


def missing_required_answers(questions: list[dict], answers: list[dict]) -> list[int]:
    """Indices of required questions without a non-blank answer."""
    answered = {
        a["question_index"] for a in answers if not is_blank(a.get("answer"))
    }
    return [
        i
        for i, q in enumerate(questions)
        if q.get("required", True) and i not in answered
    ]


def ensure_attempt_number_free(db: Session, submission) -> None:
    clash = (
        db.query(func.count(Submission.id))
        .filter(
            Submission.assessment_id == submission.assessment_id,
            Submission.student_id == submission.student_id,
            Submission.attempt_number == submission.attempt_number,
            Submission.id != submission.id,
        )
        .scalar()
    )
    if clash:
        raise ValidationError(
            f"Attempt {submission.attempt_number} already exists for this assessment.",
            field="attempt_number",
        )


def apply_submit(db: Session, assessment, submission, *, now: datetime | None = None) -> SubmissionStatus:
    """Validate and move a draft to submitted/late. Does not commit."""
    if now is None:
        now = datetime.now(timezone.utc)

    target = next_status(submission.status, Action.SUBMIT, now=now, end_date=assessment.end_date)

    missing = missing_required_answers(assessment.questions or [], submission.answers or [])
    if missing:
        raise ValidationError(
            "Answer every required question before submitting (missing: "
            + ", ".join(str(i + 1) for i in missing)
            + ").",
            field="answers",
        )
    ensure_attempt_number_free(db, submission)

    submission.status = target
    submission.submitted_at = now
    submission.is_late = target == SubmissionStatus.LATE
    if target == SubmissionStatus.LATE:
        logger.info("submission %s submitted late (deadline %s)", submission.id, assessment.end_date)
    return target
