import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from gradeflow.core.config import DEFAULT_MAX_ATTEMPTS
from gradeflow.core.errors import ConcurrentOperationError, InvalidStateError, ValidationError
from gradeflow.models.assessment import Assessment
from gradeflow.models.enums import SubmissionStatus
from gradeflow.models.submission import Submission
from gradeflow.models.user import User
from gradeflow.services.state_machine import apply_submit, as_utc

logger = logging.getLogger(__name__)


@dataclass
class RetakeStatus:
    max_attempts: int
    completed_attempts: int
    attempts_remaining: int
    can_retake: bool
    latest: Submission | None


def _commit(db: Session) -> None:
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        raise ConcurrentOperationError(
            "This submission was changed by someone else. Reload and try again."
        )
    except Exception:
        db.rollback()
        raise


def my_submissions(db: Session, assessment_id: str, student_id: str) -> list[Submission]:
    return (
        db.query(Submission)
        .filter(
            Submission.assessment_id == assessment_id,
            Submission.student_id == student_id,
        )
        .order_by(Submission.attempt_number.desc())
        .all()
    )


def retake_status(assessment: Assessment, submissions: list[Submission]) -> RetakeStatus:
    """Whether the student may open another attempt.

    Only non-draft attempts count. A retake is allowed after a failing grade
    while attempts remain.
    """
    max_attempts = assessment.attempts or DEFAULT_MAX_ATTEMPTS
    completed = [s for s in submissions if s.status != SubmissionStatus.DRAFT]
    latest = max(completed, key=lambda s: s.attempt_number, default=None)

    remaining = max(0, max_attempts - len(completed))
    can_retake = (
        latest is not None
        and latest.status == SubmissionStatus.GRADED
        and not latest.passed
        and remaining > 0
    )
    return RetakeStatus(
        max_attempts=max_attempts,
        completed_attempts=len(completed),
        attempts_remaining=remaining,
        can_retake=can_retake,
        latest=latest,
    )


def next_attempt_number(db: Session, assessment_id: str, student_id: str) -> int:
    current = (
        db.query(func.max(Submission.attempt_number))
        .filter(
            Submission.assessment_id == assessment_id,
            Submission.student_id == student_id,
        )
        .scalar()
    )
    return (current or 0) + 1


def start_attempt(
    db: Session,
    assessment: Assessment,
    student: User,
    *,
    now: datetime | None = None,
) -> tuple[Submission, bool]:
    """Open a draft for the student. Returns ``(submission, created)``.

    An existing draft is handed back as-is, so opening the assessment twice
    does not burn an attempt.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    if not assessment.is_published:
        raise ValidationError("This assessment is not open yet.", field="assessment_id")
    if assessment.start_date is not None and now < as_utc(assessment.start_date):
        raise ValidationError("This assessment is not open yet.", field="assessment_id")

    existing = my_submissions(db, assessment.id, student.id)
    for s in existing:
        if s.status == SubmissionStatus.DRAFT:
            return s, False

    status = retake_status(assessment, existing)
    if status.latest is not None and not status.can_retake:
        if status.attempts_remaining == 0:
            raise ValidationError("No attempts remaining.", field="attempt_number")
        raise ValidationError(
            "A new attempt can only be started after a failing grade.",
            field="attempt_number",
        )

    s = Submission(
        assessment_id=assessment.id,
        course_id=assessment.course_id,
        student_id=student.id,
        attempt_number=next_attempt_number(db, assessment.id, student.id),
        status=SubmissionStatus.DRAFT,
        answers=[],
        attachments=[],
    )
    db.add(s)

    try:
        db.commit()
    except IntegrityError:
        # lost a race for the same attempt number
        db.rollback()
        raise ValidationError(
            "This attempt was already started. Reload and try again.",
            field="attempt_number",
        )
    except Exception:
        db.rollback()
        raise

    db.refresh(s)
    logger.info(
        "student %s started attempt %s on assessment %s",
        student.id,
        s.attempt_number,
        assessment.id,
    )
    return s, True


def _clean_answers(assessment: Assessment, answers: list[dict]) -> list[dict]:
    count = len(assessment.questions or [])
    seen: set[int] = set()
    cleaned: list[dict] = []
    for a in answers:
        index = a["question_index"]
        if index < 0 or index >= count:
            raise ValidationError(
                f"question_index {index} is out of range (0..{count - 1}).",
                field="answers",
            )
        if index in seen:
            raise ValidationError(
                f"question_index {index} answered more than once.", field="answers"
            )
        seen.add(index)
        cleaned.append({"question_index": index, "answer": a.get("answer")})
    return sorted(cleaned, key=lambda a: a["question_index"])


def save_answers(
    db: Session,
    assessment: Assessment,
    submission: Submission,
    answers: list[dict] | None = None,
    attachments: list[str] | None = None,
) -> Submission:
    if submission.status != SubmissionStatus.DRAFT:
        raise InvalidStateError(
            f"Cannot change answers of a submission with status '{submission.status.value}'."
        )

    if answers is not None:
        submission.answers = _clean_answers(assessment, answers)
    if attachments is not None:
        # opaque references, passed through unchanged
        submission.attachments = list(attachments)

    _commit(db)
    db.refresh(submission)
    return submission


def submit(
    db: Session,
    assessment: Assessment,
    submission: Submission,
    *,
    answers: list[dict] | None = None,
    attachments: list[str] | None = None,
    now: datetime | None = None,
) -> Submission:
    """Final submit of a draft; late iff now is past the assessment's end date."""
    if submission.status != SubmissionStatus.DRAFT:
        raise InvalidStateError(
            f"Cannot submit a submission with status '{submission.status.value}'."
        )

    if answers is not None:
        submission.answers = _clean_answers(assessment, answers)
    if attachments is not None:
        submission.attachments = list(attachments)

    try:
        target = apply_submit(db, assessment, submission, now=now)
    except Exception:
        # drop the unsaved answer changes along with the failed transition
        db.rollback()
        raise

    _commit(db)
    db.refresh(submission)
    logger.info("submission %s -> %s", submission.id, target.value)
    return submission
