import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from gradeflow.core.errors import ConcurrentOperationError, ValidationError
from gradeflow.models.assessment import Assessment
from gradeflow.models.enums import QuestionType, SubmissionStatus
from gradeflow.models.submission import Submission
from gradeflow.services.scoring import check_answer, coerce_score
from gradeflow.services.state_machine import Action, next_status

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Evaluation:
    answers: list[dict]
    suggested_score: float
    # questions that need a human to assign points
    manual_questions: list[int]


def evaluate(assessment: Assessment, answers: list[dict]) -> Evaluation:
    """Auto-check every answer against the catalog's correct answers.

    ``suggested_score`` only counts auto-gradable questions. It is shown to the
    instructor and never committed on its own.
    """
    questions = assessment.questions or []
    by_index = {a["question_index"]: a for a in answers or []}

    evaluated: list[dict] = []
    manual: list[int] = []
    suggested = 0.0

    for index, question in enumerate(questions):
        qtype = QuestionType(question["type"])
        if not qtype.auto_gradable:
            manual.append(index)

        raw = by_index.get(index)
        if raw is None:
            continue

        is_correct = check_answer(question, raw.get("answer"))
        if is_correct is None:
            points = None
        else:
            points = float(question.get("points", 0) or 0) if is_correct else 0.0
            suggested += points

        evaluated.append(
            {
                "question_index": index,
                "answer": raw.get("answer"),
                "is_correct": is_correct,
                "points_earned": points,
            }
        )

    return Evaluation(answers=evaluated, suggested_score=suggested, manual_questions=manual)


def validate_score(value, total_points: float) -> float:
    score = coerce_score(value)
    if score is None:
        raise ValidationError("Please enter a valid numeric score.", field="score")
    if score < 0 or score > total_points:
        raise ValidationError(
            f"score must be between 0 and {total_points:g}",
            field="score",
        )
    return score


def grade(
    db: Session,
    assessment: Assessment,
    submission: Submission,
    score,
    feedback: str | None = None,
    *,
    expected_version: int | None = None,
    now: datetime | None = None,
) -> Submission:
    """Commit an instructor grade (or re-grade).

    Every check runs before the row is touched, so a rejected grade leaves the
    submission exactly as it was.
    """
    previous = submission.status
    next_status(previous, Action.GRADE)
    value = validate_score(score, assessment.total_points)

    if expected_version is not None and expected_version != submission.version:
        raise ConcurrentOperationError(
            "This submission was changed by someone else. Reload and try again."
        )

    evaluation = evaluate(assessment, submission.answers)

    submission.answers = evaluation.answers
    submission.score = value
    submission.feedback = feedback
    submission.status = SubmissionStatus.GRADED
    submission.graded_at = now or datetime.now(timezone.utc)

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

    db.refresh(submission)

    if previous == SubmissionStatus.GRADED:
        logger.info("submission %s re-graded: %s/%s", submission.id, value, assessment.total_points)
    else:
        logger.info("submission %s graded: %s/%s", submission.id, value, assessment.total_points)
    return submission
