import math
from dataclasses import dataclass, field

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session, selectinload

from gradeflow.core.errors import ValidationError
from gradeflow.models.enums import SubmissionStatus
from gradeflow.models.submission import Submission
from gradeflow.models.user import User


@dataclass(frozen=True)
class AssessmentScope:
    assessment_id: str


@dataclass(frozen=True)
class CourseScope:
    """Every assessment of one course."""

    course_id: str


Scope = AssessmentScope | CourseScope


@dataclass
class PagedResult:
    rows: list[Submission] = field(default_factory=list)
    total: int = 0
    page: int = 1
    pages: int = 1


def page_count(total: int, limit: int) -> int:
    return max(1, math.ceil(total / limit))


def _order_by():
    """
    Submission list ordering:
    - rows without submitted_at (drafts) last (SQLite-safe)
    - submitted_at newest first
    - id descending (stable tie-break)
    """
    return (
        Submission.submitted_at.is_(None),
        Submission.submitted_at.desc(),
        Submission.id.desc(),
    )


def _filtered(
    db: Session,
    scope: Scope,
    status: SubmissionStatus | None = None,
    search: str | None = None,
) -> Query:
    q = db.query(Submission)

    if isinstance(scope, AssessmentScope):
        q = q.filter(Submission.assessment_id == scope.assessment_id)
    elif isinstance(scope, CourseScope):
        q = q.filter(Submission.course_id == scope.course_id)
    else:
        raise TypeError(f"unknown scope {scope!r}")

    if status is not None:
        q = q.filter(Submission.status == SubmissionStatus(status))

    if search and search.strip():
        needle = f"%{search.strip().lower()}%"
        q = q.join(User, User.id == Submission.student_id).filter(
            or_(
                func.lower(User.email).like(needle),
                func.lower(func.coalesce(User.full_name, "")).like(needle),
            )
        )
    return q


def count_submissions(
    db: Session,
    scope: Scope,
    status: SubmissionStatus | None = None,
    search: str | None = None,
) -> int:
    q = _filtered(db, scope, status, search)
    return q.with_entities(func.count(Submission.id)).scalar() or 0


def list_submissions(
    db: Session,
    scope: Scope,
    status: SubmissionStatus | None = None,
    page: int = 1,
    limit: int = 10,
    search: str | None = None,
) -> PagedResult:
    """One page of submissions, newest submission first. Pages are 1-based."""
    if page < 1:
        raise ValidationError("page must be 1 or greater", field="page")
    if limit < 1:
        raise ValidationError("limit must be 1 or greater", field="limit")

    total = count_submissions(db, scope, status, search)
    pages = page_count(total, limit)

    if total == 0 or page > pages:
        return PagedResult(rows=[], total=total, page=page, pages=pages)

    rows = (
        _filtered(db, scope, status, search)
        .options(selectinload(Submission.student), selectinload(Submission.assessment))
        .order_by(*_order_by())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return PagedResult(rows=rows, total=total, page=page, pages=pages)
