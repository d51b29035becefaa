"""Per-status submission counts for the instructor views.

The summary is built from four independent list queries (all, submitted,
graded, late) instead of one grouped query. Each query may fail on its own;
a failed count is reported as unavailable (``None``), never as zero, and the
counts that did load are kept.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gradeflow.models.assessment import Assessment
from gradeflow.models.enums import SubmissionStatus
from gradeflow.services.queries import AssessmentScope, Scope, list_submissions

logger = logging.getLogger(__name__)

# status filter per summary field; None means every status
SUMMARY_FIELDS: dict[str, SubmissionStatus | None] = {
    "total": None,
    "submitted": SubmissionStatus.SUBMITTED,
    "graded": SubmissionStatus.GRADED,
    "late": SubmissionStatus.LATE,
}


@dataclass
class Summary:
    total: int | None = None
    submitted: int | None = None
    graded: int | None = None
    late: int | None = None
    last_submitted_at: datetime | None = None
    unavailable: list[str] = field(default_factory=list)


def gather_partial(db: Session, calls: dict[str, Callable[[], Any]]) -> tuple[dict[str, Any], list[str]]:
    """Run every call; collect results by name and the names that failed."""
    results: dict[str, Any] = {}
    failed: list[str] = []
    for name, call in calls.items():
        try:
            results[name] = call()
        except Exception:
            logger.warning("summary field %r unavailable", name, exc_info=True)
            failed.append(name)
            # leave the session usable for the remaining reads
            db.rollback()
    return results, failed


def summarize(db: Session, scope: Scope) -> Summary:
    def fetch(status: SubmissionStatus | None) -> Callable[[], tuple[int, datetime | None]]:
        def call() -> tuple[int, datetime | None]:
            result = list_submissions(db, scope, status=status, page=1, limit=1)
            # copy the scalar now; a later field failing rolls back and expires the rows
            newest = result.rows[0].submitted_at if result.rows else None
            return result.total, newest

        return call

    results, failed = gather_partial(
        db, {name: fetch(status) for name, status in SUMMARY_FIELDS.items()}
    )

    summary = Summary(unavailable=failed)
    for name, (total, _) in results.items():
        setattr(summary, name, total)

    if "total" in results:
        # newest-first ordering: the first row holds the latest submission
        summary.last_submitted_at = results["total"][1]
    return summary


def try_summarize(db: Session, scope: Scope) -> Summary | None:
    """Best-effort summary for list views: any failure just omits the panel."""
    try:
        return summarize(db, scope)
    except (SQLAlchemyError, ValueError, TypeError):
        logger.warning("summary for %r omitted", scope, exc_info=True)
        db.rollback()
        return None


def summarize_course(db: Session, course_id: str) -> list[tuple[Assessment, Summary]]:
    """One summary per assessment of the course, in catalog order."""
    assessments = (
        db.query(Assessment)
        .filter(Assessment.course_id == course_id)
        .order_by(Assessment.order.asc(), Assessment.updated_at.desc(), Assessment.id.asc())
        .all()
    )
    return [(a, summarize(db, AssessmentScope(a.id))) for a in assessments]
