"""Access checks that run before the workflow touches a record.

Order of checks for every request:

1. identifier shape (no store access at all),
2. actor role for the action,
3. record lookup (NotFoundError),
4. ownership.

Denials always raise UnauthorizedError with the same public message.
"""

import enum
import logging
import threading
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session

from gradeflow.core.errors import ConcurrentOperationError, NotFoundError, UnauthorizedError
from gradeflow.core.identifiers import validate_identifier
from gradeflow.models.assessment import Assessment
from gradeflow.models.course import Course
from gradeflow.models.enums import Role
from gradeflow.models.submission import Submission
from gradeflow.models.user import User

logger = logging.getLogger(__name__)


class GuardAction(str, enum.Enum):
    VIEW_ASSESSMENT = "view_assessment"
    VIEW_COURSE = "view_course"
    START_ATTEMPT = "start_attempt"
    VIEW_OWN_SUBMISSIONS = "view_own_submissions"
    VIEW_SUBMISSION = "view_submission"
    UPDATE_SUBMISSION = "update_submission"
    SUBMIT = "submit"
    GRADE = "grade"
    LIST_SUBMISSIONS = "list_submissions"
    LIST_COURSE_SUBMISSIONS = "list_course_submissions"


ROLES_FOR_ACTION: dict[GuardAction, frozenset[Role]] = {
    GuardAction.VIEW_ASSESSMENT: frozenset({Role.STUDENT, Role.INSTRUCTOR, Role.ADMIN}),
    GuardAction.VIEW_COURSE: frozenset({Role.STUDENT, Role.INSTRUCTOR, Role.ADMIN}),
    GuardAction.START_ATTEMPT: frozenset({Role.STUDENT}),
    GuardAction.VIEW_OWN_SUBMISSIONS: frozenset({Role.STUDENT}),
    GuardAction.VIEW_SUBMISSION: frozenset({Role.STUDENT, Role.INSTRUCTOR}),
    GuardAction.UPDATE_SUBMISSION: frozenset({Role.STUDENT}),
    GuardAction.SUBMIT: frozenset({Role.STUDENT}),
    GuardAction.GRADE: frozenset({Role.INSTRUCTOR}),
    GuardAction.LIST_SUBMISSIONS: frozenset({Role.INSTRUCTOR}),
    GuardAction.LIST_COURSE_SUBMISSIONS: frozenset({Role.INSTRUCTOR}),
}

COURSE_ACTIONS = frozenset({GuardAction.VIEW_COURSE, GuardAction.LIST_COURSE_SUBMISSIONS})
ASSESSMENT_ACTIONS = frozenset(
    {
        GuardAction.VIEW_ASSESSMENT,
        GuardAction.START_ATTEMPT,
        GuardAction.VIEW_OWN_SUBMISSIONS,
        GuardAction.LIST_SUBMISSIONS,
    }
)


def actor_role(actor: User) -> Role | None:
    try:
        return Role(actor.role)
    except ValueError:
        return None


def check_role(actor: User, action: GuardAction) -> Role:
    role = actor_role(actor)
    if role is None or role not in ROLES_FOR_ACTION[action]:
        logger.info("denied %s for user %s (role %r)", action.value, actor.id, actor.role)
        raise UnauthorizedError(f"role {actor.role!r} cannot {action.value}")
    return role


def _deny(actor: User, action: GuardAction, resource_id: str):
    logger.info("denied %s on %s for user %s", action.value, resource_id, actor.id)
    return UnauthorizedError(f"{actor.id} does not own {resource_id}")


def _is_course_instructor(db: Session, actor: User, course_id: str) -> bool:
    return (
        db.query(Course.id)
        .filter(Course.id == course_id, Course.instructor_id == actor.id)
        .first()
        is not None
    )


def _authorize_course(db: Session, actor: User, action: GuardAction, course_id: str, role: Role) -> Course:
    course = db.query(Course).filter(Course.id == course_id).first()
    if not course:
        raise NotFoundError("Course not found")
    if role == Role.INSTRUCTOR and course.instructor_id != actor.id:
        raise _deny(actor, action, course_id)
    return course


def _authorize_assessment(
    db: Session, actor: User, action: GuardAction, assessment_id: str, role: Role
) -> Assessment:
    assessment = db.query(Assessment).filter(Assessment.id == assessment_id).first()
    if not assessment:
        raise NotFoundError("Assessment not found")

    if role == Role.INSTRUCTOR:
        if not _is_course_instructor(db, actor, assessment.course_id):
            raise _deny(actor, action, assessment_id)
    elif role == Role.STUDENT and not assessment.is_published:
        # unpublished work is invisible to students
        raise NotFoundError("Assessment not found")
    return assessment


def _authorize_submission(
    db: Session, actor: User, action: GuardAction, submission_id: str, role: Role
) -> Submission:
    submission = db.query(Submission).filter(Submission.id == submission_id).first()
    if not submission:
        raise NotFoundError("Submission not found")

    if role == Role.STUDENT:
        if submission.student_id != actor.id:
            raise _deny(actor, action, submission_id)
    elif role == Role.INSTRUCTOR:
        if not _is_course_instructor(db, actor, submission.course_id):
            raise _deny(actor, action, submission_id)
    else:
        raise _deny(actor, action, submission_id)
    return submission


def authorize(db: Session, actor: User, action: GuardAction, resource_id):
    """Validate ``resource_id``, the actor's role and ownership; return the record.

    The record type follows from the action: course actions load a Course,
    assessment actions an Assessment, everything else a Submission.
    """
    action = GuardAction(action)
    resource_id = validate_identifier(resource_id)
    role = check_role(actor, action)

    if action in COURSE_ACTIONS:
        return _authorize_course(db, actor, action, resource_id, role)
    if action in ASSESSMENT_ACTIONS:
        return _authorize_assessment(db, actor, action, resource_id, role)
    return _authorize_submission(db, actor, action, resource_id, role)


class SingleFlight:
    """At most one in-flight mutation per (client context, action, resource).

    A second attempt while the first is outstanding is rejected right away,
    not queued.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._in_flight: set[tuple[str, str, str]] = set()

    def is_in_flight(self, context: str, action: GuardAction, resource_id: str) -> bool:
        with self._lock:
            return (context, GuardAction(action).value, resource_id) in self._in_flight

    @contextmanager
    def acquire(self, context: str, action: GuardAction, resource_id: str) -> Iterator[None]:
        key = (context, GuardAction(action).value, resource_id)
        with self._lock:
            if key in self._in_flight:
                logger.warning("rejected concurrent %s on %s from %s", key[1], resource_id, context)
                raise ConcurrentOperationError()
            self._in_flight.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._in_flight.discard(key)


single_flight = SingleFlight()
