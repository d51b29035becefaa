from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gradeflow.core.deps import get_current_user, get_db
from gradeflow.core.guard import GuardAction, authorize
from gradeflow.models.assessment import Assessment
from gradeflow.models.enums import Role
from gradeflow.models.user import User
from gradeflow.schemas.assessment import AssessmentRead
from gradeflow.schemas.envelope import Envelope

router = APIRouter()


def _present(assessment: Assessment, user: User) -> AssessmentRead:
    data = AssessmentRead.model_validate(assessment)
    if user.role == Role.STUDENT.value:
        return data.for_student()
    return data


@router.get("/courses/{course_id}", response_model=Envelope[list[AssessmentRead]])
def list_course_assessments(
    course_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    course = authorize(db, me, GuardAction.VIEW_COURSE, course_id)

    q = db.query(Assessment).filter(Assessment.course_id == course.id)
    if me.role == Role.STUDENT.value:
        q = q.filter(Assessment.is_published.is_(True))

    assessments = q.order_by(
        Assessment.order.asc(), Assessment.updated_at.desc(), Assessment.id.asc()
    ).all()
    return {"success": True, "data": [_present(a, me) for a in assessments]}


@router.get("/{assessment_id}", response_model=Envelope[AssessmentRead])
def get_assessment(
    assessment_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    assessment = authorize(db, me, GuardAction.VIEW_ASSESSMENT, assessment_id)
    return {"success": True, "data": _present(assessment, me)}
