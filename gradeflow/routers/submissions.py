from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, Response, status
from sqlalchemy.orm import Session

from gradeflow.core.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from gradeflow.core.deps import get_client_context, get_current_user, get_db
from gradeflow.core.guard import GuardAction, authorize, single_flight
from gradeflow.core.navigation import back_link
from gradeflow.models.enums import Role, SubmissionStatus
from gradeflow.models.submission import Submission
from gradeflow.models.user import User
from gradeflow.schemas.envelope import Envelope, ErrorEnvelope, PageEnvelope
from gradeflow.schemas.submission import (
    MySubmissions,
    RetakeRead,
    SubmissionAnswersUpdate,
    SubmissionDetail,
    SubmissionGradeUpdate,
    SubmissionRead,
)
from gradeflow.schemas.summary import AssessmentSummaryRow, SubmissionOverview, SummaryRead
from gradeflow.services import grading, submissions
from gradeflow.services.queries import AssessmentScope, CourseScope, PagedResult, list_submissions
from gradeflow.services.summary import summarize, summarize_course, try_summarize

router = APIRouter(
    prefix="/submissions",
    responses={
        400: {"model": ErrorEnvelope, "description": "Malformed identifier"},
        403: {"model": ErrorEnvelope, "description": "Access denied"},
        404: {"model": ErrorEnvelope, "description": "Not found"},
        409: {"model": ErrorEnvelope, "description": "Invalid state or concurrent change"},
        422: {"model": ErrorEnvelope, "description": "Invalid input"},
    },
)


def _page(result: PagedResult) -> dict:
    return {
        "success": True,
        "data": [SubmissionRead.model_validate(s) for s in result.rows],
        "total": result.total,
        "page": result.page,
        "pages": result.pages,
    }


def _detail(submission: Submission, viewer: User) -> SubmissionDetail:
    assessment = submission.assessment
    extra = {
        "back_link": back_link(viewer.role, submission.assessment_id),
        "total_points": assessment.total_points,
        "passing_score": assessment.passing_score,
    }
    if viewer.role == Role.INSTRUCTOR.value and submission.status != SubmissionStatus.DRAFT:
        evaluation = grading.evaluate(assessment, submission.answers)
        extra["suggested_score"] = evaluation.suggested_score
        extra["manual_questions"] = evaluation.manual_questions

    base = SubmissionRead.model_validate(submission).model_dump()
    return SubmissionDetail(**base, **extra)


def _answers(payload: SubmissionAnswersUpdate | None) -> tuple[list[dict] | None, list[str] | None]:
    if payload is None:
        return None, None
    answers = [a.model_dump() for a in payload.answers] if payload.answers is not None else None
    return answers, payload.attachments


# ---------------------------------------------------------------------------
# student
# ---------------------------------------------------------------------------


@router.post(
    "/assessment/{assessment_id}/start",
    response_model=Envelope[SubmissionRead],
    status_code=status.HTTP_201_CREATED,
)
def start_attempt(
    assessment_id: str,
    response: Response,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    assessment = authorize(db, me, GuardAction.START_ATTEMPT, assessment_id)
    submission, created = submissions.start_attempt(db, assessment, me)
    if not created:
        response.status_code = status.HTTP_200_OK
    return {"success": True, "data": SubmissionRead.model_validate(submission)}


@router.get(
    "/assessment/{assessment_id}/my-submissions",
    response_model=Envelope[MySubmissions],
)
def my_submissions(
    assessment_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    assessment = authorize(db, me, GuardAction.VIEW_OWN_SUBMISSIONS, assessment_id)
    rows = submissions.my_submissions(db, assessment.id, me.id)
    retake = submissions.retake_status(assessment, rows)
    return {
        "success": True,
        "data": {
            "submissions": [SubmissionRead.model_validate(s) for s in rows],
            "retake": RetakeRead.model_validate(retake),
        },
    }


@router.put("/{submission_id}/answers", response_model=Envelope[SubmissionRead])
def save_answers(
    submission_id: str,
    payload: SubmissionAnswersUpdate,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    submission = authorize(db, me, GuardAction.UPDATE_SUBMISSION, submission_id)
    answers, attachments = _answers(payload)
    submission = submissions.save_answers(
        db, submission.assessment, submission, answers, attachments
    )
    return {"success": True, "data": SubmissionRead.model_validate(submission)}


@router.post("/{submission_id}/submit", response_model=Envelope[SubmissionRead])
def submit(
    submission_id: str,
    payload: Optional[SubmissionAnswersUpdate] = Body(default=None),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
    context: str = Depends(get_client_context),
):
    submission = authorize(db, me, GuardAction.SUBMIT, submission_id)
    answers, attachments = _answers(payload)
    with single_flight.acquire(context, GuardAction.SUBMIT, submission.id):
        submission = submissions.submit(
            db,
            submission.assessment,
            submission,
            answers=answers,
            attachments=attachments,
        )
    return {"success": True, "data": SubmissionRead.model_validate(submission)}


# ---------------------------------------------------------------------------
# instructor
# ---------------------------------------------------------------------------


@router.get("/assessment/{assessment_id}", response_model=PageEnvelope[SubmissionRead])
def list_for_assessment(
    assessment_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    status_filter: Optional[SubmissionStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=255),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    assessment = authorize(db, me, GuardAction.LIST_SUBMISSIONS, assessment_id)
    result = list_submissions(
        db, AssessmentScope(assessment.id), status=status_filter, page=page, limit=limit, search=search
    )
    return _page(result)


@router.get("/assessment/{assessment_id}/summary", response_model=Envelope[SummaryRead])
def assessment_summary(
    assessment_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    assessment = authorize(db, me, GuardAction.LIST_SUBMISSIONS, assessment_id)
    summary = summarize(db, AssessmentScope(assessment.id))
    return {"success": True, "data": SummaryRead.model_validate(summary)}


@router.get("/assessment/{assessment_id}/overview", response_model=SubmissionOverview)
def assessment_overview(
    assessment_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    status_filter: Optional[SubmissionStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=255),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    """List page plus the summary panel; the panel is dropped if it fails."""
    assessment = authorize(db, me, GuardAction.LIST_SUBMISSIONS, assessment_id)
    scope = AssessmentScope(assessment.id)

    body = _page(
        list_submissions(db, scope, status=status_filter, page=page, limit=limit, search=search)
    )
    summary = try_summarize(db, scope)
    body["summary"] = SummaryRead.model_validate(summary) if summary is not None else None
    return body


@router.get("/course/{course_id}", response_model=PageEnvelope[SubmissionRead])
def list_for_course(
    course_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    status_filter: Optional[SubmissionStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=255),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    course = authorize(db, me, GuardAction.LIST_COURSE_SUBMISSIONS, course_id)
    result = list_submissions(
        db, CourseScope(course.id), status=status_filter, page=page, limit=limit, search=search
    )
    return _page(result)


@router.get("/course/{course_id}/summary", response_model=Envelope[list[AssessmentSummaryRow]])
def course_summary(
    course_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    course = authorize(db, me, GuardAction.LIST_COURSE_SUBMISSIONS, course_id)

    rows = [
        AssessmentSummaryRow(
            assessment_id=a.id,
            title=a.title,
            type=a.type,
            end_date=a.end_date,
            is_published=a.is_published,
            order=a.order,
            summary=SummaryRead.model_validate(s),
        )
        for a, s in summarize_course(db, course.id)
    ]
    return {"success": True, "data": rows}


@router.put("/{submission_id}/grade", response_model=Envelope[SubmissionRead])
def grade_submission(
    submission_id: str,
    payload: SubmissionGradeUpdate,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
    context: str = Depends(get_client_context),
):
    submission = authorize(db, me, GuardAction.GRADE, submission_id)
    with single_flight.acquire(context, GuardAction.GRADE, submission.id):
        submission = grading.grade(
            db,
            submission.assessment,
            submission,
            payload.score,
            payload.feedback,
            expected_version=payload.version,
        )
    return {"success": True, "data": SubmissionRead.model_validate(submission)}


# ---------------------------------------------------------------------------
# shared
# ---------------------------------------------------------------------------


@router.get("/{submission_id}", response_model=Envelope[SubmissionDetail])
def get_submission(
    submission_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    submission = authorize(db, me, GuardAction.VIEW_SUBMISSION, submission_id)
    return {"success": True, "data": _detail(submission, me)}
