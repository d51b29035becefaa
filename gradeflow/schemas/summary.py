from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from gradeflow.models.enums import AssessmentType
from gradeflow.schemas.submission import SubmissionRead


class SummaryRead(BaseModel):
    """Counts are null when their query failed ("unavailable"), never zero."""

    model_config = ConfigDict(from_attributes=True)

    total: Optional[int] = None
    submitted: Optional[int] = None
    graded: Optional[int] = None
    late: Optional[int] = None
    last_submitted_at: Optional[datetime] = None
    unavailable: list[str] = []


class AssessmentSummaryRow(BaseModel):
    assessment_id: str
    title: str
    type: AssessmentType
    end_date: Optional[datetime] = None
    is_published: bool
    order: int
    summary: SummaryRead


class SubmissionOverview(BaseModel):
    success: bool = True
    data: list[SubmissionRead]
    total: int
    page: int
    pages: int
    # omitted when the summary could not be built
    summary: Optional[SummaryRead] = None
