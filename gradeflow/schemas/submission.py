from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt

from gradeflow.models.enums import SubmissionStatus
from gradeflow.schemas.assessment import AnswerValue
from gradeflow.schemas.user import StudentRef


class AnswerIn(BaseModel):
    question_index: int = Field(ge=0)
    answer: AnswerValue = None


class AnswerRead(BaseModel):
    question_index: int
    answer: AnswerValue = None
    is_correct: Optional[bool] = None
    points_earned: Optional[float] = None


class SubmissionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    assessment_id: str
    course_id: str
    student_id: str
    student: Optional[StudentRef] = None
    attempt_number: int
    status: SubmissionStatus
    is_late: bool = False
    answers: list[AnswerRead] = []
    attachments: list[str] = []
    score: Optional[float] = None
    percentage: Optional[int] = None
    passed: Optional[bool] = None
    feedback: Optional[str] = None
    submitted_at: Optional[datetime] = None
    graded_at: Optional[datetime] = None
    version: int
    created_at: datetime
    updated_at: datetime


class SubmissionDetail(SubmissionRead):
    back_link: str
    total_points: float
    passing_score: float
    # instructor-only grading aid; never committed on its own
    suggested_score: Optional[float] = None
    manual_questions: Optional[list[int]] = None


class SubmissionAnswersUpdate(BaseModel):
    answers: Optional[list[AnswerIn]] = None
    attachments: Optional[list[str]] = None


class SubmissionGradeUpdate(BaseModel):
    score: Union[StrictInt, StrictFloat]
    feedback: Optional[str] = Field(default=None, max_length=10000)
    version: Optional[int] = None


class RetakeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    max_attempts: int
    completed_attempts: int
    attempts_remaining: int
    can_retake: bool


class MySubmissions(BaseModel):
    submissions: list[SubmissionRead]
    retake: RetakeRead
