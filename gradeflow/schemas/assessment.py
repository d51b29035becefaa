from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from gradeflow.models.enums import AssessmentType, QuestionType

AnswerValue = Union[bool, int, float, str, list[str], None]


class Question(BaseModel):
    question_text: str
    type: QuestionType
    options: Optional[list[str]] = None
    correct_answer: AnswerValue = None
    points: float = Field(ge=0)
    explanation: Optional[str] = None
    code_template: Optional[str] = None
    required: bool = True


class AssessmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    course_id: str
    module_id: Optional[str] = None
    lesson_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    type: AssessmentType
    questions: list[Question]
    total_points: float
    passing_score: float
    duration: Optional[int] = None
    attempts: Optional[int] = None
    is_published: bool
    is_required_for_completion: bool
    order: int
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    def for_student(self) -> "AssessmentRead":
        """Same payload with answer keys removed."""
        hidden = [
            q.model_copy(update={"correct_answer": None, "explanation": None})
            for q in self.questions
        ]
        return self.model_copy(update={"questions": hidden})
