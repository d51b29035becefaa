from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gradeflow.db.base_class import Base, ObjectIdMixin
from gradeflow.models.enums import AssessmentType


def total_points_of(questions: list[dict]) -> float:
    return float(sum(q.get("points", 0) or 0 for q in questions))


class Assessment(ObjectIdMixin, Base):
    """Catalog entry. The grading workflow only reads these rows."""

    __tablename__ = "assessments"

    course_id: Mapped[str] = mapped_column(
        String(24), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    module_id: Mapped[str | None] = mapped_column(String(24))
    lesson_id: Mapped[str | None] = mapped_column(String(24))

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default=AssessmentType.QUIZ.value)

    # ordered list of question dicts, see gradeflow.schemas.assessment.Question
    questions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    total_points: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    passing_score: Mapped[float] = mapped_column(Float, nullable=False, default=70)

    duration: Mapped[int | None] = mapped_column(Integer)
    attempts: Mapped[int | None] = mapped_column(Integer)
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_required_for_completion: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    course = relationship("Course", back_populates="assessments")
    submissions = relationship(
        "Submission", back_populates="assessment", cascade="all, delete-orphan"
    )
