from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gradeflow.db.base_class import Base, ObjectIdMixin
from gradeflow.models.enums import SubmissionStatus
from gradeflow.services.scoring import compute_percentage, is_passed


class Submission(ObjectIdMixin, Base):
    __tablename__ = "submissions"

    assessment_id: Mapped[str] = mapped_column(
        String(24), ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    course_id: Mapped[str] = mapped_column(
        String(24), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    student_id: Mapped[str] = mapped_column(
        String(24), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    attempt_number: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[SubmissionStatus] = mapped_column(
        Enum(
            SubmissionStatus,
            native_enum=False,
            length=16,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=SubmissionStatus.DRAFT,
        index=True,
    )

    # [{"question_index", "answer", "is_correct", "points_earned"}, ...]
    answers: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    attachments: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    # Grading fields (null until graded)
    score: Mapped[float | None] = mapped_column(Float)
    feedback: Mapped[str | None] = mapped_column(Text)

    # decided once, when the draft is submitted
    is_late: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True)
    graded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint(
            "assessment_id",
            "student_id",
            "attempt_number",
            name="uq_submission_assessment_student_attempt",
        ),
    )
    __mapper_args__ = {"version_id_col": version}

    assessment = relationship("Assessment", back_populates="submissions")
    student = relationship("User", back_populates="submissions")

    @property
    def percentage(self) -> int | None:
        if self.score is None or self.status != SubmissionStatus.GRADED:
            return None
        return compute_percentage(self.score, self.assessment.total_points)

    @property
    def passed(self) -> bool | None:
        pct = self.percentage
        if pct is None:
            return None
        return is_passed(pct, self.assessment.passing_score)
