from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gradeflow.db.base_class import Base, ObjectIdMixin


class Course(ObjectIdMixin, Base):
    __tablename__ = "courses"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    instructor_id: Mapped[str] = mapped_column(
        String(24), ForeignKey("users.id"), nullable=False, index=True
    )

    assessments = relationship(
        "Assessment", back_populates="course", cascade="all, delete-orphan"
    )
