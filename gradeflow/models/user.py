from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gradeflow.db.base_class import Base, ObjectIdMixin


class User(ObjectIdMixin, Base):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    full_name: Mapped[str | None] = mapped_column(String(255))
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(50), nullable=False, default="student")

    submissions = relationship(
        "Submission", back_populates="student", cascade="all, delete-orphan"
    )
