from sqlalchemy import String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from gradeflow.core.identifiers import new_object_id


class Base(DeclarativeBase):
    pass


class ObjectIdMixin:
    id: Mapped[str] = mapped_column(
        String(24), primary_key=True, index=True, default=new_object_id
    )
