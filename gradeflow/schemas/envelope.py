from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    data: T


class PageEnvelope(BaseModel, Generic[T]):
    success: bool = True
    data: list[T]
    total: int
    page: int
    pages: int


class ErrorEnvelope(BaseModel):
    success: bool = False
    error: str
    field: str | None = None
