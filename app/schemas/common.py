from pydantic import BaseModel, ValidationInfo
from typing import Any, Generic, List, TypeVar

T = TypeVar("T")


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class Page(BaseModel, Generic[T]):
    data: List[T]
    pagination: Pagination


class StatusAction(BaseModel):
    action: str


def reject_null(value: Any, info: ValidationInfo) -> Any:
    """Partial updates may omit a required column but not clear it."""
    if value is None:
        raise ValueError(f"{info.field_name} cannot be null")
    return value
