from typing import Generic, List, Sequence, TypeVar
from pydantic import BaseModel, Field

T = TypeVar("T")


class PageInfo(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class PaginatedResponse(BaseModel, Generic[T]):
    data: List[T] = Field(default_factory=list)  # type: ignore[assignment]
    pagination: PageInfo

    @classmethod
    def of(cls, items: Sequence[T], page: int, limit: int, total: int) -> "PaginatedResponse[T]":
        return cls(
            data=list(items),
            pagination=PageInfo(
                page=page,
                limit=limit,
                total=total,
                pages=max(1, -(-total // limit)),
            ),
        )
