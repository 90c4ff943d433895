"""목록 응답 공통 스키마."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, Field, computed_field


T = TypeVar("T")

MAX_PAGE_SIZE = 100


class PaginatedResponse(BaseModel, Generic[T]):
    """page 는 1부터 시작한다. total 은 필터가 적용된 전체 건수."""

    items: list[T]
    total: int = Field(ge=0)
    page: int = Field(ge=1)
    page_size: int = Field(ge=1, le=MAX_PAGE_SIZE)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_next(self) -> bool:
        return self.page * self.page_size < self.total
