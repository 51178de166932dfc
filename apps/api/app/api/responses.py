from __future__ import annotations

import math
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class PagingRead(BaseModel):
    """Paging block shared by every ADR-003 response; unused fields stay null."""

    model_config = ConfigDict(populate_by_name=True)

    offset: int | None = None
    limit: int | None = None
    total: int | None = None
    total_pages: int | None = Field(default=None, alias="totalPages")
    has_next: bool | None = Field(default=None, alias="hasNext")
    has_prev: bool | None = Field(default=None, alias="hasPrev")


class ApiResponse(BaseModel, Generic[T]):
    data: T
    paging: PagingRead


def empty_paging() -> PagingRead:
    return PagingRead()


def non_paginated_paging(total: int) -> PagingRead:
    return PagingRead(total=total)


def paginated_paging(offset: int, limit: int, total: int) -> PagingRead:
    if limit <= 0:
        total_pages = 0
        current_page = 0
    else:
        total_pages = math.ceil(total / limit)
        current_page = offset // limit + 1
    return PagingRead(
        offset=offset,
        limit=limit,
        total=total,
        total_pages=total_pages,
        has_next=current_page < total_pages,
        has_prev=offset > 0,
    )


def build_single_response(data: T) -> ApiResponse[T]:
    return ApiResponse(data=data, paging=empty_paging())


def build_non_paginated_list_response(data: list[T]) -> ApiResponse[list[T]]:
    return ApiResponse(data=data, paging=non_paginated_paging(len(data)))


def build_paginated_list_response(data: list[T], offset: int, limit: int, total: int) -> ApiResponse[list[T]]:
    return ApiResponse(data=data, paging=paginated_paging(offset, limit, total))


def build_custom_response(data: T, paging: PagingRead) -> ApiResponse[T]:
    return ApiResponse(data=data, paging=paging)
