"""Offset pagination helpers and the list response envelope."""

import math
from typing import Annotated, Generic, TypeVar

from fastapi import Depends, Query

from voicehub.core.config import get_settings
from voicehub.models.base import CamelModel

T = TypeVar("T")

settings = get_settings()


class PageParams:
    """Parsed ``page`` / ``pageSize`` query parameters."""

    __slots__ = ("page", "page_size")

    def __init__(self, page: int = 1, page_size: int = settings.default_page_size) -> None:
        self.page = page
        self.page_size = page_size

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def total_pages(total: int, page_size: int) -> int:
    return math.ceil(total / page_size) if page_size > 0 else 0


class Page(CamelModel, Generic[T]):
    data: list[T]
    total: int
    page: int
    page_size: int
    total_pages: int

    @classmethod
    def build(cls, data: list[T], total: int, params: PageParams) -> "Page[T]":
        return cls(
            data=data,
            total=total,
            page=params.page,
            page_size=params.page_size,
            total_pages=total_pages(total, params.page_size),
        )


def get_page_params(
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[
        int, Query(alias="pageSize", ge=1, le=settings.max_page_size)
    ] = settings.default_page_size,
) -> PageParams:
    return PageParams(page=page, page_size=page_size)


Pagination = Annotated[PageParams, Depends(get_page_params)]
