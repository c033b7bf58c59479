"""Limit/offset paging shared by list endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from fastapi import Query
from pydantic import BaseModel

T = TypeVar("T")

MAX_PAGE_SIZE = 100


@dataclass(frozen=True, slots=True)
class PageRequest:
    limit: int = 20
    offset: int = 0


def page_request(
    limit: int = Query(default=20, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
) -> PageRequest:
    """FastAPI dependency reading ``limit``/``offset`` query params."""
    return PageRequest(limit=limit, offset=offset)


class Page(BaseModel, Generic[T]):
    """One window of a listing plus the size of the whole result."""

    items: list[T]
    total: int
    limit: int
    offset: int
    has_more: bool


def paginate(items: list[T], total: int, request: PageRequest) -> Page[T]:
    return Page(
        items=items,
        total=total,
        limit=request.limit,
        offset=request.offset,
        has_more=request.offset + len(items) < total,
    )
