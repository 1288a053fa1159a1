# secretaria/utils/pagination.py
"""Page parameters and page envelopes for list endpoints."""
from math import ceil
from typing import Any, Dict, List

from fastapi import Query
from pydantic import BaseModel, Field

MAX_PAGE_SIZE = 100


class PageParams(BaseModel):
    page: int = Field(1, ge=1)
    size: int = Field(20, ge=1, le=MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.size


def page_params(
    page: int = Query(1, ge=1, description="Page number, starting at 1"),
    size: int = Query(20, ge=1, le=MAX_PAGE_SIZE, description="Items per page"),
) -> PageParams:
    """FastAPI dependency collecting ?page=&size="""
    return PageParams(page=page, size=size)


class PageMeta(BaseModel):
    page: int
    size: int
    total: int
    total_pages: int
    has_next: bool
    has_previous: bool

    @classmethod
    def build(cls, params: PageParams, total: int) -> "PageMeta":
        total_pages = ceil(total / params.size) if total else 0
        return cls(
            page=params.page,
            size=params.size,
            total=total,
            total_pages=total_pages,
            has_next=params.page < total_pages,
            has_previous=params.page > 1,
        )


def page_response(items: List[Any], params: PageParams, total: int) -> Dict[str, Any]:
    """``{"items": [...], "meta": {...}}`` with the meta fields also flattened at the top level"""
    meta = PageMeta.build(params, total).model_dump()
    return {"items": items, "meta": meta, **meta}
