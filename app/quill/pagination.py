from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Query


@dataclass(frozen=True)
class Page:
    items: list[Any]
    page: int
    per_page: int
    total: int

    @property
    def total_pages(self) -> int:
        return (self.total + self.per_page - 1) // self.per_page

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page * self.per_page < self.total

    @property
    def first_item(self) -> int:
        if not self.items:
            return 0
        return (self.page - 1) * self.per_page + 1

    @property
    def last_item(self) -> int:
        if not self.items:
            return 0
        return self.first_item + len(self.items) - 1


def paginate(q: Query, page: int, per_page: int) -> Page:
    """Offset/limit slice of `q`. `page` is clamped into 1..last page."""
    if per_page < 1:
        raise ValueError("per_page must be at least 1")
    total = q.order_by(None).count()
    last = max(1, (total + per_page - 1) // per_page)
    page = min(max(1, page), last)
    items = q.offset((page - 1) * per_page).limit(per_page).all()
    return Page(items=items, page=page, per_page=per_page, total=total)
