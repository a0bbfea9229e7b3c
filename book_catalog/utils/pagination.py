import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

from book_catalog.errors import ValidationError

SORT_DIRECTIONS = ("asc", "desc")


@dataclass
class PageRequest:
    """Zero-based page index, page size and sort order."""

    page: int = 0
    size: int = 10
    sort_by: str = "id"
    sort_dir: str = "asc"

    def __post_init__(self):
        errors = {}
        if self.page is None or self.page < 0:
            errors["page"] = "must be greater than or equal to 0"
        if self.size is None or self.size < 1:
            errors["size"] = "must be greater than or equal to 1"
        direction = (self.sort_dir or "asc").lower()
        if direction not in SORT_DIRECTIONS:
            errors["sortDir"] = "must be one of: asc, desc"
        if errors:
            raise ValidationError("Invalid pagination parameters", errors)
        self.sort_dir = direction
        self.sort_by = self.sort_by or "id"

    @property
    def offset(self) -> int:
        return self.page * self.size

    @property
    def descending(self) -> bool:
        return self.sort_dir == "desc"


@dataclass
class Page:
    items: List[Any]
    page: int
    size: int
    total: int
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.size) if self.size else 0

    @property
    def has_next(self) -> bool:
        return self.page + 1 < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 0

    def map(self, fn: Callable[[Any], Any]) -> "Page":
        return Page([fn(x) for x in self.items], self.page, self.size, self.total, dict(self.extra))

    def to_dict(self) -> Dict[str, Any]:
        body = {
            "books": list(self.items),
            "currentPage": self.page,
            "totalItems": self.total,
            "totalPages": self.total_pages,
            "pageSize": self.size,
            "hasNext": self.has_next,
            "hasPrevious": self.has_previous,
        }
        body.update(self.extra)
        return body


def paginate(query, page_request: PageRequest, sort_columns: Dict[str, Any], tiebreak=None) -> Page:
    """Apply ORDER BY / OFFSET / LIMIT to ``query`` and count the full result.

    ``sort_columns`` maps accepted sort names to columns; anything else is
    rejected instead of being ignored.
    """
    column = sort_columns.get(page_request.sort_by)
    if column is None:
        raise ValidationError(
            f"Unknown sort field: {page_request.sort_by}",
            {"sortBy": "must be one of: " + ", ".join(sorted(sort_columns))},
        )

    total = query.order_by(None).count()

    ordering = [column.desc() if page_request.descending else column.asc()]
    if tiebreak is not None and tiebreak is not column:
        ordering.append(tiebreak.asc())

    items = (
        query.order_by(*ordering)
        .offset(page_request.offset)
        .limit(page_request.size)
        .all()
    )
    return Page(items=items, page=page_request.page, size=page_request.size, total=total)
