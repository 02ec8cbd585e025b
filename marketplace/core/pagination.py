# marketplace/core/pagination.py
# Shared page/limit handling so every list operation reports the same metadata.

from dataclasses import dataclass

from marketplace.core.errors import ValidationError


@dataclass(frozen=True)
class PageRequest:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def normalize_page(page: int | None, limit: int | None, *, default_limit: int = 10, max_limit: int = 100) -> PageRequest:
    """Validate page/limit values, falling back to the default page size."""

    resolved_page = 1 if page is None else page
    resolved_limit = default_limit if limit is None else limit
    if resolved_page < 1:
        raise ValidationError("page must be >= 1")
    if resolved_limit < 1:
        raise ValidationError("limit must be >= 1")
    if resolved_limit > max_limit:
        raise ValidationError(f"limit must be <= {max_limit}")
    return PageRequest(page=resolved_page, limit=resolved_limit)


def compute_total_pages(total: int, limit: int) -> int:
    if total <= 0:
        return 0
    return ((total - 1) // limit) + 1


def page_result(items: list, total: int, request: PageRequest) -> dict:
    total_pages = compute_total_pages(total, request.limit)
    return {
        "items": items,
        "total": total,
        "page": request.page,
        "limit": request.limit,
        "total_pages": total_pages,
        "has_next": request.page < total_pages,
        "has_prev": request.page > 1,
    }
