from datetime import date, datetime, time
from typing import Optional, Tuple

from ..config import settings


def day_bounds(start: Optional[date] = None, end: Optional[date] = None) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Inclusive window: start of ``start``'s day through end of ``end``'s day. Missing bounds stay open."""
    lower = datetime.combine(_as_date(start), time.min) if start is not None else None
    upper = datetime.combine(_as_date(end), time.max) if end is not None else None
    return lower, upper


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def apply_date_window(query, column, start: Optional[date] = None, end: Optional[date] = None):
    lower, upper = day_bounds(start, end)
    if lower is not None:
        query = query.filter(column >= lower)
    if upper is not None:
        query = query.filter(column <= upper)
    return query


def clamp_page(page: Optional[int], limit: Optional[int]) -> Tuple[int, int]:
    page = max(1, page or 1)
    limit = min(max(1, limit or settings.default_page_size), settings.max_page_size)
    return page, limit


def page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def pagination_info(total: int, page: int, limit: int) -> dict:
    total_pages = (total + limit - 1) // limit if limit > 0 else 0
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": total_pages,
        "has_next_page": page < total_pages,
        "has_previous_page": page > 1,
    }
