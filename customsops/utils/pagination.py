"""Page slicing shared by the list endpoints."""

from __future__ import annotations

import math
from typing import Any


def paginate(items: list[Any], page: int, page_size: int) -> dict[str, Any]:
    """Slice ``items`` for a 1-based page. Out-of-range pages return no items."""
    total = len(items)
    total_pages = math.ceil(total / page_size) if page_size > 0 else 0
    page = max(page, 1)
    start = (page - 1) * page_size
    return {
        "items": items[start : start + page_size],
        "page": page,
        "pageSize": page_size,
        "total": total,
        "totalPages": total_pages,
    }
