"""page/limit pagination shared by every list endpoint."""

import math
from dataclasses import dataclass

MAX_PAGE_SIZE = 100


@dataclass
class Page:
    items: list
    total: int
    total_pages: int
    current_page: int


def paginate(query, page: int = 1, limit: int = 10) -> Page:
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)
    total = query.count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return Page(items=items, total=total, total_pages=math.ceil(total / limit), current_page=page)
