"""Fixed-size page slicing for list endpoints."""
import math

PAGE_SIZE = 20


def normalize_page(value) -> int:
    """Coerce a page query value to an int >= 1. Garbage and values below 1 become 1."""
    try:
        page = int(value)
    except (TypeError, ValueError):
        return 1
    return page if page >= 1 else 1


def paginate(items, page, page_size=PAGE_SIZE):
    """Return the page envelope for an already ordered sequence."""
    page = normalize_page(page)
    items = list(items)
    total = len(items)
    start = (page - 1) * page_size
    return {
        'items': items[start:start + page_size],
        'page': page,
        'pageSize': page_size,
        'total': total,
        'totalPages': max(1, math.ceil(total / page_size)),
    }
