import math

from config.config import MAX_PAGE_SIZE


def get_pagination(page=1, limit=10):
    """Clamp page/limit and return (page, limit, skip)."""
    try:
        page_num = max(1, int(page))
    except (TypeError, ValueError):
        page_num = 1
    try:
        limit_num = max(1, min(MAX_PAGE_SIZE, int(limit)))
    except (TypeError, ValueError):
        limit_num = 10
    return page_num, limit_num, (page_num - 1) * limit_num


def create_pagination_response(data, total, page, limit):
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "data": data,
        "pagination": {
            "currentPage": page,
            "itemsPerPage": limit,
            "totalItems": total,
            "totalPages": total_pages,
            "hasNextPage": page < total_pages,
            "hasPrevPage": page > 1,
        },
    }
