from typing import Dict, Any
from math import ceil


def paginate(page: int, limit: int, total: int) -> Dict[str, Any]:
    """
    Create pagination response
    """
    total_pages = ceil(total / limit) if limit > 0 else 0
    
    return {
        "currentPage": page,
        "totalPages": total_pages,
        "totalItems": total,
        "itemsPerPage": limit,
        "hasNext": page < total_pages,
        "hasPrev": page > 1
    }
