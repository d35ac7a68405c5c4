"""
Page arithmetic shared by the shipment listing and consolidation groups.
"""
import math
from app.schemas.common import PaginationInfo


def page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def build_pagination(page: int, limit: int, total_items: int) -> PaginationInfo:
    total_pages = math.ceil(total_items / limit) if limit > 0 else 0
    return PaginationInfo(
        current_page=page,
        total_pages=total_pages,
        total_items=total_items,
        items_per_page=limit,
        has_next_page=page < total_pages,
        has_previous_page=page > 1,
    )
