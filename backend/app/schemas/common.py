"""
Shared schema pieces: camel-case wire models and pagination.
"""
from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Response model serialized with camelCase keys."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class PaginationInfo(CamelModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_previous_page: bool
