"""
Base schemas for all models.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """
    Base for all schemas.

    Features:
        - Auto-trim whitespace from strings
        - Validate on attribute assignment
        - Allow ORM objects (from_attributes)
    """
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True
    )


class UpstreamSchema(BaseModel):
    """
    Base for payloads received from external collaborators.

    Accepts camelCase keys as sent upstream and snake_case in code.
    Unknown keys are ignored.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore"
    )


class PaginatedResponse(BaseModel):
    """Standard paginated response fields."""
    page: int
    page_size: int
    total: int
    total_pages: int
