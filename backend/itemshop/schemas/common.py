"""Common Pydantic schemas used across the API."""

from datetime import datetime
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys.

    Fields are declared in snake_case and accepted under either name.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(CamelModel, Generic[T]):
    """Standard API response envelope."""

    status: str = "success"
    data: T
    last_update: Optional[datetime] = None
    message: Optional[str] = None


class ErrorResponse(BaseModel):
    """Standard API error response."""

    status: str = "error"
    detail: str
