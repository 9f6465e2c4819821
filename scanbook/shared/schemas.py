"""Common Pydantic schemas."""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Accepts and renders camelCase keys, as the booking frontend sends them."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ResponseEnvelope(BaseModel, Generic[T]):
    """Standard API envelope."""

    success: bool = True
    data: T | None = None
    message: str | None = None
