from typing import List

from pydantic import BaseModel, ConfigDict, Field


class WireModel(BaseModel):
    """Base for payloads whose field names follow the external camelCase contract."""

    model_config = ConfigDict(populate_by_name=True)


class ErrorResponse(BaseModel):
    error: str
    fields: List[str] = Field(default_factory=list)
