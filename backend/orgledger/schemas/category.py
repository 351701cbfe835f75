import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from orgledger.config import (
    CATEGORY_DESCRIPTION_MAX_LENGTH,
    CATEGORY_NAME_MAX_LENGTH,
    CATEGORY_NAME_MIN_LENGTH,
)


class CategoryWriteRequest(BaseModel):
    name: str = Field(min_length=CATEGORY_NAME_MIN_LENGTH, max_length=CATEGORY_NAME_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=CATEGORY_DESCRIPTION_MAX_LENGTH)

    @field_validator("description")
    @classmethod
    def blank_description_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        trimmed = v.strip()
        return trimmed or None


class CategoryResponse(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    name: str
    description: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class DeleteResponse(BaseModel):
    success: bool = True
