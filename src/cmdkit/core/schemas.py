"""Base Pydantic schemas for entity input and output."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from ulid import ULID


class EntityIn(BaseModel):
    """Base input schema; an explicit id turns a save into an upsert."""

    id: ULID | None = Field(default=None, description="Optional identifier for upserts")


class EntityOut(BaseModel):
    """Base output schema with identifier and audit timestamps."""

    model_config = ConfigDict(from_attributes=True)

    id: ULID
    created_at: datetime
    updated_at: datetime
