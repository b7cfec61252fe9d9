"""Pydantic schemas for tags."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class TagRead(BaseModel):
    """A tag in the shared vocabulary."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    created_at: datetime
