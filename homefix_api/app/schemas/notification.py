"""Pydantic models for in‑app notifications."""

from datetime import datetime

from pydantic import BaseModel, Field


class NotificationCreate(BaseModel):
    user_id: int
    message: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1, examples=["booking"])


class NotificationRead(BaseModel):
    id: int
    user_id: int
    message: str
    type: str
    read: bool
    created_at: datetime
    updated_at: datetime
