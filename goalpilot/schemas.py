"""Pydantic schemas used by the FastAPI application."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class TaskStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self is not TaskStatus.PENDING


class UserCreate(BaseModel):
    email: Optional[str] = None
    phone_number: Optional[str] = None
    display_name: Optional[str] = None
    google_id: Optional[str] = None

    @model_validator(mode="after")
    def _require_identity(self) -> "UserCreate":
        if not (self.email or self.phone_number):
            raise ValueError("either email or phone_number is required")
        return self


class GoalGenerateRequest(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    target_date: str = Field(..., description="Target date (YYYY-MM-DD)")
    daily_time: Optional[str] = Field(default=None, description="e.g. '1 hour'")
    goal_type: Optional[str] = None
    skill_level: Optional[str] = Field(
        default=None, description="Beginner, Intermediate or Advanced"
    )


class GoalCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None


class TaskProgressUpdate(BaseModel):
    status: TaskStatus


class NotificationRequest(BaseModel):
    user_name: Optional[str] = None
    mood: Optional[str] = None
    time_of_day: str = "morning"
