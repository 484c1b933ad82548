"""SQLAlchemy models for the GoalPilot backend."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class User(Base):
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)
    email: Optional[str] = Column(String(255), unique=True)
    phone_number: Optional[str] = Column(String(32), unique=True)
    google_id: Optional[str] = Column(String(255), unique=True)
    display_name: Optional[str] = Column(String(255))
    avatar: Optional[str] = Column(String(512))
    is_active: bool = Column(Boolean, default=True)
    last_login: Optional[datetime] = Column(DateTime(timezone=True))
    created_at: datetime = Column(
        DateTime(timezone=True), server_default=func.current_timestamp()
    )

    goals = relationship(
        "Goal", back_populates="user", cascade="all, delete-orphan", lazy="select"
    )


class Goal(Base):
    __tablename__ = "goals"

    id: int = Column(Integer, primary_key=True, index=True)
    user_id: int = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: str = Column(String(255), nullable=False)
    description: Optional[str] = Column(Text)
    target_date: Optional[str] = Column(String(32))
    daily_time: Optional[str] = Column(String(64))
    goal_type: Optional[str] = Column(String(64))
    skill_level: Optional[str] = Column(String(64))
    total_days: Optional[int] = Column(Integer)
    summary: Optional[str] = Column(Text)
    phases: List[Dict[str, Any]] = Column(JSON, default=list)
    rules: Dict[str, Any] = Column(JSON, default=dict)
    full_plan: List[Dict[str, Any]] = Column(JSON, default=list)
    total_tasks: int = Column(Integer, default=1)
    completed_tasks: int = Column(Integer, default=0)
    is_active: bool = Column(Boolean, default=False, index=True)
    created_at: datetime = Column(
        DateTime(timezone=True), server_default=func.current_timestamp()
    )

    user = relationship("User", back_populates="goals")
    tasks = relationship(
        "Task",
        back_populates="goal",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Task(Base):
    __tablename__ = "tasks"

    id: int = Column(Integer, primary_key=True, index=True)
    goal_id: int = Column(
        Integer, ForeignKey("goals.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: str = Column(String(255), nullable=False)
    status: str = Column(String(16), default="pending", nullable=False)
    time: Optional[int] = Column(Integer)
    type: Optional[str] = Column(String(64))
    difficulty: Optional[str] = Column(String(32))
    day_number: Optional[int] = Column(Integer)
    date: str = Column(String(10), nullable=False, index=True)
    created_at: datetime = Column(
        DateTime(timezone=True), server_default=func.current_timestamp()
    )

    goal = relationship("Goal", back_populates="tasks")
