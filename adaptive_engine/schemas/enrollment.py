"""Enrollment schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from adaptive_engine.db.models import DifficultyLevelEnum


class EnrollmentCreate(BaseModel):
    """POST /api/enrollments"""

    student_id: str = Field(min_length=1, max_length=64)
    course_id: str = Field(min_length=1, max_length=64)


class EnrollmentRead(BaseModel):
    """An enrollment together with its difficulty state."""

    student_id: str
    course_id: str
    current_level: DifficultyLevelEnum
    consecutive_high_scores: int
    consecutive_low_scores: int
    enrolled_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
