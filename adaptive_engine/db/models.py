"""SQLAlchemy ORM models for the adaptive learning engine.

Tables
------
- attempts           – append-only quiz attempt log (NORMAL and AI quizzes)
- topic_mastery      – per‑student, per‑course, per‑topic running aggregates
- difficulty_states  – per‑student, per‑course difficulty state; doubles as
                       the enrollment record
- topic_completion   – per‑topic content completion reported by the course service
"""

import enum
import json
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    DateTime,
    Enum,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from adaptive_engine.db.session import Base


# ── helpers ───────────────────────────────────────────────────────────────────


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _uuid() -> uuid.UUID:
    return uuid.uuid4()


# ── Enums (stored as VARCHAR via SQLAlchemy Enum) ─────────────────────────────


class QuizKindEnum(str, enum.Enum):
    NORMAL = "NORMAL"
    AI = "AI"


class DifficultyLevelEnum(str, enum.Enum):
    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"

    @property
    def rank(self) -> int:
        return _LEVEL_ORDER.index(self)

    def step_up(self) -> "DifficultyLevelEnum":
        """Next harder level; ADVANCED stays ADVANCED."""
        return _LEVEL_ORDER[min(self.rank + 1, len(_LEVEL_ORDER) - 1)]

    def step_down(self) -> "DifficultyLevelEnum":
        """Next easier level; BEGINNER stays BEGINNER."""
        return _LEVEL_ORDER[max(self.rank - 1, 0)]


_LEVEL_ORDER = [
    DifficultyLevelEnum.BEGINNER,
    DifficultyLevelEnum.INTERMEDIATE,
    DifficultyLevelEnum.ADVANCED,
]


class TrendEnum(str, enum.Enum):
    IMPROVING = "IMPROVING"
    DECLINING = "DECLINING"
    STABLE = "STABLE"


# ── Attempts ──────────────────────────────────────────────────────────────────


class Attempt(Base):
    """One submitted quiz. Never updated after insert."""

    __tablename__ = "attempts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=_uuid
    )
    student_id: Mapped[str] = mapped_column(String(64))
    course_id: Mapped[str] = mapped_column(String(64))
    topic_name: Mapped[str] = mapped_column(String(200))
    quiz_kind: Mapped[QuizKindEnum] = mapped_column(
        Enum(QuizKindEnum, name="quiz_kind_enum")
    )
    quiz_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    score: Mapped[int] = mapped_column(Integer)
    total_questions: Mapped[int] = mapped_column(Integer)
    difficulty_at_attempt: Mapped[DifficultyLevelEnum] = mapped_column(
        Enum(DifficultyLevelEnum, name="difficulty_level_enum")
    )
    time_spent_seconds: Mapped[int] = mapped_column(Integer, default=0)
    attempted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )

    __table_args__ = (
        Index("ix_attempts_student_course", "student_id", "course_id"),
    )

    @property
    def percentage(self) -> float:
        return 100.0 * self.score / self.total_questions


# ── Topic mastery (per‑student, per‑course, per‑topic running metrics) ────────


class TopicProgress(Base):
    __tablename__ = "topic_mastery"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=_uuid
    )
    student_id: Mapped[str] = mapped_column(String(64))
    course_id: Mapped[str] = mapped_column(String(64))
    topic_name: Mapped[str] = mapped_column(String(200))
    attempt_count: Mapped[int] = mapped_column(Integer, default=0)
    correct_total: Mapped[int] = mapped_column(Integer, default=0)
    questions_total: Mapped[int] = mapped_column(Integer, default=0)
    average_score_percent: Mapped[float] = mapped_column(Float, default=0.0)
    time_spent_seconds_total: Mapped[int] = mapped_column(Integer, default=0)
    trend: Mapped[TrendEnum] = mapped_column(
        Enum(TrendEnum, name="trend_enum"), default=TrendEnum.STABLE
    )
    weak_areas_json: Mapped[str] = mapped_column(Text, default="[]")
    last_attempted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        UniqueConstraint(
            "student_id", "course_id", "topic_name", name="uq_student_course_topic"
        ),
    )

    @property
    def weak_areas(self) -> list[str]:
        return json.loads(self.weak_areas_json or "[]")

    @weak_areas.setter
    def weak_areas(self, tags: list[str]) -> None:
        self.weak_areas_json = json.dumps(sorted(set(tags)))


# ── Difficulty state (one per enrollment) ─────────────────────────────────────


class CourseState(Base):
    """Difficulty state machine row; its existence means 'enrolled'."""

    __tablename__ = "difficulty_states"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=_uuid
    )
    student_id: Mapped[str] = mapped_column(String(64), index=True)
    course_id: Mapped[str] = mapped_column(String(64))
    current_level: Mapped[DifficultyLevelEnum] = mapped_column(
        Enum(DifficultyLevelEnum, name="difficulty_level_enum", create_constraint=False),
        default=DifficultyLevelEnum.BEGINNER,
    )
    consecutive_high_scores: Mapped[int] = mapped_column(Integer, default=0)
    consecutive_low_scores: Mapped[int] = mapped_column(Integer, default=0)
    # bumped on every committed attempt; keys the recommendation cache
    version: Mapped[int] = mapped_column(Integer, default=0)
    enrolled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        UniqueConstraint("student_id", "course_id", name="uq_student_course_state"),
    )


# ── Topic completion (content progress, reported by the course service) ───────


class TopicCompletion(Base):
    __tablename__ = "topic_completion"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=_uuid
    )
    student_id: Mapped[str] = mapped_column(String(64))
    course_id: Mapped[str] = mapped_column(String(64))
    topic_name: Mapped[str] = mapped_column(String(200))
    completion_percent: Mapped[float] = mapped_column(Float, default=0.0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        UniqueConstraint(
            "student_id", "course_id", "topic_name", name="uq_student_course_completion"
        ),
    )
