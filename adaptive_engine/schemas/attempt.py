"""Attempt schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel

from adaptive_engine.db.models import DifficultyLevelEnum, QuizKindEnum
from adaptive_engine.schemas.progress import DifficultyState, Recommendation, TopicMastery


class AttemptRecord(BaseModel):
    """POST /api/attempts — one quiz submission from the quiz-taking service.

    Counts are checked by the aggregator (``InvalidAttempt``) rather than by
    field constraints, so every malformed attempt fails the same way.
    """

    student_id: str
    course_id: str
    topic_name: str
    quiz_kind: QuizKindEnum  # required: NORMAL and AI are never mixed silently
    score: int
    total_questions: int
    difficulty_at_attempt: DifficultyLevelEnum = DifficultyLevelEnum.BEGINNER
    time_spent_seconds: int = 0
    attempted_at: datetime | None = None
    quiz_id: str | None = None
    weak_areas: list[str] = []

    @property
    def percentage(self) -> float:
        return 100.0 * self.score / self.total_questions


class AttemptRead(BaseModel):
    """A persisted attempt."""

    id: uuid.UUID
    student_id: str
    course_id: str
    topic_name: str
    quiz_kind: QuizKindEnum
    quiz_id: str | None = None
    score: int
    total_questions: int
    percentage: float
    difficulty_at_attempt: DifficultyLevelEnum
    time_spent_seconds: int
    attempted_at: datetime

    model_config = {"from_attributes": True}


class TopicHistoryRead(BaseModel):
    """GET /api/progress/{student_id}/courses/{course_id}/topics/{topic_name}"""

    student_id: str
    course_id: str
    topic_name: str
    total_attempts: int = 0
    last: AttemptRead | None = None
    best: AttemptRead | None = None
    records: list[AttemptRead] = []


class AttemptResult(BaseModel):
    """Response to an attempt submission: the state it produced."""

    attempt: AttemptRead
    topic_mastery: TopicMastery
    difficulty_state: DifficultyState
    recommendation: Recommendation | None = None
