"""Mastery, difficulty, recommendation and progress schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel

from adaptive_engine.db.models import DifficultyLevelEnum, QuizKindEnum, TrendEnum


class TopicMastery(BaseModel):
    """Running aggregate for one (student, course, topic)."""

    topic_name: str
    attempt_count: int = 0
    correct_total: int = 0
    questions_total: int = 0
    average_score_percent: float = 0.0
    time_spent_seconds_total: int = 0
    trend: TrendEnum = TrendEnum.STABLE
    weak_areas: list[str] = []
    last_attempted_at: datetime | None = None

    model_config = {"from_attributes": True}


class DifficultyState(BaseModel):
    """Difficulty level plus the run-length counters that move it."""

    current_level: DifficultyLevelEnum = DifficultyLevelEnum.BEGINNER
    consecutive_high_scores: int = 0
    consecutive_low_scores: int = 0

    model_config = {"from_attributes": True}


class Recommendation(BaseModel):
    recommended_topic: str
    recommended_difficulty: DifficultyLevelEnum
    reason: str


class TopicStanding(str, Enum):
    STRONG = "STRONG"
    MODERATE = "MODERATE"
    WEAK = "WEAK"


class QuizKindStats(BaseModel):
    """Attempts of one quiz kind, never blended with the other kind."""

    quiz_kind: QuizKindEnum
    attempt_count: int = 0
    average_score: float = 0.0
    time_spent_seconds: int = 0


class CourseProgressRead(BaseModel):
    """GET /api/progress/{student_id}/courses/{course_id}"""

    student_id: str
    course_id: str
    overall_score: float = 0.0
    topic_scores: dict[str, float] = {}
    topic_completion: dict[str, float] = {}
    average_completion: float = 0.0
    strength_weakness: dict[str, TopicStanding] = {}
    topics: list[TopicMastery] = []
    difficulty_state: DifficultyState
    recommendation: Recommendation | None = None
    total_attempts: int = 0
    total_time_spent_seconds: int = 0
    normal: QuizKindStats
    ai: QuizKindStats


class CourseSummary(BaseModel):
    """One course inside the overall progress view."""

    course_id: str
    overall_score: float = 0.0
    attempts: int = 0
    current_level: DifficultyLevelEnum
    topic_scores: dict[str, float] = {}


class TopicPerformance(BaseModel):
    """One topic name across every course that teaches it."""

    average_score: float = 0.0  # mean of the per-course topic averages
    course_count: int = 0
    attempt_count: int = 0


class OverallProgressRead(BaseModel):
    """GET /api/progress/{student_id}/overall"""

    student_id: str
    total_courses: int = 0
    overall_score: float = 0.0
    total_attempts: int = 0
    normal: QuizKindStats
    ai: QuizKindStats
    average_accuracy: float = 0.0
    total_time_spent_seconds: int = 0
    current_level: DifficultyLevelEnum = DifficultyLevelEnum.BEGINNER
    topics_studied: int = 0
    topic_performance: dict[str, TopicPerformance] = {}
    courses: list[CourseSummary] = []


class CompletionUpdate(BaseModel):
    """PUT /api/progress/{student_id}/courses/{course_id}/completion"""

    topic_name: str
    completion_percent: float


class CompletionRead(BaseModel):
    topic_name: str
    completion_percent: float
    updated_at: datetime

    model_config = {"from_attributes": True}
