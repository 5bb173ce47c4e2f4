"""Keyed storage for attempts, topic mastery, difficulty state and completion.

All reads and writes of the engine's persistent state go through
``PerformanceStore`` so that row locking and error translation live in one
place. The store never commits; the caller owns the transaction.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from adaptive_engine.core.exceptions import StorageUnavailable
from adaptive_engine.db.models import (
    Attempt,
    CourseState,
    DifficultyLevelEnum,
    QuizKindEnum,
    TopicCompletion,
    TopicProgress,
)
from adaptive_engine.schemas.attempt import AttemptRecord
from adaptive_engine.schemas.progress import DifficultyState, TopicMastery

logger = logging.getLogger(__name__)


@contextmanager
def storage_guard(db: Session, action: str) -> Iterator[None]:
    """Roll back and raise ``StorageUnavailable`` on any database failure."""
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Storage failure during %s: %s", action, e)
        raise StorageUnavailable(f"Storage unavailable during {action}") from e


class PerformanceStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    # ── difficulty state / enrollment ─────────────────────────────────────

    def get_state(
        self, student_id: str, course_id: str, *, for_update: bool = False
    ) -> CourseState | None:
        q = self.db.query(CourseState).filter(
            CourseState.student_id == student_id,
            CourseState.course_id == course_id,
        )
        if for_update:
            q = q.with_for_update()
        return q.first()

    def get_or_create_state(
        self, student_id: str, course_id: str
    ) -> tuple[CourseState, bool]:
        state = self.get_state(student_id, course_id, for_update=True)
        if state is not None:
            return state, False
        state = CourseState(
            student_id=student_id,
            course_id=course_id,
            current_level=DifficultyLevelEnum.BEGINNER,
            consecutive_high_scores=0,
            consecutive_low_scores=0,
            version=0,
        )
        self.db.add(state)
        self.db.flush()
        logger.info("Enrolled %s in %s", student_id, course_id)
        return state, True

    def states(self, student_id: str) -> list[CourseState]:
        return (
            self.db.query(CourseState)
            .filter(CourseState.student_id == student_id)
            .order_by(CourseState.enrolled_at, CourseState.course_id)
            .all()
        )

    def save_state(self, row: CourseState, state: DifficultyState) -> None:
        row.current_level = state.current_level
        row.consecutive_high_scores = state.consecutive_high_scores
        row.consecutive_low_scores = state.consecutive_low_scores
        row.version = (row.version or 0) + 1
        row.updated_at = datetime.now(timezone.utc)

    # ── topic mastery ─────────────────────────────────────────────────────

    def get_mastery(
        self, student_id: str, course_id: str, topic_name: str, *, for_update: bool = False
    ) -> TopicProgress | None:
        q = self.db.query(TopicProgress).filter(
            TopicProgress.student_id == student_id,
            TopicProgress.course_id == course_id,
            TopicProgress.topic_name == topic_name,
        )
        if for_update:
            q = q.with_for_update()
        return q.first()

    def masteries(self, student_id: str, course_id: str) -> list[TopicProgress]:
        return (
            self.db.query(TopicProgress)
            .filter(
                TopicProgress.student_id == student_id,
                TopicProgress.course_id == course_id,
            )
            .order_by(TopicProgress.topic_name)
            .all()
        )

    def save_mastery(
        self,
        row: TopicProgress | None,
        student_id: str,
        course_id: str,
        mastery: TopicMastery,
    ) -> TopicProgress:
        if row is None:
            row = TopicProgress(
                student_id=student_id,
                course_id=course_id,
                topic_name=mastery.topic_name,
            )
            self.db.add(row)
        row.attempt_count = mastery.attempt_count
        row.correct_total = mastery.correct_total
        row.questions_total = mastery.questions_total
        row.average_score_percent = mastery.average_score_percent
        row.time_spent_seconds_total = mastery.time_spent_seconds_total
        row.trend = mastery.trend
        row.weak_areas = mastery.weak_areas
        row.last_attempted_at = mastery.last_attempted_at
        return row

    # ── attempts (append-only) ────────────────────────────────────────────

    def add_attempt(self, attempt: AttemptRecord, attempted_at: datetime) -> Attempt:
        row = Attempt(
            student_id=attempt.student_id,
            course_id=attempt.course_id,
            topic_name=attempt.topic_name,
            quiz_kind=attempt.quiz_kind,
            quiz_id=attempt.quiz_id,
            score=attempt.score,
            total_questions=attempt.total_questions,
            difficulty_at_attempt=attempt.difficulty_at_attempt,
            time_spent_seconds=attempt.time_spent_seconds,
            attempted_at=attempted_at,
        )
        self.db.add(row)
        return row

    def attempts(
        self,
        student_id: str,
        course_id: str | None = None,
        *,
        topic_name: str | None = None,
        quiz_kind: QuizKindEnum | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[Attempt]:
        q = self.db.query(Attempt).filter(Attempt.student_id == student_id)
        if course_id is not None:
            q = q.filter(Attempt.course_id == course_id)
        if topic_name is not None:
            q = q.filter(Attempt.topic_name == topic_name)
        if quiz_kind is not None:
            q = q.filter(Attempt.quiz_kind == quiz_kind)
        q = q.order_by(Attempt.attempted_at.desc(), Attempt.recorded_at.desc()).offset(skip)
        if limit is not None:
            q = q.limit(limit)
        return q.all()

    # ── topic completion ──────────────────────────────────────────────────

    def completions(self, student_id: str, course_id: str) -> list[TopicCompletion]:
        return (
            self.db.query(TopicCompletion)
            .filter(
                TopicCompletion.student_id == student_id,
                TopicCompletion.course_id == course_id,
            )
            .order_by(TopicCompletion.topic_name)
            .all()
        )

    def upsert_completion(
        self, student_id: str, course_id: str, topic_name: str, percent: float
    ) -> TopicCompletion:
        row = (
            self.db.query(TopicCompletion)
            .filter(
                TopicCompletion.student_id == student_id,
                TopicCompletion.course_id == course_id,
                TopicCompletion.topic_name == topic_name,
            )
            .first()
        )
        if row is None:
            row = TopicCompletion(
                student_id=student_id, course_id=course_id, topic_name=topic_name
            )
            self.db.add(row)
        row.completion_percent = percent
        row.updated_at = datetime.now(timezone.utc)
        return row

    # ── maintenance ───────────────────────────────────────────────────────

    def delete_course(self, student_id: str, course_id: str) -> int:
        """Remove everything recorded for one enrollment; returns attempts deleted."""
        deleted = (
            self.db.query(Attempt)
            .filter(Attempt.student_id == student_id, Attempt.course_id == course_id)
            .delete(synchronize_session=False)
        )
        for model in (TopicProgress, TopicCompletion, CourseState):
            self.db.query(model).filter(
                model.student_id == student_id, model.course_id == course_id
            ).delete(synchronize_session=False)
        return deleted
