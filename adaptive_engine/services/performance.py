"""Attempt ingestion and the read-side performance views.

Write path (``record_attempt``)::

    validate → lock (student, course) → fold topic mastery → advance
    difficulty state → append attempt → commit → recommend

The fold and the transition commit together or not at all. Read paths only
average what the write path already aggregated.
"""

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from statistics import fmean

from sqlalchemy.orm import Session

from adaptive_engine.core.exceptions import (
    InvalidCompletion,
    NoCatalogAvailable,
    NotFound,
)
from adaptive_engine.db.models import (
    Attempt,
    CourseState,
    QuizKindEnum,
    TopicCompletion,
)
from adaptive_engine.db.store import PerformanceStore, storage_guard
from adaptive_engine.schemas.attempt import (
    AttemptRead,
    AttemptRecord,
    AttemptResult,
    TopicHistoryRead,
)
from adaptive_engine.schemas.progress import (
    CourseProgressRead,
    CourseSummary,
    DifficultyState,
    OverallProgressRead,
    QuizKindStats,
    Recommendation,
    TopicMastery,
    TopicPerformance,
    TopicStanding,
)
from adaptive_engine.services.aggregator import as_utc, fold, validate_attempt
from adaptive_engine.services.catalog_client import CatalogClient
from adaptive_engine.services.difficulty import advance
from adaptive_engine.services.locks import enrollment_lock
from adaptive_engine.services.policy import AdaptivePolicy, default_policy
from adaptive_engine.services.recommendation_cache import cache_get, cache_set
from adaptive_engine.services.recommender import recommend

logger = logging.getLogger(__name__)


# ── helpers ───────────────────────────────────────────────────────────────────


def _require_state(store: PerformanceStore, student_id: str, course_id: str) -> CourseState:
    state = store.get_state(student_id, course_id)
    if state is None:
        raise NotFound(
            f"Student {student_id} is not enrolled in course {course_id}",
            details={"student_id": student_id, "course_id": course_id},
        )
    return state


def _attempted(masteries: Iterable[TopicMastery]) -> list[TopicMastery]:
    return [m for m in masteries if m.attempt_count > 0]


def _mean(values: list[float]) -> float:
    return fmean(values) if values else 0.0


def _kind_stats(attempts: list[Attempt], kind: QuizKindEnum) -> QuizKindStats:
    matching = [a for a in attempts if a.quiz_kind == kind]
    return QuizKindStats(
        quiz_kind=kind,
        attempt_count=len(matching),
        average_score=round(_mean([a.percentage for a in matching]), 2),
        time_spent_seconds=sum(a.time_spent_seconds for a in matching),
    )


def _topic_performance(
    per_course: Iterable[list[TopicMastery]],
) -> dict[str, TopicPerformance]:
    by_topic: dict[str, list[TopicMastery]] = {}
    for masteries in per_course:
        for m in masteries:
            by_topic.setdefault(m.topic_name, []).append(m)
    return {
        topic: TopicPerformance(
            average_score=round(_mean([m.average_score_percent for m in ms]), 2),
            course_count=len(ms),
            attempt_count=sum(m.attempt_count for m in ms),
        )
        for topic, ms in sorted(by_topic.items())
    }


def _standing(average: float, policy: AdaptivePolicy) -> TopicStanding:
    if average > policy.strong_topic_threshold:
        return TopicStanding.STRONG
    if average < policy.weak_topic_threshold:
        return TopicStanding.WEAK
    return TopicStanding.MODERATE


# ── recommendation ────────────────────────────────────────────────────────────


def get_recommendation(
    db: Session,
    student_id: str,
    course_id: str,
    catalog_client: CatalogClient,
    policy: AdaptivePolicy | None = None,
) -> Recommendation:
    """Recompute (or read back) the recommendation; raises ``NoCatalogAvailable``."""
    store = PerformanceStore(db)
    with storage_guard(db, "load recommendation inputs"):
        state_row = _require_state(store, student_id, course_id)
        masteries = [TopicMastery.model_validate(m) for m in store.masteries(student_id, course_id)]
        state = DifficultyState.model_validate(state_row)
        version = state_row.version

    cached = cache_get(student_id, course_id, version)
    if cached is not None:
        return cached

    catalog = catalog_client.get_course_catalog(course_id)
    recommendation = recommend(
        {m.topic_name: m for m in masteries}, state, catalog, policy
    )
    cache_set(student_id, course_id, version, recommendation)
    return recommendation


def _recommendation_or_none(
    db: Session,
    student_id: str,
    course_id: str,
    catalog_client: CatalogClient,
    policy: AdaptivePolicy | None,
) -> Recommendation | None:
    try:
        return get_recommendation(db, student_id, course_id, catalog_client, policy)
    except NoCatalogAvailable as e:
        logger.info("No recommendation yet for %s in %s: %s", student_id, course_id, e.message)
        return None


# ── write path ────────────────────────────────────────────────────────────────


def record_attempt(
    db: Session,
    attempt: AttemptRecord,
    catalog_client: CatalogClient,
    policy: AdaptivePolicy | None = None,
) -> AttemptResult:
    """Fold one attempt into the student's course state and recommend what's next."""
    validate_attempt(attempt)
    policy = policy or default_policy()
    store = PerformanceStore(db)
    sid, cid = attempt.student_id, attempt.course_id
    attempted_at = as_utc(attempt.attempted_at or datetime.now(timezone.utc))
    attempt = attempt.model_copy(update={"attempted_at": attempted_at})

    with enrollment_lock(sid, cid), storage_guard(db, "record attempt"):
        state_row, _ = store.get_or_create_state(sid, cid)
        mastery_row = store.get_mastery(sid, cid, attempt.topic_name, for_update=True)
        prior = TopicMastery.model_validate(mastery_row) if mastery_row else None

        mastery = fold(prior, attempt, policy)
        state = advance(DifficultyState.model_validate(state_row), attempt, policy)

        attempt_row = store.add_attempt(attempt, attempted_at)
        store.save_mastery(mastery_row, sid, cid, mastery)
        store.save_state(state_row, state)
        db.commit()
        db.refresh(attempt_row)

    logger.info(
        "Recorded %s attempt %s/%s for %s in %s/%s → avg %.1f%%, level %s",
        attempt.quiz_kind.value,
        attempt.score,
        attempt.total_questions,
        sid,
        cid,
        attempt.topic_name,
        mastery.average_score_percent,
        state.current_level.value,
    )
    return AttemptResult(
        attempt=AttemptRead.model_validate(attempt_row),
        topic_mastery=mastery,
        difficulty_state=state,
        recommendation=_recommendation_or_none(db, sid, cid, catalog_client, policy),
    )


def enroll(db: Session, student_id: str, course_id: str) -> tuple[CourseState, bool]:
    """Get-or-create the enrollment; returns ``(state, created)``."""
    store = PerformanceStore(db)
    with enrollment_lock(student_id, course_id), storage_guard(db, "enroll"):
        state, created = store.get_or_create_state(student_id, course_id)
        db.commit()
        db.refresh(state)
    return state, created


def list_enrollments(db: Session, student_id: str) -> list[CourseState]:
    with storage_guard(db, "list enrollments"):
        return PerformanceStore(db).states(student_id)


def update_completion(
    db: Session, student_id: str, course_id: str, topic_name: str, percent: float
) -> TopicCompletion:
    if not topic_name.strip():
        raise InvalidCompletion("topic_name is required")
    if not 0.0 <= percent <= 100.0:
        raise InvalidCompletion(
            "completion_percent must lie between 0 and 100",
            details={"completion_percent": percent},
        )
    store = PerformanceStore(db)
    with storage_guard(db, "update completion"):
        _require_state(store, student_id, course_id)
        row = store.upsert_completion(student_id, course_id, topic_name, percent)
        db.commit()
        db.refresh(row)
    return row


def reset_course(db: Session, student_id: str, course_id: str) -> int:
    """Delete one enrollment's history; returns the number of attempts removed."""
    store = PerformanceStore(db)
    with enrollment_lock(student_id, course_id), storage_guard(db, "reset course"):
        _require_state(store, student_id, course_id)
        deleted = store.delete_course(student_id, course_id)
        db.commit()
    logger.warning("Reset %s in %s (%d attempts removed)", student_id, course_id, deleted)
    return deleted


# ── read path ─────────────────────────────────────────────────────────────────


def get_course_progress(
    db: Session,
    student_id: str,
    course_id: str,
    catalog_client: CatalogClient,
    policy: AdaptivePolicy | None = None,
) -> CourseProgressRead:
    policy = policy or default_policy()
    store = PerformanceStore(db)
    with storage_guard(db, "load course progress"):
        state_row = _require_state(store, student_id, course_id)
        topics = [TopicMastery.model_validate(m) for m in store.masteries(student_id, course_id)]
        completions = store.completions(student_id, course_id)
        attempts = store.attempts(student_id, course_id)
        state = DifficultyState.model_validate(state_row)

    attempted = _attempted(topics)
    topic_completion = {c.topic_name: c.completion_percent for c in completions}
    return CourseProgressRead(
        student_id=student_id,
        course_id=course_id,
        overall_score=round(_mean([m.average_score_percent for m in attempted]), 2),
        topic_scores={m.topic_name: round(m.average_score_percent, 2) for m in attempted},
        topic_completion=topic_completion,
        average_completion=round(_mean(list(topic_completion.values())), 2),
        strength_weakness={
            m.topic_name: _standing(m.average_score_percent, policy) for m in attempted
        },
        topics=topics,
        difficulty_state=state,
        recommendation=_recommendation_or_none(db, student_id, course_id, catalog_client, policy),
        total_attempts=len(attempts),
        total_time_spent_seconds=sum(a.time_spent_seconds for a in attempts),
        normal=_kind_stats(attempts, QuizKindEnum.NORMAL),
        ai=_kind_stats(attempts, QuizKindEnum.AI),
    )


def get_overall_progress(db: Session, student_id: str) -> OverallProgressRead:
    store = PerformanceStore(db)
    with storage_guard(db, "load overall progress"):
        states = store.states(student_id)
        if not states:
            raise NotFound(
                f"Student {student_id} is not enrolled in any course",
                details={"student_id": student_id},
            )
        per_course = {
            s.course_id: _attempted(
                TopicMastery.model_validate(m) for m in store.masteries(student_id, s.course_id)
            )
            for s in states
        }
        attempts = store.attempts(student_id)

    courses: list[CourseSummary] = []
    for state in states:
        attempted = per_course[state.course_id]
        courses.append(
            CourseSummary(
                course_id=state.course_id,
                overall_score=_mean([m.average_score_percent for m in attempted]),
                attempts=sum(m.attempt_count for m in attempted),
                current_level=state.current_level,
                topic_scores={m.topic_name: round(m.average_score_percent, 2) for m in attempted},
            )
        )

    highest = max((s.current_level for s in states), key=lambda level: level.rank)
    overall = _mean([c.overall_score for c in courses])
    for course in courses:
        course.overall_score = round(course.overall_score, 2)

    return OverallProgressRead(
        student_id=student_id,
        total_courses=len(states),
        overall_score=round(overall, 2),
        total_attempts=len(attempts),
        normal=_kind_stats(attempts, QuizKindEnum.NORMAL),
        ai=_kind_stats(attempts, QuizKindEnum.AI),
        average_accuracy=round(_mean([a.percentage for a in attempts]), 2),
        total_time_spent_seconds=sum(a.time_spent_seconds for a in attempts),
        current_level=highest,
        topics_studied=len({m.topic_name for ms in per_course.values() for m in ms}),
        topic_performance=_topic_performance(per_course.values()),
        courses=courses,
    )


def get_topic_history(
    db: Session, student_id: str, course_id: str, topic_name: str
) -> TopicHistoryRead:
    store = PerformanceStore(db)
    with storage_guard(db, "load topic history"):
        _require_state(store, student_id, course_id)
        rows = store.attempts(student_id, course_id, topic_name=topic_name)

    records = [AttemptRead.model_validate(r) for r in rows]
    return TopicHistoryRead(
        student_id=student_id,
        course_id=course_id,
        topic_name=topic_name,
        total_attempts=len(records),
        last=records[0] if records else None,
        # newest first, so max() keeps the most recent of equally good attempts
        best=max(records, key=lambda r: r.percentage) if records else None,
        records=records,
    )


def list_attempts(
    db: Session,
    student_id: str,
    course_id: str | None = None,
    quiz_kind: QuizKindEnum | None = None,
    skip: int = 0,
    limit: int = 20,
) -> list[AttemptRead]:
    store = PerformanceStore(db)
    with storage_guard(db, "list attempts"):
        rows = store.attempts(
            student_id, course_id, quiz_kind=quiz_kind, skip=skip, limit=limit
        )
    return [AttemptRead.model_validate(r) for r in rows]
