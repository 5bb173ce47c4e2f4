"""Topic aggregator — folds quiz attempts into per-topic running statistics.

The average is weighted by question count, not by attempt count:

    average_score_percent = 100 * Σ score / Σ total_questions

so a 2-question quiz moves the average less than a 20-question one, and the
result does not depend on the order the attempts arrive in.

Trend compares the newest attempt against the average *before* it was
folded in, with a ±``trend_band`` dead zone (band edges count as STABLE).
"""

from __future__ import annotations

from datetime import datetime, timezone
from fractions import Fraction
from numbers import Rational, Real

from adaptive_engine.core.exceptions import InvalidAttempt
from adaptive_engine.db.models import TrendEnum
from adaptive_engine.schemas.attempt import AttemptRecord
from adaptive_engine.schemas.progress import TopicMastery
from adaptive_engine.services.policy import AdaptivePolicy, default_policy

_IDENTITY_FIELDS = ("student_id", "course_id", "topic_name")


def validate_attempt(attempt: AttemptRecord) -> None:
    """Raise ``InvalidAttempt`` unless the attempt's counts and identity are sane."""
    missing = [f for f in _IDENTITY_FIELDS if not getattr(attempt, f).strip()]
    if missing:
        raise InvalidAttempt(
            f"Missing identity field(s): {', '.join(missing)}",
            details={"fields": missing},
        )
    if attempt.total_questions <= 0:
        raise InvalidAttempt(
            "total_questions must be greater than 0",
            details={"total_questions": attempt.total_questions},
        )
    if not 0 <= attempt.score <= attempt.total_questions:
        raise InvalidAttempt(
            f"score must lie between 0 and {attempt.total_questions}",
            details={"score": attempt.score, "total_questions": attempt.total_questions},
        )
    if attempt.time_spent_seconds < 0:
        raise InvalidAttempt(
            "time_spent_seconds cannot be negative",
            details={"time_spent_seconds": attempt.time_spent_seconds},
        )


def as_utc(moment: datetime) -> datetime:
    """Treat naive timestamps (e.g. read back from SQLite) as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _exact(value: Real) -> Fraction:
    # floats go through their shortest repr so 5.0 stays exactly 5 and 0.1 stays 1/10
    return Fraction(value) if isinstance(value, Rational) else Fraction(str(value))


def classify_trend(
    prior_average: Real | None, this_percent: Real, band: Real
) -> TrendEnum:
    """Label one attempt relative to the average that preceded it.

    Compared in exact rational arithmetic, so a score sitting exactly on a
    band edge is STABLE even when its percentage has no finite binary form.
    """
    if prior_average is None:
        return TrendEnum.STABLE
    prior_average, this_percent, band = (
        _exact(prior_average), _exact(this_percent), _exact(band)
    )
    if this_percent > prior_average + band:
        return TrendEnum.IMPROVING
    if this_percent < prior_average - band:
        return TrendEnum.DECLINING
    return TrendEnum.STABLE


def fold(
    mastery: TopicMastery | None,
    attempt: AttemptRecord,
    policy: AdaptivePolicy | None = None,
) -> TopicMastery:
    """Return the topic mastery after *attempt*; *mastery* is left untouched."""
    validate_attempt(attempt)
    policy = policy or default_policy()

    if mastery is None:
        mastery = TopicMastery(topic_name=attempt.topic_name)
    elif mastery.topic_name != attempt.topic_name:
        raise InvalidAttempt(
            f"Attempt for topic {attempt.topic_name!r} folded into {mastery.topic_name!r}"
        )

    prior_average = (
        Fraction(100 * mastery.correct_total, mastery.questions_total)
        if mastery.attempt_count and mastery.questions_total
        else None
    )
    correct_total = mastery.correct_total + attempt.score
    questions_total = mastery.questions_total + attempt.total_questions
    attempted_at = as_utc(attempt.attempted_at or datetime.now(timezone.utc))
    last_attempted_at = mastery.last_attempted_at
    if last_attempted_at is not None:
        last_attempted_at = as_utc(last_attempted_at)
    if last_attempted_at is None or attempted_at > last_attempted_at:
        last_attempted_at = attempted_at

    return mastery.model_copy(
        update={
            "attempt_count": mastery.attempt_count + 1,
            "correct_total": correct_total,
            "questions_total": questions_total,
            "average_score_percent": 100.0 * correct_total / questions_total,
            "time_spent_seconds_total": mastery.time_spent_seconds_total
            + attempt.time_spent_seconds,
            "trend": classify_trend(
                prior_average,
                Fraction(100 * attempt.score, attempt.total_questions),
                policy.trend_band,
            ),
            "weak_areas": sorted(set(mastery.weak_areas) | set(attempt.weak_areas)),
            "last_attempted_at": last_attempted_at,
        }
    )
