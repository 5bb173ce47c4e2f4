"""Difficulty state machine — one per (student, course).

Three levels, BEGINNER → INTERMEDIATE → ADVANCED, moved one step at a time
by runs of ``streak_length`` consecutive HIGH or LOW attempts:

    percent >= high_score_threshold  HIGH  high += 1, low = 0
    percent <  low_score_threshold   LOW   low += 1, high = 0
    otherwise                        MID   counters unchanged

A completed HIGH run promotes and zeroes ``high``; a completed LOW run
demotes and zeroes ``low``. At ADVANCED (or BEGINNER) the matching counter
keeps growing and the level stays put: the machine clamps, it never wraps.
"""

import enum
import logging

from adaptive_engine.schemas.attempt import AttemptRecord
from adaptive_engine.schemas.progress import DifficultyState
from adaptive_engine.services.aggregator import validate_attempt
from adaptive_engine.services.policy import AdaptivePolicy, default_policy

logger = logging.getLogger(__name__)


class ScoreBand(str, enum.Enum):
    HIGH = "HIGH"
    MID = "MID"
    LOW = "LOW"


def classify_score(percent: float, policy: AdaptivePolicy) -> ScoreBand:
    if percent >= policy.high_score_threshold:
        return ScoreBand.HIGH
    if percent < policy.low_score_threshold:
        return ScoreBand.LOW
    return ScoreBand.MID


def advance(
    state: DifficultyState,
    attempt: AttemptRecord,
    policy: AdaptivePolicy | None = None,
) -> DifficultyState:
    """Return the state after *attempt*; the caller persists it."""
    validate_attempt(attempt)
    policy = policy or default_policy()

    level = state.current_level
    high = state.consecutive_high_scores
    low = state.consecutive_low_scores

    band = classify_score(attempt.percentage, policy)
    if band is ScoreBand.HIGH:
        high, low = high + 1, 0
        if high >= policy.streak_length and level.step_up() is not level:
            logger.info(
                "Promoting %s in %s: %s → %s",
                attempt.student_id, attempt.course_id, level.value, level.step_up().value,
            )
            level, high = level.step_up(), 0
    elif band is ScoreBand.LOW:
        low, high = low + 1, 0
        if low >= policy.streak_length and level.step_down() is not level:
            logger.info(
                "Demoting %s in %s: %s → %s",
                attempt.student_id, attempt.course_id, level.value, level.step_down().value,
            )
            level, low = level.step_down(), 0

    return state.model_copy(
        update={
            "current_level": level,
            "consecutive_high_scores": high,
            "consecutive_low_scores": low,
        }
    )
