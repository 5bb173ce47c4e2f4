"""Unit tests for the difficulty state machine."""

import random

import pytest

from adaptive_engine.db.models import DifficultyLevelEnum, QuizKindEnum
from adaptive_engine.schemas.attempt import AttemptRecord
from adaptive_engine.schemas.progress import DifficultyState
from adaptive_engine.services.difficulty import ScoreBand, advance, classify_score
from adaptive_engine.services.policy import AdaptivePolicy

POLICY = AdaptivePolicy()


def _attempt(score: int, total: int = 100) -> AttemptRecord:
    return AttemptRecord(
        student_id="s-1",
        course_id="c-1",
        topic_name="Loops",
        quiz_kind=QuizKindEnum.AI,
        score=score,
        total_questions=total,
    )


def _run(state: DifficultyState, scores: list[int]) -> DifficultyState:
    for s in scores:
        state = advance(state, _attempt(s), POLICY)
    return state


class TestClassifyScore:
    @pytest.mark.parametrize(
        "percent,band",
        [(80.0, ScoreBand.HIGH), (79.9, ScoreBand.MID), (50.0, ScoreBand.MID), (49.9, ScoreBand.LOW)],
    )
    def test_thresholds(self, percent, band):
        assert classify_score(percent, POLICY) == band


class TestTransitions:
    def test_promotion_on_third_high(self):
        state = DifficultyState(consecutive_high_scores=2)
        state = advance(state, _attempt(80), POLICY)
        assert state.current_level == DifficultyLevelEnum.INTERMEDIATE
        assert state.consecutive_high_scores == 0

    def test_three_high_scores_from_beginner(self):
        # 90%, 85%, 82%
        state = _run(DifficultyState(), [90, 85, 82])
        assert state.current_level == DifficultyLevelEnum.INTERMEDIATE
        assert state.consecutive_high_scores == 0
        assert state.consecutive_low_scores == 0

    def test_demotion_on_third_low(self):
        state = DifficultyState(current_level=DifficultyLevelEnum.ADVANCED)
        state = _run(state, [10, 20, 49])
        assert state.current_level == DifficultyLevelEnum.INTERMEDIATE
        assert state.consecutive_low_scores == 0

    def test_mid_score_keeps_counters(self):
        state = DifficultyState(consecutive_high_scores=2)
        state = advance(state, _attempt(65), POLICY)
        assert state.consecutive_high_scores == 2
        assert state.current_level == DifficultyLevelEnum.BEGINNER

    def test_low_score_breaks_high_streak(self):
        state = _run(DifficultyState(), [90, 90, 10, 90])
        assert state.current_level == DifficultyLevelEnum.BEGINNER
        assert state.consecutive_high_scores == 1
        assert state.consecutive_low_scores == 0

    def test_advanced_is_clamped(self):
        state = DifficultyState(current_level=DifficultyLevelEnum.ADVANCED)
        state = _run(state, [100] * 10)
        assert state.current_level == DifficultyLevelEnum.ADVANCED
        assert state.consecutive_high_scores == 10

    def test_beginner_is_clamped(self):
        state = _run(DifficultyState(), [0] * 5)
        assert state.current_level == DifficultyLevelEnum.BEGINNER
        assert state.consecutive_low_scores == 5

    def test_levels_move_one_step_at_a_time(self):
        state = _run(DifficultyState(), [100] * 6)
        assert state.current_level == DifficultyLevelEnum.ADVANCED
        state = _run(DifficultyState(), [100] * 3)
        assert state.current_level == DifficultyLevelEnum.INTERMEDIATE

    def test_counters_never_both_positive(self):
        rng = random.Random(1234)
        state = DifficultyState()
        for _ in range(500):
            state = advance(state, _attempt(rng.randint(0, 100)), POLICY)
            assert not (state.consecutive_high_scores > 0 and state.consecutive_low_scores > 0)

    def test_custom_streak_length(self):
        policy = AdaptivePolicy(streak_length=1)
        state = advance(DifficultyState(), _attempt(95), policy)
        assert state.current_level == DifficultyLevelEnum.INTERMEDIATE
