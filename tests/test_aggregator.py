"""Unit tests for the topic aggregator (pure fold, no database)."""

import itertools
from datetime import datetime, timedelta, timezone

import pytest

from adaptive_engine.core.exceptions import InvalidAttempt
from adaptive_engine.db.models import QuizKindEnum, TrendEnum
from adaptive_engine.schemas.attempt import AttemptRecord
from adaptive_engine.schemas.progress import TopicMastery
from adaptive_engine.services.aggregator import classify_trend, fold, validate_attempt
from adaptive_engine.services.policy import AdaptivePolicy

POLICY = AdaptivePolicy()
T0 = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)


# ── Helpers ────────────────────────────────────────────────────────────────────


def _attempt(score: int, total: int, **overrides) -> AttemptRecord:
    data = {
        "student_id": "s-1",
        "course_id": "c-1",
        "topic_name": "Loops",
        "quiz_kind": QuizKindEnum.NORMAL,
        "score": score,
        "total_questions": total,
        "attempted_at": T0,
    }
    data.update(overrides)
    return AttemptRecord(**data)


def _fold_all(attempts: list[AttemptRecord]) -> TopicMastery | None:
    mastery = None
    for a in attempts:
        mastery = fold(mastery, a, POLICY)
    return mastery


# ── Weighted average ──────────────────────────────────────────────────────────


class TestWeightedAverage:
    def test_first_attempt_sets_average(self):
        m = fold(None, _attempt(7, 10), POLICY)
        assert m.attempt_count == 1
        assert m.correct_total == 7
        assert m.questions_total == 10
        assert m.average_score_percent == pytest.approx(70.0)

    def test_weighted_by_question_count(self):
        # 2/2 and 0/18 → 2/20, not the 50% an unweighted mean would give
        m = _fold_all([_attempt(2, 2), _attempt(0, 18)])
        assert m.average_score_percent == pytest.approx(10.0)

    def test_order_does_not_change_average(self):
        attempts = [_attempt(3, 10), _attempt(9, 12), _attempt(1, 4), _attempt(20, 20)]
        expected = 100.0 * (3 + 9 + 1 + 20) / (10 + 12 + 4 + 20)
        for perm in itertools.permutations(attempts):
            m = _fold_all(list(perm))
            assert m.average_score_percent == pytest.approx(expected)
            assert m.attempt_count == 4

    def test_fold_does_not_mutate_input(self):
        first = fold(None, _attempt(5, 10), POLICY)
        fold(first, _attempt(10, 10), POLICY)
        assert first.attempt_count == 1
        assert first.average_score_percent == pytest.approx(50.0)

    def test_time_and_weak_areas_accumulate(self):
        m = _fold_all([
            _attempt(5, 10, time_spent_seconds=120, weak_areas=["nesting"]),
            _attempt(6, 10, time_spent_seconds=60, weak_areas=["nesting", "off-by-one"]),
        ])
        assert m.time_spent_seconds_total == 180
        assert m.weak_areas == ["nesting", "off-by-one"]

    def test_last_attempted_at_keeps_latest(self):
        m = _fold_all([
            _attempt(5, 10, attempted_at=T0 + timedelta(hours=2)),
            _attempt(5, 10, attempted_at=T0),
        ])
        assert m.last_attempted_at == T0 + timedelta(hours=2)

    def test_topic_mismatch_rejected(self):
        m = fold(None, _attempt(5, 10), POLICY)
        with pytest.raises(InvalidAttempt):
            fold(m, _attempt(5, 10, topic_name="Functions"), POLICY)


# ── Trend ─────────────────────────────────────────────────────────────────────


class TestTrend:
    def test_first_attempt_is_stable(self):
        assert fold(None, _attempt(10, 10), POLICY).trend == TrendEnum.STABLE

    @pytest.mark.parametrize(
        "prior_score,prior_total,score,total,expected",
        [
            (6, 10, 13, 20, TrendEnum.STABLE),  # exactly prior + 5
            (6, 10, 11, 20, TrendEnum.STABLE),  # exactly prior - 5
            (6, 10, 33, 50, TrendEnum.IMPROVING),  # 66%
            (6, 10, 27, 50, TrendEnum.DECLINING),  # 54%
            (1, 12, 1, 30, TrendEnum.STABLE),  # 8.33% - 5 = 3.33%
            (2, 24, 1, 30, TrendEnum.STABLE),
            (1, 30, 1, 12, TrendEnum.STABLE),  # 3.33% + 5 = 8.33%
            (1, 12, 1, 31, TrendEnum.DECLINING),
        ],
    )
    def test_band_edges_are_exclusive(self, prior_score, prior_total, score, total, expected):
        prior = fold(None, _attempt(prior_score, prior_total), POLICY)
        assert fold(prior, _attempt(score, total), POLICY).trend == expected

    def test_classify_trend_uses_band(self):
        assert classify_trend(60.0, 70.0, 5.0) == TrendEnum.IMPROVING
        assert classify_trend(60.0, 70.0, 10.0) == TrendEnum.STABLE
        assert classify_trend(None, 0.0, 5.0) == TrendEnum.STABLE


# ── Validation ────────────────────────────────────────────────────────────────


class TestValidation:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"total_questions": 0, "score": 0},
            {"total_questions": -5, "score": 0},
            {"score": -1},
            {"score": 11},
            {"student_id": ""},
            {"course_id": "   "},
            {"topic_name": ""},
            {"time_spent_seconds": -3},
        ],
    )
    def test_malformed_attempts_rejected(self, overrides):
        attempt = _attempt(5, 10).model_copy(update=overrides)
        with pytest.raises(InvalidAttempt):
            validate_attempt(attempt)

    def test_rejected_attempt_leaves_mastery_untouched(self):
        m = fold(None, _attempt(5, 10), POLICY)
        with pytest.raises(InvalidAttempt):
            fold(m, _attempt(5, 10).model_copy(update={"score": 12}), POLICY)
        assert m.attempt_count == 1

    def test_full_and_zero_scores_accepted(self):
        validate_attempt(_attempt(0, 10))
        validate_attempt(_attempt(10, 10))
