"""Adaptive policy constants, gathered from settings into one immutable value."""

from pydantic import BaseModel

from adaptive_engine.config import Settings, settings


class AdaptivePolicy(BaseModel):
    """Thresholds used by the aggregator, state machine and recommender.

    All scores are percentages (0–100).
    """

    high_score_threshold: float = 80.0  # percent >= this is a HIGH attempt
    low_score_threshold: float = 50.0  # percent < this is a LOW attempt
    streak_length: int = 3
    trend_band: float = 5.0
    beginner_recommendation_ceiling: float = 40.0
    strong_topic_threshold: float = 80.0
    weak_topic_threshold: float = 50.0

    model_config = {"frozen": True}

    @classmethod
    def from_settings(cls, s: Settings) -> "AdaptivePolicy":
        return cls(
            high_score_threshold=s.HIGH_SCORE_THRESHOLD,
            low_score_threshold=s.LOW_SCORE_THRESHOLD,
            streak_length=s.STREAK_LENGTH,
            trend_band=s.TREND_BAND,
            beginner_recommendation_ceiling=s.BEGINNER_RECOMMENDATION_CEILING,
            strong_topic_threshold=s.STRONG_TOPIC_THRESHOLD,
            weak_topic_threshold=s.WEAK_TOPIC_THRESHOLD,
        )


def default_policy() -> AdaptivePolicy:
    return AdaptivePolicy.from_settings(settings)
