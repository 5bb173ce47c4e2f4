"""Next-topic recommendation for one (student, course).

Rules, in priority order:

1. No catalog topics → ``NoCatalogAvailable``.
2. Nothing attempted yet → the catalog's first topic at BEGINNER.
3. Otherwise the weakest attempted topic (lowest average; ties → fewest
   attempts, then catalog order), at BEGINNER when its average is under
   ``beginner_recommendation_ceiling`` else INTERMEDIATE, never above the
   student's current level.
"""

import logging
from collections.abc import Mapping

from adaptive_engine.core.exceptions import NoCatalogAvailable
from adaptive_engine.db.models import DifficultyLevelEnum
from adaptive_engine.schemas.catalog import CourseCatalog
from adaptive_engine.schemas.progress import DifficultyState, Recommendation, TopicMastery
from adaptive_engine.services.policy import AdaptivePolicy, default_policy

logger = logging.getLogger(__name__)


def _catalog_rank(catalog: CourseCatalog, topic_name: str) -> tuple[int, str]:
    # topics the catalog no longer lists go last, alphabetically
    position = catalog.position(topic_name)
    return (len(catalog.topics) if position is None else position, topic_name)


def recommend(
    masteries: Mapping[str, TopicMastery],
    state: DifficultyState,
    catalog: CourseCatalog | None,
    policy: AdaptivePolicy | None = None,
) -> Recommendation:
    policy = policy or default_policy()
    if catalog is None or not catalog.topics:
        raise NoCatalogAvailable(
            "No topic catalog is available for this course yet",
            details={"course_id": catalog.course_id if catalog else None},
        )

    attempted = [m for m in masteries.values() if m.attempt_count > 0]
    if not attempted:
        first = catalog.topics[0].name
        return Recommendation(
            recommended_topic=first,
            recommended_difficulty=DifficultyLevelEnum.BEGINNER,
            reason=f"Start your learning journey with {first}.",
        )

    weakest = min(
        attempted,
        key=lambda m: (
            m.average_score_percent,
            m.attempt_count,
            _catalog_rank(catalog, m.topic_name),
        ),
    )
    if weakest.average_score_percent < policy.beginner_recommendation_ceiling:
        difficulty = DifficultyLevelEnum.BEGINNER
    else:
        difficulty = DifficultyLevelEnum.INTERMEDIATE
    if difficulty.rank > state.current_level.rank:
        difficulty = state.current_level

    recommendation = Recommendation(
        recommended_topic=weakest.topic_name,
        recommended_difficulty=difficulty,
        reason=(
            f"Your average score in {weakest.topic_name} is "
            f"{weakest.average_score_percent:.0f}%. Practise it at "
            f"{difficulty.value.lower()} level to strengthen it."
        ),
    )
    logger.debug(
        "Recommendation: %s (%s)",
        recommendation.recommended_topic,
        recommendation.recommended_difficulty.value,
    )
    return recommendation
