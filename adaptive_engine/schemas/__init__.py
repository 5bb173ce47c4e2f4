"""Pydantic schemas — re‑exported for convenience."""

from adaptive_engine.schemas.common import ErrorResponse, SuccessResponse  # noqa: F401
from adaptive_engine.schemas.progress import (  # noqa: F401
    TopicMastery,
    DifficultyState,
    Recommendation,
    CourseProgressRead,
    OverallProgressRead,
    TopicPerformance,
    CompletionUpdate,
    CompletionRead,
)
from adaptive_engine.schemas.attempt import (  # noqa: F401
    AttemptRecord,
    AttemptRead,
    AttemptResult,
    TopicHistoryRead,
)
from adaptive_engine.schemas.enrollment import (  # noqa: F401
    EnrollmentCreate,
    EnrollmentRead,
)
from adaptive_engine.schemas.catalog import CatalogTopic, CourseCatalog  # noqa: F401
