"""API route package — imports all routers for main.py."""

from adaptive_engine.api.health import router as health_router  # noqa: F401
from adaptive_engine.api.attempts import router as attempts_router  # noqa: F401
from adaptive_engine.api.enrollments import router as enrollments_router  # noqa: F401
from adaptive_engine.api.progress import router as progress_router  # noqa: F401
