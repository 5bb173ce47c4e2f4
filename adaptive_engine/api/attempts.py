"""Attempt ingestion and listing routes."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from adaptive_engine.api.deps import get_catalog
from adaptive_engine.db.models import QuizKindEnum
from adaptive_engine.db.session import get_db
from adaptive_engine.schemas.attempt import AttemptRead, AttemptRecord, AttemptResult
from adaptive_engine.services import performance
from adaptive_engine.services.catalog_client import CatalogClient

router = APIRouter()


@router.post("/", response_model=AttemptResult, status_code=status.HTTP_201_CREATED)
def submit_attempt(
    body: AttemptRecord,
    db: Session = Depends(get_db),
    catalog: CatalogClient = Depends(get_catalog),
):
    """Record a completed quiz attempt.

    Folds it into the topic's mastery, advances the course difficulty state
    and returns both together with the next recommendation (``null`` while
    the course has no catalog).
    """
    return performance.record_attempt(db, body, catalog)


@router.get("/", response_model=list[AttemptRead])
def list_attempts(
    student_id: str,
    course_id: str | None = None,
    quiz_kind: QuizKindEnum | None = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """List a student's attempts, newest first."""
    return performance.list_attempts(db, student_id, course_id, quiz_kind, skip, limit)
