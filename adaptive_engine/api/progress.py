"""Progress, recommendation and maintenance routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from adaptive_engine.api.deps import get_catalog, require_admin
from adaptive_engine.db.session import get_db
from adaptive_engine.schemas.attempt import TopicHistoryRead
from adaptive_engine.schemas.common import SuccessResponse
from adaptive_engine.schemas.progress import (
    CompletionRead,
    CompletionUpdate,
    CourseProgressRead,
    OverallProgressRead,
    Recommendation,
)
from adaptive_engine.services import performance
from adaptive_engine.services.catalog_client import CatalogClient

router = APIRouter()


@router.get("/{student_id}/overall", response_model=OverallProgressRead)
def get_overall_progress(student_id: str, db: Session = Depends(get_db)):
    """Roll-up across every course the student is enrolled in."""
    return performance.get_overall_progress(db, student_id)


@router.get("/{student_id}/courses/{course_id}", response_model=CourseProgressRead)
def get_course_progress(
    student_id: str,
    course_id: str,
    db: Session = Depends(get_db),
    catalog: CatalogClient = Depends(get_catalog),
):
    return performance.get_course_progress(db, student_id, course_id, catalog)


@router.get(
    "/{student_id}/courses/{course_id}/recommendation",
    response_model=Recommendation,
)
def get_recommendation(
    student_id: str,
    course_id: str,
    db: Session = Depends(get_db),
    catalog: CatalogClient = Depends(get_catalog),
):
    """Next topic and difficulty; 409 while the course has no catalog."""
    return performance.get_recommendation(db, student_id, course_id, catalog)


@router.get(
    "/{student_id}/courses/{course_id}/topics/{topic_name}",
    response_model=TopicHistoryRead,
)
def get_topic_history(
    student_id: str, course_id: str, topic_name: str, db: Session = Depends(get_db)
):
    return performance.get_topic_history(db, student_id, course_id, topic_name)


@router.put(
    "/{student_id}/courses/{course_id}/completion",
    response_model=CompletionRead,
)
def update_completion(
    student_id: str,
    course_id: str,
    body: CompletionUpdate,
    db: Session = Depends(get_db),
):
    return performance.update_completion(
        db, student_id, course_id, body.topic_name, body.completion_percent
    )


@router.delete("/{student_id}/courses/{course_id}", response_model=SuccessResponse)
def reset_course(
    student_id: str,
    course_id: str,
    db: Session = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    """Admin only: wipe one enrollment's attempts, mastery and difficulty state."""
    deleted = performance.reset_course(db, student_id, course_id)
    return SuccessResponse(
        message=f"Progress for {student_id} in {course_id} reset",
        data={"attempts_deleted": deleted, "reset_by": admin.get("sub")},
    )
