"""Enrollment routes."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from adaptive_engine.db.session import get_db
from adaptive_engine.schemas.enrollment import EnrollmentCreate, EnrollmentRead
from adaptive_engine.services import performance

router = APIRouter()


@router.post("/", response_model=EnrollmentRead, status_code=status.HTTP_201_CREATED)
def enroll(body: EnrollmentCreate, db: Session = Depends(get_db)):
    """Enroll a student in a course. Enrolling twice returns the existing record."""
    state, _ = performance.enroll(db, body.student_id, body.course_id)
    return state


@router.get("/{student_id}", response_model=list[EnrollmentRead])
def list_enrollments(student_id: str, db: Session = Depends(get_db)):
    return performance.list_enrollments(db, student_id)
