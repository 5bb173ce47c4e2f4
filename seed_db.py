"""One-time DB setup: create tables and seed a demo enrollment."""
from datetime import datetime, timedelta, timezone

from adaptive_engine.core.security import create_access_token
from adaptive_engine.db.models import DifficultyLevelEnum, QuizKindEnum
from adaptive_engine.db.session import Base, get_engine, get_session_factory
from adaptive_engine.db.store import PerformanceStore
from adaptive_engine.schemas.attempt import AttemptRecord
from adaptive_engine.services import performance
from adaptive_engine.services.catalog_client import get_catalog_client

DEMO_STUDENT = "demo-student"
DEMO_COURSE = "demo-course"

# (topic, kind, score, total, minutes ago)
SAMPLE_ATTEMPTS = [
    ("Fractions", QuizKindEnum.NORMAL, 9, 10, 50),
    ("Fractions", QuizKindEnum.AI, 8, 10, 40),
    ("Decimals", QuizKindEnum.NORMAL, 4, 10, 30),
    ("Percentages", QuizKindEnum.NORMAL, 6, 10, 20),
    ("Decimals", QuizKindEnum.AI, 5, 10, 10),
]

# 1. Create all tables
engine = get_engine()
Base.metadata.create_all(bind=engine)
print("✅ All tables created")

session_factory = get_session_factory()
catalog = get_catalog_client()
with session_factory() as db:
    # 2. Demo enrollment
    _, created = performance.enroll(db, DEMO_STUDENT, DEMO_COURSE)
    if created:
        print(f"✅ Enrolled {DEMO_STUDENT} in {DEMO_COURSE}")
    else:
        print("  Demo enrollment already exists")

    # 3. Sample attempts (only on a fresh enrollment)
    if not PerformanceStore(db).attempts(DEMO_STUDENT, DEMO_COURSE, limit=1):
        now = datetime.now(timezone.utc)
        for topic, kind, score, total, ago in SAMPLE_ATTEMPTS:
            result = performance.record_attempt(
                db,
                AttemptRecord(
                    student_id=DEMO_STUDENT,
                    course_id=DEMO_COURSE,
                    topic_name=topic,
                    quiz_kind=kind,
                    score=score,
                    total_questions=total,
                    difficulty_at_attempt=DifficultyLevelEnum.BEGINNER,
                    time_spent_seconds=total * 45,
                    attempted_at=now - timedelta(minutes=ago),
                ),
                catalog,
            )
            print(
                f"✅ {topic:<12} {kind.value:<6} {score}/{total} → "
                f"avg {result.topic_mastery.average_score_percent:.0f}%, "
                f"level {result.difficulty_state.current_level.value}"
            )
    else:
        print("  Sample attempts already recorded")

catalog.close()
admin_token = create_access_token({"sub": "seed-admin", "role": "admin"}, timedelta(days=1))

print("\n🎉 Database is ready to use!")
print(f"   Student: {DEMO_STUDENT}  Course: {DEMO_COURSE}")
print(f"   Admin token (24h): {admin_token}")
