"""Tests for per-enrollment locking (local and Redis backends)."""

import threading
import time
from unittest.mock import MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError, LockError
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from adaptive_engine.config import settings
from adaptive_engine.core.exceptions import NoCatalogAvailable, StorageUnavailable
from adaptive_engine.db.models import Attempt, CourseState, QuizKindEnum, TopicProgress
from adaptive_engine.db.session import Base
from adaptive_engine.schemas.attempt import AttemptRecord
from adaptive_engine.services import locks, performance
from adaptive_engine.services.locks import enrollment_lock, lock_key


class TestLocalLock:
    def test_same_enrollment_is_serialised(self):
        events: list[str] = []

        def worker():
            with enrollment_lock("s-1", "c-1"):
                events.append("worker")

        with enrollment_lock("s-1", "c-1"):
            t = threading.Thread(target=worker)
            t.start()
            time.sleep(0.05)
            events.append("main")
        t.join(timeout=2)
        assert events == ["main", "worker"]

    def test_different_enrollments_do_not_block(self):
        done = threading.Event()

        def worker():
            with enrollment_lock("s-1", "c-2"):
                done.set()

        with enrollment_lock("s-1", "c-1"):
            t = threading.Thread(target=worker)
            t.start()
            assert done.wait(timeout=2)
        t.join(timeout=2)

    def test_registry_is_cleaned_up(self):
        with enrollment_lock("s-cleanup", "c-1"):
            assert lock_key("s-cleanup", "c-1") in locks._local_locks
        assert lock_key("s-cleanup", "c-1") not in locks._local_locks

    def test_released_on_error(self):
        with pytest.raises(RuntimeError):
            with enrollment_lock("s-err", "c-1"):
                raise RuntimeError("boom")
        with enrollment_lock("s-err", "c-1"):
            pass


class TestRedisLock:
    @pytest.fixture(autouse=True)
    def redis_backend(self, monkeypatch):
        monkeypatch.setattr(settings, "LOCK_BACKEND", "redis")

    def _client(self, lock: MagicMock) -> MagicMock:
        client = MagicMock()
        client.lock.return_value = lock
        return client

    def test_acquires_and_releases(self):
        lock = MagicMock()
        lock.acquire.return_value = True
        client = self._client(lock)
        with patch.object(locks, "_get_redis", return_value=client):
            with enrollment_lock("s-1", "c-1"):
                lock.release.assert_not_called()
        client.lock.assert_called_once_with(
            "lock:attempt:s-1:c-1",
            timeout=settings.LOCK_TIMEOUT_SECONDS,
            blocking_timeout=settings.LOCK_BLOCKING_TIMEOUT_SECONDS,
        )
        lock.release.assert_called_once()

    def test_timeout_is_storage_unavailable(self):
        lock = MagicMock()
        lock.acquire.return_value = False
        with patch.object(locks, "_get_redis", return_value=self._client(lock)):
            with pytest.raises(StorageUnavailable):
                with enrollment_lock("s-1", "c-1"):
                    pass
        lock.release.assert_not_called()

    def test_unreachable_server_is_storage_unavailable(self):
        lock = MagicMock()
        lock.acquire.side_effect = RedisConnectionError("refused")
        with patch.object(locks, "_get_redis", return_value=self._client(lock)):
            with pytest.raises(StorageUnavailable):
                with enrollment_lock("s-1", "c-1"):
                    pass

    def test_expired_lock_on_release_is_tolerated(self):
        lock = MagicMock()
        lock.acquire.return_value = True
        lock.release.side_effect = LockError("expired")
        with patch.object(locks, "_get_redis", return_value=self._client(lock)):
            with enrollment_lock("s-1", "c-1"):
                pass


# ── Concurrent record_attempt on one enrollment ───────────────────────────────


class TestConcurrentAttempts:
    @pytest.fixture
    def session_factory(self, tmp_path):
        engine = create_engine(
            f"sqlite:///{tmp_path / 'concurrent.db'}",
            connect_args={"check_same_thread": False, "timeout": 10},
        )
        Base.metadata.create_all(bind=engine)
        yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
        engine.dispose()

    def test_duplicate_submits_are_serialised(self, session_factory):
        catalog = MagicMock()
        catalog.get_course_catalog.side_effect = NoCatalogAvailable("no catalog")
        start = threading.Barrier(2)
        errors: list[Exception] = []

        def submit(score: int):
            attempt = AttemptRecord(
                student_id="s-race",
                course_id="c-race",
                topic_name="Loops",
                quiz_kind=QuizKindEnum.NORMAL,
                score=score,
                total_questions=10,
            )
            with session_factory() as db:
                start.wait(timeout=5)
                try:
                    performance.record_attempt(db, attempt, catalog)
                except Exception as e:  # surfaced by the assertion below
                    errors.append(e)

        threads = [threading.Thread(target=submit, args=(s,)) for s in (9, 10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert errors == []
        with session_factory() as db:
            mastery = db.query(TopicProgress).filter(TopicProgress.student_id == "s-race").one()
            state = db.query(CourseState).filter(CourseState.student_id == "s-race").one()
            assert mastery.attempt_count == 2
            assert mastery.correct_total == 19
            assert state.version == 2
            assert state.consecutive_high_scores == 2
            assert db.query(Attempt).filter(Attempt.student_id == "s-race").count() == 2
