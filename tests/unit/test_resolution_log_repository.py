"""해석 로그 리포지토리 테스트 (인메모리 SQLite)"""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from property_engine.core.database import Base
from property_engine.repositories.impl.resolution_log_repository import ResolutionLogRepository
from property_engine.repositories.models import ResolutionLog


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def repo(db):
    return ResolutionLogRepository(db)


def test_create(repo):
    log = repo.create(
        "affordable homes in Houston",
        "GENERAL",
        "MISS",
        fingerprint="property:" + "a" * 32,
        total_found=3,
        elapsed_ms=12.5,
    )

    assert log.id is not None
    assert log.created_at is not None
    assert log.total_found == 3
    assert repo.get_total_count() == 1


def test_create_rejects_unknown_status(repo):
    with pytest.raises(ValueError):
        repo.create("homes in Houston", "GENERAL", "MAYBE")


def test_create_truncates_long_query(repo):
    log = repo.create("x" * 600, "GENERAL", "FAIL", error_code="LOCATION_REQUIRED")
    assert len(log.query_text) == 500


def test_counts_and_statistics(repo):
    repo.create("homes in Houston", "GENERAL", "MISS", total_found=3)
    repo.create("homes in Houston", "GENERAL", "HIT", total_found=3)
    repo.create("homes in Houston", "GENERAL", "HIT", total_found=3)
    repo.create("1600 Amphitheatre Parkway", "ADDRESS", "FAIL", error_code="PARCEL_NOT_FOUND")

    assert repo.get_total_count() == 4
    assert repo.get_cache_hit_count() == 2
    assert repo.get_failure_count() == 1

    stats = repo.get_statistics(days=7)
    assert stats == {
        "period_days": 7,
        "total_searches": 4,
        "cache_hits": 2,
        "cache_misses": 1,
        "failures": 1,
        "hit_rate": 50.0,
    }


def test_statistics_ignore_old_logs(repo, db):
    db.add(ResolutionLog(
        query_text="old", search_type="GENERAL", status="HIT",
        created_at=datetime.now() - timedelta(days=30),
    ))
    db.commit()
    repo.create("new", "GENERAL", "MISS")

    stats = repo.get_statistics(days=7)
    assert stats["total_searches"] == 1
    assert stats["cache_hits"] == 0
    assert repo.get_total_count() == 2


def test_popular_queries(repo):
    for text in ("homes in Houston", "homes in Houston", "condos in Austin", "homes in Houston", "condos in Austin", "lofts"):
        repo.create(text, "GENERAL", "MISS")

    assert repo.get_popular_queries(limit=2) == [("homes in Houston", 3), ("condos in Austin", 2)]


def test_recent_logs(repo):
    for text in ("a", "b", "c"):
        repo.create(text, "GENERAL", "MISS")

    recent = repo.get_recent_logs(limit=2)
    assert [log.query_text for log in recent] == ["c", "b"]


def test_empty_statistics(repo):
    assert repo.get_statistics()["hit_rate"] == 0
    assert repo.get_popular_queries() == []
