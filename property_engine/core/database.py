"""데이터베이스 연결 및 세션 관리"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from contextlib import contextmanager
from typing import Any, Generator

from property_engine.core.config import settings
from property_engine.core.logging import logger

# SQLAlchemy Base
Base = declarative_base()


def _engine_kwargs(url: str) -> dict[str, Any]:
    """드라이버별 엔진 옵션"""
    if url.startswith("sqlite"):
        # FastAPI 백그라운드 태스크가 다른 스레드에서 세션을 사용함
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "pool_size": 5,
        "max_overflow": 10,
    }


engine = create_engine(settings.database_url, **_engine_kwargs(settings.database_url))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    """데이터베이스 테이블 초기화"""
    # 모델 등록
    from property_engine.repositories import models  # noqa: F401

    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


def get_db() -> Generator[Session, None, None]:
    """FastAPI Dependency: DB 세션 제공"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """Context Manager: DB 세션 제공"""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
