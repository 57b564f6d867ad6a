"""해석 로그 리포지토리 - DB 접근 로직"""
from datetime import datetime, timedelta
from typing import Any, List, Optional, cast

from sqlalchemy import desc, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from property_engine.core.exceptions import DatabaseException
from property_engine.core.logging import logger
from property_engine.repositories.models import ResolutionLog

LOG_STATUSES = ("HIT", "MISS", "FAIL")


class ResolutionLogRepository:
    """해석 로그 데이터 액세스 레이어"""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        query_text: str,
        search_type: str,
        status: str,
        fingerprint: Optional[str] = None,
        total_found: int = 0,
        error_code: Optional[str] = None,
        elapsed_ms: Optional[float] = None,
    ) -> ResolutionLog:
        """해석 로그 생성

        Raises:
            ValueError: 알 수 없는 status
            DatabaseException: 저장 실패
        """
        if status not in LOG_STATUSES:
            raise ValueError(f"Unknown log status: {status}")
        try:
            log = ResolutionLog(
                query_text=query_text[:500],
                search_type=search_type,
                status=status,
                fingerprint=fingerprint,
                total_found=total_found,
                error_code=error_code,
                elapsed_ms=elapsed_ms,
            )
            self.db.add(log)
            self.db.commit()
            self.db.refresh(log)
            logger.debug(f"Resolution log created: {log.id}")
            return log
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create resolution log: {e}")
            raise DatabaseException(f"Failed to create resolution log: {e}") from e

    def get_total_count(self) -> int:
        """전체 해석 횟수"""
        return self.db.query(func.count(ResolutionLog.id)).scalar() or 0

    def get_cache_hit_count(self) -> int:
        return self._count_status("HIT")

    def get_failure_count(self) -> int:
        return self._count_status("FAIL")

    def _count_status(self, status: str, since: Optional[datetime] = None) -> int:
        query = self.db.query(func.count(ResolutionLog.id)).filter(ResolutionLog.status == status)
        if since is not None:
            query = query.filter(ResolutionLog.created_at >= since)
        return query.scalar() or 0

    def get_popular_queries(self, limit: int = 5) -> List[tuple[str, int]]:
        """인기 검색어 조회 ([(query_text, count), ...])"""
        rows: List[Any] = self.db.query(
            ResolutionLog.query_text,
            func.count(ResolutionLog.id).label("count"),
        ).group_by(
            ResolutionLog.query_text
        ).order_by(
            desc("count"), ResolutionLog.query_text
        ).limit(limit).all()

        return [
            (
                cast(str, getattr(row, "query_text", "")),
                int(cast(Any, getattr(row, "count", 0))),
            )
            for row in rows
        ]

    def get_recent_logs(self, limit: int = 10) -> List[ResolutionLog]:
        """최근 로그 조회"""
        return self.db.query(ResolutionLog).order_by(
            desc(ResolutionLog.created_at), desc(ResolutionLog.id)
        ).limit(limit).all()

    def get_statistics(self, days: int = 7) -> dict:
        """기간 통계"""
        start_date = datetime.now() - timedelta(days=days)

        total = self.db.query(func.count(ResolutionLog.id)).filter(
            ResolutionLog.created_at >= start_date
        ).scalar() or 0
        hits = self._count_status("HIT", start_date)
        misses = self._count_status("MISS", start_date)
        fails = self._count_status("FAIL", start_date)

        return {
            "period_days": days,
            "total_searches": total,
            "cache_hits": hits,
            "cache_misses": misses,
            "failures": fails,
            "hit_rate": round((hits / total * 100), 2) if total > 0 else 0,
        }
