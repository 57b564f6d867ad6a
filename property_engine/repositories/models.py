"""데이터베이스 모델"""
from datetime import datetime

from sqlalchemy import Column, DateTime, Float, Index, Integer, String

from property_engine.core.database import Base


class ResolutionLog(Base):
    """해석 로그 테이블"""

    __tablename__ = "resolution_logs"

    id = Column(Integer, primary_key=True, index=True)
    query_text = Column(String(500), nullable=False, index=True)
    search_type = Column(String(16), nullable=False)  # ADDRESS, GENERAL
    status = Column(String(8), nullable=False, index=True)  # HIT, MISS, FAIL
    fingerprint = Column(String(64), nullable=True, index=True)
    total_found = Column(Integer, nullable=False, default=0)
    error_code = Column(String(64), nullable=True)
    elapsed_ms = Column(Float, nullable=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False, index=True)

    # 복합 인덱스 (통계 쿼리 최적화)
    __table_args__ = (
        Index("idx_resolution_status_created", "status", "created_at"),
        Index("idx_resolution_query_created", "query_text", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ResolutionLog(id={self.id}, type={self.search_type}, status={self.status})>"
