"""Recorded storefront activities."""
from sqlalchemy import Column, Integer, String, DateTime, Text, Index

from apps.storefront.database import Base, utcnow


class ActivityLog(Base):
    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(Text, nullable=False)
    request_id = Column(Text, nullable=False)
    activity_type = Column(String(32), nullable=False)
    path = Column(Text, nullable=False)
    method = Column(String(16), nullable=False)
    status_code = Column(Integer, default=0)
    user_currency = Column(String(8), default="USD")
    details = Column(Text)  # JSON object, only when non-empty
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        Index("idx_session", "session_id"),
        Index("idx_created_at", "created_at"),
        Index("idx_activity_type", "activity_type"),
    )
