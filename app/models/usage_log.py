"""
Append-only log of billable actions. One row per successful enforcement;
rows are never updated or deleted.
"""
from sqlalchemy import Column, Integer, String, JSON, DateTime, Index
from datetime import datetime
from app.db.base import Base


class UsageLog(Base):
    __tablename__ = "usage_log"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    feature = Column(String, nullable=False)
    extra_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_usage_log_user_feature_created", "user_id", "feature", "created_at"),
    )

    def __repr__(self):
        return f"<UsageLog(id={self.id}, user_id={self.user_id}, feature={self.feature})>"
