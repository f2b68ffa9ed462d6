"""
Server-side session record.
"""

from sqlalchemy import Column, String, DateTime, JSON

from impatient_review.database import Base, utcnow


class SessionRecord(Base):
    """Session payload keyed by the id carried in the session cookie."""

    __tablename__ = "sessions"

    sid = Column(String(64), primary_key=True)
    data = Column(JSON, nullable=False, default=dict)
    expires_at = Column(DateTime, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
