"""
Admin database model.
"""

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship

from impatient_review.database import Base, utcnow


class Admin(Base):
    """Admin account. ``password_hash`` is NULL for passkey-only admins."""

    __tablename__ = "admins"
    # Ids of removed admins are never handed out again
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    username = Column(String(100), nullable=False)
    password_hash = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    credentials = relationship(
        "PasswordlessCredential",
        back_populates="admin",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<Admin(id={self.id}, username={self.username})>"
