"""
Passwordless (WebAuthn) credential database model.
"""

from sqlalchemy import Column, Integer, LargeBinary, DateTime, ForeignKey, Index, JSON
from sqlalchemy.orm import relationship

from impatient_review.database import Base, utcnow


class PasswordlessCredential(Base):
    """One enrolled authenticator (passkey) belonging to an admin."""

    __tablename__ = "passwordless_credentials"

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, ForeignKey("admins.id", ondelete="CASCADE"), nullable=False, index=True)
    credential_id = Column(LargeBinary, unique=True, nullable=False)  # Raw bytes from the authenticator
    public_key = Column(LargeBinary, nullable=False)  # COSE-encoded public key
    sign_count = Column(Integer, default=0, nullable=False)
    transports = Column(JSON, nullable=True)  # e.g. ["internal", "hybrid"]
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationship
    admin = relationship("Admin", back_populates="credentials")

    __table_args__ = (
        Index("idx_credential_admin_credential", "admin_id", "credential_id"),
    )

    def __repr__(self):
        return f"<PasswordlessCredential(id={self.id}, admin_id={self.admin_id}, sign_count={self.sign_count})>"
