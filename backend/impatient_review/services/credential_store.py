"""
Credential store.

Relational persistence for admin accounts and their passwordless credentials.
Every multi-statement write runs inside one transaction and is rolled back
completely before an error propagates.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from webauthn.helpers import bytes_to_base64url

from impatient_review.core.exceptions import ConflictError, NotFoundError
from impatient_review.models.admin import Admin
from impatient_review.models.passwordless_credential import PasswordlessCredential

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CredentialSummary:
    """Listing view of an enrolled authenticator."""

    id: int
    credential_id: str  # base64url
    transports: Optional[List[str]]
    sign_count: int
    created_at: datetime


class CredentialStore:
    """Data access for admins and passwordless credentials."""

    def __init__(self, db: Session):
        self.db = db

    # --- Admins ---

    def find_admin_by_email(self, email: str) -> Optional[Admin]:
        return self.db.scalars(select(Admin).where(Admin.email == email)).first()

    def find_admin_by_id(self, admin_id: int) -> Optional[Admin]:
        return self.db.get(Admin, admin_id)

    def insert_admin(self, email: str, password_hash: Optional[str], username: str) -> Admin:
        """
        Create an admin row.

        The duplicate check and the insert share one transaction; the unique
        constraint on ``email`` catches an insert that races past the check.
        """
        try:
            exists = self.db.scalars(select(Admin.id).where(Admin.email == email)).first()
            if exists is not None:
                raise ConflictError("Email already registered")

            admin = Admin(email=email, password_hash=password_hash, username=username)
            self.db.add(admin)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Email already registered")
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(admin)
        return admin

    def delete_admin(self, admin_id: int) -> None:
        """Delete an admin and every credential it owns, atomically."""
        try:
            self.db.execute(
                delete(PasswordlessCredential).where(PasswordlessCredential.admin_id == admin_id)
            )
            self.db.execute(delete(Admin).where(Admin.id == admin_id))
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.error(f"Rolled back removal of admin {admin_id}", exc_info=True)
            raise

    # --- Passwordless credentials ---

    def insert_credential(
        self,
        admin_id: int,
        credential_id: bytes,
        public_key: bytes,
        counter: int,
        transports: Optional[List[str]] = None,
    ) -> PasswordlessCredential:
        credential = PasswordlessCredential(
            admin_id=admin_id,
            credential_id=credential_id,
            public_key=public_key,
            sign_count=counter or 0,
            transports=transports or None,
        )
        try:
            if self.db.get(Admin, admin_id) is None:
                raise NotFoundError("Admin not found")
            self.db.add(credential)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Credential already registered")
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(credential)
        return credential

    def credential_ids(self, admin_id: int) -> List[bytes]:
        return list(
            self.db.scalars(
                select(PasswordlessCredential.credential_id).where(
                    PasswordlessCredential.admin_id == admin_id
                )
            )
        )

    def list_credentials(self, admin_id: int) -> List[CredentialSummary]:
        rows = self.db.scalars(
            select(PasswordlessCredential)
            .where(PasswordlessCredential.admin_id == admin_id)
            .order_by(PasswordlessCredential.created_at, PasswordlessCredential.id)
        )
        return [
            CredentialSummary(
                id=row.id,
                credential_id=bytes_to_base64url(row.credential_id),
                transports=row.transports,
                sign_count=row.sign_count,
                created_at=row.created_at,
            )
            for row in rows
        ]

    def find_credential(self, admin_id: int, credential_id: bytes) -> Optional[PasswordlessCredential]:
        return self.db.scalars(
            select(PasswordlessCredential).where(
                PasswordlessCredential.admin_id == admin_id,
                PasswordlessCredential.credential_id == credential_id,
            )
        ).first()

    def update_credential_counter(self, credential_id: bytes, new_counter: int) -> None:
        try:
            self.db.execute(
                update(PasswordlessCredential)
                .where(PasswordlessCredential.credential_id == credential_id)
                .values(sign_count=new_counter)
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def delete_credential(self, credential_id: bytes, admin_id: Optional[int] = None) -> bool:
        """
        Delete one credential. When ``admin_id`` is given only a credential
        owned by that admin is touched. Returns whether a row was removed.
        """
        stmt = delete(PasswordlessCredential).where(
            PasswordlessCredential.credential_id == credential_id
        )
        if admin_id is not None:
            stmt = stmt.where(PasswordlessCredential.admin_id == admin_id)
        try:
            result = self.db.execute(stmt)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return result.rowcount > 0
