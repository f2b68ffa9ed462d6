"""
Password authentication service.
"""

import logging
from typing import Optional

from impatient_review.core import security
from impatient_review.core.exceptions import BadRequestError
from impatient_review.models.admin import Admin
from impatient_review.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)

USERNAME_MAX_LENGTH = 100


class PasswordAuthenticator:
    def __init__(self, store: CredentialStore, work_factor: int = security.DEFAULT_WORK_FACTOR):
        self.store = store
        self.work_factor = work_factor

    def register(self, email: Optional[str], password: Optional[str], username: Optional[str]) -> Admin:
        """Register a new admin with a password."""
        if not email:
            raise BadRequestError("Email required")
        if not password:
            raise BadRequestError("Password required")
        clean_name = (username or "").strip()
        if not clean_name:
            raise BadRequestError("Username required")
        if len(clean_name) > USERNAME_MAX_LENGTH:
            raise BadRequestError(f"Username must be {USERNAME_MAX_LENGTH} characters or fewer")

        password_hash = security.get_password_hash(password, work_factor=self.work_factor)
        admin = self.store.insert_admin(email=email, password_hash=password_hash, username=clean_name)
        logger.info(f"Registered admin {admin.id}")
        return admin

    def authenticate(self, email: str, password: str) -> Optional[Admin]:
        """
        Authenticate an admin by email and password.

        Returns None for an unknown email, a passkey-only admin, or a wrong
        password alike; callers answer all three with the same 401.
        """
        admin = self.store.find_admin_by_email(email)
        if not admin or not admin.password_hash:
            return None
        if not security.verify_password(password, admin.password_hash):
            return None
        return admin
