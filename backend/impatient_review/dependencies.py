"""
Shared API dependencies.
"""

import logging

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from impatient_review.database import get_db
from impatient_review.config import settings
from impatient_review.core.exceptions import UnauthorizedError
from impatient_review.services.auth_service import PasswordAuthenticator
from impatient_review.services.credential_store import CredentialStore
from impatient_review.services.passkey_service import PasskeyService
from impatient_review.services.session_service import (
    AdminIdentity,
    DatabaseSessionStore,
    InMemorySessionStore,
    ServerSession,
    SessionManager,
    SessionStore,
)
from impatient_review.services.webauthn_verifier import WebAuthnVerifier

logger = logging.getLogger(__name__)

# Only used when SESSION_BACKEND=memory
memory_session_store = InMemorySessionStore()


def get_credential_store(db: Session = Depends(get_db)) -> CredentialStore:
    return CredentialStore(db)


def get_session_store(db: Session = Depends(get_db)) -> SessionStore:
    if settings.SESSION_BACKEND == "memory":
        return memory_session_store
    return DatabaseSessionStore(db)


def get_session_manager(store: SessionStore = Depends(get_session_store)) -> SessionManager:
    return SessionManager(store, settings)


def get_webauthn_verifier() -> WebAuthnVerifier:
    return WebAuthnVerifier(
        rp_id=settings.WEBAUTHN_RP_ID,
        rp_name=settings.WEBAUTHN_RP_NAME,
        origin=settings.WEBAUTHN_ORIGIN,
        timeout_ms=settings.WEBAUTHN_TIMEOUT_MS,
    )


def get_password_authenticator(
    store: CredentialStore = Depends(get_credential_store),
) -> PasswordAuthenticator:
    return PasswordAuthenticator(store, work_factor=settings.BCRYPT_WORK_FACTOR)


def get_passkey_service(
    store: CredentialStore = Depends(get_credential_store),
    verifier: WebAuthnVerifier = Depends(get_webauthn_verifier),
) -> PasskeyService:
    return PasskeyService(store, verifier)


def get_server_session(
    request: Request, manager: SessionManager = Depends(get_session_manager)
) -> ServerSession:
    return manager.load(request)


async def get_current_admin(
    session: ServerSession = Depends(get_server_session),
    manager: SessionManager = Depends(get_session_manager),
    store: CredentialStore = Depends(get_credential_store),
) -> AdminIdentity:
    """
    Return the admin bound to the request's session or fail with 401.

    The identity in the session is checked against the admins table on every
    request; a session whose admin has been removed is dropped.
    """
    identity = manager.require_session(session)
    admin = store.find_admin_by_id(identity.id)
    if admin is None or admin.email != identity.email:
        logger.info(f"Dropping session of removed admin {identity.id}")
        manager.discard(session)
        raise UnauthorizedError("Admin login required")
    return AdminIdentity(id=admin.id, email=admin.email, username=admin.username)
