"""
Server-side sessions.

A session is a small JSON record kept in a ``SessionStore`` under a random id;
the client only ever holds that id in an http-only cookie. The record carries
the logged-in admin's identity and, during a WebAuthn ceremony, the pending
challenge (plus the target admin id for passkey logins).
"""

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Optional, Protocol, Tuple

from fastapi import Request, Response
from pydantic import BaseModel
from sqlalchemy import delete
from sqlalchemy.orm import Session

from impatient_review.config import Settings
from impatient_review.core.exceptions import UnauthorizedError
from impatient_review.database import utcnow
from impatient_review.models.admin import Admin
from impatient_review.models.session import SessionRecord

logger = logging.getLogger(__name__)


class AdminIdentity(BaseModel):
    id: int
    email: str
    username: str


class SessionData(BaseModel):
    admin: Optional[AdminIdentity] = None
    webauthn_challenge: Optional[str] = None
    webauthn_admin_id: Optional[int] = None


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


class SessionStore(Protocol):
    """Storage for session records, keyed by session id."""

    def get(self, sid: str) -> Optional[SessionData]:
        ...

    def set(self, sid: str, data: SessionData, max_age: int) -> None:
        ...

    def destroy(self, sid: str) -> None:
        ...


class InMemorySessionStore:
    """Keeps sessions in process memory. Single-process deployments and tests only."""

    def __init__(self):
        self._sessions: Dict[str, Tuple[dict, datetime]] = {}

    def get(self, sid: str) -> Optional[SessionData]:
        entry = self._sessions.get(sid)
        if not entry:
            return None
        payload, expires_at = entry
        if utcnow() >= expires_at:
            self._sessions.pop(sid, None)
            return None
        return SessionData.model_validate(payload)

    def set(self, sid: str, data: SessionData, max_age: int) -> None:
        if sid not in self._sessions:
            self.purge_expired()
        self._sessions[sid] = (
            data.model_dump(),
            utcnow() + timedelta(seconds=max_age),
        )

    def destroy(self, sid: str) -> None:
        self._sessions.pop(sid, None)

    def purge_expired(self) -> int:
        now = utcnow()
        expired = [sid for sid, (_, expires_at) in self._sessions.items() if expires_at <= now]
        for sid in expired:
            del self._sessions[sid]
        return len(expired)

    def __len__(self):
        return len(self._sessions)


class DatabaseSessionStore:
    """
    Keeps sessions in the ``sessions`` table.

    Expired rows are swept whenever a new session is written, so the table
    only ever holds live sessions plus whatever expired since the last one.
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, sid: str) -> Optional[SessionData]:
        record = self.db.get(SessionRecord, sid)
        if not record:
            return None
        if utcnow() >= record.expires_at:
            self.destroy(sid)
            return None
        return SessionData.model_validate(record.data)

    def set(self, sid: str, data: SessionData, max_age: int) -> None:
        now = utcnow()
        try:
            record = self.db.get(SessionRecord, sid)
            if record is None:
                self.db.execute(delete(SessionRecord).where(SessionRecord.expires_at <= now))
                record = SessionRecord(sid=sid)
                self.db.add(record)
            record.data = data.model_dump()
            record.expires_at = now + timedelta(seconds=max_age)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def destroy(self, sid: str) -> None:
        try:
            self.db.execute(delete(SessionRecord).where(SessionRecord.sid == sid))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def purge_expired(self) -> int:
        """Delete every expired record. Returns how many went."""
        try:
            result = self.db.execute(delete(SessionRecord).where(SessionRecord.expires_at <= utcnow()))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return result.rowcount


@dataclass
class ServerSession:
    """The session bound to one request."""

    id: str
    data: SessionData = field(default_factory=SessionData)
    is_new: bool = True


class SessionManager:
    def __init__(self, store: SessionStore, settings: Settings):
        self.store = store
        self.settings = settings

    @property
    def cookie_name(self) -> str:
        return self.settings.session_cookie_name

    @property
    def _cookie_secure(self) -> bool:
        # Browsers drop SameSite=None cookies that are not Secure
        return self.settings.is_production or self.settings.SESSION_SAME_SITE == "none"

    def load(self, request: Request) -> ServerSession:
        """Resolve the request's session, starting an empty one if the cookie is absent or stale."""
        sid = request.cookies.get(self.cookie_name)
        if sid:
            data = self.store.get(sid)
            if data is not None:
                return ServerSession(id=sid, data=data, is_new=False)
        return ServerSession(id=new_session_id())

    def _max_age(self, session: ServerSession) -> int:
        # Anonymous sessions only exist to carry a pending challenge
        if session.data.admin is None:
            return self.settings.challenge_max_age_seconds
        return self.settings.session_max_age_seconds

    def save(self, session: ServerSession, response: Response) -> None:
        max_age = self._max_age(session)
        self.store.set(session.id, session.data, max_age)
        if session.is_new:
            self._set_cookie(response, session.id, max_age)
            session.is_new = False

    def create_session(self, session: ServerSession, admin: Admin, response: Response) -> None:
        """
        Bind ``admin`` to the session under a freshly issued id.

        The old id is invalidated first and the new record is persisted before
        the cookie is set, so the pre-login id never becomes authenticated.
        """
        if not session.is_new:
            self.store.destroy(session.id)

        session.id = new_session_id()
        session.data = SessionData(
            admin=AdminIdentity(id=admin.id, email=admin.email, username=admin.username)
        )
        max_age = self.settings.session_max_age_seconds
        self.store.set(session.id, session.data, max_age)
        self._set_cookie(response, session.id, max_age)
        session.is_new = False
        logger.info(f"Session established for admin {admin.id}")

    def discard(self, session: ServerSession) -> None:
        """Drop the session from the store without touching the cookie."""
        self.store.destroy(session.id)
        session.data = SessionData()
        session.is_new = True

    def destroy_session(self, session: ServerSession, response: Response) -> None:
        self.discard(session)
        response.delete_cookie(
            self.cookie_name,
            path="/",
            secure=self._cookie_secure,
            httponly=True,
            samesite=self.settings.SESSION_SAME_SITE,
        )

    def require_session(self, session: ServerSession) -> AdminIdentity:
        if session.is_new or session.data.admin is None:
            raise UnauthorizedError("Admin login required")
        return session.data.admin

    # --- WebAuthn ceremony state ---

    def stash_challenge(
        self,
        session: ServerSession,
        challenge: str,
        response: Response,
        admin_id: Optional[int] = None,
    ) -> None:
        # A second begin simply overwrites the pending challenge
        session.data.webauthn_challenge = challenge
        session.data.webauthn_admin_id = admin_id
        self.save(session, response)

    def take_challenge(self, session: ServerSession) -> Tuple[Optional[str], Optional[int]]:
        """Return and clear the pending challenge; it is gone before anyone verifies against it."""
        challenge = session.data.webauthn_challenge
        admin_id = session.data.webauthn_admin_id
        if challenge is None and admin_id is None:
            return None, None

        session.data.webauthn_challenge = None
        session.data.webauthn_admin_id = None
        if session.is_new:
            return challenge, admin_id
        if session.data.admin is None:
            # Nothing left worth keeping
            self.discard(session)
        else:
            self.store.set(session.id, session.data, self.settings.session_max_age_seconds)
        return challenge, admin_id

    def _set_cookie(self, response: Response, sid: str, max_age: int) -> None:
        response.set_cookie(
            self.cookie_name,
            sid,
            max_age=max_age,
            path="/",
            secure=self._cookie_secure,
            httponly=True,
            samesite=self.settings.SESSION_SAME_SITE,
        )
