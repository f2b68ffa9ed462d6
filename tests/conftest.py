"""
pytest configuration - shared fixtures
"""
import os
import sys
import secrets
from typing import Generator

# Test settings must be in place before the app modules read them
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SESSION_BACKEND"] = "database"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_WORK_FACTOR"] = "4"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from webauthn.helpers import base64url_to_bytes, bytes_to_base64url

# Add backend directory to sys.path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../backend"))

from impatient_review.database import Base, get_db, set_sqlite_pragma
from impatient_review.models import Admin, PasswordlessCredential, SessionRecord  # noqa: F401
from impatient_review.core import security
from impatient_review.services.credential_store import CredentialStore
from impatient_review.services.webauthn_verifier import (
    AuthenticationResult,
    CeremonyOptions,
    RegistrationResult,
    VerificationError,
)


class FakeVerifier:
    """
    Stand-in for WebAuthnVerifier.

    Fake ceremony responses carry the challenge, public key and sign count in
    plain fields so tests can build valid and invalid ones by hand. Checks
    mirror the real library: challenge match, key match, and a sign count that
    has to grow whenever either side is non-zero.
    """

    def __init__(self):
        self.issued = []

    def _challenge(self) -> str:
        challenge = bytes_to_base64url(secrets.token_bytes(32))
        self.issued.append(challenge)
        return challenge

    def registration_options(self, user_id, user_name, display_name, exclude_credential_ids=()):
        challenge = self._challenge()
        options = {
            "challenge": challenge,
            "rp": {"id": "localhost", "name": "Impatient Review"},
            "user": {"id": str(user_id), "name": user_name, "displayName": display_name},
            "excludeCredentials": [
                {"id": bytes_to_base64url(cred_id), "type": "public-key"}
                for cred_id in exclude_credential_ids
            ],
        }
        return CeremonyOptions(options=options, challenge=challenge)

    def verify_registration(self, response, expected_challenge):
        data = response.get("response") or {}
        if data.get("challenge") != expected_challenge:
            raise VerificationError("challenge mismatch")
        return RegistrationResult(
            credential_id=base64url_to_bytes(response["id"]),
            public_key=base64url_to_bytes(data["publicKey"]),
            counter=data.get("counter", 0),
        )

    def authentication_options(self, allow_credential_ids=()):
        challenge = self._challenge()
        options = {
            "challenge": challenge,
            "rpId": "localhost",
            "allowCredentials": [
                {"id": bytes_to_base64url(cred_id), "type": "public-key"}
                for cred_id in allow_credential_ids
            ],
        }
        return CeremonyOptions(options=options, challenge=challenge)

    def verify_authentication(self, response, expected_challenge, public_key, counter):
        data = response.get("response") or {}
        if data.get("challenge") != expected_challenge:
            raise VerificationError("challenge mismatch")
        if base64url_to_bytes(data.get("publicKey", "")) != public_key:
            raise VerificationError("signature mismatch")
        new_counter = data.get("counter", 0)
        if (new_counter > 0 or counter > 0) and new_counter <= counter:
            raise VerificationError("sign count did not increase")
        return AuthenticationResult(new_counter=new_counter)

    @staticmethod
    def registration_response(
        challenge,
        credential_id=b"credential-1",
        public_key=b"public-key-1",
        counter=0,
        transports=("internal", "hybrid"),
    ):
        cred_id = bytes_to_base64url(credential_id)
        return {
            "id": cred_id,
            "rawId": cred_id,
            "type": "public-key",
            "response": {
                "challenge": challenge,
                "publicKey": bytes_to_base64url(public_key),
                "counter": counter,
                "transports": list(transports),
            },
        }

    @staticmethod
    def authentication_response(
        challenge,
        credential_id=b"credential-1",
        public_key=b"public-key-1",
        counter=1,
    ):
        cred_id = bytes_to_base64url(credential_id)
        return {
            "id": cred_id,
            "rawId": cred_id,
            "type": "public-key",
            "response": {
                "challenge": challenge,
                "publicKey": bytes_to_base64url(public_key),
                "counter": counter,
            },
        }


@pytest.fixture
def test_db() -> Generator[Session, None, None]:
    """Create in-memory SQLite database for testing"""
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", set_sqlite_pragma)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def db_session(test_db):
    """Alias for test_db for clarity"""
    return test_db


@pytest.fixture
def store(test_db) -> CredentialStore:
    return CredentialStore(test_db)


@pytest.fixture
def admin(store) -> Admin:
    """Admin with password 'correct horse'"""
    return store.insert_admin(
        email="a@x.com",
        password_hash=security.get_password_hash("correct horse", work_factor=4),
        username="A",
    )


@pytest.fixture
def fake_verifier() -> FakeVerifier:
    return FakeVerifier()


@pytest.fixture
def client(test_db, fake_verifier) -> Generator[TestClient, None, None]:
    """TestClient bound to the in-memory database and the fake verifier"""
    from impatient_review.main import app
    from impatient_review.dependencies import get_webauthn_verifier

    def _get_db():
        yield test_db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_webauthn_verifier] = lambda: fake_verifier
    yield TestClient(app)
    app.dependency_overrides.clear()
