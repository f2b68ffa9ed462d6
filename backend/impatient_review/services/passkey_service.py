"""
Passkey (WebAuthn) ceremony service.

Orchestrates the two challenge/response ceremonies on top of the credential
store and the WebAuthn verifier. Challenge bookkeeping lives in the session;
this service receives the expected challenge as an argument and never stores
one itself.
"""

import binascii
import logging
import re
from typing import Any, Dict, Optional

from webauthn.helpers import base64url_to_bytes

from impatient_review.core.exceptions import BadRequestError, NotFoundError, UnauthorizedError
from impatient_review.models.admin import Admin
from impatient_review.models.passwordless_credential import PasswordlessCredential
from impatient_review.services.credential_store import CredentialStore
from impatient_review.services.webauthn_verifier import (
    CeremonyOptions,
    VerificationError,
    WebAuthnVerifier,
    parse_transports,
)

logger = logging.getLogger(__name__)

BASE64URL_RE = re.compile(r"^[A-Za-z0-9_-]+={0,2}$")


def decode_credential_id(value: Any) -> bytes:
    """Decode a base64url credential id, raising BadRequestError when it is not one."""
    if not value or not isinstance(value, str):
        raise BadRequestError("Missing credential id")
    if not BASE64URL_RE.match(value):
        raise BadRequestError("Invalid credential id format")
    try:
        return base64url_to_bytes(value)
    except (binascii.Error, ValueError):
        raise BadRequestError("Invalid credential id format")


class PasskeyService:
    """Service for WebAuthn passkey operations."""

    def __init__(self, store: CredentialStore, verifier: WebAuthnVerifier):
        self.store = store
        self.verifier = verifier

    # --- Registration (caller holds an authenticated session) ---

    def begin_registration(
        self, admin_id: int, email: str, display_name: Optional[str] = None
    ) -> CeremonyOptions:
        """
        Generate registration options for passkey creation.

        Credentials already enrolled by the admin are excluded so the same
        authenticator cannot be registered twice.
        """
        existing = self.store.credential_ids(admin_id)
        ceremony = self.verifier.registration_options(
            user_id=admin_id,
            user_name=email,
            display_name=display_name or email,
            exclude_credential_ids=existing,
        )
        logger.info(f"Generated registration options for admin {admin_id} ({len(existing)} excluded)")
        return ceremony

    def finish_registration(
        self, admin_id: int, response: Dict[str, Any], expected_challenge: str
    ) -> PasswordlessCredential:
        """Verify the attestation and persist the new credential."""
        try:
            result = self.verifier.verify_registration(response, expected_challenge)
        except VerificationError:
            raise BadRequestError("WebAuthn registration verification failed")

        # Browsers report transports inside the attestation response
        transports = (response.get("response") or {}).get("transports") or response.get("transports")
        credential = self.store.insert_credential(
            admin_id=admin_id,
            credential_id=result.credential_id,
            public_key=result.public_key,
            counter=result.counter,
            transports=parse_transports(transports),
        )
        logger.info(f"Registered passkey {credential.id} for admin {admin_id}")
        return credential

    # --- Authentication (the passwordless login path) ---

    def begin_authentication(self, email: str) -> tuple[int, CeremonyOptions]:
        """
        Generate authentication options for ``email``.

        Returns the target admin id with the options; both it and the
        challenge have to be kept in the session until the verify step.
        """
        admin = self.store.find_admin_by_email(email)
        if not admin:
            raise NotFoundError("Admin not found")

        ceremony = self.verifier.authentication_options(
            allow_credential_ids=self.store.credential_ids(admin.id)
        )
        logger.info(f"Generated authentication options for admin {admin.id}")
        return admin.id, ceremony

    def finish_authentication(
        self, admin_id: int, response: Dict[str, Any], expected_challenge: str
    ) -> Admin:
        """Verify an assertion, advance the stored sign count and return the admin."""
        credential_id = decode_credential_id(response.get("id") or response.get("rawId"))

        credential = self.store.find_credential(admin_id, credential_id)
        if not credential:
            logger.warning(f"Authentication attempt for admin {admin_id} with unknown credential")
            raise UnauthorizedError("WebAuthn authentication failed")

        try:
            result = self.verifier.verify_authentication(
                response,
                expected_challenge,
                public_key=credential.public_key,
                counter=credential.sign_count,
            )
        except VerificationError:
            raise UnauthorizedError("WebAuthn authentication failed")

        self.store.update_credential_counter(credential.credential_id, result.new_counter)

        admin = self.store.find_admin_by_id(admin_id)
        if not admin:
            # Removed while the ceremony was in flight
            raise UnauthorizedError("WebAuthn authentication failed")

        logger.info(f"Successful passkey authentication for admin {admin_id}")
        return admin

    # --- Credential management ---

    def list_credentials(self, admin_id: int):
        return self.store.list_credentials(admin_id)

    def delete_credential(self, admin_id: int, credential_id: str) -> None:
        raw_id = decode_credential_id(credential_id)
        if not self.store.delete_credential(raw_id, admin_id=admin_id):
            raise NotFoundError("Credential not found")
        logger.info(f"Deleted passkey for admin {admin_id}")
