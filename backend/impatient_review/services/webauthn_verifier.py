"""
Typed boundary around the py_webauthn library.

The ceremony service only ever sees ``RegistrationResult`` and
``AuthenticationResult``; every way the library can reject a response is
collapsed into ``VerificationError``.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from webauthn import (
    generate_registration_options,
    verify_registration_response,
    generate_authentication_options,
    verify_authentication_response,
    options_to_json,
)
from webauthn.helpers import bytes_to_base64url, base64url_to_bytes
from webauthn.helpers.exceptions import WebAuthnException
from webauthn.helpers.structs import (
    AttestationConveyancePreference,
    AuthenticatorSelectionCriteria,
    AuthenticatorTransport,
    PublicKeyCredentialDescriptor,
    UserVerificationRequirement,
)

logger = logging.getLogger(__name__)


class VerificationError(Exception):
    """The library rejected a ceremony response."""


@dataclass(frozen=True)
class RegistrationResult:
    credential_id: bytes
    public_key: bytes
    counter: int


@dataclass(frozen=True)
class AuthenticationResult:
    new_counter: int


@dataclass(frozen=True)
class CeremonyOptions:
    """Options for the browser plus the challenge the server must remember."""

    options: Dict[str, Any]
    challenge: str  # base64url


def _descriptors(credential_ids: Sequence[bytes]) -> List[PublicKeyCredentialDescriptor]:
    return [PublicKeyCredentialDescriptor(id=cred_id) for cred_id in credential_ids]


def parse_transports(values: Optional[Sequence[str]]) -> Optional[List[str]]:
    """Keep only transport hints defined by WebAuthn."""
    if not values:
        return None
    known = {t.value for t in AuthenticatorTransport}
    transports = [v for v in values if v in known]
    return transports or None


class WebAuthnVerifier:
    """Relying-party side of WebAuthn, bound to one RP id and origin."""

    def __init__(self, rp_id: str, rp_name: str, origin: str, timeout_ms: int = 60000):
        self.rp_id = rp_id
        self.rp_name = rp_name
        self.origin = origin
        self.timeout_ms = timeout_ms

    def registration_options(
        self,
        user_id: int,
        user_name: str,
        display_name: str,
        exclude_credential_ids: Sequence[bytes] = (),
    ) -> CeremonyOptions:
        options = generate_registration_options(
            rp_id=self.rp_id,
            rp_name=self.rp_name,
            user_id=str(user_id).encode("utf-8"),
            user_name=user_name,
            user_display_name=display_name,
            attestation=AttestationConveyancePreference.NONE,
            authenticator_selection=AuthenticatorSelectionCriteria(
                user_verification=UserVerificationRequirement.PREFERRED,
            ),
            exclude_credentials=_descriptors(exclude_credential_ids),
            timeout=self.timeout_ms,
        )
        return CeremonyOptions(
            options=json.loads(options_to_json(options)),
            challenge=bytes_to_base64url(options.challenge),
        )

    def verify_registration(self, response: Dict[str, Any], expected_challenge: str) -> RegistrationResult:
        try:
            verification = verify_registration_response(
                credential=response,
                expected_challenge=base64url_to_bytes(expected_challenge),
                expected_rp_id=self.rp_id,
                expected_origin=self.origin,
            )
        except (WebAuthnException, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Registration verification failed: {e}")
            raise VerificationError("registration verification failed") from e

        return RegistrationResult(
            credential_id=verification.credential_id,
            public_key=verification.credential_public_key,
            counter=verification.sign_count,
        )

    def authentication_options(self, allow_credential_ids: Sequence[bytes] = ()) -> CeremonyOptions:
        options = generate_authentication_options(
            rp_id=self.rp_id,
            allow_credentials=_descriptors(allow_credential_ids),
            user_verification=UserVerificationRequirement.PREFERRED,
            timeout=self.timeout_ms,
        )
        return CeremonyOptions(
            options=json.loads(options_to_json(options)),
            challenge=bytes_to_base64url(options.challenge),
        )

    def verify_authentication(
        self,
        response: Dict[str, Any],
        expected_challenge: str,
        public_key: bytes,
        counter: int,
    ) -> AuthenticationResult:
        # The library raises when the new sign count does not exceed the stored one
        try:
            verification = verify_authentication_response(
                credential=response,
                expected_challenge=base64url_to_bytes(expected_challenge),
                expected_rp_id=self.rp_id,
                expected_origin=self.origin,
                credential_public_key=public_key,
                credential_current_sign_count=counter,
            )
        except (WebAuthnException, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Authentication verification failed: {e}")
            raise VerificationError("authentication verification failed") from e

        return AuthenticationResult(new_counter=verification.new_sign_count)
