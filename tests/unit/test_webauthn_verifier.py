"""
Unit tests for the py_webauthn boundary.

Options are generated by the real library; response verification is patched
since a valid attestation needs a real authenticator.
"""
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from webauthn.helpers import bytes_to_base64url
from webauthn.helpers.exceptions import InvalidAuthenticationResponse, InvalidRegistrationResponse

from impatient_review.services.webauthn_verifier import (
    VerificationError,
    WebAuthnVerifier,
    parse_transports,
)

MODULE = "impatient_review.services.webauthn_verifier"


@pytest.fixture
def verifier():
    return WebAuthnVerifier(
        rp_id="localhost",
        rp_name="Impatient Review",
        origin="http://localhost:5173",
        timeout_ms=60000,
    )


@pytest.mark.unit
class TestOptions:

    def test_registration_options(self, verifier):
        ceremony = verifier.registration_options(
            user_id=7,
            user_name="a@x.com",
            display_name="A",
            exclude_credential_ids=[b"cred-a", b"cred-b"],
        )

        options = ceremony.options
        assert options["challenge"] == ceremony.challenge
        assert options["rp"] == {"name": "Impatient Review", "id": "localhost"}
        assert options["user"]["name"] == "a@x.com"
        assert options["user"]["displayName"] == "A"
        assert options["user"]["id"] == bytes_to_base64url(b"7")
        assert options["attestation"] == "none"
        assert options["timeout"] == 60000
        assert [c["id"] for c in options["excludeCredentials"]] == [
            bytes_to_base64url(b"cred-a"),
            bytes_to_base64url(b"cred-b"),
        ]

    def test_authentication_options(self, verifier):
        ceremony = verifier.authentication_options(allow_credential_ids=[b"cred-a"])

        options = ceremony.options
        assert options["challenge"] == ceremony.challenge
        assert options["rpId"] == "localhost"
        assert options["userVerification"] == "preferred"
        assert [c["id"] for c in options["allowCredentials"]] == [bytes_to_base64url(b"cred-a")]

    def test_each_ceremony_gets_a_fresh_challenge(self, verifier):
        first = verifier.authentication_options()
        second = verifier.authentication_options()
        assert first.challenge != second.challenge


@pytest.mark.unit
class TestVerifyRegistration:

    def test_success(self, verifier):
        verified = SimpleNamespace(credential_id=b"cred", credential_public_key=b"key", sign_count=0)
        with patch(f"{MODULE}.verify_registration_response", return_value=verified) as mock_verify:
            result = verifier.verify_registration({"id": "Y3JlZA"}, bytes_to_base64url(b"challenge"))

        assert result.credential_id == b"cred"
        assert result.public_key == b"key"
        assert result.counter == 0
        kwargs = mock_verify.call_args.kwargs
        assert kwargs["expected_challenge"] == b"challenge"
        assert kwargs["expected_rp_id"] == "localhost"
        assert kwargs["expected_origin"] == "http://localhost:5173"

    def test_library_rejection(self, verifier):
        with patch(
            f"{MODULE}.verify_registration_response",
            side_effect=InvalidRegistrationResponse("bad attestation"),
        ):
            with pytest.raises(VerificationError):
                verifier.verify_registration({"id": "Y3JlZA"}, bytes_to_base64url(b"challenge"))

    def test_malformed_response(self, verifier):
        with pytest.raises(VerificationError):
            verifier.verify_registration({"id": "Y3JlZA"}, bytes_to_base64url(b"challenge"))


@pytest.mark.unit
class TestVerifyAuthentication:

    def test_counter_is_passed_through(self, verifier):
        verified = SimpleNamespace(new_sign_count=6)
        with patch(f"{MODULE}.verify_authentication_response", return_value=verified) as mock_verify:
            result = verifier.verify_authentication(
                {"id": "Y3JlZA"}, bytes_to_base64url(b"challenge"), public_key=b"key", counter=5
            )

        assert result.new_counter == 6
        kwargs = mock_verify.call_args.kwargs
        assert kwargs["credential_public_key"] == b"key"
        assert kwargs["credential_current_sign_count"] == 5

    def test_library_rejection(self, verifier):
        with patch(
            f"{MODULE}.verify_authentication_response",
            side_effect=InvalidAuthenticationResponse("sign count did not increase"),
        ):
            with pytest.raises(VerificationError):
                verifier.verify_authentication(
                    {"id": "Y3JlZA"}, bytes_to_base64url(b"challenge"), public_key=b"key", counter=5
                )


@pytest.mark.unit
class TestParseTransports:

    def test_unknown_values_dropped(self):
        assert parse_transports(["internal", "carrier-pigeon", "hybrid"]) == ["internal", "hybrid"]

    @pytest.mark.parametrize("values", [None, [], ["carrier-pigeon"]])
    def test_nothing_usable(self, values):
        assert parse_transports(values) is None
