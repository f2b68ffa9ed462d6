"""
Admin authentication API endpoints.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request, Response, status

from impatient_review.core.exceptions import BadRequestError, UnauthorizedError
from impatient_review.core.limiter import limiter
from impatient_review.dependencies import (
    get_credential_store,
    get_current_admin,
    get_passkey_service,
    get_password_authenticator,
    get_server_session,
    get_session_manager,
)
from impatient_review.schemas import (
    AdminCreate,
    AdminEnvelope,
    AdminResponse,
    AdminSummary,
    CeremonyResponse,
    CredentialListResponse,
    CredentialResponse,
    LoginRequest,
    LoginResponse,
    OkResponse,
    PasskeyAuthenticationOptionsRequest,
    PasskeyLoginResponse,
    PasskeyRegistrationOptionsRequest,
)
from impatient_review.services.auth_service import PasswordAuthenticator
from impatient_review.services.credential_store import CredentialStore
from impatient_review.services.passkey_service import PasskeyService
from impatient_review.services.session_service import AdminIdentity, ServerSession, SessionManager

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", response_model=AdminEnvelope, status_code=status.HTTP_201_CREATED)
async def register(
    data: AdminCreate,
    authenticator: PasswordAuthenticator = Depends(get_password_authenticator),
) -> Any:
    """
    Register a new admin with email, password and username.
    """
    admin = authenticator.register(email=data.email, password=data.password, username=data.username)
    return {"admin": AdminResponse.model_validate(admin)}


@router.post("/login", response_model=LoginResponse)
@limiter.limit("5/minute")
async def login(
    request: Request,
    response: Response,
    data: LoginRequest,
    authenticator: PasswordAuthenticator = Depends(get_password_authenticator),
    session: ServerSession = Depends(get_server_session),
    manager: SessionManager = Depends(get_session_manager),
) -> Any:
    """
    Password login. Issues a new session cookie on success.
    """
    if not data.email or not data.password:
        raise BadRequestError("Email and password required")

    admin = authenticator.authenticate(data.email, data.password)
    if not admin:
        raise UnauthorizedError("Invalid credentials")

    manager.create_session(session, admin, response)
    return {"ok": True, "admin": AdminSummary.model_validate(admin)}


@router.post("/logout", response_model=OkResponse)
async def logout(
    response: Response,
    current_admin: AdminIdentity = Depends(get_current_admin),
    session: ServerSession = Depends(get_server_session),
    manager: SessionManager = Depends(get_session_manager),
) -> Any:
    """
    Destroy the current session and clear the cookie.
    """
    manager.destroy_session(session, response)
    logger.info(f"Admin {current_admin.id} logged out")
    return {"ok": True}


@router.get("/me", response_model=AdminEnvelope)
async def read_current_admin(
    current_admin: AdminIdentity = Depends(get_current_admin),
) -> Any:
    """
    Get the admin bound to the current session.
    """
    return {"admin": current_admin.model_dump()}


@router.delete("", response_model=OkResponse)
async def remove_admin(
    response: Response,
    current_admin: AdminIdentity = Depends(get_current_admin),
    session: ServerSession = Depends(get_server_session),
    manager: SessionManager = Depends(get_session_manager),
    store: CredentialStore = Depends(get_credential_store),
) -> Any:
    """
    Remove the current admin together with all of its passkeys, then log out.
    """
    store.delete_admin(current_admin.id)
    manager.destroy_session(session, response)
    logger.info(f"Removed admin {current_admin.id}")
    return {"ok": True}


# --- Passkey (WebAuthn) Endpoints ---

@router.post("/webauthn/register/options")
@limiter.limit("10/minute")
async def passkey_register_options(
    request: Request,
    response: Response,
    data: PasskeyRegistrationOptionsRequest | None = None,
    current_admin: AdminIdentity = Depends(get_current_admin),
    session: ServerSession = Depends(get_server_session),
    manager: SessionManager = Depends(get_session_manager),
    passkeys: PasskeyService = Depends(get_passkey_service),
) -> Any:
    """
    Generate a challenge for enrolling a new passkey on the current admin.
    """
    display_name = (data.display_name if data else None) or current_admin.username
    ceremony = passkeys.begin_registration(current_admin.id, current_admin.email, display_name)
    manager.stash_challenge(session, ceremony.challenge, response)
    return ceremony.options


@router.post("/webauthn/register/verify", response_model=OkResponse)
@limiter.limit("5/minute")
async def passkey_register_verify(
    request: Request,
    credential: CeremonyResponse,
    current_admin: AdminIdentity = Depends(get_current_admin),
    session: ServerSession = Depends(get_server_session),
    manager: SessionManager = Depends(get_session_manager),
    passkeys: PasskeyService = Depends(get_passkey_service),
) -> Any:
    """
    Verify the attestation returned by the browser and store the credential.
    """
    expected_challenge, _ = manager.take_challenge(session)
    if not expected_challenge:
        raise BadRequestError("Missing registration challenge in session")

    passkeys.finish_registration(
        current_admin.id, credential.model_dump(exclude_none=True), expected_challenge
    )
    return {"ok": True}


@router.post("/webauthn/authenticate/options")
@limiter.limit("10/minute")
async def passkey_authenticate_options(
    request: Request,
    response: Response,
    data: PasskeyAuthenticationOptionsRequest,
    session: ServerSession = Depends(get_server_session),
    manager: SessionManager = Depends(get_session_manager),
    passkeys: PasskeyService = Depends(get_passkey_service),
) -> Any:
    """
    Generate a challenge for passkey login.
    No authentication required - this is the login endpoint.
    """
    if not data.email:
        raise BadRequestError("Email required")

    admin_id, ceremony = passkeys.begin_authentication(data.email)
    manager.stash_challenge(session, ceremony.challenge, response, admin_id=admin_id)
    return ceremony.options


@router.post("/webauthn/authenticate/verify", response_model=PasskeyLoginResponse)
@limiter.limit("5/minute")
async def passkey_authenticate_verify(
    request: Request,
    response: Response,
    credential: CeremonyResponse,
    session: ServerSession = Depends(get_server_session),
    manager: SessionManager = Depends(get_session_manager),
    passkeys: PasskeyService = Depends(get_passkey_service),
) -> Any:
    """
    Verify the assertion and log the admin in.
    """
    expected_challenge, admin_id = manager.take_challenge(session)
    if not expected_challenge or admin_id is None:
        raise BadRequestError("Missing authentication challenge or user id in session")

    admin = passkeys.finish_authentication(
        admin_id, credential.model_dump(exclude_none=True), expected_challenge
    )
    manager.create_session(session, admin, response)
    return {"ok": True, "admin": AdminResponse.model_validate(admin)}


@router.get("/webauthn/credentials", response_model=CredentialListResponse)
async def list_passkeys(
    current_admin: AdminIdentity = Depends(get_current_admin),
    passkeys: PasskeyService = Depends(get_passkey_service),
) -> Any:
    """
    List all passkeys of the current admin.
    """
    credentials = passkeys.list_credentials(current_admin.id)
    return {"credentials": [CredentialResponse.model_validate(cred) for cred in credentials]}


@router.delete("/webauthn/credentials/{credential_id}", response_model=OkResponse)
async def delete_passkey(
    credential_id: str,
    current_admin: AdminIdentity = Depends(get_current_admin),
    passkeys: PasskeyService = Depends(get_passkey_service),
) -> Any:
    """
    Delete one of the current admin's passkeys by its base64url credential id.
    """
    passkeys.delete_credential(current_admin.id, credential_id)
    return {"ok": True}
