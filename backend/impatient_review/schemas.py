from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


# --- Admin ---
class AdminCreate(BaseModel):
    # Presence and length are checked by PasswordAuthenticator so every
    # failure comes back as a 400 with one message
    email: Optional[str] = None
    password: Optional[str] = None
    username: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class AdminSummary(BaseModel):
    id: int
    username: str

    model_config = ConfigDict(from_attributes=True)


class AdminResponse(AdminSummary):
    email: str


class AdminEnvelope(BaseModel):
    admin: AdminResponse


class OkResponse(BaseModel):
    ok: bool = True


class LoginResponse(OkResponse):
    admin: AdminSummary


class PasskeyLoginResponse(OkResponse):
    admin: AdminResponse


# --- Passkey (WebAuthn) ---
class PasskeyRegistrationOptionsRequest(BaseModel):
    display_name: Optional[str] = Field(None, max_length=100)


class PasskeyAuthenticationOptionsRequest(BaseModel):
    email: Optional[str] = None


class CeremonyResponse(BaseModel):
    """Client-side result of navigator.credentials.create()/get(), passed to the verifier as is."""

    id: Optional[str] = None
    rawId: Optional[str] = None
    type: Optional[str] = None
    response: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="allow")


class CredentialResponse(BaseModel):
    id: int
    credential_id: str
    transports: Optional[List[str]] = None
    sign_count: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CredentialListResponse(BaseModel):
    credentials: List[CredentialResponse]
