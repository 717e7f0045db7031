"""
API request and response models for Stashbox identity endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Field names follow the established client contract (name, newPassword), so
the camelCase field uses an alias.

Length and format rules for usernames and passwords are NOT enforced here:
the credential service owns them and reports them with its own error codes
(bad_username, invalid_password, password_wrong). Name and password fields
therefore carry no length bounds of their own.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import Account
from auth.service import SignIn

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/local/register."""

    name: str
    password: str
    email: str = Field(default="", max_length=255)


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/local."""

    name: str
    password: str


class ChangePasswordRequest(BaseModel):
    """Request body for POST /api/v1/changePassword."""

    model_config = ConfigDict(populate_by_name=True)

    password: str
    new_password: str = Field(alias="newPassword")


class DeleteAccountRequest(BaseModel):
    """Request body for DELETE /api/v1/me."""

    password: str


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class SessionResponse(BaseModel):
    """Returned by register and login. session_token is also set as a cookie."""

    model_config = ConfigDict(frozen=True)

    account_id: str
    username: str
    session_token: str
    expires_at: Optional[str] = None

    @classmethod
    def from_sign_in(cls, result: SignIn) -> "SessionResponse":
        return cls(
            account_id=result.account.id,
            username=result.account.username,
            session_token=result.session.token,
            expires_at=result.session.expires_at,
        )


class MeResponse(BaseModel):
    """Identity of the account behind the current session."""

    model_config = ConfigDict(frozen=True)

    account_id: str
    username: str
    email: str
    created_at: str

    @classmethod
    def from_account(cls, account: Account) -> "MeResponse":
        return cls(
            account_id=account.id,
            username=account.username,
            email=account.email,
            created_at=account.created_at or "",
        )


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
