"""
api/routes/v1/auth.py -- Account and session REST endpoints.

Routes:
  POST   /api/v1/auth/local/register  -- create account; signs in; sets session cookie
  POST   /api/v1/auth/local           -- password login; sets session cookie
  POST   /api/v1/logout               -- destroys the session; clears cookie; 200
  POST   /api/v1/changePassword       -- requires session + current password
  GET    /api/v1/me                   -- current account info (requires session)
  DELETE /api/v1/me                   -- soft-delete account (requires session + password)

Error mapping:
  AuthError subclasses raised by CredentialService propagate to the
  AuthError handler in api/main.py, which renders {"error": {code, message}}
  with the error's own status (401 for login/register failures, 403 for
  Forbidden). The one exception is changePassword, where an invalid new
  password is a 400 (bad input on an authenticated request), so that route
  re-raises it as an HTTPException.

Handlers are sync on purpose: bcrypt is CPU-bound, and FastAPI runs sync
handlers in its worker thread pool instead of on the event loop.

Security:
  [M5] Cache-Control: no-store on every response that carries a session token.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.models import (
    ChangePasswordRequest,
    DeleteAccountRequest,
    LoginRequest,
    MeResponse,
    MessageResponse,
    RegisterRequest,
    SessionResponse,
)
from auth.dependencies import (
    clear_session_cookie,
    get_current_account,
    session_token_from_request,
    set_session_cookie,
)
from auth.errors import InvalidPassword
from auth.models import Account
from auth.service import CredentialService, SignIn
from core.config import get_settings

# Auth policy:
# - POST   /api/v1/auth/local/register: public
# - POST   /api/v1/auth/local:          public
# - POST   /api/v1/logout:              public -- destroying an unknown session is a no-op
# - POST   /api/v1/changePassword:      requires session (get_current_account)
# - GET    /api/v1/me:                  requires session (get_current_account)
# - DELETE /api/v1/me:                  requires session (get_current_account)
router = APIRouter()


def _credentials(request: Request) -> CredentialService:
    return request.app.state.credentials


def _signed_in(result: SignIn) -> JSONResponse:
    settings = get_settings()
    resp = JSONResponse(status_code=200, content=SessionResponse.from_sign_in(result).model_dump())
    set_session_cookie(
        resp,
        result.session.token,
        max_age=settings.session_ttl_seconds,
        secure=settings.secure_cookies,
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/local/register", response_model=SessionResponse)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create an account and sign it in immediately."""
    result = _credentials(request).register(body.name, body.password, body.email)
    return _signed_in(result)


@router.post("/auth/local", response_model=SessionResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username (case-insensitive) and password.

    Unknown usernames and wrong passwords return distinct codes
    (username_not_found / password_wrong). Front ends that want to hide
    account existence can show both the same way.
    """
    result = _credentials(request).authenticate(body.name, body.password)
    return _signed_in(result)


@router.post("/logout", response_model=MessageResponse)
def logout(request: Request) -> JSONResponse:
    """Destroy the current session and clear the cookie."""
    _credentials(request).logout(session_token_from_request(request))
    resp = JSONResponse(content=MessageResponse(message="Logged out.").model_dump())
    clear_session_cookie(resp)
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.post("/changePassword", response_model=MessageResponse)
def change_password(
    request: Request,
    body: ChangePasswordRequest,
    current_account: Account = Depends(get_current_account),
) -> MessageResponse:
    """Change the current account's password. The session stays valid."""
    try:
        _credentials(request).change_password(current_account.id, body.password, body.new_password)
    except InvalidPassword as exc:
        raise HTTPException(
            status_code=400,
            detail={"code": exc.code, "message": exc.message},
        ) from exc
    return MessageResponse(message="Password changed.")


@router.get("/me", response_model=MeResponse)
def me(current_account: Account = Depends(get_current_account)) -> MeResponse:
    """Return identity information for the current session's account."""
    return MeResponse.from_account(current_account)


@router.delete("/me", response_model=MessageResponse)
def delete_me(
    request: Request,
    body: DeleteAccountRequest,
    current_account: Account = Depends(get_current_account),
) -> JSONResponse:
    """Soft-delete the current account after confirming its password.

    Every session of the account is revoked, and the username becomes
    available for new registrations.
    """
    _credentials(request).delete_account(current_account.id, body.password)
    resp = JSONResponse(content=MessageResponse(message="Account deleted.").model_dump())
    clear_session_cookie(resp)
    return resp
