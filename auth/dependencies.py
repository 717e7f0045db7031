"""
auth/dependencies.py -- FastAPI Depends() helpers for session authentication.

The session token is looked up in priority order:
  1. "session_id" cookie -- set by the register/login endpoints.
  2. Authorization: Bearer <token> header -- API clients that keep the token
     from the response body instead of a cookie.

try_get_current_account() is the soft variant (returns None on failure).
get_current_account() wraps it and raises HTTP 403 when there is no usable
session. A missing, destroyed or expired session is an authorization failure
on a protected route, not a login failure, hence 403 rather than 401.

Layer rule: auth/dependencies.py may import from fastapi because this module
is part of the FastAPI dependency injection system. No imports from api/.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import Account

SESSION_COOKIE = "session_id"


def session_token_from_request(request: Request) -> str | None:
    """Return the raw session token carried by the request, if any."""
    token: str | None = request.cookies.get(SESSION_COOKIE)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:].strip()
    return token or None


def try_get_current_account(request: Request) -> Account | None:
    """Resolve the request's session to an active Account. Never raises."""
    token = session_token_from_request(request)
    account_id = request.app.state.sessions.resolve(token)
    if account_id is None:
        return None
    account = request.app.state.account_store.get_by_id(account_id)
    if account is None or not account.is_active:
        return None
    return account


def get_current_account(request: Request) -> Account:
    """Require a valid session. Raises HTTP 403 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(account: Account = Depends(get_current_account)): ...
    """
    account = try_get_current_account(request)
    if account is None:
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "A valid session is required."},
        )
    return account


def set_session_cookie(response, token: str, max_age: int = 0, secure: bool = False) -> None:
    """Write the session token as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": not sent on cross-site POST -- CSRF mitigation for most cases.
    max_age: matches the session TTL; 0 means a browser-session cookie, which
        pairs with sessions that live until logout.
    """
    response.set_cookie(
        SESSION_COOKIE,
        value=token,
        httponly=True,
        samesite="lax",
        secure=secure,
        max_age=max_age or None,
    )


def clear_session_cookie(response) -> None:
    response.delete_cookie(SESSION_COOKIE)
