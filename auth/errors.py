"""
auth/errors.py -- Public error taxonomy for the credential service.

Every error is a locally recoverable business-rule failure: raised to the
immediate caller, never retried, never process-fatal. Each class carries a
stable machine-readable code and the HTTP status the API layer renders it
with, so route handlers do not need a lookup table.

PasswordWrong and Forbidden are deliberately separate. PasswordWrong denies a
login; Forbidden denies a state-changing operation on an identity that is
already authenticated (change password, delete account).
"""

from __future__ import annotations


class AuthError(Exception):
    code: str = "auth_error"
    message: str = "Authentication error."
    status_code: int = 401

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        if message:
            self.message = message


class BadUsername(AuthError):
    code = "bad_username"
    message = "Usernames may only contain ASCII letters, digits, '_', '-' and '.'."


class InvalidPassword(AuthError):
    code = "invalid_password"
    message = "Passwords must be at least 8 characters and at most 72 bytes."


class UsernameTaken(AuthError):
    code = "username_taken"
    message = "That username is already taken."


class UsernameNotFound(AuthError):
    code = "username_not_found"
    message = "No account with that username."


class PasswordWrong(AuthError):
    code = "password_wrong"
    message = "Incorrect password."


class Forbidden(AuthError):
    code = "forbidden"
    message = "You are not allowed to do that."
    status_code = 403
