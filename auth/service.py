"""
auth/service.py -- Registration, login, password change and account deletion.

CredentialService is the only place that combines the username policy, the
password hasher, the account store and the session manager. Route handlers
and the CLI call it; it never imports from api/.

Error contract (auth.errors):
  register         -> BadUsername | InvalidPassword | UsernameTaken
  authenticate     -> UsernameNotFound | PasswordWrong
  change_password  -> Forbidden | InvalidPassword
  delete_account   -> Forbidden

Security:
  [C1] authenticate() burns a dummy bcrypt verify when the username is
       unknown, so "no such account" and "wrong password" take the same time
       even though they raise different errors.
  Raw passwords are only held for the duration of a call and are never
  logged or stored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from auth.errors import BadUsername, Forbidden, PasswordWrong, UsernameNotFound, UsernameTaken
from auth.hashing import PasswordHasher
from auth.models import Account, Session
from auth.policy import USERNAME_MAX_LENGTH, normalize_username, validate_username
from auth.sessions import SessionManager
from auth.store import AccountStore, UsernameConflict

logger = logging.getLogger("stashbox.auth")


@dataclass
class SignIn:
    """Result of a successful register() or authenticate()."""

    account: Account
    session: Session


class CredentialService:
    def __init__(
        self,
        store: AccountStore,
        hasher: PasswordHasher,
        sessions: SessionManager,
        username_max_length: int = USERNAME_MAX_LENGTH,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.sessions = sessions
        self.username_max_length = username_max_length

    # ------------------------------------------------------------------
    # Registration / login
    # ------------------------------------------------------------------

    def register(self, username: str, password: str, email: str) -> SignIn:
        """Create an account and sign it in.

        Validation happens before any store access: a bad username or
        password never reaches SQL. Uniqueness is decided by the store's
        partial unique index, so two racing registrations for the same name
        cannot both succeed.
        """
        validate_username(username, self.username_max_length)
        password_hash = self.hasher.hash(password)  # raises InvalidPassword

        try:
            account = self.store.insert(
                Account(
                    username=username,
                    normalized_username=normalize_username(username),
                    email=email,
                    password_hash=password_hash,
                )
            )
        except UsernameConflict as exc:
            logger.info("Registration rejected: username %r is taken", username)
            raise UsernameTaken() from exc

        session = self.sessions.create(account.id)
        logger.info("Registered account %s (%s)", account.id, account.username)
        return SignIn(account=account, session=session)

    def authenticate(self, username: str, password: str) -> SignIn:
        """Verify a username/password pair and open a new session.

        A name that could never have been registered is reported as unknown
        without a store lookup.
        """
        try:
            validate_username(username, self.username_max_length)
        except BadUsername:
            account = None
        else:
            account = self.store.find_active_by_normalized_name(normalize_username(username))
        if account is None:
            self.hasher.burn(password)  # [C1]
            raise UsernameNotFound()
        if not self.hasher.verify(password, account.password_hash):
            logger.info("Failed login for account %s", account.id)
            raise PasswordWrong()

        self.store.update_last_login(account.id)
        session = self.sessions.create(account.id)
        logger.info("Login for account %s", account.id)
        return SignIn(account=account, session=session)

    def logout(self, token: str | None) -> None:
        self.sessions.destroy(token)

    # ------------------------------------------------------------------
    # Operations on an already-authenticated account
    # ------------------------------------------------------------------

    def _confirm(self, account_id: str, password: str) -> Account:
        """Re-check the password of an authenticated account, or raise Forbidden."""
        account = self.store.get_by_id(account_id)
        if account is None or not account.is_active:
            raise Forbidden()
        if not self.hasher.verify(password, account.password_hash):
            raise Forbidden("Current password is incorrect.")
        return account

    def change_password(self, account_id: str, current_password: str, new_password: str) -> None:
        """Replace the account's password. All-or-nothing.

        The stored hash is only written after the current password is
        confirmed and the new one passes the length check, so any failure
        leaves the old password working. Existing sessions stay valid.
        """
        account = self._confirm(account_id, current_password)
        new_hash = self.hasher.hash(new_password)  # raises InvalidPassword
        if not self.store.update_password_hash(account.id, new_hash):
            raise Forbidden()
        logger.info("Password changed for account %s", account.id)

    def delete_account(self, account_id: str, confirm_password: str) -> None:
        """Soft-delete the account and revoke all of its sessions.

        The username is released for new registrations; the row is kept.
        """
        account = self._confirm(account_id, confirm_password)
        self.store.soft_delete(account.id)
        revoked = self.sessions.destroy_all(account.id)
        logger.info("Deleted account %s (%d sessions revoked)", account.id, revoked)
