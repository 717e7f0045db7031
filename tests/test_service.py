"""Unit tests for auth/service.py -- CredentialService business rules.

Covers:
- register / authenticate round trip, case-insensitive lookup
- UsernameTaken for active collisions; reclaim after soft delete
- password length boundary (72 ok, 73 rejected, no prefix collisions)
- change_password all-or-nothing semantics
- delete_account revokes sessions and releases the name
"""

from unittest.mock import patch

import pytest

from auth.errors import (
    BadUsername,
    Forbidden,
    InvalidPassword,
    PasswordWrong,
    UsernameNotFound,
    UsernameTaken,
)
from auth.models import AccountStatus
from conftest import make_service


def test_register_returns_account_and_live_session(service):
    result = service.register("testuser1", "hunter22", "testuser1@example.com")
    assert result.account.username == "testuser1"
    assert result.account.normalized_username == "testuser1"
    assert result.account.email == "testuser1@example.com"
    assert result.account.password_hash != "hunter22"
    assert service.sessions.resolve(result.session.token) == result.account.id


def test_registered_credentials_authenticate(service):
    registered = service.register("testuser1", "hunter22", "")
    result = service.authenticate("testuser1", "hunter22")
    assert result.account.id == registered.account.id
    assert result.session.token != registered.session.token


def test_login_scenario(service):
    service.register("alice", "password1", "alice@example.com")
    assert service.authenticate("ALICE", "password1").account.username == "alice"
    with pytest.raises(PasswordWrong):
        service.authenticate("alice", "wrong")
    with pytest.raises(UsernameNotFound):
        service.authenticate("bob", "password1")


def test_unknown_user_still_burns_a_verify(service):
    with patch.object(service.hasher, "burn", wraps=service.hasher.burn) as burn:
        with pytest.raises(UsernameNotFound):
            service.authenticate("nobody", "password1")
    burn.assert_called_once_with("password1")


def test_lookalike_username_is_unknown(service):
    service.register("kelvin", "password1", "")
    with patch.object(service.store, "find_active_by_normalized_name") as find:
        with pytest.raises(UsernameNotFound):
            service.authenticate("\u212Aelvin", "password1")
    find.assert_not_called()


def test_login_stamps_last_login(service):
    registered = service.register("alice", "password1", "")
    assert service.store.get_by_id(registered.account.id).last_login is None
    service.authenticate("alice", "password1")
    assert service.store.get_by_id(registered.account.id).last_login


@pytest.mark.parametrize("second", ["testuser1", "TESTUSER1", "TestUser1"])
def test_duplicate_username_taken(service, second):
    service.register("testuser1", "hunter22", "")
    with pytest.raises(UsernameTaken):
        service.register(second, "beepboop", "spoof@example.com")


def test_bad_username_never_touches_store(service):
    with patch.object(service.store, "insert") as insert:
        with pytest.raises(BadUsername):
            service.register("testuseréééé", "blahblahblah", "invalid@example.com")
    insert.assert_not_called()


def test_short_password_rejected(service):
    with pytest.raises(InvalidPassword):
        service.register("testuser2", "one", "")
    with pytest.raises(UsernameNotFound):
        service.authenticate("testuser2", "one")


def test_password_byte_boundary(service):
    service.register("validUsername", "*" * 72, "")
    with pytest.raises(PasswordWrong):
        service.authenticate("validUsername", "*" * 71 + "a")
    with pytest.raises(PasswordWrong):
        service.authenticate("validUsername", "*" * 72 + "extra")
    with pytest.raises(InvalidPassword):
        service.register("UNIQUE_USERNAME", "*" * 73, "")


def test_deleted_username_can_be_reclaimed(service):
    first = service.register("claimedUsername2", "blahblahblah", "")
    service.delete_account(first.account.id, "blahblahblah")

    second = service.register("CLAIMEDUSERNAME2", "AAAAAAAAAAAAA", "")
    assert second.account.id != first.account.id
    with pytest.raises(PasswordWrong):
        service.authenticate("claimedusername2", "blahblahblah")
    assert service.authenticate("claimedusername2", "AAAAAAAAAAAAA").account.id == second.account.id


def test_delete_account_revokes_sessions(service):
    result = service.register("leaver", "blahblahblah", "")
    other = service.authenticate("leaver", "blahblahblah")
    service.delete_account(result.account.id, "blahblahblah")

    assert service.store.get_by_id(result.account.id).status is AccountStatus.DELETED
    assert service.sessions.resolve(result.session.token) is None
    assert service.sessions.resolve(other.session.token) is None
    with pytest.raises(UsernameNotFound):
        service.authenticate("leaver", "blahblahblah")


def test_delete_account_wrong_password_is_forbidden(service):
    result = service.register("stayer", "blahblahblah", "")
    with pytest.raises(Forbidden):
        service.delete_account(result.account.id, "not-the-password")
    assert service.store.get_by_id(result.account.id).is_active
    assert service.sessions.resolve(result.session.token) == result.account.id


class TestChangePassword:
    OLD = "Correct Horse Battery Staple"
    NEW = "Correct Llama Battery Staple"

    @pytest.fixture
    def registered(self, service):
        return service.register("USERNAME_abcd1234", self.OLD, "")

    def test_change_password(self, service, registered):
        service.change_password(registered.account.id, self.OLD, self.NEW)
        assert service.authenticate("USERNAME_abcd1234", self.NEW)
        with pytest.raises(PasswordWrong):
            service.authenticate("USERNAME_abcd1234", self.OLD)
        assert service.sessions.resolve(registered.session.token) == registered.account.id

    def test_wrong_current_password_is_forbidden(self, service, registered):
        with pytest.raises(Forbidden):
            service.change_password(registered.account.id, "Incorrect Horse Battery Staple", "invalid new password")
        assert service.authenticate("USERNAME_abcd1234", self.OLD)
        with pytest.raises(PasswordWrong):
            service.authenticate("USERNAME_abcd1234", "invalid new password")

    def test_forbidden_is_not_password_wrong(self, service, registered):
        with pytest.raises(Forbidden) as info:
            service.change_password(registered.account.id, "nope nope nope", self.NEW)
        assert not isinstance(info.value, PasswordWrong)

    def test_invalid_new_password_keeps_old(self, service, registered):
        before = service.store.get_by_id(registered.account.id).password_hash
        with pytest.raises(InvalidPassword):
            service.change_password(registered.account.id, self.OLD, "blah")
        assert service.store.get_by_id(registered.account.id).password_hash == before
        assert service.authenticate("USERNAME_abcd1234", self.OLD)

    def test_too_long_new_password_keeps_old(self, service, registered):
        with pytest.raises(InvalidPassword):
            service.change_password(registered.account.id, self.OLD, "x" * 73)
        assert service.authenticate("USERNAME_abcd1234", self.OLD)

    def test_same_password_succeeds(self, service, registered):
        service.change_password(registered.account.id, self.OLD, self.OLD)
        assert service.authenticate("USERNAME_abcd1234", self.OLD)
        assert service.sessions.resolve(registered.session.token) == registered.account.id

    def test_deleted_account_is_forbidden(self, service, registered):
        service.delete_account(registered.account.id, self.OLD)
        with pytest.raises(Forbidden):
            service.change_password(registered.account.id, self.OLD, self.NEW)


def test_logout_destroys_only_that_session(service):
    a = service.register("logoutTester", "placeholder password", "")
    b = service.authenticate("logoutTester", "placeholder password")
    service.logout(a.session.token)
    assert service.sessions.resolve(a.session.token) is None
    assert service.sessions.resolve(b.session.token) == a.account.id


def test_session_ttl_applies_to_sign_in():
    clock_now = [1_000_000.0]
    svc = make_service(ttl_seconds=30, clock=lambda: clock_now[0])
    try:
        result = svc.register("shortlived", "hunter2222", "")
        assert result.session.expires_at is not None
        clock_now[0] += 31
        assert svc.sessions.resolve(result.session.token) is None
    finally:
        svc.sessions.close()
        svc.store.close()
