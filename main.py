#!/usr/bin/env python3
"""
Stashbox identity -- operator command line.

Uses the same DATABASE_URL / SESSION_BACKEND / SECRET_KEY settings as the API,
so accounts created here can log in over HTTP straight away.

Usage:
  python main.py create-account alice --email alice@example.com
  python main.py delete-account alice
  python main.py purge-sessions

Passwords are always read interactively (never from argv, where they would
land in shell history and the process list).
"""

import argparse
import getpass
import sys
from collections.abc import Callable
from typing import Optional

from auth.bootstrap import build_credential_service
from auth.errors import AuthError, Forbidden
from auth.policy import normalize_username
from auth.service import CredentialService
from core.config import get_settings


def _create_account(service: CredentialService, args, read_password: Callable[[str], str]) -> int:
    password = read_password("Password: ")
    if read_password("Repeat password: ") != password:
        print("  [!] Passwords do not match.")
        return 1
    result = service.register(args.username, password, args.email)
    # The CLI has no client to hand the session to.
    service.logout(result.session.token)
    print(f"  Created account {result.account.username} ({result.account.id}).")
    return 0


def _delete_account(service: CredentialService, args, read_password: Callable[[str], str]) -> int:
    account = service.store.find_active_by_normalized_name(normalize_username(args.username))
    if account is None:
        print(f"  [!] No active account named '{args.username}'.")
        return 1
    try:
        service.delete_account(account.id, read_password(f"Password for {account.username}: "))
    except Forbidden:
        print("  [!] Password incorrect; account not deleted.")
        return 1
    print(f"  Deleted account {account.username}. The name can be registered again.")
    return 0


def _purge_sessions(service: CredentialService, args, read_password: Callable[[str], str]) -> int:
    removed = service.sessions.purge_expired()
    print(f"  Removed {removed} expired session(s).")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stashbox-identity",
        description="Manage Stashbox accounts and sessions.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-account", help="Register a new account")
    create.add_argument("username")
    create.add_argument("--email", default="", help="Contact address stored with the account")
    create.set_defaults(handler=_create_account)

    delete = sub.add_parser("delete-account", help="Soft-delete an account (asks for its password)")
    delete.add_argument("username")
    delete.set_defaults(handler=_delete_account)

    purge = sub.add_parser("purge-sessions", help="Delete expired sessions from the session store")
    purge.set_defaults(handler=_purge_sessions)
    return parser


def run(
    argv: Optional[list[str]] = None,
    service: Optional[CredentialService] = None,
    read_password: Callable[[str], str] = getpass.getpass,
) -> int:
    """Parse argv, run one command, and return the process exit code."""
    args = build_parser().parse_args(argv)
    owned = service is None
    if service is None:
        service = build_credential_service(get_settings())
    try:
        return args.handler(service, args, read_password)
    except AuthError as exc:
        print(f"  [!] {exc.message} ({exc.code})")
        return 1
    finally:
        if owned:
            service.sessions.close()
            service.store.close()


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
