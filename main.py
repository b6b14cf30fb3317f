#!/usr/bin/env python3
"""
Threadline auth admin CLI.

Usage:
  python main.py create-user alice --password pw123
  python main.py create-user alice            # prompts for the password
  python main.py sessions alice
  python main.py revoke-sessions alice

revoke-sessions is the server-side forced logout: every token the user holds
stops working on its next request, signature notwithstanding.

Environment variables (see core/config.py):
  DATABASE_URL   Identity store to operate on.
  SECRET_KEY     Required unless DEBUG=true (needed to issue a first session).
  BCRYPT_ROUNDS  Work factor for new password digests.
"""

import argparse
import getpass
import logging
import sys
from typing import Optional

from auth.errors import AuthError
from auth.passwords import CredentialHasher
from auth.registry import SessionRegistry
from auth.service import AccountService
from auth.store import UserStore
from auth.tokens import TokenIssuer
from core.config import get_settings

logger = logging.getLogger("threadline.cli")


def _build(store: UserStore) -> tuple[AccountService, SessionRegistry]:
    settings = get_settings()
    registry = SessionRegistry(store)
    accounts = AccountService(
        store,
        CredentialHasher(rounds=settings.bcrypt_rounds),
        TokenIssuer(settings.secret_key, expire_seconds=settings.token_expire_seconds),
        registry,
    )
    return accounts, registry


def _user_id(store: UserStore, username: str) -> Optional[int]:
    user = store.get_by_username(username)
    if user is None:
        print(f"  [!] No user named '{username}'.")
        return None
    return user.id


def cmd_create_user(store: UserStore, args: argparse.Namespace) -> int:
    accounts, _ = _build(store)
    password = args.password or getpass.getpass(f"Password for {args.username}: ")
    user, _token = accounts.register(args.username, password)
    print(f"  Created user '{user.username}' (id={user.id})")
    return 0


def cmd_sessions(store: UserStore, args: argparse.Namespace) -> int:
    _, registry = _build(store)
    user_id = _user_id(store, args.username)
    if user_id is None:
        return 1
    print(f"  {args.username}: {registry.sessions(user_id)} live session(s)")
    return 0


def cmd_revoke_sessions(store: UserStore, args: argparse.Namespace) -> int:
    _, registry = _build(store)
    user_id = _user_id(store, args.username)
    if user_id is None:
        return 1
    registry.clear_tokens(user_id)
    logger.info("Forced logout-all for user_id=%d", user_id)
    print(f"  Revoked all sessions for '{args.username}'")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="threadline-auth",
        description="Administer Threadline accounts and sessions.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-user", help="Create an account")
    create.add_argument("username")
    create.add_argument("--password", help="Password (prompted for if omitted)")
    create.set_defaults(func=cmd_create_user)

    sessions = sub.add_parser("sessions", help="Count a user's live sessions")
    sessions.add_argument("username")
    sessions.set_defaults(func=cmd_sessions)

    revoke = sub.add_parser("revoke-sessions", help="Revoke every session of a user")
    revoke.add_argument("username")
    revoke.set_defaults(func=cmd_revoke_sessions)

    return parser


def main(argv: Optional[list[str]] = None, store: Optional[UserStore] = None) -> int:
    args = build_parser().parse_args(argv)
    owns_store = store is None
    if store is None:
        settings = get_settings()
        store = UserStore(settings.database_url, timeout_seconds=settings.store_timeout_seconds)
    try:
        return args.func(store, args)
    except AuthError as exc:
        print(f"  [!] {exc.message}")
        return 1
    finally:
        if owns_store:
            store.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)-5s %(name)s %(message)s")
    sys.exit(main())
