#!/usr/bin/env python3
"""
Thingful -- operator commands for the authentication service.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8000 --reload
  python main.py check-password
  python main.py create-user --full-name "A B" --user-name ab
  python main.py create-user --full-name "A B" --user-name ab --nickname abby

Passwords are always read with getpass, never from argv, so they do not land
in shell history or the process list.

Environment variables (see core/config.py):
  SECRET_KEY      JWT signing secret, at least 32 characters. Required unless DEBUG=true.
  DATABASE_URL    SQLAlchemy URL for the user store.
  BCRYPT_ROUNDS   bcrypt cost factor (default 12).
"""

import argparse
import asyncio
import getpass
import sys
from typing import Optional

from auth.errors import AuthError
from auth.flows import RegistrationFlow
from auth.passwords import CredentialHasher, validate_password
from auth.store import UserStore
from core.config import get_settings


def _read_password(confirm: bool = True) -> str:
    password = getpass.getpass("Password: ")
    if confirm and getpass.getpass("Confirm password: ") != password:
        print("  [!] Passwords do not match.")
        sys.exit(1)
    return password


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def cmd_check_password(args: argparse.Namespace) -> int:
    """Run a password through the registration policy without storing anything."""
    error = validate_password(_read_password(confirm=False))
    if error is not None:
        print(f"  [!] {error.message}")
        return 1
    print("  Password meets the policy.")
    return 0


def cmd_create_user(args: argparse.Namespace) -> int:
    """Register an account through the same flow POST /api/users uses."""
    settings = get_settings()
    password = _read_password()
    store = UserStore(settings.database_url)
    flow = RegistrationFlow(store, CredentialHasher(rounds=settings.bcrypt_rounds))
    try:
        user = asyncio.run(
            flow.register(
                full_name=args.full_name,
                user_name=args.user_name,
                password=password,
                nickname=args.nickname,
            )
        )
    except AuthError as exc:
        print(f"  [!] {exc.message}")
        return 1
    finally:
        store.close()
    print(f"  Created user {user.user_name!r} (id={user.id}).")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="thingful",
        description="Operator commands for the Thingful authentication service.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve = sub.add_parser("serve", help="Run the API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development only)")
    serve.set_defaults(func=cmd_serve)

    check = sub.add_parser("check-password", help="Check a password against the registration policy")
    check.set_defaults(func=cmd_check_password)

    create = sub.add_parser("create-user", help="Register a new account from the shell")
    create.add_argument("--full-name", required=True, help="Display name")
    create.add_argument("--user-name", required=True, help="Unique login name")
    create.add_argument("--nickname", default=None, help="Optional nickname")
    create.set_defaults(func=cmd_create_user)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 0
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
