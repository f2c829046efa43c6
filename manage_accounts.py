#!/usr/bin/env python3
"""
Account maintenance for the HomeFix SQLite database.

Administrators cannot register through the API, so they are created
here.  The script never reads or reveals existing passwords; it only
writes new hashes.

Usage:
    python manage_accounts.py create-admin --email admin@ex.com --first-name Ada --last-name Admin
    python manage_accounts.py reset-password --email admin@ex.com
    python manage_accounts.py issue-token --email admin@ex.com --days 365

The database is the one configured by ``DATABASE_URL``.  If
``--password`` is omitted, you will be prompted to enter it securely.
"""

import argparse
import asyncio
import getpass
import sys

from homefix_api.app.core.db import init_db
from homefix_api.app.core.exceptions import HomefixError
from homefix_api.app.core.security import create_access_token
from homefix_api.app.schemas.user import AccountCreate, Role
from homefix_api.app.services.user_service import UserService


def _read_password(args: argparse.Namespace) -> str:
    password = args.password or getpass.getpass("Enter NEW password: ")
    if len(password) < 6:
        print("[!] Password must be at least 6 characters.", file=sys.stderr)
        sys.exit(1)
    return password


async def create_admin(args: argparse.Namespace) -> None:
    data = AccountCreate(
        email=args.email,
        password=_read_password(args),
        first_name=args.first_name,
        last_name=args.last_name,
        role=Role.admin,
    )
    user = await UserService.create_user(data, allow_admin=True)
    print(f"[+] Administrator created: {user.email} (id {user.id})")


async def reset_password(args: argparse.Namespace) -> None:
    await UserService.set_password(args.email, _read_password(args))
    print(f"[+] Password updated for user: {args.email}")


async def issue_token(args: argparse.Namespace) -> None:
    user = await UserService.get_user_by_email(args.email)
    token = create_access_token(
        {"sub": str(user.id), "role": user.role.value},
        expires_delta=args.days * 24 * 60 * 60,
    )
    print(token)


def main() -> None:
    ap = argparse.ArgumentParser(description="Manage HomeFix accounts (SQLite).")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("create-admin", help="Create an administrator account")
    p.add_argument("--email", required=True)
    p.add_argument("--first-name", required=True)
    p.add_argument("--last-name", required=True)
    p.add_argument("--password", help="If omitted, you'll be prompted securely.")
    p.set_defaults(handler=create_admin)

    p = sub.add_parser("reset-password", help="Set a new password for an account")
    p.add_argument("--email", required=True)
    p.add_argument("--password", help="If omitted, you'll be prompted securely.")
    p.set_defaults(handler=reset_password)

    p = sub.add_parser("issue-token", help="Print a long-lived bearer token for an account")
    p.add_argument("--email", required=True)
    p.add_argument("--days", type=int, default=365)
    p.set_defaults(handler=issue_token)

    args = ap.parse_args()
    init_db()
    try:
        asyncio.run(args.handler(args))
    except HomefixError as e:
        print(f"[!] {e.message}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
