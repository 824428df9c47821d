#!/usr/bin/env python3
"""
nsaccounts -- administration commands for the accounts database.

Usage:
  python main.py init-db
  python main.py create-user alice alice@example.com --password s3cret-pass --verified
  python main.py create-user root root@example.com --admin --verified
  python main.py activate alice
  python main.py delete alice
  python main.py list-users --page 0 --per 20

Database location and table names come from the same settings as the API
(DATABASE_URL, USER_TABLE, ... in the environment or .env).
"""

import argparse
import getpass
import logging
import sys
from typing import Optional

from accounts.db import Database
from accounts.namespaces import NamespaceStore
from accounts.registration import Registration, RegistrationService
from accounts.schema import TableNames
from accounts.users import UserStore
from core.config import get_settings
from core.errors import AppError

logger = logging.getLogger("nsaccounts.cli")


def _open_db(url: Optional[str]) -> Database:
    settings = get_settings()
    return Database(url or settings.database_url, TableNames.from_settings(settings))


def cmd_init_db(db: Database, args: argparse.Namespace) -> int:
    print(f"Schema ready: {db.tables.user}, {db.tables.session}, {db.tables.namespace}")
    return 0


def cmd_create_user(db: Database, args: argparse.Namespace) -> int:
    password = args.password or getpass.getpass("Password: ")
    namespaces = NamespaceStore(db)
    users = UserStore(db, namespaces)
    user = RegistrationService(db, users, namespaces).register(
        Registration(
            email=args.email,
            username=args.username,
            password=password,
            name=args.name or "",
            is_admin=args.admin,
        )
    )
    if args.verified:
        users.activate_user(user.id)
    print(f"Created user {user.username} (id={user.id}, admin={user.is_admin}, verified={args.verified})")
    return 0


def cmd_activate(db: Database, args: argparse.Namespace) -> int:
    users = UserStore(db)
    user = users.get_user_by_username(args.username)
    if user is None:
        print(f"No such user: {args.username}", file=sys.stderr)
        return 1
    if users.activate_user(user.id):
        print(f"Activated {user.username}")
    else:
        print(f"{user.username} is already active")
    return 0


def cmd_delete(db: Database, args: argparse.Namespace) -> int:
    users = UserStore(db)
    user = users.get_user_by_username(args.username)
    if user is None or not users.soft_delete_user(user.id):
        print(f"No such user: {args.username}", file=sys.stderr)
        return 1
    print(f"Deleted {args.username}")
    return 0


def cmd_list_users(db: Database, args: argparse.Namespace) -> int:
    users = UserStore(db)
    for user in users.list_all_users(args.page, args.per):
        flags = []
        if user.is_admin:
            flags.append("admin")
        if not user.verified:
            flags.append("unverified")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        print(f"{user.id:>6}  {user.username:<40} {user.email}{suffix}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nsaccounts",
        description="Administer nsaccounts users.",
    )
    parser.add_argument("--db", metavar="URL", help="Database URL (default: DATABASE_URL setting)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create the tables if they do not exist").set_defaults(func=cmd_init_db)

    p = sub.add_parser("create-user", help="Register a user and its namespace")
    p.add_argument("username")
    p.add_argument("email")
    p.add_argument("--password", help="Plaintext password (prompted when omitted)")
    p.add_argument("--name", help="Display name (defaults to the username)")
    p.add_argument("--admin", action="store_true", help="Grant admin rights")
    p.add_argument("--verified", action="store_true", help="Activate immediately")
    p.set_defaults(func=cmd_create_user)

    p = sub.add_parser("activate", help="Mark a user verified")
    p.add_argument("username")
    p.set_defaults(func=cmd_activate)

    p = sub.add_parser("delete", help="Soft-delete a user")
    p.add_argument("username")
    p.set_defaults(func=cmd_delete)

    p = sub.add_parser("list-users", help="List live users")
    p.add_argument("--page", type=int, default=0, help="0-based page number")
    p.add_argument("--per", type=int, default=get_settings().default_page_size, help="Users per page")
    p.set_defaults(func=cmd_list_users)

    return parser


def main(argv: Optional[list] = None) -> int:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s %(message)s")
    args = build_parser().parse_args(argv)
    db = _open_db(args.db)
    try:
        return args.func(db, args)
    except AppError as exc:
        print(f"Error: {exc.message}" + (f" ({exc.detail})" if exc.detail else ""), file=sys.stderr)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
