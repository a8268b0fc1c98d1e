#!/usr/bin/env python3
"""Add a user to the SQL-backed user directory.

Usage:
  USER_STORE_URL=sqlite:///users.db python scripts/create_user.py alice --role Admin

The password is read interactively and stored as a PBKDF2 hash.
"""

from __future__ import annotations

import argparse
from getpass import getpass

from sqlalchemy.exc import IntegrityError

from auth.passwords import hash_password
from auth.store import ADMIN_ROLE, USER_ROLE, SqlUserDirectory
from core.config import get_settings


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a user in the SQL user directory.")
    parser.add_argument("username")
    parser.add_argument("--role", choices=[ADMIN_ROLE, USER_ROLE], default=USER_ROLE)
    parser.add_argument("--db-url", default=None, help="Defaults to USER_STORE_URL.")
    args = parser.parse_args()

    db_url = args.db_url or get_settings().user_store_url
    if not db_url:
        raise SystemExit("Set USER_STORE_URL or pass --db-url")

    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")
    if not pw1:
        raise SystemExit("Password cannot be empty")

    store = SqlUserDirectory(db_url)
    try:
        user_id = store.add_user(args.username, hash_password(pw1), role=args.role)
    except IntegrityError:
        raise SystemExit(f"User {args.username!r} already exists")
    finally:
        store.close()
    print(f"OK -> user {args.username} (id={user_id}, role={args.role})")


if __name__ == "__main__":
    main()
