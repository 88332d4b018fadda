"""
Name: Admin Bootstrap Script

Responsibilities:
  - Crear la primera cuenta ADMIN (idempotente: si el email existe, no toca nada)
  - Aplicar la misma política de password que el registro
  - Persistir vía PostgresUserRepository (hash Argon2, email ya verificado)

Usage:
  DATABASE_URL=postgresql://... python scripts/create_admin.py --email a@b.com --name Admin
"""

from __future__ import annotations

import argparse
import getpass
import os
import sys
from uuid import uuid4

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from app.crosscutting.config import get_settings  # noqa: E402
from app.crosscutting.exceptions import ConflictError  # noqa: E402
from app.domain.entities import User, UserRole  # noqa: E402
from app.identity.password_policy import password_policy_violation  # noqa: E402
from app.identity.passwords import hash_password  # noqa: E402
from app.infrastructure.db.pool import close_pool, init_pool  # noqa: E402
from app.infrastructure.repositories.postgres.user import (  # noqa: E402
    PostgresUserRepository,
)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Bootstrap the first admin account.")
    parser.add_argument("--email", help="stored exactly as typed (trimmed)")
    parser.add_argument("--name", help="2-60 characters")
    parser.add_argument("--password", help="prompted when omitted")
    parser.add_argument("--inactive", action="store_true")
    return parser


def _ask(label: str, secret: bool = False) -> str:
    read = getpass.getpass if secret else input
    value = read(f"{label}: ").strip()
    if not value:
        sys.exit(f"{label} is required.")
    return value


def _collect(args: argparse.Namespace) -> tuple[str, str, str]:
    email = (args.email or "").strip() or _ask("Email")
    name = (args.name or "").strip() or _ask("Name")
    if not 2 <= len(name) <= 60:
        sys.exit("Name must be between 2 and 60 characters.")

    password = args.password
    if not password:
        password = _ask("Password", secret=True)
        if password != _ask("Confirm password", secret=True):
            sys.exit("Passwords do not match.")
    if violation := password_policy_violation(password):
        sys.exit(violation)
    return email, name, password


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    email, name, password = _collect(args)

    settings = get_settings()
    database_url = os.getenv("DATABASE_URL") or settings.database_url
    init_pool(database_url, min_size=1, max_size=1)
    try:
        users = PostgresUserRepository()
        existing = users.get_by_email(email)
        if existing is not None:
            print(f"Already exists: id={existing.id} role={existing.role.value}")
            return 0
        try:
            admin = users.create(
                User(
                    id=uuid4(),
                    name=name,
                    email=email,
                    password_hash=hash_password(password),
                    role=UserRole.ADMIN,
                    is_active=not args.inactive,
                    is_email_verified=True,
                )
            )
        except ConflictError:
            print(f"Already exists: {email}")
            return 0
        print(f"Created admin: id={admin.id} email={admin.email}")
        return 0
    finally:
        close_pool()


if __name__ == "__main__":
    raise SystemExit(main())
