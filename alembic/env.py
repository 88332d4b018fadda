"""
============================================================
TARJETA CRC — alembic/env.py
============================================================
Responsibilities:
  - Correr las migraciones del esquema de identidad (users, stores,
    verification_tokens) en modo online u offline.
  - Resolver la URL: DATABASE_URL (Settings) > sqlalchemy.url de alembic.ini.

Collaborators:
  - app.crosscutting.config.get_settings
  - SQLAlchemy (solo como motor de migraciones; la app usa psycopg directo)

Policy:
  - Sin ORM: target_metadata = None y migraciones escritas a mano.
============================================================
"""

import os
from logging.config import fileConfig

from alembic import context
from pydantic import ValidationError
from sqlalchemy import create_engine, pool

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# R: SQLAlchemy necesita el dialecto explícito para usar psycopg 3.
_PSYCOPG_SCHEMES = ("postgresql://", "postgres://")


def database_url() -> str:
    raw = os.environ.get("DATABASE_URL")
    if not raw:
        try:
            from app.crosscutting.config import get_settings

            raw = get_settings().database_url
        except ValidationError:
            raw = config.get_main_option("sqlalchemy.url")

    for scheme in _PSYCOPG_SCHEMES:
        if raw.startswith(scheme):
            return "postgresql+psycopg://" + raw[len(scheme) :]
    return raw


def run_migrations_offline() -> None:
    context.configure(
        url=database_url(),
        target_metadata=None,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(database_url(), poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=None)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
