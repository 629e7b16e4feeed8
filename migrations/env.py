# migrations/env.py
from __future__ import annotations

import logging
from logging.config import fileConfig
from typing import Any, Dict, Optional

import sqlalchemy as sa
from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import make_url

# ------------------------------------------------------------
# Alembic config & logging
# ------------------------------------------------------------
config = context.config
if config.config_file_name:
    fileConfig(config.config_file_name)
log = logging.getLogger("alembic.env")

# ------------------------------------------------------------
# Helpers
# ------------------------------------------------------------
def _mask_url(url: str) -> str:
    try:
        u = make_url(url)
        if u.password:
            u = u.set(password="***")
        return str(u)
    except Exception:
        return url

def _quote_ident(ident: str) -> str:
    return '"' + ident.replace('"', '""') + '"'

def _get_database_url() -> str:
    # aceeași sursă ca aplicația: env / .env / default din Settings
    url = (settings.DATABASE_URL or "").strip()
    if url:
        return url
    ini_url = (config.get_main_option("sqlalchemy.url") or "").strip()
    if ini_url:
        return ini_url
    raise RuntimeError("Nu am găsit URL-ul DB. Setează DATABASE_URL sau sqlalchemy.url în alembic.ini.")

# ------------------------------------------------------------
# Metadata: modelele aplicației (schema vine tot din settings)
# ------------------------------------------------------------
from catalogue.core.settings import settings  # noqa: E402
from catalogue.database import Base  # noqa: E402
from catalogue.models import product  # noqa: E402,F401

target_metadata = Base.metadata
DEFAULT_SCHEMA: Optional[str] = target_metadata.schema
VERSION_TABLE = settings.ALEMBIC_VERSION_TABLE.strip() or "alembic_version"

def _common_kwargs() -> Dict[str, Any]:
    return dict(
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        include_schemas=bool(DEFAULT_SCHEMA),
        version_table=VERSION_TABLE,
        version_table_schema=DEFAULT_SCHEMA,
    )

# ------------------------------------------------------------
# Offline migrations
# ------------------------------------------------------------
def run_migrations_offline() -> None:
    url = _get_database_url()
    log.info("[alembic] offline url=%s | schema=%s | version_table=%s", _mask_url(url), DEFAULT_SCHEMA, VERSION_TABLE)

    context.configure(url=url, literal_binds=True, **_common_kwargs())

    with context.begin_transaction():
        context.run_migrations()

# ------------------------------------------------------------
# Online migrations
# ------------------------------------------------------------
def run_migrations_online() -> None:
    url = _get_database_url()
    log.info("[alembic] online url=%s | schema=%s | version_table=%s", _mask_url(url), DEFAULT_SCHEMA, VERSION_TABLE)

    engine = sa.create_engine(url, poolclass=pool.NullPool)

    with engine.connect() as connection:
        if connection.dialect.name == "postgresql" and DEFAULT_SCHEMA:
            connection.exec_driver_sql(f"CREATE SCHEMA IF NOT EXISTS {_quote_ident(DEFAULT_SCHEMA)}")
            connection.commit()

        context.configure(
            connection=connection,
            render_as_batch=connection.dialect.name == "sqlite",
            **_common_kwargs(),
        )

        with context.begin_transaction():
            context.run_migrations()

# ------------------------------------------------------------
# Entrypoint
# ------------------------------------------------------------
if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
