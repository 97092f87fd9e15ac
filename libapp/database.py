"""Database connection settings and the shared declarative base."""

from __future__ import annotations

import os
from collections.abc import Mapping

from sqlalchemy import URL, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base shared by every table of the application."""


def build_dsn(environ: Mapping[str, str] | None = None) -> str:
    """Return DATABASE_URL, or a PostgreSQL URL assembled from the DB_* settings."""
    env = os.environ if environ is None else environ

    url = env.get("DATABASE_URL", "")
    if url:
        if url.startswith("postgres://"):
            url = "postgresql://" + url[len("postgres://"):]
        return url

    port = env.get("DB_PORT", "")
    sslmode = env.get("DB_SSLMODE", "")
    return URL.create(
        "postgresql",
        username=env.get("DB_USER") or None,
        password=env.get("DB_PASSWORD") or None,
        host=env.get("DB_HOST") or None,
        port=int(port) if port else None,
        database=env.get("DB_NAME") or None,
        query={"sslmode": sslmode} if sslmode else {},
    ).render_as_string(hide_password=False)


def connect(environ: Mapping[str, str] | None = None) -> Engine:
    """Open the database and check that it answers."""
    dsn = build_dsn(environ)
    try:
        engine = create_engine(dsn)
        with engine.connect():
            pass
    except (SQLAlchemyError, ImportError, ValueError) as exc:
        raise ConnectionError(f"Failed to connect database: {exc}") from exc

    print("Database connected")
    return engine