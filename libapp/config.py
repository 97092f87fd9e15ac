"""Application settings read from the environment and an optional .env file."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

log = logging.getLogger(__name__)

_INTEGER = re.compile(r"[+-]?\d+")


class ConfigError(ValueError):
    """Raised when a required setting cannot be read."""


@dataclass(frozen=True)
class Config:
    """Settings for tokens, the database and password hashing."""

    jwt_secret: str
    jwt_expiration: int
    db_host: str
    db_port: str
    db_user: str
    db_password: str
    db_name: str
    memory: int
    iterations: int
    parallelism: int
    key_length: int
    salt_length: int


def _load_dotenv_file() -> None:
    env_file = Path.cwd() / ".env"
    if env_file.is_file():
        load_dotenv(env_file)
    else:
        log.info(".env file not found, using system environment")


def _as_int(environ: Mapping[str, str], key: str) -> int:
    value = environ.get(key, "")
    if not _INTEGER.fullmatch(value):
        raise ConfigError(f"Error converting {key} to int: invalid value {value!r}")
    return int(value)


def load_config(environ: Mapping[str, str] | None = None) -> Config:
    """Build a Config from ``environ``, or from the process environment and .env."""
    if environ is None:
        _load_dotenv_file()
        environ = os.environ

    return Config(
        jwt_secret=environ.get("JWT_SECRET", ""),
        jwt_expiration=_as_int(environ, "JWT_EXPIRATION_HOURS"),
        db_host=environ.get("DB_HOST", ""),
        db_port=environ.get("DB_PORT", ""),
        db_user=environ.get("DB_USER", ""),
        db_password=environ.get("DB_PASSWORD", ""),
        db_name=environ.get("DB_NAME", ""),
        memory=_as_int(environ, "MEMORY") * 1024,
        iterations=_as_int(environ, "ITERATIONS"),
        parallelism=_as_int(environ, "PARALLELISM"),
        key_length=_as_int(environ, "KEYLENGTH"),
        salt_length=_as_int(environ, "SALTLENGTH"),
    )