"""Argon2id password hashes stored as ``<salt>.<hash>`` in unpadded base64."""

from __future__ import annotations

import base64
import hmac
import secrets

from cryptography.hazmat.primitives.kdf.argon2 import Argon2id

from libapp.config import Config

_SEPARATOR = "."


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii").rstrip("=")


def _b64decode(text: str) -> bytes:
    if "=" in text or len(text) % 4 == 1:
        raise ValueError("illegal base64 data")
    return base64.b64decode(text + "=" * (-len(text) % 4), validate=True)


def _derive(password: str, salt: bytes, config: Config) -> bytes:
    lanes = config.parallelism
    memory = max(config.memory, 8 * lanes)
    kdf = Argon2id(
        salt=salt,
        length=config.key_length,
        iterations=config.iterations,
        lanes=lanes,
        memory_cost=memory,
    )
    return kdf.derive(password.encode("utf-8"))


def hash_password(password: str, config: Config) -> str:
    """Hash ``password`` with a fresh random salt.

    Raises ValueError when the configured parameters are out of range.
    """
    salt = secrets.token_bytes(config.salt_length)
    digest = _derive(password, salt, config)
    return _b64encode(salt) + _SEPARATOR + _b64encode(digest)


def verify_password(password: str, encoded: str, config: Config) -> bool:
    """Whether ``password`` matches the stored ``encoded`` hash."""
    salt_text, sep, hash_text = encoded.partition(_SEPARATOR)
    if not sep:
        return False
    try:
        salt = _b64decode(salt_text)
        expected = _b64decode(hash_text)
        actual = _derive(password, salt, config)
    except ValueError:
        return False
    return hmac.compare_digest(actual, expected)