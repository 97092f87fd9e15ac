"""Signing and checking HS256 access tokens."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from libapp.contracts import Claims, User, UserService

log = logging.getLogger(__name__)

ALGORITHM = "HS256"
TOKEN_LIFETIME = timedelta(hours=24)


class TokenError(Exception):
    """Raised when a token cannot be read or is not valid."""


def _to_payload(claims: Claims) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "user_id": str(claims.user_id),
        "role": claims.role,
        "email": claims.email,
    }
    if claims.expires_at is not None:
        payload["exp"] = claims.expires_at
    return payload


def _from_payload(payload: dict[str, Any]) -> Claims:
    raw_id = payload.get("user_id")
    try:
        user_id = uuid.UUID(raw_id) if raw_id else uuid.UUID(int=0)
    except (ValueError, TypeError, AttributeError) as exc:
        raise TokenError(f"invalid user id in token: {raw_id!r}") from exc

    exp = payload.get("exp")
    try:
        expires_at = datetime.fromtimestamp(exp, timezone.utc) if exp is not None else None
    except (TypeError, ValueError, OverflowError) as exc:
        raise TokenError(f"invalid expiry in token: {exp!r}") from exc

    return Claims(
        user_id=user_id,
        role=str(payload.get("role", "")),
        email=str(payload.get("email", "")),
        expires_at=expires_at,
    )


def generate_token(user_id: uuid.UUID, role: str, email: str, secret: str | bytes) -> str:
    """Sign a token for the user that expires in 24 hours."""
    claims = Claims(
        user_id=user_id,
        role=role,
        email=email,
        expires_at=datetime.now(timezone.utc) + TOKEN_LIFETIME,
    )
    return jwt.encode(_to_payload(claims), secret, algorithm=ALGORITHM)


def validate_token(token: str, service: UserService, secret: str | bytes) -> User:
    """Check the token's signature and expiry and look its user up."""
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise TokenError("token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise TokenError(str(exc)) from exc

    claims = _from_payload(payload)
    return service.get_user(claims.user_id)


def parse_token(token: str, secret: str | bytes) -> User:
    """Read the user from a token's claims without rejecting a bad signature or expiry."""
    try:
        jwt.decode(token, secret, algorithms=[ALGORITHM])
    except jwt.InvalidTokenError as exc:
        log.warning("token failed verification: %s", exc)

    try:
        payload = jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": False},
        )
    except jwt.InvalidTokenError as exc:
        raise TokenError(str(exc)) from exc

    claims = _from_payload(payload)
    return User(id=claims.user_id, email=claims.email, role=claims.role)