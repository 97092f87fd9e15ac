"""Access to values that the validation decorators store on the current request."""

from __future__ import annotations

import uuid
from typing import Any

from flask import g

_MISSING = object()


def get_body() -> Any:
    """Return the request body that ``validate_body`` parsed for this request."""
    body = g.get("body", _MISSING)
    if body is _MISSING:
        raise LookupError('key "body" does not exist')
    return body


def get_uuid_param(key: str) -> uuid.UUID:
    """Return the path parameter ``key`` that ``validate_uuid_param`` parsed."""
    params = g.get("path_params") or {}
    try:
        value = params[key]
    except KeyError:
        raise LookupError(f'key "{key}" does not exist') from None
    if not isinstance(value, uuid.UUID):
        raise TypeError(f"parameter {key!r} is not a UUID")
    return value