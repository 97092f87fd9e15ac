"""Request hooks and view decorators for authentication, validation and errors."""

from __future__ import annotations

import functools
import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from flask import Flask, Response, g, jsonify, request

from libapp import response
from libapp.contracts import User, UserService
from libapp.errors import AppError
from libapp.jwt_tokens import validate_token

log = logging.getLogger(__name__)

View = Callable[..., Any]
Decorator = Callable[[View], View]

REQUEST_ID_HEADER = "X-Request-ID"
_BEARER_PREFIX = "Bearer "


@dataclass
class _AuthSettings:
    service: UserService | None = None
    secret: str | bytes = bytes()


_auth = _AuthSettings()


class PermissionChecker(Protocol):
    def has_permission(self, role_name: str, permission_name: str) -> bool: ...


def set_user_service(service: UserService, secret: str | bytes) -> None:
    """Set the service and signing secret that ``auth_middleware`` uses."""
    _auth.service = service
    _auth.secret = secret


def auth_middleware() -> Decorator:
    """Require a valid bearer token and store its user on the request."""

    def decorator(view: View) -> View:
        @functools.wraps(view)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            header = request.headers.get("Authorization", "")
            if not header:
                return response.unauthorized("Unauthorized")

            service = _auth.service
            if service is None:
                raise RuntimeError("no user service has been set")

            credentials = header.removeprefix(_BEARER_PREFIX)
            try:
                user = validate_token(credentials, service, _auth.secret)
            except Exception as exc:  # any failure of the token or of the lookup
                log.debug("authentication failed: %s", exc)
                return response.unauthorized("Invalid token or user not found")

            g.user = user
            return view(*args, **kwargs)

        return wrapper

    return decorator


def get_user() -> User:
    """Return the user that ``auth_middleware`` authenticated."""
    user = g.get("user")
    if not isinstance(user, User):
        raise RuntimeError("no authenticated user on this request")
    return user


def get_role() -> str:
    """Return the role of the authenticated user."""
    return get_user().role


def _is_http_error(exc: BaseException) -> bool:
    return isinstance(getattr(exc, "code", None), int) and callable(
        getattr(exc, "get_response", None)
    )


def error_handler(app: Flask) -> None:
    """Turn exceptions raised by views into JSON error replies."""

    def handle(exc: Exception) -> Any:
        if isinstance(exc, AppError):
            resp = jsonify({"success": False, "error": exc.message})
            resp.status_code = exc.status_code
            return resp
        if _is_http_error(exc):
            return exc
        resp = jsonify({"error": str(exc)})
        resp.status_code = 500
        return resp

    app.register_error_handler(Exception, handle)


def logger(app: Flask) -> None:
    """Log method, path, status and duration of every request."""

    @app.before_request
    def _start_timer() -> None:
        g.request_started = time.perf_counter()

    @app.after_request
    def _log_request(resp: Response) -> Response:
        started = g.get("request_started")
        duration = time.perf_counter() - started if started is not None else 0.0
        log.info(
            "%s %s %d %s",
            request.method,
            request.path,
            resp.status_code,
            f"{duration * 1000:.3f}ms",
        )
        return resp


def recovery(app: Flask) -> None:
    """Reply with a plain 500 to any failure nothing else handled."""

    def handle(exc: Exception) -> Response:
        original = getattr(exc, "original_exception", None) or exc
        log.error("PANIC: %r", original)
        resp = jsonify({"error": "internal server error"})
        resp.status_code = 500
        return resp

    app.register_error_handler(500, handle)


def request_id(app: Flask) -> None:
    """Give every request a fresh identifier and echo it in a response header."""

    @app.before_request
    def _assign_request_id() -> None:
        g.request_id = str(uuid.uuid4())

    @app.after_request
    def _add_request_id_header(resp: Response) -> Response:
        rid = g.get("request_id")
        if rid is not None:
            resp.headers[REQUEST_ID_HEADER] = rid
        return resp


def require_permission(service: PermissionChecker, permission: str) -> Decorator:
    """Allow the request only if the request's role holds ``permission``."""

    def decorator(view: View) -> View:
        @functools.wraps(view)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            role_name = g.get("role", "")
            if not service.has_permission(role_name, permission):
                return response.forbidden(
                    "You do not have permission to access this resource"
                )
            return view(*args, **kwargs)

        return wrapper

    return decorator


def require_role(*roles: str) -> Decorator:
    """Allow the request only if the authenticated user has one of ``roles``."""

    def decorator(view: View) -> View:
        @functools.wraps(view)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            if get_user().role in roles:
                return view(*args, **kwargs)
            return response.forbidden("Insufficient permissions")

        return wrapper

    return decorator


def validate_body(dto_type: Any) -> Decorator:
    """Parse the JSON body into ``dto_type`` and store it for ``get_body``.

    The type is built with its ``from_json`` class method when it has one,
    otherwise by passing the object's members as keyword arguments. Either
    way a ValueError or TypeError marks the body as invalid.
    """
    build: Callable[[dict[str, Any]], Any] = getattr(dto_type, "from_json", None) or (
        lambda data: dto_type(**data)
    )

    def decorator(view: View) -> View:
        @functools.wraps(view)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            payload = request.get_json(force=True, silent=True)
            try:
                if not isinstance(payload, dict):
                    raise ValueError("request body must be a JSON object")
                body = build(payload)
            except (ValueError, TypeError) as exc:
                log.info("Invalid request body: %s", exc)
                return response.bad_request(f'"Invalid request body"{exc}')
            g.body = body
            return view(*args, **kwargs)

        return wrapper

    return decorator


def validate_uuid_param(key: str) -> Decorator:
    """Parse the path parameter ``key`` as a UUID and store it for ``get_uuid_param``.

    The parameter is taken out of the view's keyword arguments.
    """

    def decorator(view: View) -> View:
        @functools.wraps(view)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            raw = kwargs.pop(key, "")
            if isinstance(raw, uuid.UUID):
                parsed = raw
            else:
                try:
                    parsed = uuid.UUID(str(raw))
                except ValueError as exc:
                    return response.bad_request(f"Invalid UUID parameter: {exc}")
            g.setdefault("path_params", {})[key] = parsed
            return view(*args, **kwargs)

        return wrapper

    return decorator