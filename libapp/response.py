"""JSON response envelopes for success and error replies."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any

from flask import Response, g, jsonify


def _respond(status: int, body: dict[str, Any]) -> Response:
    request_id = g.get("request_id")
    if request_id is not None:
        body["request_id"] = request_id
    resp = jsonify(body)
    resp.status_code = int(status)
    return resp


def error(status: int, message: str) -> Response:
    """An error envelope with the given status."""
    return _respond(status, {"success": False, "error": message})


def bad_request(message: str) -> Response:
    return error(HTTPStatus.BAD_REQUEST, message)


def not_found(message: str) -> Response:
    return error(HTTPStatus.NOT_FOUND, message)


def internal() -> Response:
    return error(HTTPStatus.INTERNAL_SERVER_ERROR, "internal server error")


def unauthorized(message: str) -> Response:
    return error(HTTPStatus.UNAUTHORIZED, message)


def forbidden(message: str) -> Response:
    return error(HTTPStatus.FORBIDDEN, message)


def conflict(message: str) -> Response:
    return error(HTTPStatus.CONFLICT, message)


def _success_body(data: Any) -> dict[str, Any]:
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    return body


def success(data: Any) -> Response:
    """A 200 envelope around ``data``."""
    return _respond(HTTPStatus.OK, _success_body(data))


def created(data: Any) -> Response:
    """A 201 envelope around ``data``."""
    return _respond(HTTPStatus.CREATED, _success_body(data))