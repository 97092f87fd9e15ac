"""Errors that carry the HTTP status they should be reported with."""

from __future__ import annotations


class AppError(Exception):
    """An error with an HTTP status code and a message for the client."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    def __str__(self) -> str:
        return self.message