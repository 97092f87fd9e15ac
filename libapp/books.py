"""The book catalogue: models, storage, service and HTTP routes."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any

from flask import Blueprint, Response
from sqlalchemy import String, Uuid, delete
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Mapped, mapped_column, sessionmaker

from libapp import middleware, response
from libapp.database import Base
from libapp.server import Container, Module, register_module
from libapp.validators import get_body, get_uuid_param


def _required_strings(
    dto_name: str, data: dict[str, Any], keys: tuple[str, ...]
) -> dict[str, str]:
    values: dict[str, str] = {}
    problems: list[str] = []
    for key in keys:
        raw = data.get(key)
        if raw is None:
            raw = ""
        if not isinstance(raw, str):
            raise ValueError(f"field {key!r} of {dto_name} must be a string")
        if raw == "":
            field = key.capitalize()
            problems.append(
                f"Key: '{dto_name}.{field}' Error:Field validation for "
                f"'{field}' failed on the 'required' tag"
            )
        values[key] = raw
    if problems:
        raise ValueError("\n".join(problems))
    return values


@dataclass(frozen=True)
class CreateBookDTO:
    """The body of a request that adds a book."""

    title: str
    author: str

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> CreateBookDTO:
        """Build and validate from a parsed JSON object; raises ValueError."""
        return cls(**_required_strings("CreateBookDTO", data, ("title", "author")))


@dataclass(frozen=True)
class UpdateBookDTO:
    """The body of a request that changes a book."""

    title: str
    author: str

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> UpdateBookDTO:
        """Build and validate from a parsed JSON object; raises ValueError."""
        return cls(**_required_strings("UpdateBookDTO", data, ("title", "author")))


class Book(Base):
    """A book in the catalogue."""

    __tablename__ = "books"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String, default="")
    author: Mapped[str] = mapped_column(String, default="")

    def to_dict(self) -> dict[str, Any]:
        """The book as sent to clients."""
        return {"ID": str(self.id), "title": self.title, "author": self.author}


class BookNotFoundError(LookupError):
    """Raised when no book has the requested identifier."""

    def __init__(self, message: str = "book not found") -> None:
        super().__init__(message)


def migrate(engine: Engine) -> None:
    """Create the books table."""
    Base.metadata.create_all(engine, tables=[Book.__table__])


class BookRepository:
    """Stores and looks up books."""

    def __init__(self, engine: Engine) -> None:
        self._sessions = sessionmaker(engine, expire_on_commit=False)

    def get_all(self) -> list[Book]:
        with self._sessions() as session:
            return list(session.query(Book).all())

    def get_by_id(self, book_id: uuid.UUID) -> Book:
        """Return the book with ``book_id``; raises BookNotFoundError if there is none."""
        with self._sessions() as session:
            book = session.get(Book, book_id)
        if book is None:
            raise BookNotFoundError()
        return book

    def create(self, book: Book) -> None:
        if book.id is None:
            book.id = uuid.uuid4()
        with self._sessions.begin() as session:
            session.add(book)

    def update(self, book: Book) -> None:
        with self._sessions.begin() as session:
            session.merge(book)

    def delete(self, book_id: uuid.UUID) -> None:
        """Remove the book with ``book_id``; a missing book is not an error."""
        with self._sessions.begin() as session:
            session.execute(delete(Book).where(Book.id == book_id))


class BookService:
    """Catalogue operations used by the HTTP handlers."""

    def __init__(self, repo: BookRepository) -> None:
        self._repo = repo

    def get_all_books(self) -> list[Book]:
        return self._repo.get_all()

    def get_book(self, book_id: uuid.UUID) -> Book:
        return self._repo.get_by_id(book_id)

    def create_book(self, dto: CreateBookDTO) -> Book:
        book = Book(title=dto.title, author=dto.author)
        self._repo.create(book)
        return book

    def update_book(self, book_id: uuid.UUID, dto: UpdateBookDTO) -> Book:
        book = self._repo.get_by_id(book_id)
        book.title = dto.title
        book.author = dto.author
        self._repo.update(book)
        return book

    def delete_book(self, book_id: uuid.UUID) -> None:
        self._repo.delete(book_id)


class BookHandler:
    """HTTP views for the book routes."""

    def __init__(self, service: BookService) -> None:
        self._service = service

    def get_books(self) -> Response:
        books = self._service.get_all_books()
        return response.success([book.to_dict() for book in books])

    def get_book(self) -> Response:
        book_id = get_uuid_param("id")
        try:
            book = self._service.get_book(book_id)
        except (LookupError, SQLAlchemyError):
            return response.not_found("Book not Found")
        return response.success(book.to_dict())

    def create_book(self) -> Response:
        book = self._service.create_book(get_body())
        return response.created(book.to_dict())

    def update_book(self) -> Response:
        book_id = get_uuid_param("id")
        book = self._service.update_book(book_id, get_body())
        return response.success(book.to_dict())

    def delete_book(self) -> Response:
        self._service.delete_book(get_uuid_param("id"))
        return response.success({"message": "book deleted"})


def register_book_routes(blueprint: Blueprint, handler: BookHandler) -> None:
    """Add the /books routes to ``blueprint``."""
    group = Blueprint("books", __name__, url_prefix="/books")
    authenticated = middleware.auth_middleware()
    editors = middleware.require_role("librarian", "admin")
    admins = middleware.require_role("admin")
    by_id = middleware.validate_uuid_param("id")

    group.add_url_rule("", "list", handler.get_books, methods=["GET"])
    group.add_url_rule("/<id>", "get", by_id(handler.get_book), methods=["GET"])
    group.add_url_rule(
        "",
        "create",
        authenticated(editors(middleware.validate_body(CreateBookDTO)(handler.create_book))),
        methods=["POST"],
    )
    group.add_url_rule(
        "/<id>",
        "update",
        authenticated(
            editors(by_id(middleware.validate_body(UpdateBookDTO)(handler.update_book)))
        ),
        methods=["PUT"],
    )
    group.add_url_rule(
        "/<id>",
        "delete",
        authenticated(admins(by_id(handler.delete_book))),
        methods=["DELETE"],
    )
    blueprint.register_blueprint(group)


@dataclass
class BookModule(Module):
    """The book feature and its handler."""

    handler: BookHandler

    def register_routes(self, blueprint: Blueprint) -> None:
        register_book_routes(blueprint, self.handler)


@register_module
def new_module(container: Container) -> BookModule:
    """Migrate the books table, wire the service and return the module."""
    migrate(container.db)
    repo = BookRepository(container.db)
    service = BookService(repo)
    return BookModule(handler=BookHandler(service))