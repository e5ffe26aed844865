"""
The book collection: an in-memory store and its HTTP service.

Routes (relative to the configured service path, ``/books`` by default)::

    GET     /            list all books
    POST    /            add a book (409 when the ISBN already exists)
    GET     /{isbn}      fetch one book
    PUT     /{isbn}      replace a book
    DELETE  /{isbn}      remove a book

Request and response bodies go through the codec selected at startup, so
the service requires the ``media`` concern to be installed before it.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import Response

from bookstore.api.middleware.errors import problem_response
from bookstore.media.support import CodecDep, encode


@dataclass
class Book:
    isbn: str
    title: str
    authors: list[str] = field(default_factory=list)
    publisher: str = ""
    edition: str = ""
    pages: int = 0


class BookStore:
    """Thread-safe in-memory book repository keyed by ISBN."""

    def __init__(self, books: list[Book] | None = None):
        self._lock = threading.Lock()
        self._books: dict[str, Book] = {b.isbn: b for b in books or []}

    def values(self) -> list[Book]:
        with self._lock:
            return list(self._books.values())

    def get(self, isbn: str) -> Book | None:
        with self._lock:
            return self._books.get(isbn)

    def add(self, book: Book) -> bool:
        """Store *book*; ``False`` when its ISBN is already taken."""
        with self._lock:
            if book.isbn in self._books:
                return False
            self._books[book.isbn] = book
            return True

    def replace(self, book: Book) -> bool:
        """Overwrite an existing book; ``False`` when it does not exist."""
        with self._lock:
            if book.isbn not in self._books:
                return False
            self._books[book.isbn] = book
            return True

    def remove(self, isbn: str) -> bool:
        with self._lock:
            return self._books.pop(isbn, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._books)


def _not_found(request: Request, isbn: str) -> Response:
    return problem_response(
        status=404,
        title="Not Found",
        detail=f"No book with ISBN {isbn}",
        instance=request.url.path,
    )


def create_book_router(store: BookStore) -> APIRouter:
    router = APIRouter(tags=["books"])

    @router.get("")
    async def list_books(codec: CodecDep) -> Response:
        return encode(codec, store.values())

    @router.post("")
    async def add_book(request: Request, codec: CodecDep) -> Response:
        book = codec.read(await request.body(), Book)
        if not store.add(book):
            return problem_response(
                status=409,
                title="Conflict",
                detail=f"Book with ISBN {book.isbn} already exists",
                instance=request.url.path,
            )
        return encode(codec, book, status_code=201)

    @router.get("/{isbn}")
    async def get_book(isbn: str, request: Request, codec: CodecDep) -> Response:
        book = store.get(isbn)
        if book is None:
            return _not_found(request, isbn)
        return encode(codec, book)

    @router.put("/{isbn}")
    async def update_book(isbn: str, request: Request, codec: CodecDep) -> Response:
        book = codec.read(await request.body(), Book)
        if book.isbn != isbn:
            return problem_response(
                status=400,
                title="Bad Request",
                detail=f"Body ISBN {book.isbn} does not match path ISBN {isbn}",
                instance=request.url.path,
            )
        if not store.replace(book):
            return _not_found(request, isbn)
        return encode(codec, book)

    @router.delete("/{isbn}")
    async def delete_book(isbn: str, request: Request) -> Response:
        if not store.remove(isbn):
            return _not_found(request, isbn)
        return Response(status_code=204)

    return router


class BookService:
    """Routable business service for the book collection."""

    kind = "service"
    provides: frozenset[str] = frozenset({"books"})
    requires: frozenset[str] = frozenset({"media"})

    def __init__(self, store: BookStore | None = None):
        self.store = store if store is not None else BookStore()

    def install(self, app: FastAPI, prefix: str) -> None:
        app.include_router(create_book_router(self.store), prefix=prefix)


__all__ = ["Book", "BookService", "BookStore", "create_book_router"]
