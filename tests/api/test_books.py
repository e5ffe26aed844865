"""Tests for the book store and its HTTP service."""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from bookstore.api.books import Book, BookService, BookStore
from bookstore.api.middleware.errors import bookstore_error_handler
from bookstore.core.errors import BookstoreError
from bookstore.media.codecs import JsonpCodec
from bookstore.media.support import MediaSupport

DUNE = Book("978-0441172719", "Dune", ["Frank Herbert"], "Ace", "1st", 604)


class TestBookStore:
    def test_add_and_get(self):
        store = BookStore()
        assert store.add(DUNE) is True
        assert store.get(DUNE.isbn) == DUNE
        assert len(store) == 1

    def test_add_duplicate(self):
        store = BookStore([DUNE])
        assert store.add(DUNE) is False

    def test_replace_missing(self):
        assert BookStore().replace(DUNE) is False

    def test_remove(self):
        store = BookStore([DUNE])
        assert store.remove(DUNE.isbn) is True
        assert store.remove(DUNE.isbn) is False
        assert store.values() == []


@pytest.fixture
def client() -> TestClient:
    app = FastAPI()
    app.add_exception_handler(BookstoreError, bookstore_error_handler)
    MediaSupport(JsonpCodec()).install(app, "/")
    BookService(BookStore([DUNE])).install(app, "/books")
    return TestClient(app)


class TestBookService:
    def test_declares_media_requirement(self):
        assert BookService().requires == frozenset({"media"})

    def test_list(self, client):
        resp = client.get("/books")
        assert resp.status_code == 200
        assert [b["isbn"] for b in resp.json()] == [DUNE.isbn]

    def test_get_missing(self, client):
        resp = client.get("/books/0000")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "No book with ISBN 0000"

    def test_post_conflict(self, client):
        resp = client.post("/books", content=b'{"isbn": "978-0441172719", "title": "Dune"}')
        assert resp.status_code == 409

    def test_put_replaces(self, client):
        resp = client.put(f"/books/{DUNE.isbn}", content=b'{"isbn": "978-0441172719", "title": "Dune Messiah"}')
        assert resp.status_code == 200
        assert client.get(f"/books/{DUNE.isbn}").json()["title"] == "Dune Messiah"

    def test_put_isbn_mismatch(self, client):
        resp = client.put(f"/books/{DUNE.isbn}", content=b'{"isbn": "1", "title": "Other"}')
        assert resp.status_code == 400

    def test_put_missing(self, client):
        resp = client.put("/books/1", content=b'{"isbn": "1", "title": "Other"}')
        assert resp.status_code == 404

    def test_delete(self, client):
        assert client.delete(f"/books/{DUNE.isbn}").status_code == 204
        assert client.get(f"/books/{DUNE.isbn}").status_code == 404
        assert client.delete(f"/books/{DUNE.isbn}").status_code == 404
