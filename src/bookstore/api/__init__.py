"""HTTP layer: route composition, the application factory and the book service."""

from .app import create_app
from .books import Book, BookService, BookStore
from .routing import Binding, RoutingTable, compose

__all__ = [
    "Binding",
    "Book",
    "BookService",
    "BookStore",
    "RoutingTable",
    "compose",
    "create_app",
]
