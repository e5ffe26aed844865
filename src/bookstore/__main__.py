"""Allow ``python -m bookstore``."""

from bookstore.cli.app import app

app()
