"""Command-line interface (``bookstore``)."""
