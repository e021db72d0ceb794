"""CRUD API descriptions with nested resources, an HTTP client and a command line client."""

__version__ = "0.1.0"

__all__ = ["api", "cli", "client", "context", "end_date", "errors"]