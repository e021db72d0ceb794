"""Immutable request contexts carrying loggers, request bodies and resources."""

from __future__ import annotations

import logging
from typing import Any, NewType

ContextKey = NewType("ContextKey", str)
"""Key under which an API stores its resource in a request context."""

_LOGGER_KEY = object()
_REQUEST_BODY_KEY = object()


class ResourceNotFoundError(LookupError):
    """Raised when a requested resource is absent."""

    def __init__(self, message: str = "resource not found") -> None:
        super().__init__(message)


class Context:
    """An immutable set of values; adding a value returns a new context."""

    __slots__ = ("_values",)

    def __init__(self) -> None:
        self._values: dict[Any, Any] = {}

    def with_value(self, key: Any, value: Any) -> Context:
        """Return a new context with key set to value, leaving this one unchanged."""
        if key is None:
            raise TypeError("context key must not be None")
        child = Context()
        child._values = {**self._values, key: value}
        return child

    def value(self, key: Any) -> Any:
        """Return the value stored for key, or None."""
        return self._values.get(key)

    def __repr__(self) -> str:
        return f"Context({len(self._values)} values)"


def get_logger_from_context(ctx: Context) -> tuple[logging.Logger, bool]:
    """Return the logger stored in ctx and True, or the root logger and False."""
    logger = ctx.value(_LOGGER_KEY)
    if not isinstance(logger, logging.Logger):
        return logging.getLogger(), False
    return logger, True


def new_context_with_logger(ctx: Context, logger: logging.Logger) -> Context:
    """Return a context that carries the given logger."""
    return ctx.with_value(_LOGGER_KEY, logger)


def get_request_body_from_context(ctx: Context, kind: type | tuple[type, ...]) -> Any:
    """Return the request body stored in ctx if it is of the given kind, else None."""
    value = ctx.value(_REQUEST_BODY_KEY)
    if not isinstance(value, kind):
        return None
    return value


def new_context_with_request_body(ctx: Context, item: Any) -> Context:
    """Return a context that carries the decoded request body."""
    return ctx.with_value(_REQUEST_BODY_KEY, item)


def get_resource_from_context(ctx: Context, key: str, kind: type | tuple[type, ...]) -> Any:
    """Return the resource stored under key.

    Raises ResourceNotFoundError if nothing is stored and TypeError if the
    stored value is not of the given kind.
    """
    value = ctx.value(key)
    if value is None:
        raise ResourceNotFoundError()
    if not isinstance(value, kind):
        raise TypeError(f"unexpected type {type(value).__name__} in context")
    return value