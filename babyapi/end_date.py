"""Soft deletion of resources by giving them an end date."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable


@runtime_checkable
class EndDateable(Protocol):
    """A resource that is end-dated instead of being deleted."""

    def end_dated(self) -> bool:
        """Return True if the resource has been end-dated."""
        ...

    def set_end_date(self, when: datetime) -> None:
        """Mark the resource as ended at the given time."""
        ...


def end_dated_query_param(value: bool) -> dict[str, list[str]]:
    """Query parameters that filter resources by whether they are end-dated."""
    rendered = str(bool(value)).lower()
    return {"end_dated": [rendered]}