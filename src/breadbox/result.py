"""
Lookup results for id-scoped operations.

read/edit/delete answer with Found(row) or NotFound() so callers can
pattern-match on the outcome:

    match await people.read(7):
        case Found(row):
            ...
        case NotFound():
            ...
"""

from dataclasses import dataclass
from typing import Any, Callable

from breadbox.errors import NotFoundError


@dataclass(frozen=True)
class Found:
    value: dict[str, Any]

    def __bool__(self) -> bool:
        return True

    def unwrap(self) -> dict[str, Any]:
        return self.value

    def unwrap_or(self, default: Any) -> dict[str, Any]:
        return self.value

    def or_else(self, producer: Callable[[], Any]) -> dict[str, Any]:
        return self.value


@dataclass(frozen=True)
class NotFound:
    table: str | None = None
    key: Any = None

    @property
    def value(self) -> None:
        return None

    def __bool__(self) -> bool:
        return False

    def unwrap(self):
        raise NotFoundError(f"No row in {self.table} with key {self.key!r}")

    def unwrap_or(self, default: Any) -> Any:
        return default

    def or_else(self, producer: Callable[[], Any]) -> Any:
        """Evaluate the caller's fallback producer. Whatever it raises propagates."""
        return producer()


Lookup = Found | NotFound
