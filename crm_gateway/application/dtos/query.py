"""Document store query primitives and list results.

The store client serializes these to its wire format; the router and the
test fakes only deal with these value objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Store-managed creation timestamp; list and search always order by it, newest first.
CREATED_AT = "$createdAt"
DOCUMENT_ID = "$id"


@dataclass(frozen=True)
class Query:
    """A single query primitive (method + optional attribute + values)."""

    method: str
    attribute: str | None = None
    values: tuple[Any, ...] = ()

    @classmethod
    def limit(cls, n: int) -> Query:
        return cls("limit", values=(n,))

    @classmethod
    def offset(cls, n: int) -> Query:
        return cls("offset", values=(n,))

    @classmethod
    def order_desc(cls, attribute: str) -> Query:
        return cls("orderDesc", attribute)

    @classmethod
    def search(cls, attribute: str, text: str) -> Query:
        return cls("search", attribute, (text,))

    @classmethod
    def equal(cls, attribute: str, value: Any) -> Query:
        """Equality filter; a list value matches any of its elements."""
        if isinstance(value, (list, tuple)):
            return cls("equal", attribute, tuple(value))
        return cls("equal", attribute, (value,))

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"method": self.method}
        if self.attribute is not None:
            body["attribute"] = self.attribute
        if self.values:
            body["values"] = list(self.values)
        return body


@dataclass(frozen=True)
class DocumentPage:
    """Documents returned by a list call plus the store's total match count."""

    total: int
    documents: list[dict[str, Any]] = field(default_factory=list)
