"""Result envelope: the one contract every data operation returns.

Both stores produce this shape before anything reaches the frontend:
``{success, result, message?, pagination?}``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Pagination:
    """Page metadata for list results."""

    page: int
    count: int
    pages: int

    @classmethod
    def for_total(cls, page: int, total: int, items: int) -> Pagination:
        """Build pagination for `total` documents at `items` per page."""
        pages = math.ceil(total / items) if items > 0 else 0
        return cls(page=page, count=total, pages=pages)

    @classmethod
    def empty(cls, page: int = 1) -> Pagination:
        return cls(page=page, count=0, pages=0)

    def to_dict(self) -> dict[str, int]:
        return {"page": self.page, "count": self.count, "pages": self.pages}


@dataclass(frozen=True)
class ResultEnvelope:
    """Uniform operation result returned by the entity router."""

    success: bool
    result: Any = None
    message: str | None = None
    pagination: Pagination | None = None

    @classmethod
    def ok(cls, result: Any, pagination: Pagination | None = None) -> ResultEnvelope:
        return cls(success=True, result=result, pagination=pagination)

    @classmethod
    def failed(
        cls,
        message: str,
        result: Any = None,
        pagination: Pagination | None = None,
    ) -> ResultEnvelope:
        return cls(success=False, result=result, message=message, pagination=pagination)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResultEnvelope:
        """Build from a primary API JSON body (pagination counts may arrive as strings)."""
        raw_pagination = data.get("pagination")
        pagination = None
        if isinstance(raw_pagination, dict):
            pagination = Pagination(
                page=int(raw_pagination.get("page") or 1),
                count=int(raw_pagination.get("count") or 0),
                pages=int(raw_pagination.get("pages") or 0),
            )
        return cls(
            success=bool(data.get("success")),
            result=data.get("result"),
            message=data.get("message") or None,
            pagination=pagination,
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON body; message and pagination are omitted when unset."""
        body: dict[str, Any] = {"success": self.success, "result": self.result}
        if self.message is not None:
            body["message"] = self.message
        if self.pagination is not None:
            body["pagination"] = self.pagination.to_dict()
        return body
