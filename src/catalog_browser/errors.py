"""Exceptions raised by the catalog browser."""

from __future__ import annotations


class CatalogError(Exception):
    """Base class for catalog browser errors."""


class RequestFailed(CatalogError):
    """A catalog request returned a non-success status or never completed.

    ``status`` is None for transport failures (connection refused, DNS, timeout).
    """

    def __init__(
        self,
        endpoint: str,
        status: int | None,
        *,
        method: str = "GET",
        reason: str | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.status = status
        self.method = method
        self.reason = reason
        detail = status if status is not None else "no response"
        message = f"{method} {endpoint} failed: {detail}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class ValidationIncomplete(CatalogError):
    """A create submission is missing required fields."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing required fields: {', '.join(self.missing)}")
