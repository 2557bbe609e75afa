"""Search exceptions.

Bad filter input is never an error: it is normalised when criteria are
built. The errors here are the conditions a search cannot recover from
within one request.
"""

from typing import Any


class SearchError(Exception):
    """Base class for all search exceptions.

    Allows the HTTP layer to catch search-specific failures in one place.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize search error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class CatalogUnavailableError(SearchError):
    """Raised when the catalog data store cannot be read.

    Covers connection failures, driver errors and read timeouts. Fatal
    for the current request; retries belong to the caller.
    """

    def __init__(self, operation: str, reason: str) -> None:
        """Initialize catalog unavailable error.

        Args:
            operation: Read that failed (e.g. "count", "load_categories").
            reason: Underlying error description.
        """
        super().__init__(
            f"Catalog unavailable during {operation}: {reason}",
            details={"operation": operation, "reason": reason},
        )


class SearchAbandonedError(SearchError):
    """Raised when the caller gave up before a read could start."""

    def __init__(self, operation: str) -> None:
        """Initialize search abandoned error.

        Args:
            operation: Read that was not started.
        """
        super().__init__(
            f"Search abandoned before {operation}",
            details={"operation": operation},
        )
