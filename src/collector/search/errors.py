"""Search subsystem exceptions."""


class SearchError(Exception):
    """Base class for search failures."""


class ManagedIndexError(SearchError):
    """Raised when the managed full-text index cannot answer a query.

    Covers an unavailable or unknown index as well as queries the engine
    rejects. The backend selector turns this into a fallback query.
    """

    def __init__(self, message: str, index_name: str | None = None) -> None:
        """Initialize managed index error.

        Args:
            message: Error description.
            index_name: Name of the index that was queried, if known.
        """
        super().__init__(message)
        self.index_name = index_name


class UnsupportedClauseError(ManagedIndexError):
    """Raised when a query clause cannot be evaluated by the index."""
