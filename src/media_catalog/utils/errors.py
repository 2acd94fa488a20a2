"""Exceptions raised by the media catalog."""

from enum import Enum
from typing import Optional


class MediaCatalogError(Exception):
    """Base exception for the media catalog."""

    pass


class TagReadError(MediaCatalogError):
    """A tag reader could not parse its format from a file."""

    pass


class ProbeFailure(str, Enum):
    """Reasons a stream probe can fail."""

    IO = "IO error occurred while reading stream"
    MALFORMED = "stream contained malformed data"
    UNSUPPORTED = "unsupported container or codec"
    LIMIT = "decode limit reached"


class ProbeError(MediaCatalogError):
    """Duration could not be probed from the raw audio stream."""

    def __init__(self, failure: ProbeFailure, detail: Optional[str] = None) -> None:
        """Initialize probe error.

        Args:
            failure: Failure category
            detail: Optional underlying error message
        """
        self.failure = failure
        self.detail = detail
        message = failure.value if not detail else f"{failure.value}: {detail}"
        super().__init__(message)


class IdentityCollisionError(MediaCatalogError):
    """Two different paths produced the same id."""

    def __init__(self, item_id: str, existing_path: str, new_path: str) -> None:
        """Initialize collision error."""
        self.item_id = item_id
        self.existing_path = existing_path
        self.new_path = new_path
        super().__init__(
            f"id {item_id!r} already used by {existing_path!r}, "
            f"cannot assign it to {new_path!r}"
        )


class WatchError(MediaCatalogError):
    """A watch subscription could not be started."""

    pass


class PersistenceError(MediaCatalogError):
    """Writing a snapshot to the database failed and was rolled back."""

    pass
