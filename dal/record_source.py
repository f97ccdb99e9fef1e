"""Record source contract shared by the REST backend client and the local store."""

from __future__ import annotations

from typing import Any, Dict, List, Protocol, Sequence

from models.image_record import ImageRecord


class RecordSourceError(RuntimeError):
    """Raised when the record source cannot complete a request."""


class AuthorizationError(RecordSourceError):
    """Raised when the record source rejects the request as unauthenticated."""


class RecordSource(Protocol):
    """Async interface the gallery core consumes.

    Implementations raise `RecordSourceError` (or `AuthorizationError`) on
    failure and never return partial success silently.
    """

    supports_bulk_update: bool

    async def fetch_records(self) -> List[ImageRecord]:
        """Return the full, fresh record collection."""
        ...

    async def bulk_update(self, image_ids: Sequence[int], updates: Dict[str, Any]) -> None:
        """Apply `updates` to every id atomically."""
        ...

    async def update_record(self, image_id: int, updates: Dict[str, Any]) -> None:
        ...

    async def delete_record(self, image_id: int) -> None:
        ...

    async def fetch_image(self, record: ImageRecord) -> bytes:
        """Return the binary content behind a record's media URL."""
        ...

    async def download_image(self, image_id: int) -> bytes:
        """Return image bytes through the fetch-by-id endpoint."""
        ...
