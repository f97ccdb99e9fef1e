"""Async Data Access Layer for the CLASSIFIED_IMAGE table.

Provides ImageDAL, a local record store compatible with
`utils.database_init.AsyncDatabaseInitializer`. It implements the same record
source contract as the REST backend client, so the gallery can run against a
SQLite file instead of a remote API.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from dal.record_adapter import parse_timestamp
from dal.record_source import RecordSourceError
from models.image_record import ImageRecord
from utils.database_init import AsyncDatabaseInitializer


class ImageDAL:
    """Data access layer for classified image records.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection`).
    """

    supports_bulk_update = True

    _COLUMNS = (
        "id",
        "user_id",
        "username",
        "original_filename",
        "image_url",
        "predicted_class",
        "confidence_score",
        "disease_type",
        "model_used",
        "is_verified",
        "uploaded_at",
    )
    _COLUMN_LIST = ", ".join(_COLUMNS)
    _UPDATABLE = {"is_verified"}

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def create_image(self, record: ImageRecord, image_data: Optional[bytes] = None) -> int:
        """Insert a new row and return its id.

        Args:
            record: Record to store; its `id` is ignored unless positive.
            image_data: Optional binary image content.

        Returns:
            The integer primary key of the created row.
        """
        uploaded_at = record.uploaded_at or datetime.now(timezone.utc)
        row_id = record.id if record.id and record.id > 0 else None

        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"INSERT INTO CLASSIFIED_IMAGE ({self._COLUMN_LIST}, image_data) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    row_id,
                    record.user_id,
                    record.username,
                    record.filename,
                    record.image_url,
                    record.disease_label,
                    record.confidence_score,
                    record.disease_type,
                    record.model_used,
                    int(record.verified),
                    uploaded_at.isoformat(),
                    image_data,
                ),
            )
            await conn.commit()
            return cur.lastrowid

    async def get_image_by_id(self, image_id: int) -> Optional[ImageRecord]:
        """Return the record for `image_id`, or None if not found."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM CLASSIFIED_IMAGE WHERE id = ?",
                (image_id,),
            )
            row = await cur.fetchone()
            return self._row_to_record(row) if row else None

    async def fetch_records(self) -> List[ImageRecord]:
        """Return every stored record, newest upload first."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM CLASSIFIED_IMAGE ORDER BY uploaded_at DESC, id DESC"
            )
            rows = await cur.fetchall()
            return [self._row_to_record(r) for r in rows]

    async def bulk_update(self, image_ids: Sequence[int], updates: Dict[str, Any]) -> None:
        """Apply `updates` to every id in one transaction.

        Raises:
            RecordSourceError: If any id does not exist; nothing is changed then.
        """
        assignments, params = self._assignments(updates)
        ids = sorted(set(image_ids))
        if not ids:
            return
        placeholders = ", ".join("?" for _ in ids)

        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"UPDATE CLASSIFIED_IMAGE SET {assignments} WHERE id IN ({placeholders})",
                (*params, *ids),
            )
            if cur.rowcount != len(ids):
                await conn.rollback()
                raise RecordSourceError(
                    f"Bulk update matched {cur.rowcount} of {len(ids)} images; no changes applied"
                )
            await conn.commit()

    async def update_record(self, image_id: int, updates: Dict[str, Any]) -> None:
        """Update one row.

        Raises:
            RecordSourceError: If the row does not exist.
        """
        assignments, params = self._assignments(updates)
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"UPDATE CLASSIFIED_IMAGE SET {assignments} WHERE id = ?",
                (*params, image_id),
            )
            await conn.commit()
            if cur.rowcount < 1:
                raise RecordSourceError(f"Image {image_id} not found")

    async def delete_record(self, image_id: int) -> None:
        """Delete one row.

        Raises:
            RecordSourceError: If the row does not exist.
        """
        async with self._db.connection() as conn:
            cur = await conn.execute("DELETE FROM CLASSIFIED_IMAGE WHERE id = ?", (image_id,))
            await conn.commit()
            if cur.rowcount < 1:
                raise RecordSourceError(f"Image {image_id} not found")

    async def download_image(self, image_id: int) -> bytes:
        """Return the stored image bytes.

        Raises:
            RecordSourceError: If the row or its image content is missing.
        """
        async with self._db.connection() as conn:
            cur = await conn.execute("SELECT image_data FROM CLASSIFIED_IMAGE WHERE id = ?", (image_id,))
            row = await cur.fetchone()
        if not row or row[0] is None:
            raise RecordSourceError(f"No image content stored for image {image_id}")
        return bytes(row[0])

    async def fetch_image(self, record: ImageRecord) -> bytes:
        return await self.download_image(record.id)

    def _assignments(self, updates: Dict[str, Any]) -> tuple:
        """Return the SET clause and parameters for a partial-field patch."""
        unknown = set(updates) - self._UPDATABLE
        if unknown or not updates:
            raise RecordSourceError(f"Unsupported update fields: {sorted(unknown) or 'none'}")
        columns = sorted(updates)
        clause = ", ".join(f"{col} = ?" for col in columns)
        return clause, [int(bool(updates[col])) for col in columns]

    @staticmethod
    def _row_to_record(row: Sequence[Any]) -> ImageRecord:
        """Convert a DB row tuple into an ImageRecord."""
        return ImageRecord(
            id=row[0],
            user_id=row[1],
            username=row[2],
            filename=row[3],
            image_url=row[4],
            disease_label=row[5] or "Unknown",
            confidence_score=float(row[6] or 0.0),
            disease_type=row[7],
            model_used=row[8],
            verified=bool(row[9]),
            uploaded_at=parse_timestamp(row[10]),
        )
