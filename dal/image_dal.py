"""Async Data Access Layer for the `images` table.

Provides ImageDAL class with the reads and writes the rotation engine and
the intake adapter need, on top of
`utils.database_init.AsyncDatabaseInitializer`. Driver errors are wrapped
in `StoreReadFailure` / `StoreWriteFailure`; nothing is retried here.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Sequence, Tuple

import aiosqlite

from models.errors import StoreReadFailure, StoreWriteFailure
from models.image_record import ImageRecord, RotationState
from utils.database_init import AsyncDatabaseInitializer
from utils.timestamps import from_db_text, to_db_text, utc_now

LOGGER = logging.getLogger(__name__)

# sqlite3 raises OverflowError for integers outside 64 bits and ValueError
# for unbindable parameters; neither is an aiosqlite.Error.
_DRIVER_ERRORS = (aiosqlite.Error, OverflowError, ValueError)


class ImageDAL:
    """Data access layer for image records.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection`).
    """

    _COLUMNS = (
        "id",
        "blob_key",
        "uploaded_at",
        "is_new",
        "is_displayed",
        "uploader_name",
        "created_at",
        "updated_at",
    )
    _COLUMN_LIST, _INSERT_COLUMNS = ", ".join(_COLUMNS), ", ".join(_COLUMNS[1:])
    # Ties on uploaded_at fall back to insertion order.
    _DISPLAY_ORDER = "ORDER BY uploaded_at ASC, id ASC"

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    @asynccontextmanager
    async def _reading(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        try:
            async with self._db.connection() as conn:
                yield conn
        except _DRIVER_ERRORS as exc:
            LOGGER.error("Image store read failed during %s: %s", operation, exc)
            raise StoreReadFailure(f"{operation} failed") from exc

    @asynccontextmanager
    async def _writing(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        try:
            async with self._db.connection() as conn:
                yield conn
        except _DRIVER_ERRORS as exc:
            LOGGER.error("Image store write failed during %s: %s", operation, exc)
            raise StoreWriteFailure(f"{operation} failed") from exc

    async def create_image(self, record: ImageRecord) -> ImageRecord:
        """Insert a new row and return the record with its id and bookkeeping set.

        Args:
            record: ImageRecord with `id=None`. Its flags are stored as given,
                so intake passes the defaults (`is_new=True, is_displayed=False`).

        Returns:
            A copy of `record` carrying the assigned id and timestamps.
        """
        now = utc_now()
        created_at = record.created_at or now

        async with self._writing("create_image") as conn:
            cur = await conn.execute(
                f"INSERT INTO images ({self._INSERT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    record.blob_key,
                    to_db_text(record.uploaded_at),
                    int(record.is_new),
                    int(record.is_displayed),
                    record.uploader_name,
                    to_db_text(created_at),
                    to_db_text(now),
                ),
            )
            await conn.commit()
            image_id = cur.lastrowid

        return ImageRecord(
            id=image_id,
            blob_key=record.blob_key,
            uploaded_at=record.uploaded_at,
            is_new=record.is_new,
            is_displayed=record.is_displayed,
            uploader_name=record.uploader_name,
            created_at=created_at,
            updated_at=now,
        )

    async def get_image_by_id(self, image_id: int) -> Optional[ImageRecord]:
        """Return ImageRecord for `image_id`, or None if not found."""
        async with self._reading("get_image_by_id") as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM images WHERE id = ?",
                (image_id,),
            )
            row = await cur.fetchone()
            return self._row_to_record(row) if row else None

    async def list_by_state(self, state: RotationState) -> List[ImageRecord]:
        """Return every record in `state`, oldest upload first."""
        async with self._reading(f"list_by_state({state.value})") as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM images WHERE {state.predicate} {self._DISPLAY_ORDER}"
            )
            rows = await cur.fetchall()
            return [self._row_to_record(r) for r in rows]

    async def list_images(self) -> List[ImageRecord]:
        """Return every record, oldest upload first."""
        async with self._reading("list_images") as conn:
            cur = await conn.execute(f"SELECT {self._COLUMN_LIST} FROM images {self._DISPLAY_ORDER}")
            rows = await cur.fetchall()
            return [self._row_to_record(r) for r in rows]

    async def mark_displayed(self, image_id: int) -> bool:
        """Move a record to the Shown state. Returns True if the row exists.

        Re-marking a Shown record still matches the row, so repeated calls
        keep returning True.
        """
        async with self._writing("mark_displayed") as conn:
            cur = await conn.execute(
                "UPDATE images SET is_new = 0, is_displayed = 1, updated_at = ? WHERE id = ?",
                (to_db_text(utc_now()), image_id),
            )
            await conn.commit()
            return cur.rowcount > 0

    async def reset_shown_and_list_all(self) -> Tuple[int, List[ImageRecord]]:
        """Clear `is_displayed` on every Shown record, then read all records.

        Both statements run in one write transaction, so the read observes
        the whole reset and no concurrent writer lands between them.

        Returns:
            The number of rows reset and every record, oldest upload first.
        """
        async with self._writing("reset_shown_and_list_all") as conn:
            await conn.execute("BEGIN IMMEDIATE")
            try:
                cur = await conn.execute(
                    "UPDATE images SET is_displayed = 0, updated_at = ? WHERE is_displayed = 1",
                    (to_db_text(utc_now()),),
                )
                reset_count = cur.rowcount
                cur = await conn.execute(f"SELECT {self._COLUMN_LIST} FROM images {self._DISPLAY_ORDER}")
                rows = await cur.fetchall()
                await conn.commit()
            except BaseException:
                await conn.rollback()
                raise
            return reset_count, [self._row_to_record(r) for r in rows]

    @staticmethod
    def _row_to_record(row: Sequence[object]) -> ImageRecord:
        """Convert a DB row tuple into an ImageRecord."""
        return ImageRecord(
            id=row[0],
            blob_key=row[1],
            uploaded_at=from_db_text(row[2]),
            is_new=bool(row[3]),
            is_displayed=bool(row[4]),
            uploader_name=row[5],
            created_at=from_db_text(row[6]),
            updated_at=from_db_text(row[7]),
        )
