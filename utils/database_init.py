import os
import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite


SCHEMA = """
CREATE TABLE IF NOT EXISTS images (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    blob_key TEXT NOT NULL UNIQUE,
    uploaded_at TEXT NOT NULL,
    is_new INTEGER NOT NULL DEFAULT 1,
    is_displayed INTEGER NOT NULL DEFAULT 0,
    uploader_name TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""

ROTATION_INDEX = (
    "CREATE INDEX IF NOT EXISTS idx_images_rotation "
    "ON images(is_new, is_displayed, uploaded_at)"
)


class AsyncDatabaseInitializer:
    """
    Manage the async SQLite database holding image records.

    - The database file is located at: <db_dir>/app.db
    - `db_dir` defaults to the DATABASE_DIR environment variable. A
      RuntimeError is raised if neither is given or the path is not a
      directory and cannot be created.
    - On the first call to `ensure_database()` for a given instance the
      `images` table and its rotation index are created if missing and
      WAL journaling is enabled. Existing rows are kept.
    - Subsequent calls to `ensure_database()` on the same instance are no-ops,
      so it is safe for `connection()` to call it.
    """

    def __init__(self, db_dir: Optional[Path | str] = None, busy_timeout: float = 5.0) -> None:
        env_dir = str(db_dir) if db_dir is not None else os.getenv("DATABASE_DIR")

        if env_dir is None or not env_dir.strip():
            raise RuntimeError(
                "DATABASE_DIR environment variable must be set to a writable "
                "directory path where the SQLite database file will be stored."
            )

        path = Path(env_dir).expanduser()

        # If the path exists but is not a directory, that's a configuration error.
        if path.exists() and not path.is_dir():
            raise RuntimeError(
                f"DATABASE_DIR={env_dir!r} points to a file, not a directory "
                f"({path}). Please set DATABASE_DIR to a directory path."
            )

        try:
            path.mkdir(parents=True, exist_ok=True)
        except Exception as exc:
            raise RuntimeError(
                f"Failed to create or access database directory at {path}"
            ) from exc

        self.db_dir = path
        self.db_path = self.db_dir / "app.db"
        self.busy_timeout = busy_timeout

        self._initialized = False

    async def ensure_database(self) -> None:
        """
        Ensure the SQLite database and schema exist at `self.db_path`.

        Subsequent calls on the same instance are no-ops.
        """
        if self._initialized:
            return

        max_attempts = 3
        for attempt in range(1, max_attempts + 1):
            try:
                async with aiosqlite.connect(self.db_path, timeout=self.busy_timeout) as db:
                    # WAL lets pollers read while intake or a reset sweep is writing.
                    await db.execute("PRAGMA journal_mode=WAL;")
                    await db.execute(SCHEMA)
                    await db.execute(ROTATION_INDEX)
                    await db.commit()
                break
            except FileNotFoundError:
                # On some platforms a transient missing file error may occur; retry a few times.
                if attempt >= max_attempts:
                    raise
                await asyncio.sleep(0.1 * attempt)

        self._initialized = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Async context manager yielding an `aiosqlite.Connection`.

        The schema is created on first use via `ensure_database()`.
        """
        await self.ensure_database()
        conn = await aiosqlite.connect(self.db_path, timeout=self.busy_timeout)
        try:
            yield conn
        finally:
            await conn.close()
