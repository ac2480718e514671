"""Environment-driven application settings.

Values are read from the process environment; a `.env` file in the working
directory is loaded first when present (see `main.py`).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from services.object_store import DEFAULT_URL_EXPIRES_SECONDS

_S3_REQUIRED = ("AWS_REGION", "AWS_S3_BUCKET", "AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY")


@dataclass
class AppConfig:
    """Settings for the slideshow service.

    Attributes:
        database_dir: Directory holding the SQLite file.
        object_store: Either "s3" or "local".
        aws_region: S3 region.
        aws_s3_bucket: S3 bucket receiving uploaded images.
        aws_access_key_id: Static AWS access key.
        aws_secret_access_key: Static AWS secret key.
        aws_s3_endpoint_url: Optional S3-compatible endpoint.
        local_blob_dir: Directory used by the local object store.
        presign_expires_seconds: Lifetime of retrieval URLs.
        log_level: Root logging level name.
    """

    database_dir: Path
    object_store: str = "s3"
    aws_region: Optional[str] = None
    aws_s3_bucket: Optional[str] = None
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_s3_endpoint_url: Optional[str] = None
    local_blob_dir: Optional[Path] = None
    presign_expires_seconds: int = DEFAULT_URL_EXPIRES_SECONDS
    log_level: str = "INFO"

    @property
    def blob_dir(self) -> Path:
        return self.local_blob_dir or self.database_dir / "blobs"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AppConfig":
        """Build settings from `environ` (defaults to `os.environ`).

        Raises:
            RuntimeError: If a required variable is missing or malformed.
        """
        env = os.environ if environ is None else environ

        database_dir = (env.get("DATABASE_DIR") or "").strip()
        if not database_dir:
            raise RuntimeError("environment variable DATABASE_DIR must be set")

        object_store = (env.get("OBJECT_STORE") or "s3").strip().lower()
        if object_store not in ("s3", "local"):
            raise RuntimeError(f"OBJECT_STORE must be 's3' or 'local', got {object_store!r}")

        if object_store == "s3":
            missing = [name for name in _S3_REQUIRED if not env.get(name)]
            if missing:
                raise RuntimeError(f"environment variables {', '.join(missing)} must be set")

        raw_expires = env.get("PRESIGN_EXPIRES_SECONDS") or str(DEFAULT_URL_EXPIRES_SECONDS)
        try:
            expires = int(raw_expires)
        except ValueError as exc:
            raise RuntimeError(f"PRESIGN_EXPIRES_SECONDS must be an integer, got {raw_expires!r}") from exc
        if expires <= 0:
            raise RuntimeError("PRESIGN_EXPIRES_SECONDS must be positive")

        local_blob_dir = env.get("LOCAL_BLOB_DIR")

        return cls(
            database_dir=Path(database_dir).expanduser(),
            object_store=object_store,
            aws_region=env.get("AWS_REGION"),
            aws_s3_bucket=env.get("AWS_S3_BUCKET"),
            aws_access_key_id=env.get("AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=env.get("AWS_SECRET_ACCESS_KEY"),
            aws_s3_endpoint_url=env.get("AWS_S3_ENDPOINT_URL") or None,
            local_blob_dir=Path(local_blob_dir).expanduser() if local_blob_dir else None,
            presign_expires_seconds=expires,
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        )
