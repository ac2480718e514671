"""Blob storage for uploaded images.

Two interchangeable stores share the same async interface:

    blob = await store.upload(key, mime_type, data)   # -> StoredBlob
    url = await store.retrieval_url(blob.key)         # -> str

`S3ObjectStore` hands out presigned GET URLs that expire after
`expires_in` seconds. URLs are generated per call and never persisted,
because they expire independently of the record that points at the blob.
`LocalObjectStore` keeps blobs on disk for development and serves them
through the `/blobs/{key}` route.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote

import aiofiles
import boto3
from botocore.exceptions import BotoCoreError, ClientError

from models.errors import BlobUploadFailure, RetrievalUrlFailure
from utils.timestamps import utc_now

LOGGER = logging.getLogger(__name__)

DEFAULT_URL_EXPIRES_SECONDS = 15 * 60


@dataclass
class StoredBlob:
    key: str
    uploaded_at: datetime


class S3ObjectStore:
    """Store blobs in an S3 bucket and presign time-limited GET URLs.

    Args:
        bucket: Target bucket name.
        client: Optional preconfigured boto3 S3 client (used by tests).
        region: AWS region for a client built here.
        access_key_id: Static access key; falls back to the default boto3 chain when None.
        secret_access_key: Static secret key.
        endpoint_url: Optional S3-compatible endpoint.
        expires_in: Lifetime of presigned URLs in seconds.
    """

    def __init__(
        self,
        bucket: str,
        client: Any = None,
        region: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        expires_in: int = DEFAULT_URL_EXPIRES_SECONDS,
    ) -> None:
        self.bucket = bucket
        self.expires_in = expires_in
        self._client = client or boto3.client(
            "s3",
            region_name=region,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            endpoint_url=endpoint_url,
        )

    async def upload(self, key: str, mime_type: str, data: bytes) -> StoredBlob:
        """Upload `data` under `key` and return the stored blob reference.

        Raises:
            BlobUploadFailure: If S3 rejects the upload.
        """
        try:
            # boto3 is blocking -> run in thread
            await asyncio.to_thread(
                self._client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=mime_type,
            )
        except (BotoCoreError, ClientError) as exc:
            LOGGER.error("Failed to upload %s to S3 bucket %s: %s", key, self.bucket, exc)
            raise BlobUploadFailure(f"upload of {key} failed") from exc

        uploaded_at = utc_now()
        LOGGER.info("Uploaded %s to S3 bucket %s", key, self.bucket)
        return StoredBlob(key=key, uploaded_at=uploaded_at)

    async def retrieval_url(self, key: str) -> str:
        """Return a presigned GET URL for `key`, valid for `expires_in` seconds."""
        try:
            return await asyncio.to_thread(
                self._client.generate_presigned_url,
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=self.expires_in,
            )
        except (BotoCoreError, ClientError) as exc:
            LOGGER.error("Failed to presign %s in S3 bucket %s: %s", key, self.bucket, exc)
            raise RetrievalUrlFailure(f"presign of {key} failed") from exc


class LocalObjectStore:
    """Store blobs under a local directory.

    URLs point at the `/blobs/{key}` route serving `base_dir` and do not expire.
    """

    def __init__(self, base_dir: Path | str, url_prefix: str = "/blobs") -> None:
        self.base_dir = Path(base_dir)
        self.url_prefix = url_prefix.rstrip("/")

    def path_for(self, key: str) -> Path:
        if not key or Path(key).name != key:
            raise ValueError(f"Invalid blob key: {key!r}")
        return self.base_dir / key

    async def upload(self, key: str, mime_type: str, data: bytes) -> StoredBlob:
        path = self.path_for(key)
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            # "x" refuses to replace a blob another record already points at.
            async with aiofiles.open(path, "xb") as f:
                await f.write(data)
        except OSError as exc:
            LOGGER.error("Failed to write blob %s to %s: %s", key, self.base_dir, exc)
            raise BlobUploadFailure(f"upload of {key} failed") from exc

        LOGGER.info("Stored %s (%s) under %s", key, mime_type, self.base_dir)
        return StoredBlob(key=key, uploaded_at=utc_now())

    async def retrieval_url(self, key: str) -> str:
        self.path_for(key)
        return f"{self.url_prefix}/{quote(key)}"
