"""Intake of newly contributed images.

Stores the image bytes in the object store, then creates the image record
that puts the image at the front of the rotation as Fresh. When the upload
succeeds but the record cannot be written the blob is orphaned; that case
raises `OrphanedBlob` so the caller can call `register()` again with the
same blob instead of uploading it a second time.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from typing import Optional

from dal.image_dal import ImageDAL
from models.errors import OrphanedBlob, StoreWriteFailure
from models.image_record import ImageRecord
from services.object_store import StoredBlob
from utils.media_validation import inspect_image

LOGGER = logging.getLogger(__name__)

UNKNOWN_UPLOADER = "Unknown"
_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


def build_blob_key(extension: str, key_hint: Optional[str] = None) -> str:
    """Build a unique object key such as `image_<hint>_<uuid>_<unix seconds>.jpg`.

    The random part is always present, so equal hints never share a key.
    """
    hint = _UNSAFE_KEY_CHARS.sub("", key_hint or "")[:64]
    prefix = f"image_{hint}_" if hint else "image_"
    return f"{prefix}{uuid.uuid4().hex}_{int(time.time())}.{extension}"


class ImageIntake:
    """Persist an uploaded image and register it for display.

    Args:
        image_dal: Record store for the new image.
        object_store: Any store exposing async `upload(key, mime_type, data)`.
    """

    def __init__(self, image_dal: ImageDAL, object_store) -> None:
        self._dal = image_dal
        self._store = object_store

    async def ingest(
        self,
        data: bytes,
        key_hint: Optional[str] = None,
        uploader_name: Optional[str] = None,
    ) -> ImageRecord:
        """Upload `data` and create its Fresh image record.

        Args:
            data: Raw image bytes.
            key_hint: Optional identifier folded into the object key
                (for example the chat message id).
            uploader_name: Display name of the contributor.

        Returns:
            The created ImageRecord.

        Raises:
            InvalidImage: If the bytes are not a supported image.
            BlobUploadFailure: If the object store rejected the upload.
            OrphanedBlob: If the upload succeeded but the record was not created.
        """
        info = inspect_image(data)
        key = build_blob_key(info.extension, key_hint)
        blob = await self._store.upload(key, info.mime_type, data)
        return await self.register(blob, uploader_name)

    async def register(self, blob: StoredBlob, uploader_name: Optional[str] = None) -> ImageRecord:
        """Create the Fresh image record for an already uploaded blob."""
        record = ImageRecord(
            id=None,
            blob_key=blob.key,
            uploaded_at=blob.uploaded_at,
            is_new=True,
            is_displayed=False,
            uploader_name=(uploader_name or "").strip() or UNKNOWN_UPLOADER,
        )
        try:
            created = await self._dal.create_image(record)
        except StoreWriteFailure as exc:
            LOGGER.error("Blob %s uploaded but its image record was not created", blob.key)
            raise OrphanedBlob(str(exc), blob_key=blob.key, uploaded_at=blob.uploaded_at) from exc

        LOGGER.info("Image registered: id=%s key=%s uploader=%s", created.id, created.blob_key, created.uploader_name)
        return created
