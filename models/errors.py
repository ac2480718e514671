"""Error taxonomy shared by the store, the rotation engine, and the HTTP layer.

Every error carries the HTTP status and the public message used when it is
rendered by `utils.error_responses`. Messages are deliberately opaque; the
detailed context goes to the log, not to the client.
"""

from __future__ import annotations

from typing import Optional


class RotationError(Exception):
    """Base class for failures surfaced by the slideshow service."""

    status_code = 500
    public_message = "internal error"

    def payload(self) -> dict:
        return {"error": self.public_message}


class StoreReadFailure(RotationError):
    """The image record store could not be read."""

    public_message = "database error"


class RetrievalUrlFailure(StoreReadFailure):
    """A retrieval URL could not be produced for a stored blob."""


class StoreWriteFailure(RotationError):
    """The image record store rejected a write."""

    public_message = "database error"


class OrphanedBlob(StoreWriteFailure):
    """A blob was uploaded but its image record could not be created.

    The blob is not reachable from any record. `blob_key` and
    `uploaded_at` are kept so the caller can retry only the record
    creation instead of uploading again.
    """

    def __init__(self, message: str, blob_key: str, uploaded_at=None) -> None:
        super().__init__(message)
        self.blob_key = blob_key
        self.uploaded_at = uploaded_at

    def payload(self) -> dict:
        return {"error": self.public_message, "blob_key": self.blob_key}


class RecordNotFound(RotationError):
    """No image record exists with the requested id."""

    status_code = 404
    public_message = "image not found"

    def __init__(self, image_id: Optional[int] = None) -> None:
        super().__init__(f"Image {image_id} not found")
        self.image_id = image_id


class MalformedRequest(RotationError):
    """The request body could not be parsed or validated."""

    status_code = 400
    public_message = "invalid request body"


class InvalidImage(MalformedRequest):
    """Uploaded bytes are not a decodable image."""

    public_message = "invalid image"


class BlobUploadFailure(RotationError):
    """The object store did not accept a blob."""

    status_code = 502
    public_message = "upload failed"
