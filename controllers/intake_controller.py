from typing import Optional

from fastapi import Request, UploadFile

from dal.image_dal import ImageDAL
from models.rotation_models import IntakeResponse
from services.image_intake import ImageIntake
from utils.media_validation import read_image_bytes


async def upload_image(
    request: Request,
    file: UploadFile,
    uploader_name: Optional[str] = None,
    key_hint: Optional[str] = None,
) -> IntakeResponse:
    """Handle an image contribution: store the blob and register a Fresh record.

    Args:
        request: FastAPI Request object (used to access app.state for shared clients).
        file: Uploaded image file.
        uploader_name: Optional contributor display name.
        key_hint: Optional identifier folded into the object key.

    Returns:
        The new image id and its object key.
    """
    data = await read_image_bytes(file)
    intake = ImageIntake(ImageDAL(request.app.state.db_initializer), request.app.state.object_store)
    record = await intake.ingest(data, key_hint=key_hint, uploader_name=uploader_name)
    return IntakeResponse(id=record.id, blob_key=record.blob_key)
