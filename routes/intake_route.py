"""FastAPI route for contributing images to the slideshow."""

from typing import Optional

from fastapi import APIRouter, File, Form, Request, UploadFile

from controllers.intake_controller import upload_image
from models.rotation_models import IntakeResponse

router = APIRouter(prefix="/intake", tags=["intake"])


@router.post("", status_code=201, response_model=IntakeResponse, summary="Add an image to the slideshow")
async def intake_route(
	request: Request,
	image: UploadFile = File(...),
	uploader_name: Optional[str] = Form(None),
	key_hint: Optional[str] = Form(None),
):
	"""Store the uploaded image and queue it as Fresh.

	Errors are rendered by the application's RotationError handler:
	400 for non-image uploads, 502 when the object store rejects the blob,
	and 500 with the orphaned `blob_key` when the record could not be saved.
	"""
	return await upload_image(request, image, uploader_name=uploader_name, key_hint=key_hint)
