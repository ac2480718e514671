"""FastAPI routes for the slideshow rotation."""

from typing import List

from fastapi import APIRouter, Request

from controllers.rotation_controller import get_next_images, mark_displayed
from models.rotation_models import ImageResponse

router = APIRouter(prefix="/images", tags=["rotation"])


@router.get("", response_model=List[ImageResponse])
async def next_images_route(request: Request):
	"""Return the next images to display, oldest upload first."""
	return await get_next_images(request)


@router.post("/displayed")
async def displayed_route(request: Request):
	"""Acknowledge that the image in the body `{"id": ...}` was displayed."""
	# Parsed by the controller so a malformed body is answered with 400, not 422.
	raw_body = await request.body()
	return await mark_displayed(request, raw_body)
