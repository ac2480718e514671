from typing import Dict, List

from fastapi import Request
from pydantic import ValidationError

from dal.image_dal import ImageDAL
from models.errors import MalformedRequest
from models.rotation_models import DisplayedPayload, ImageResponse
from services.rotation_engine import RotationEngine, shape_batch


def _engine(request: Request) -> RotationEngine:
    return RotationEngine(ImageDAL(request.app.state.db_initializer))


async def get_next_images(request: Request) -> List[ImageResponse]:
    """Controller answering a slideshow poll.

    Args:
        request: FastAPI Request (to access app.state.db_initializer and
            app.state.object_store).

    Returns:
        Display-ready images in upload order, each with a fresh retrieval URL.

    Raises:
        StoreReadFailure / StoreWriteFailure: Rendered as 500 by the app.
    """
    batch = await _engine(request).next_batch()
    return await shape_batch(batch.records, request.app.state.object_store)


async def mark_displayed(request: Request, raw_body: bytes) -> Dict[str, str]:
    """Controller acknowledging that a viewer displayed an image.

    The body is validated before the store is touched.

    Raises:
        MalformedRequest: If the body is not `{"id": <int>}`.
        RecordNotFound: If the id does not exist.
    """
    try:
        payload = DisplayedPayload.model_validate_json(raw_body or b"")
    except ValidationError as exc:
        raise MalformedRequest(str(exc)) from exc

    await _engine(request).acknowledge_displayed(payload.id)
    return {"status": "ok"}
