"""Display rotation policy for the shared slideshow.

Every poll is answered from the first non-empty tier:

1. Fresh images (never acknowledged), oldest upload first, so a new
   contribution shows up on every screen right away.
2. Pending images (acknowledged earlier, not yet shown this cycle).
3. Nothing left to show: every Shown image is recycled to Pending in one
   step and the whole collection is returned, restarting the cycle from the
   oldest image.

The engine keeps no state between calls; all of it lives in the image
record store, which many pollers and the intake adapter share.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List

from dal.image_dal import ImageDAL
from models.errors import RecordNotFound
from models.image_record import TIER_PRIORITY, ImageRecord
from models.rotation_models import ImageResponse, RotationBatch
from utils.timestamps import format_display

LOGGER = logging.getLogger(__name__)


class RotationEngine:
    """Select the next images to display and apply acknowledgment transitions."""

    def __init__(self, image_dal: ImageDAL) -> None:
        self._dal = image_dal

    async def next_batch(self) -> RotationBatch:
        """Return the records a viewer should display next.

        Returns:
            A RotationBatch whose `tier` is the state the records came from,
            or None when the cycle was reset. An empty store yields an empty
            batch from the reset branch.

        Raises:
            StoreReadFailure: If a tier could not be read.
            StoreWriteFailure: If the reset sweep could not be applied.
        """
        for tier in TIER_PRIORITY:
            records = await self._dal.list_by_state(tier)
            if records:
                return RotationBatch(tier=tier, records=records)

        # Reset and re-read happen in one store transaction; running it
        # again from a concurrent poller only clears rows that are already clear.
        reset_count, records = await self._dal.reset_shown_and_list_all()
        if reset_count:
            LOGGER.info("All images displayed, reset %d image(s) for a new cycle", reset_count)
        return RotationBatch(tier=None, records=records)

    async def acknowledge_displayed(self, image_id: int) -> None:
        """Mark `image_id` as shown in the current cycle.

        Any state moves to Shown; acknowledging a Shown image again is a no-op.

        Raises:
            RecordNotFound: If no image has this id.
            StoreWriteFailure: If the update failed.
        """
        if not await self._dal.mark_displayed(image_id):
            LOGGER.warning("Acknowledgment for unknown image id %s", image_id)
            raise RecordNotFound(image_id)


async def shape_batch(records: List[ImageRecord], object_store) -> List[ImageResponse]:
    """Turn records into display-ready responses with freshly generated URLs.

    Retrieval URLs expire on their own schedule, so one is generated for
    every record on every response; they are produced concurrently.
    """
    urls = await asyncio.gather(*(object_store.retrieval_url(r.blob_key) for r in records))
    return [
        ImageResponse(
            id=record.id,
            file_url=url,
            is_new=record.is_new,
            created_at=format_display(record.created_at or record.uploaded_at),
        )
        for record, url in zip(records, urls)
    ]
