from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


class RotationState(enum.Enum):
    """Position of an image in the display rotation.

    Derived from the stored `is_new` / `is_displayed` flags. Note that
    `is_displayed = 1` means "already shown in the current cycle, skip it",
    not "currently on screen".
    """

    FRESH = "fresh"
    PENDING = "pending"
    SHOWN = "shown"

    @classmethod
    def from_flags(cls, is_new: bool, is_displayed: bool) -> "RotationState":
        if is_new:
            return cls.FRESH
        return cls.SHOWN if is_displayed else cls.PENDING

    @property
    def predicate(self) -> str:
        """SQL WHERE fragment selecting rows in this state."""
        return _STATE_PREDICATES[self]


_STATE_PREDICATES = {
    RotationState.FRESH: "is_new = 1",
    RotationState.PENDING: "is_new = 0 AND is_displayed = 0",
    RotationState.SHOWN: "is_new = 0 AND is_displayed = 1",
}

# Tiers consulted by the rotation engine, highest priority first.
TIER_PRIORITY = (RotationState.FRESH, RotationState.PENDING)


@dataclass
class ImageRecord:
    """In-memory representation of a row in the `images` table.

    Attributes:
        id: Primary key (None for new records).
        blob_key: Object store key of the image bytes.
        uploaded_at: Time the object store accepted the blob; defines display order.
        is_new: True until a viewer acknowledges the image.
        is_displayed: True once shown in the current rotation cycle.
        uploader_name: Display name of the contributor, if known.
        created_at: Time the row was inserted.
        updated_at: Time the row was last changed.
    """

    id: Optional[int]
    blob_key: str
    uploaded_at: datetime
    is_new: bool = True
    is_displayed: bool = False
    uploader_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def state(self) -> RotationState:
        return RotationState.from_flags(self.is_new, self.is_displayed)
