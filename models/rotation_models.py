"""Value types exchanged between the rotation engine and the API layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.image_record import ImageRecord, RotationState


@dataclass
class RotationBatch:
	"""Records selected for display by one poll.

	`tier` is the rotation state the records were drawn from, or None when
	every image had been shown and the cycle was reset.
	"""

	tier: Optional[RotationState]
	records: List[ImageRecord] = field(default_factory=list)

	@property
	def was_reset(self) -> bool:
		return self.tier is None

	def __len__(self) -> int:
		return len(self.records)


class ImageResponse(BaseModel):
	"""Display-ready view of an image returned to slideshow clients."""

	id: int
	file_url: str
	is_new: bool
	created_at: str


# Largest value SQLite can store in an INTEGER column.
MAX_IMAGE_ID = 2**63 - 1


class DisplayedPayload(BaseModel):
	"""Acknowledgment body. Booleans, strings and floats are not ids."""

	model_config = ConfigDict(strict=True)

	id: int = Field(ge=1, le=MAX_IMAGE_ID)


class IntakeResponse(BaseModel):
	id: int
	blob_key: str
	status: str = "ok"
