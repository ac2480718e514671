"""Print every stored image with its rotation state.

Reuses the same `DATABASE_DIR` behavior as the application via
`utils.database_init.AsyncDatabaseInitializer` and reads through
`dal.image_dal.ImageDAL`, so the output matches what the rotation engine
sees. Nothing is modified.

Run: set the `DATABASE_DIR` environment variable and run
      `python print_rotation.py`.
"""
import asyncio
from collections import Counter
from typing import List

from dotenv import load_dotenv

from dal.image_dal import ImageDAL
from models.image_record import ImageRecord, RotationState
from utils.database_init import AsyncDatabaseInitializer
from utils.timestamps import format_display


def format_record(record: ImageRecord) -> str:
    """Render one record as a single aligned line."""
    return (
        f"{record.id:>6}  {record.state.value:<8}  {format_display(record.uploaded_at)}  "
        f"{record.uploader_name or '-':<20}  {record.blob_key}"
    )


def summarize(records: List[ImageRecord]) -> str:
    counts = Counter(r.state for r in records)
    return ", ".join(f"{state.value}={counts.get(state, 0)}" for state in RotationState)


async def main() -> None:
    """Ensure DB exists and print all images in display order."""
    dal = ImageDAL(AsyncDatabaseInitializer())
    records = await dal.list_images()
    for record in records:
        print(format_record(record))
    print(f"{len(records)} image(s): {summarize(records)}")


if __name__ == "__main__":
    load_dotenv()
    asyncio.run(main())
