"""Edit, delete and summarise records of the image library."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List

from dal.image_dal import ImageStore
from models.image_record import IMAGE_STATUSES, ImageRecord
from services.image_store import UploadStorage

LOGGER = logging.getLogger(__name__)

# JSON key -> ImageRecord attribute, for fields clients may edit
EDITABLE_FIELDS = {
    "theme": "theme",
    "themeDescription": "theme_description",
    "status": "status",
    "tags": "tags",
    "mood": "mood",
    "prompt": "prompt",
    "memo": "memo",
    "name": "name",
    "service": "service",
    "serviceImages": "service_images",
    "assignees": "assignees",
}


class ImageNotFoundError(LookupError):
    """Raised when no record has the requested id."""

    def __init__(self, image_id: int) -> None:
        super().__init__(f"Image {image_id} not found")
        self.image_id = image_id


class ImageLibraryService:
    """CRUD and summary operations over the library document."""

    def __init__(self, store: ImageStore, storage: UploadStorage) -> None:
        self.store = store
        self.storage = storage

    async def list_images(self) -> List[Dict[str, Any]]:
        document = await self.store.read_all()
        return [r.to_dict() for r in document.images]

    async def get_image(self, image_id: int) -> ImageRecord:
        document = await self.store.read_all()
        record = document.find(image_id)
        if record is None:
            raise ImageNotFoundError(image_id)
        return record

    async def update_image(self, image_id: int, changes: Dict[str, Any]) -> ImageRecord:
        """Apply allow-listed `changes` (JSON keys) to a record.

        Keys outside `EDITABLE_FIELDS` and `None` values are ignored.
        """
        document = await self.store.read_all()
        record = document.find(image_id)
        if record is None:
            raise ImageNotFoundError(image_id)

        for key, attr in EDITABLE_FIELDS.items():
            value = changes.get(key)
            if value is not None:
                setattr(record, attr, value)
        record.touch()

        await self.store.write_all(document)
        return record

    async def delete_image(self, image_id: int) -> None:
        """Remove a record together with its primary file and per-service variants."""
        document = await self.store.read_all()
        record = document.find(image_id)
        if record is None:
            raise ImageNotFoundError(image_id)

        document.images = [r for r in document.images if r.id != image_id]

        # serviceImages is client-editable, so another record may point at the same file
        in_use = set()
        for other in document.images:
            in_use.add(self.storage.path_for(other.filename))
            if other.url:
                in_use.add(self.storage.path_for_url(other.url))
            in_use.update(self.storage.path_for_url(url) for url in other.service_images.values())

        owned = [self.storage.path_for(record.filename)]
        owned += [self.storage.path_for_url(url) for url in record.service_images.values()]
        for path in owned:
            if path not in in_use:
                self.storage.delete(path)

        await self.store.write_all(document)
        LOGGER.info("Deleted image %s (%s)", image_id, record.filename)

    async def list_themes(self) -> List[str]:
        document = await self.store.read_all()
        return sorted({r.theme for r in document.images})

    async def get_stats(self) -> Dict[str, Any]:
        document = await self.store.read_all()
        by_status = {status: 0 for status in ("final", "candidate", "reference")}
        for record in document.images:
            if record.status in by_status:
                by_status[record.status] += 1
        return {
            "total": len(document.images),
            "byStatus": by_status,
            "themes": len({r.theme for r in document.images}),
        }

    async def bulk_update_status(self, image_ids: Iterable[int], status: str) -> int:
        """Set `status` on every known id; unknown ids are skipped. Returns the count updated."""
        if status not in IMAGE_STATUSES:
            raise ValueError(f"Unknown status {status!r}")
        document = await self.store.read_all()
        updated = 0
        for image_id in image_ids:
            record = document.find(image_id)
            if record is None:
                continue
            record.status = status
            record.touch()
            updated += 1
        await self.store.write_all(document)
        return updated
