"""Ingest uploaded images into the library.

Each upload is saved to disk, classified from its filename and either merged
into an existing record with the same theme (merge mode) or stored as a new
record. The document is written once, after the whole batch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from dal.image_dal import ImageStore
from models.image_record import UNCLASSIFIED, ImageRecord, LibraryDocument
from services.filename_classifier import FilenameClassifier
from services.image_store import UploadStorage
from utils.media_validation import decode_upload_name

LOGGER = logging.getLogger(__name__)


@dataclass
class UploadedImage:
    original_name: str
    data: bytes


@dataclass
class IngestResult:
    """Outcome of one batch: records created and merge summaries."""

    created: List[ImageRecord] = field(default_factory=list)
    merged: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.merged:
            return f"{len(self.created)} new image(s), {len(self.merged)} merged into existing themes"
        return f"{len(self.created)} image(s) uploaded"

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": True,
            "images": [r.to_dict() for r in self.created],
            "merged": self.merged,
            "message": self.message,
        }


class ImageIngestService:
    """Coordinate storage, classification and merging for an upload batch.

    Args:
        store: Read-all / write-all metadata store.
        storage: Upload directory helper used to save the files.
        classifier: Filename classifier; defaults to the built-in service table.
    """

    def __init__(
        self,
        store: ImageStore,
        storage: UploadStorage,
        classifier: Optional[FilenameClassifier] = None,
    ) -> None:
        self.store = store
        self.storage = storage
        self.classifier = classifier or FilenameClassifier()

    async def ingest(
        self,
        uploads: Sequence[UploadedImage],
        manual_theme: Optional[str] = None,
        merge: bool = False,
    ) -> IngestResult:
        """Store and classify every upload, then persist the document once.

        Files written before a failure in the same batch are left on disk;
        the document is not modified.
        """
        document = await self.store.read_all()
        result = IngestResult()

        for upload in uploads:
            name = decode_upload_name(upload.original_name)
            filename = await self.storage.save_original(name, upload.data)
            url = self.storage.url_for(filename)

            service, theme = self.classifier.classify(name)
            final_theme = manual_theme if manual_theme and manual_theme.strip() else theme

            target = self._find_theme(document, result.created, final_theme) if merge else None
            if target is not None and service != UNCLASSIFIED:
                target.add_service(service)
                target.set_service_image(service, url)
                result.merged.append(
                    {"id": target.id, "theme": final_theme, "addedService": service, "merged": True}
                )
                LOGGER.info("Merged %s into image %s (theme %r, service %s)", name, target.id, final_theme, service)
                continue

            record = self._new_record(document, name, filename, url, service, final_theme)
            result.created.append(record)
            LOGGER.info("Created image %s from %s (theme %r, service %s)", record.id, name, final_theme, service)

        document.images = result.created + document.images
        await self.store.write_all(document)
        return result

    @staticmethod
    def _find_theme(
        document: LibraryDocument, created: List[ImageRecord], theme: str
    ) -> Optional[ImageRecord]:
        for record in list(document.images) + created:
            if record.theme == theme:
                return record
        return None

    @staticmethod
    def _new_record(
        document: LibraryDocument,
        name: str,
        filename: str,
        url: str,
        service: str,
        theme: str,
    ) -> ImageRecord:
        classified = service != UNCLASSIFIED
        return ImageRecord(
            id=document.allocate_id(),
            name=name,
            filename=filename,
            service=[service],
            theme=theme,
            tags=[theme] if theme and theme != UNCLASSIFIED else [],
            service_images={service: url} if classified else {},
            url=url,
        )
