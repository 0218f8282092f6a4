"""Helpers to remove upload files no library record refers to."""

import logging

from dal.image_dal import ImageStore
from services.image_store import UploadStorage

LOGGER = logging.getLogger(__name__)


class UploadCleaner:
    """Delete files left behind by failed batches or replaced variants."""

    def __init__(self, store: ImageStore, storage: UploadStorage) -> None:
        """
        Args:
            store: Library document store used to collect referenced files.
            storage: Upload directory to sweep.
        """
        self._store = store
        self._storage = storage

    async def referenced_files(self) -> set:
        document = await self._store.read_all()
        names = set()
        for record in document.images:
            names.add(record.filename)
            for url in record.service_images.values():
                names.add(self._storage.path_for_url(url).name)
            if record.url:
                names.add(self._storage.path_for_url(record.url).name)
        return names

    async def prune_orphaned_uploads(self) -> int:
        """Delete unreferenced files in the upload directory and return the count removed."""
        upload_dir = self._storage.upload_dir
        if not upload_dir.is_dir():
            return 0
        keep = await self.referenced_files()
        removed = 0
        for path in upload_dir.iterdir():
            if path.is_file() and path.name not in keep and self._storage.delete(path):
                removed += 1
        if removed:
            LOGGER.info("Pruned %d orphaned upload(s) from %s", removed, upload_dir)
        return removed
