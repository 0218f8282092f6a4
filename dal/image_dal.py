"""Async data access layer for the image library document.

The whole library lives in a single JSON file shaped as
`{"images": [...], "lastId": N}`. Callers read the full document, mutate it
in memory and write it back; there is no locking, so concurrent writers
lose updates (last writer wins).

`ImageStore` is the read-all / write-all contract the services depend on,
so a locking or transactional backend can replace `JsonImageDAL` without
touching them.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

import aiofiles

from models.image_record import LibraryDocument

LOGGER = logging.getLogger(__name__)


class StoreCorruptedError(RuntimeError):
    """Raised when the library document exists but cannot be parsed."""


class ImageStore(Protocol):
    async def read_all(self) -> LibraryDocument: ...

    async def write_all(self, document: LibraryDocument) -> None: ...


class JsonImageDAL:
    """JSON file implementation of `ImageStore`.

    Args:
        path: Location of the library document (e.g. `data/images.json`).
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    async def ensure_document(self) -> None:
        """Create an empty document if none exists yet."""
        if self.path.exists():
            return
        await self.write_all(LibraryDocument())

    async def read_all(self) -> LibraryDocument:
        """Load the whole document.

        Returns:
            The parsed `LibraryDocument`; an empty one if the file is missing.

        Raises:
            StoreCorruptedError: If the file holds invalid JSON.
        """
        if not self.path.exists():
            return LibraryDocument()
        async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
            raw = await f.read()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            LOGGER.error("Library document %s is not valid JSON: %s", self.path, exc)
            raise StoreCorruptedError(f"Library document {self.path} is corrupted") from exc
        return LibraryDocument.from_dict(data)

    async def write_all(self, document: LibraryDocument) -> None:
        """Rewrite the whole document."""
        payload = json.dumps(document.to_dict(), indent=2, ensure_ascii=False)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self.path, "w", encoding="utf-8") as f:
            await f.write(payload)
