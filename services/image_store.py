"""Helpers for saving uploaded images to the upload directory.

Every stored file, original or per-service variant, is named
`<millisecond-timestamp>-<base-name><ext>` and exposed to clients as
`/uploads/<filename>`.
"""

from __future__ import annotations

import os
import time
from pathlib import Path
from typing import Optional

import aiofiles

URL_PREFIX = "/uploads/"


class UploadStorage:
    """Read and write files in the upload directory.

    Args:
        upload_dir: Directory holding every stored image.
    """

    def __init__(self, upload_dir: Path | str) -> None:
        self.upload_dir = Path(upload_dir)

    def unique_filename(self, base_name: str, ext: str) -> str:
        """Return `<ms>-<base_name><ext>` that does not exist yet in the upload directory."""
        stamp = int(time.time() * 1000)
        filename = f"{stamp}-{base_name}{ext}"
        # Two uploads with the same name in the same millisecond would overwrite each other
        while (self.upload_dir / filename).exists():
            stamp += 1
            filename = f"{stamp}-{base_name}{ext}"
        return filename

    async def save_original(self, original_name: str, data: bytes) -> str:
        """Save upload bytes under a unique name derived from `original_name`.

        Returns:
            The stored filename (not the full path).

        Raises:
            ValueError: If image bytes are missing.
        """
        if not data:
            raise ValueError("Image bytes are required for saving.")
        base_name, ext = os.path.splitext(Path(original_name).name)
        filename = self.unique_filename(base_name, ext)
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self.upload_dir / filename, "wb") as f:
            await f.write(data)
        return filename

    def path_for(self, filename: str) -> Path:
        return self.upload_dir / Path(filename).name

    def path_for_url(self, url: str) -> Path:
        """Map a `/uploads/<file>` URL back to its path on disk."""
        filename = url[len(URL_PREFIX):] if url.startswith(URL_PREFIX) else url
        return self.path_for(filename)

    @staticmethod
    def url_for(filename: str) -> str:
        return f"{URL_PREFIX}{filename}"

    def delete(self, path: Path) -> bool:
        """Delete `path` if it exists. Returns True if a file was removed."""
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    def existing_path_for_url(self, url: Optional[str]) -> Optional[Path]:
        if not url:
            return None
        path = self.path_for_url(url)
        return path if path.is_file() else None
