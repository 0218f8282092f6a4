"""Image resizer service.

Provides crop-to-fill ("cover") resizing on top of Pillow, used both for
sized downloads and for the fixed-size per-service variants.

Public class: `ImageResizer`

Example:
    resizer = ImageResizer(store, storage)
    download = await resizer.download(record, width=640, height=480)
"""
from __future__ import annotations

import asyncio
import io
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple
from urllib.parse import quote

from PIL import Image, ImageOps

from dal.image_dal import ImageStore
from models.image_record import ImageRecord
from services.image_library import ImageNotFoundError
from services.image_store import UploadStorage
from utils.media_validation import decode_upload_name

LOGGER = logging.getLogger(__name__)

SERVICE_SIZES: Dict[str, Tuple[int, int]] = {
    "리타민": (1280, 853),
    "ETFG": (1280, 853),
    "COMPG": (1280, 332),
}

# Characters encodeURIComponent leaves alone besides the ones quote() always keeps
_URI_COMPONENT_SAFE = "!*'()"


def _open_image(data: bytes) -> Image.Image:
    """Open raw image bytes with Pillow."""
    try:
        return Image.open(io.BytesIO(data))
    except Exception as exc:
        raise ValueError("Uploaded bytes are not a supported image format") from exc


def _fit_cover(src: Image.Image, size: Tuple[int, int]) -> Image.Image:
    """Scale and center-crop `src` so it fills `size` exactly."""
    return ImageOps.fit(src, size, method=Image.LANCZOS, centering=(0.5, 0.5))


def resize_cover(data: bytes, width: int, height: int) -> bytes:
    """Resize image bytes to exactly `width` x `height` with cover fit.

    Returns:
        The resized image as PNG bytes.
    """
    with _open_image(data) as src:
        if src.mode not in ("RGB", "RGBA"):
            src = src.convert("RGBA")
        out = _fit_cover(src, (width, height))
    buffer = io.BytesIO()
    out.save(buffer, format="PNG", optimize=True)
    return buffer.getvalue()


def resize_cover_to_file(data: bytes, width: int, height: int, output_path: Path | str) -> None:
    """Resize image bytes with cover fit and save to `output_path`.

    The output format follows the path's extension; JPEG output is
    flattened to RGB.
    """
    output_path = Path(output_path)
    fmt = Image.registered_extensions().get(output_path.suffix.lower())
    with _open_image(data) as src:
        fmt = fmt or src.format or "PNG"
        mode = "RGB" if fmt == "JPEG" else ("RGBA" if src.mode not in ("RGB", "RGBA") else src.mode)
        out = _fit_cover(src.convert(mode), (width, height))
    out.save(output_path, format=fmt)


def content_disposition(filename: str) -> str:
    """`attachment` header carrying `filename` in RFC 5987 extended syntax."""
    return "attachment; filename*=UTF-8''" + quote(filename, safe=_URI_COMPONENT_SAFE)


@dataclass
class Download:
    """Either a file to stream as-is (`path`) or re-encoded bytes (`content`)."""

    filename: str
    path: Optional[Path] = None
    content: Optional[bytes] = None
    media_type: Optional[str] = None

    @property
    def headers(self) -> Dict[str, str]:
        return {"Content-Disposition": content_disposition(self.filename)}


class ImageResizer:
    """Serve sized downloads and maintain per-service image variants.

    Args:
        store: Read-all / write-all metadata store.
        storage: Upload directory helper.
        service_sizes: Service label -> required (width, height).
    """

    def __init__(
        self,
        store: ImageStore,
        storage: UploadStorage,
        service_sizes: Optional[Dict[str, Tuple[int, int]]] = None,
    ) -> None:
        self.store = store
        self.storage = storage
        self.service_sizes = service_sizes if service_sizes is not None else SERVICE_SIZES

    async def download(
        self,
        record: ImageRecord,
        width: Optional[int] = None,
        height: Optional[int] = None,
        service: Optional[str] = None,
    ) -> Download:
        """Resolve the file to download and resize it when both dimensions are given.

        Raises:
            FileNotFoundError: If the resolved file is missing on disk.
        """
        base_name, ext = os.path.splitext(record.name)

        path = None
        if service:
            path = self.storage.existing_path_for_url(record.service_images.get(service))
        if path is not None:
            label = f"{base_name}_{service}"
            variant_name = f"{label}{path.suffix or ext}"
        else:
            label = base_name
            variant_name = None
            path = self.storage.path_for(record.filename)
            if not path.is_file():
                raise FileNotFoundError(f"File for image {record.id} not found")

        if width and height and width > 0 and height > 0:
            data = await asyncio.to_thread(path.read_bytes)
            content = await asyncio.to_thread(resize_cover, data, width, height)
            return Download(filename=f"{label}_{width}x{height}.png", content=content, media_type="image/png")

        return Download(filename=variant_name or record.name, path=path)

    async def attach_service_image(
        self, image_id: int, service: Optional[str], original_name: str, data: bytes
    ) -> ImageRecord:
        """Resize an upload to the service's size and make it the record's variant.

        Raises:
            ValueError: If the service is missing or has no known size.
            ImageNotFoundError: If no record has `image_id`.
        """
        if not service or not service.strip():
            raise ValueError("Service name is required")

        document = await self.store.read_all()
        record = document.find(image_id)
        if record is None:
            raise ImageNotFoundError(image_id)

        size = self.service_sizes.get(service)
        if size is None:
            raise ValueError(f"Unknown service: {service}")

        ext = os.path.splitext(decode_upload_name(original_name))[1] or ".png"
        base_name = os.path.splitext(record.name)[0]
        filename = self.storage.unique_filename(f"{base_name}_{service}", ext)
        output_path = self.storage.path_for(filename)
        self.storage.upload_dir.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(resize_cover_to_file, data, size[0], size[1], output_path)

        # A merged upload can be both the primary file and a service variant; keep the primary
        previous = self.storage.existing_path_for_url(record.service_images.get(service))
        if previous is not None and previous != self.storage.path_for(record.filename):
            self.storage.delete(previous)

        record.set_service_image(service, self.storage.url_for(filename))
        await self.store.write_all(document)
        LOGGER.info("Stored %s variant %s for image %s", service, filename, image_id)
        return record
