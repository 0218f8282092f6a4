from fastapi import Request, UploadFile, HTTPException
from fastapi.responses import FileResponse, Response
from typing import Dict, Any, List, Optional
import logging

from services.image_ingest import ImageIngestService, UploadedImage
from services.image_library import ImageLibraryService, ImageNotFoundError
from services.image_resizer import ImageResizer
from utils.media_validation import read_image_batch, read_image_bytes

LOGGER = logging.getLogger(__name__)


def _library(request: Request) -> ImageLibraryService:
    storage_init = request.app.state.storage_init
    return ImageLibraryService(storage_init.image_dal, storage_init.upload_storage)


def _resizer(request: Request) -> ImageResizer:
    storage_init = request.app.state.storage_init
    return ImageResizer(storage_init.image_dal, storage_init.upload_storage)


def _not_found(exc: ImageNotFoundError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(exc))


async def upload_images(
    request: Request,
    files: List[UploadFile],
    theme: Optional[str] = None,
    merge: bool = False,
) -> Dict[str, Any]:
    """Handle a multi-file upload: validate, classify, merge or create, persist.

    Args:
        request: FastAPI Request object (used to access app.state for shared storage).
        files: Uploaded images (at most 20, 10MB each, image MIME types only).
        theme: Optional manual theme overriding the one parsed from filenames.
        merge: Merge uploads into existing records with the same theme.

    Returns:
        A dict containing: success, images (created records), merged (summaries), message
    """
    # Everything is validated before the first file is written
    payloads = await read_image_batch(files)
    uploads = [UploadedImage(original_name=f.filename or "upload", data=data) for f, data in zip(files, payloads)]

    storage_init = request.app.state.storage_init
    ingest = ImageIngestService(storage_init.image_dal, storage_init.upload_storage)
    try:
        result = await ingest.ingest(uploads, manual_theme=theme, merge=merge)
    except Exception as exc:
        LOGGER.error("Upload batch of %d file(s) failed: %s", len(uploads), exc)
        raise
    return result.to_response()


async def list_images(request: Request) -> List[Dict[str, Any]]:
    return await _library(request).list_images()


async def update_image(request: Request, image_id: int, changes: Dict[str, Any]) -> Dict[str, Any]:
    """Apply allow-listed field changes to one record.

    Raises:
        HTTPException(404) if the image is not found.
    """
    try:
        record = await _library(request).update_image(image_id, changes)
    except ImageNotFoundError as exc:
        raise _not_found(exc) from exc
    return {"success": True, "image": record.to_dict()}


async def delete_image(request: Request, image_id: int) -> Dict[str, Any]:
    try:
        await _library(request).delete_image(image_id)
    except ImageNotFoundError as exc:
        raise _not_found(exc) from exc
    return {"success": True}


async def list_themes(request: Request) -> List[str]:
    return await _library(request).list_themes()


async def get_stats(request: Request) -> Dict[str, Any]:
    return await _library(request).get_stats()


async def bulk_update_status(request: Request, image_ids: List[int], status: str) -> Dict[str, Any]:
    """Set one status on many records; unknown ids are skipped silently."""
    updated = await _library(request).bulk_update_status(image_ids, status)
    return {"success": True, "updated": updated}


async def download_image(
    request: Request,
    image_id: int,
    width: Optional[int] = None,
    height: Optional[int] = None,
    service: Optional[str] = None,
) -> Response:
    """Controller to stream an image, optionally a service variant or a resized copy.

    Returns:
        `FileResponse` for the stored file, or a `Response` with PNG bytes
        when both `width` and `height` are given.

    Raises:
        HTTPException(404) if the image or its file is not found.
    """
    try:
        record = await _library(request).get_image(image_id)
    except ImageNotFoundError as exc:
        raise _not_found(exc) from exc

    try:
        download = await _resizer(request).download(record, width=width, height=height, service=service)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail="File not found") from exc

    if download.content is not None:
        return Response(content=download.content, media_type=download.media_type, headers=download.headers)
    return FileResponse(download.path, headers=download.headers)


async def upload_service_image(
    request: Request, image_id: int, file: UploadFile, service: Optional[str]
) -> Dict[str, Any]:
    """Resize an upload to a service's fixed size and attach it to a record.

    Raises:
        HTTPException(400) if the service is missing or unknown.
        HTTPException(404) if the image is not found.
    """
    if not service or not service.strip():
        raise HTTPException(status_code=400, detail="Service name is required")
    data = await read_image_bytes(file)
    try:
        record = await _resizer(request).attach_service_image(image_id, service, file.filename or "", data)
    except ImageNotFoundError as exc:
        raise _not_found(exc) from exc
    return {"success": True, "serviceImages": record.service_images, "url": record.url}
