"""Validation helpers for uploaded images."""

from typing import List

from fastapi import HTTPException, UploadFile

ALLOWED_IMAGE_TYPES = {
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
}
MAX_UPLOAD_BYTES = 10 * 1024 * 1024
MAX_UPLOAD_FILES = 20


def decode_upload_name(name: str) -> str:
    """Undo latin-1 mangling of a UTF-8 filename.

    Some multipart clients send UTF-8 filenames that end up decoded as
    latin-1, turning `2차전지` into `2ì°¨ì ì§`. Names that are already proper
    text (or genuinely latin-1) fail the round trip and are returned as-is.
    """
    try:
        return name.encode("latin-1").decode("utf-8")
    except (UnicodeEncodeError, UnicodeDecodeError):
        return name


def validate_image_file(image_file: UploadFile) -> None:
    """Reject uploads whose content type is not an allowed image type."""
    if not image_file.filename:
        raise HTTPException(status_code=400, detail="Image file must have a filename.")
    content_type = (image_file.content_type or "").lower().split(";", 1)[0].strip()
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=415,
            detail=f"Only image files can be uploaded (got {image_file.content_type or 'unknown type'}).",
        )


async def read_image_bytes(image_file: UploadFile) -> bytes:
    """Read validated image bytes, enforcing the size limit and non-empty content."""
    validate_image_file(image_file)
    # Reject by the reported size first so oversized uploads are never loaded into memory
    size = getattr(image_file, "size", None)
    if size is not None and size > MAX_UPLOAD_BYTES:
        raise _too_large(image_file)
    data = await image_file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded image is empty.")
    if len(data) > MAX_UPLOAD_BYTES:
        raise _too_large(image_file)
    return data


def _too_large(image_file: UploadFile) -> HTTPException:
    return HTTPException(
        status_code=413,
        detail=f"{image_file.filename} exceeds the {MAX_UPLOAD_BYTES // (1024 * 1024)}MB upload limit.",
    )


async def read_image_batch(files: List[UploadFile]) -> List[bytes]:
    """Validate and read a multi-file upload before anything is written to disk."""
    if not files:
        raise HTTPException(status_code=400, detail="No files were uploaded.")
    if len(files) > MAX_UPLOAD_FILES:
        raise HTTPException(status_code=400, detail=f"At most {MAX_UPLOAD_FILES} files can be uploaded at once.")
    return [await read_image_bytes(f) for f in files]
