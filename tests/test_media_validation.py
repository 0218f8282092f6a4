import asyncio
import io

import pytest
from fastapi import HTTPException, UploadFile
from starlette.datastructures import Headers

from conftest import make_png
from utils.media_validation import MAX_UPLOAD_BYTES, decode_upload_name, read_image_bytes


class UnreadableUpload(UploadFile):
    """Upload whose body must never be read."""

    async def read(self, size=-1):
        raise AssertionError("upload body was read")


def _upload(cls, data, size, content_type="image/png"):
    return cls(
        file=io.BytesIO(data),
        size=size,
        filename="ETFG_big.png",
        headers=Headers({"content-type": content_type}),
    )


def test_reported_size_over_limit_is_rejected_without_reading():
    upload = _upload(UnreadableUpload, b"", MAX_UPLOAD_BYTES + 1)
    with pytest.raises(HTTPException) as exc_info:
        asyncio.run(read_image_bytes(upload))
    assert exc_info.value.status_code == 413


def test_size_is_checked_after_reading_when_not_reported():
    upload = _upload(UploadFile, b"\0" * (MAX_UPLOAD_BYTES + 1), None)
    with pytest.raises(HTTPException) as exc_info:
        asyncio.run(read_image_bytes(upload))
    assert exc_info.value.status_code == 413


def test_valid_upload_is_read():
    data = make_png()
    assert asyncio.run(read_image_bytes(_upload(UploadFile, data, len(data)))) == data


def test_disallowed_type_is_rejected():
    upload = _upload(UnreadableUpload, b"", 10, content_type="application/pdf")
    with pytest.raises(HTTPException) as exc_info:
        asyncio.run(read_image_bytes(upload))
    assert exc_info.value.status_code == 415


def test_decode_upload_name():
    mangled = "2차전지.png".encode("utf-8").decode("latin-1")
    assert decode_upload_name(mangled) == "2차전지.png"
    assert decode_upload_name("2차전지.png") == "2차전지.png"
    assert decode_upload_name("café.png") == "café.png"
