"""Shared fixtures: sandboxed storage directories, an app client and test images."""

import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from dal.image_dal import JsonImageDAL
from services.image_store import UploadStorage


def make_png(width=64, height=48, color=(200, 30, 30)):
    """Return PNG bytes for a solid-colour image."""
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def temp_dirs(tmp_path, monkeypatch):
    """Point DATA_DIR and UPLOAD_DIR at a temporary location."""
    data_dir = tmp_path / "data"
    upload_dir = tmp_path / "uploads"
    monkeypatch.setenv("DATA_DIR", str(data_dir))
    monkeypatch.setenv("UPLOAD_DIR", str(upload_dir))
    monkeypatch.delenv("PRUNE_ORPHANED_UPLOADS", raising=False)
    return data_dir, upload_dir


@pytest.fixture
def client(temp_dirs):
    """A TestClient whose lifespan has prepared the sandboxed storage."""
    from main import create_app

    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture
def ticking_clock(monkeypatch):
    """Make every `updatedAt` refresh return a later timestamp than any before it."""
    import itertools

    import models.image_record as image_record

    ticks = itertools.count(1)
    monkeypatch.setattr(
        image_record,
        "utc_now_iso",
        lambda: _tick_iso(next(ticks)),
    )


def _tick_iso(n):
    return f"2099-01-01T{n // 3600:02d}:{n // 60 % 60:02d}:{n % 60:02d}.000Z"


@pytest.fixture
def store(tmp_path):
    return JsonImageDAL(tmp_path / "data" / "images.json")


@pytest.fixture
def storage(tmp_path):
    upload_dir = tmp_path / "uploads"
    upload_dir.mkdir()
    return UploadStorage(upload_dir)
