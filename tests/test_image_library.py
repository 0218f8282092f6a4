import asyncio

import pytest

from conftest import make_png
from services.image_ingest import ImageIngestService, UploadedImage
from services.image_library import ImageLibraryService, ImageNotFoundError


@pytest.fixture
def library(store, storage):
    return ImageLibraryService(store, storage)


@pytest.fixture
def seeded(store, storage):
    ingest = ImageIngestService(store, storage)
    uploads = [UploadedImage(name, make_png()) for name in ("ETFG_b.png", "COMPG_a.png", "ETFG_a.png")]
    return asyncio.run(ingest.ingest(uploads)).created


def test_update_applies_allow_listed_fields_only(library, seeded):
    before = seeded[0]
    record = asyncio.run(
        library.update_image(
            before.id,
            {"memo": "hello", "themeDescription": "desc", "status": "final", "id": 99, "filename": "x", "tags": None},
        )
    )
    assert record.memo == "hello"
    assert record.theme_description == "desc"
    assert record.status == "final"
    assert record.id == before.id
    assert record.filename == before.filename
    assert record.tags == before.tags


def test_update_refreshes_updated_at(library, seeded, store, ticking_clock):
    before = seeded[0].updated_at
    asyncio.run(library.update_image(seeded[0].id, {"memo": "hello"}))
    assert asyncio.run(store.read_all()).find(seeded[0].id).updated_at > before


def test_bulk_status_refreshes_updated_at(library, seeded, store, ticking_clock):
    before = {r.id: r.updated_at for r in seeded}
    asyncio.run(library.bulk_update_status([seeded[1].id, 999], "final"))

    saved = {r.id: r.updated_at for r in asyncio.run(store.read_all()).images}
    assert saved[seeded[1].id] > before[seeded[1].id]
    assert saved[seeded[0].id] == before[seeded[0].id]


def test_update_unknown_id_raises(library, seeded):
    with pytest.raises(ImageNotFoundError):
        asyncio.run(library.update_image(404, {"memo": "x"}))


def test_themes_are_sorted_and_distinct(library, seeded):
    assert asyncio.run(library.list_themes()) == ["a", "b"]


def test_stats(library, seeded):
    asyncio.run(library.bulk_update_status([seeded[0].id], "final"))
    stats = asyncio.run(library.get_stats())
    assert stats == {"total": 3, "byStatus": {"final": 1, "candidate": 2, "reference": 0}, "themes": 2}


def test_bulk_status_skips_unknown_ids(library, seeded, store):
    updated = asyncio.run(library.bulk_update_status([seeded[1].id, 999], "reference"))
    assert updated == 1
    statuses = {r.id: r.status for r in asyncio.run(store.read_all()).images}
    assert statuses[seeded[1].id] == "reference"
    assert statuses[seeded[0].id] == "candidate"


def test_bulk_status_rejects_unknown_status(library, seeded):
    with pytest.raises(ValueError):
        asyncio.run(library.bulk_update_status([seeded[0].id], "archived"))


def test_delete_removes_record_and_files(library, seeded, store, storage):
    target = seeded[0]
    variant = storage.upload_dir / "123-ETFG_b_COMPG.png"
    variant.write_bytes(make_png())
    asyncio.run(library.update_image(target.id, {"serviceImages": {**target.service_images, "COMPG": "/uploads/123-ETFG_b_COMPG.png"}}))

    asyncio.run(library.delete_image(target.id))

    remaining = [r.id for r in asyncio.run(store.read_all()).images]
    assert target.id not in remaining
    assert len(remaining) == 2
    assert not (storage.upload_dir / target.filename).exists()
    assert not variant.exists()


def test_delete_keeps_files_other_records_still_use(library, seeded, store, storage):
    keeper, doomed = seeded[0], seeded[1]
    asyncio.run(library.update_image(doomed.id, {"serviceImages": {"ETFG": keeper.url}}))

    asyncio.run(library.delete_image(doomed.id))

    assert (storage.upload_dir / keeper.filename).exists()
    assert not (storage.upload_dir / doomed.filename).exists()
    assert asyncio.run(store.read_all()).find(keeper.id) is not None


def test_delete_tolerates_missing_file(library, seeded, storage):
    (storage.upload_dir / seeded[1].filename).unlink()
    asyncio.run(library.delete_image(seeded[1].id))


def test_delete_unknown_id_raises(library, seeded):
    with pytest.raises(ImageNotFoundError):
        asyncio.run(library.delete_image(12345))
