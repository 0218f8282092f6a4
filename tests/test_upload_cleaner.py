import asyncio

from conftest import make_png
from services.image_ingest import ImageIngestService, UploadedImage
from utils.upload_cleaner import UploadCleaner


def test_prune_removes_only_unreferenced_files(store, storage):
    ingest = ImageIngestService(store, storage)
    record = asyncio.run(ingest.ingest([UploadedImage("ETFG_a.png", make_png())])).created[0]
    orphan = storage.upload_dir / "1-leftover.png"
    orphan.write_bytes(make_png())

    removed = asyncio.run(UploadCleaner(store, storage).prune_orphaned_uploads())

    assert removed == 1
    assert not orphan.exists()
    assert (storage.upload_dir / record.filename).exists()


def test_prune_with_missing_upload_dir(store, tmp_path):
    from services.image_store import UploadStorage

    cleaner = UploadCleaner(store, UploadStorage(tmp_path / "nowhere"))
    assert asyncio.run(cleaner.prune_orphaned_uploads()) == 0
