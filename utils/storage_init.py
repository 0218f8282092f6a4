import os
from pathlib import Path
from typing import Optional

from dal.image_dal import JsonImageDAL
from services.image_store import UploadStorage

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_FILENAME = "images.json"


def _resolve_dir(env_name: str, default: Path) -> Path:
    env_dir = os.getenv(env_name)
    directory = Path(env_dir).expanduser() if env_dir and env_dir.strip() else default

    # If the path exists but is not a directory, that's a configuration error.
    if directory.exists() and not directory.is_dir():
        raise RuntimeError(
            f"{env_name}={str(directory)!r} points to a file, not a directory. "
            f"Please set {env_name} to a directory path."
        )
    return directory


class StorageInitializer:
    """
    Resolve and prepare the on-disk locations used by the image library.

    - The library document lives at: <DATA_DIR>/images.json
      (DATA_DIR defaults to `<repo>/data`).
    - Uploaded images live in UPLOAD_DIR (defaults to `<repo>/uploads`).
    - Resolution happens at construction time and only validates paths;
      nothing is created until `ensure_storage()` runs (app startup).
    - `ensure_storage()` creates both directories and an empty document
      `{"images": [], "lastId": 0}` when none exists. Existing data is kept.
    """

    def __init__(self, data_dir: Optional[Path | str] = None, upload_dir: Optional[Path | str] = None) -> None:
        self.data_dir = Path(data_dir) if data_dir else _resolve_dir("DATA_DIR", BASE_DIR / "data")
        self.upload_dir = Path(upload_dir) if upload_dir else _resolve_dir("UPLOAD_DIR", BASE_DIR / "uploads")
        self.data_path = self.data_dir / DATA_FILENAME

        self.image_dal = JsonImageDAL(self.data_path)
        self.upload_storage = UploadStorage(self.upload_dir)
        self._initialized = False

    async def ensure_storage(self) -> None:
        """Create the data/upload directories and the library document if missing.

        Subsequent calls on the same instance are no-ops.
        """
        if self._initialized:
            return

        for directory in (self.data_dir, self.upload_dir):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except Exception as exc:
                raise RuntimeError(f"Failed to create or access directory at {directory}") from exc

        await self.image_dal.ensure_document()
        self._initialized = True


def env_flag(name: str, default: bool = False) -> bool:
    """Read a boolean environment variable (`1`, `true`, `yes`, `on`)."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")
