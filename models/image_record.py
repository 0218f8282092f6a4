from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

UNCLASSIFIED = "미분류"
IMAGE_STATUSES = ("candidate", "final", "reference")


def utc_now_iso() -> str:
    """Return the current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class ImageRecord:
    """In-memory representation of one entry of the library document.

    Attributes:
        id: Identifier allocated from the document's `lastId` counter.
        name: Original (decoded) upload filename.
        filename: Filename of the primary file in the upload directory.
        service: Service labels attached to this theme, or `[UNCLASSIFIED]`.
        theme: Theme label, derived from the filename or set manually.
        status: One of `IMAGE_STATUSES`.
        service_images: Service label -> `/uploads/<file>` URL of its variant.
        url: Primary representative image shown as the record's thumbnail.
        extra: Unrecognised keys read from disk, written back unchanged.
    """

    id: int
    name: str
    filename: str
    service: List[str] = field(default_factory=lambda: [UNCLASSIFIED])
    theme: str = UNCLASSIFIED
    theme_description: str = ""
    status: str = "candidate"
    tags: List[str] = field(default_factory=list)
    mood: List[str] = field(default_factory=list)
    assignees: List[str] = field(default_factory=list)
    prompt: str = ""
    memo: str = ""
    service_images: Dict[str, str] = field(default_factory=dict)
    url: str = ""
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)
    extra: Dict[str, Any] = field(default_factory=dict)

    # Field name -> JSON key
    _KEYS = {
        "id": "id",
        "name": "name",
        "filename": "filename",
        "service": "service",
        "theme": "theme",
        "theme_description": "themeDescription",
        "status": "status",
        "tags": "tags",
        "mood": "mood",
        "assignees": "assignees",
        "prompt": "prompt",
        "memo": "memo",
        "service_images": "serviceImages",
        "url": "url",
        "created_at": "createdAt",
        "updated_at": "updatedAt",
    }

    def touch(self) -> None:
        """Refresh `updated_at`."""
        self.updated_at = utc_now_iso()

    def set_representative(self, url: str) -> None:
        """Point the record's thumbnail at `url`; the last image set always wins."""
        self.url = url
        self.touch()

    def add_service(self, service: str) -> None:
        """Add `service` to the label list, dropping the unclassified sentinel."""
        if service not in self.service:
            self.service = [s for s in self.service if s != UNCLASSIFIED] + [service]

    def set_service_image(self, service: str, url: str) -> None:
        """Attach (or replace) the variant for `service` and make it the representative."""
        self.service_images[service] = url
        self.set_representative(url)

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        for attr, key in self._KEYS.items():
            value = getattr(self, attr)
            if isinstance(value, (list, dict)):
                value = type(value)(value)
            data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImageRecord":
        known = set(cls._KEYS.values())
        kwargs: Dict[str, Any] = {}
        for attr, key in cls._KEYS.items():
            if key in data and data[key] is not None:
                kwargs[attr] = data[key]
        service = kwargs.get("service")
        if isinstance(service, str):
            kwargs["service"] = [service]
        kwargs["extra"] = {k: v for k, v in data.items() if k not in known}
        return cls(**kwargs)


@dataclass
class LibraryDocument:
    """The whole persisted state: every record plus the id counter."""

    images: List[ImageRecord] = field(default_factory=list)
    last_id: int = 0

    def allocate_id(self) -> int:
        self.last_id += 1
        return self.last_id

    def find(self, image_id: int) -> Optional[ImageRecord]:
        for record in self.images:
            if record.id == image_id:
                return record
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {"images": [r.to_dict() for r in self.images], "lastId": self.last_id}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LibraryDocument":
        images = [ImageRecord.from_dict(item) for item in data.get("images") or []]
        return cls(images=images, last_id=int(data.get("lastId") or 0))
