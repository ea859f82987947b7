"""Preview cache - derived artifacts (page previews, cover thumbnails) per page.

Artifacts come from an injected factory and are never interpreted here.
Unlike VolumeByteCache there is no per-key locking: two threads missing the
same key may both run the factory, and the last one to finish wins.
"""

import hashlib
import threading
from pathlib import Path
from typing import Callable, Dict, Generic, Optional, TypeVar

T = TypeVar("T")

ArtifactFactory = Callable[[Path, int], T]


def preview_key(pdf_path: Path, page_no: int) -> str:
    """Stable key: sha1 of the resolved document path plus the page number."""
    resolved = Path(pdf_path).resolve()
    return hashlib.sha1(f"{resolved}#{page_no}".encode("utf-8")).hexdigest()


class PreviewCache(Generic[T]):
    """Compute-once cache of artifacts keyed by (document path, page)."""

    def __init__(self, factory: ArtifactFactory) -> None:
        if factory is None:
            raise ValueError("Artifact factory must not be None")
        self._factory = factory
        self._lock = threading.Lock()
        self._artifacts: Dict[str, T] = {}

    def get(self, pdf_path: Path, page_no: int = 0) -> T:
        """Return the cached artifact, producing it on a miss."""
        key = preview_key(pdf_path, page_no)
        with self._lock:
            if key in self._artifacts:
                return self._artifacts[key]
        artifact = self._factory(Path(pdf_path), page_no)
        with self._lock:
            self._artifacts[key] = artifact
        return artifact

    def get_cached(self, pdf_path: Path, page_no: int = 0) -> Optional[T]:
        with self._lock:
            return self._artifacts.get(preview_key(pdf_path, page_no))

    def has_cached(self, pdf_path: Path, page_no: int = 0) -> bool:
        with self._lock:
            return preview_key(pdf_path, page_no) in self._artifacts

    def clear(self) -> None:
        """Free every cached artifact."""
        with self._lock:
            self._artifacts.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._artifacts)
