"""Volume byte cache - raw PDF bytes of a document's volumes, read lazily."""

import logging
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from PySide6.QtCore import QThreadPool

from sheet_library.services.load_workers import WorkerBatch

logger = logging.getLogger(__name__)


def _read_file(path: Path) -> bytes:
    return path.read_bytes()


class VolumeByteCache:
    """Per-document cache guaranteeing at most one disk read per volume.

    Two lock levels:
    - a coarse lock guarding the index->lock and index->bytes tables, held
      only for dictionary access;
    - one lock per volume index, held across the disk read, so distinct
      volumes load in parallel while callers of the same volume wait and
      then see the cached bytes.
    """

    def __init__(
        self,
        volume_paths: Sequence[Path],
        read_bytes: Callable[[Path], bytes] = _read_file,
        thread_pool: Optional[QThreadPool] = None,
    ) -> None:
        self.volume_paths: List[Path] = [Path(p) for p in volume_paths]
        self._read_bytes = read_bytes
        self._thread_pool = thread_pool
        self._table_lock = threading.Lock()
        self._index_locks: Dict[int, threading.Lock] = {}
        self._cache: Dict[int, bytes] = {}

    def get_cached(self, index: int) -> Optional[bytes]:
        """Cached bytes of a volume, never touching the disk."""
        with self._table_lock:
            return self._cache.get(index)

    def get_or_load(self, index: int) -> Optional[bytes]:
        """Bytes of a volume, reading the file on first use.

        Returns:
            The file content, or None if the volume file does not exist.

        Raises:
            IndexError: If the document has no such volume.
        """
        if not 0 <= index < len(self.volume_paths):
            raise IndexError(f"Volume index {index} out of range (0..{len(self.volume_paths) - 1})")

        with self._table_lock:
            data = self._cache.get(index)
            if data is not None:
                return data
            index_lock = self._index_locks.get(index)
            if index_lock is None:
                index_lock = threading.Lock()
                self._index_locks[index] = index_lock

        with index_lock:
            with self._table_lock:
                data = self._cache.get(index)
            if data is not None:
                return data

            path = self.volume_paths[index]
            if not path.is_file():
                logger.debug("Volume %d missing: %s", index, path)
                return None
            data = self._read_bytes(path)
            with self._table_lock:
                self._cache[index] = data
            return data

    def preload_all(self) -> WorkerBatch:
        """Start background loads for every volume.

        Returns:
            The batch of workers; call ``wait()`` on it to block until done.
        """
        pool = self._thread_pool or QThreadPool.globalInstance()
        batch = WorkerBatch(pool)
        for index, path in enumerate(self.volume_paths):
            batch.submit(lambda i=index: self.get_or_load(i), f"Preloading {path}")
        return batch

    def clear(self) -> None:
        """Drop cached bytes.

        The per-index locks are kept: recreating one while a load for the
        same index holds the old one would allow a second read. Must not be
        called while get_or_load is running for this document.
        """
        with self._table_lock:
            self._cache.clear()

    @property
    def cached_count(self) -> int:
        with self._table_lock:
            return len(self._cache)

    def __len__(self) -> int:
        return len(self.volume_paths)
