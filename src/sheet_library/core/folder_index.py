"""Thread-safe index of the folders that contain documents."""

import threading
from typing import Dict, List, Set


class FolderIndex:
    """Maps a folder path relative to the root to the books found in it.

    Load tasks insert concurrently, so every access goes through one lock.
    The root folder itself is stored under the empty string.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._folders: Dict[str, Set[str]] = {}

    def add(self, relative_folder: str, document_id: str) -> None:
        with self._lock:
            self._folders.setdefault(relative_folder, set()).add(document_id)

    def documents_in(self, relative_folder: str) -> Set[str]:
        with self._lock:
            return set(self._folders.get(relative_folder, set()))

    def folder_names(self) -> List[str]:
        """Sorted, de-duplicated folders below the root."""
        with self._lock:
            return sorted((name for name in self._folders if name), key=str.lower)

    def __len__(self) -> int:
        with self._lock:
            return len(self._folders)

    def __contains__(self, relative_folder: object) -> bool:
        with self._lock:
            return relative_folder in self._folders
