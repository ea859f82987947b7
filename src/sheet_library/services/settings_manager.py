"""Settings Manager - library configuration from the environment and .env."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from sheet_library.core.continuation_resolver import DEFAULT_VOLUME_MARKERS

DEFAULT_MAX_WORKERS = 4
# Books shorter than this are assumed to hold a single piece.
DEFAULT_AUTO_TOC_PAGE_LIMIT = 11

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class LibrarySettings:
    """Effective configuration for scanning and loading a library."""

    root_folder: Optional[Path] = None
    prefer_legacy: bool = False
    max_workers: int = DEFAULT_MAX_WORKERS
    auto_toc_page_limit: int = DEFAULT_AUTO_TOC_PAGE_LIMIT
    volume_markers: str = DEFAULT_VOLUME_MARKERS
    log_level: str = "INFO"


class SettingsManager:
    """
    Reads library settings from environment variables.

    Values come from the process environment, completed by a .env file in
    the project root. Variables are prefixed with SHEET_LIBRARY_.
    """

    def __init__(self, project_root: Optional[Path] = None):
        """
        Initialize settings manager.

        Args:
            project_root: Path to project root where .env is located.
                         If None, searches upward from current file.
        """
        if project_root is None:
            current = Path(__file__).resolve()
            project_root = current.parent.parent.parent.parent

        env_path = project_root / ".env"
        load_dotenv(dotenv_path=env_path)

        self._project_root = project_root

    def get_root_folder(self) -> Optional[Path]:
        value = self._get("SHEET_LIBRARY_ROOT")
        return Path(value).expanduser() if value else None

    def get_prefer_legacy(self) -> bool:
        value = self._get("SHEET_LIBRARY_PREFER_LEGACY")
        return value is not None and value.lower() in _TRUE_VALUES

    def get_max_workers(self) -> int:
        return self._get_positive_int("SHEET_LIBRARY_MAX_WORKERS", DEFAULT_MAX_WORKERS)

    def get_auto_toc_page_limit(self) -> int:
        return self._get_positive_int("SHEET_LIBRARY_AUTO_TOC_PAGE_LIMIT", DEFAULT_AUTO_TOC_PAGE_LIMIT)

    def get_volume_markers(self) -> str:
        return self._get("SHEET_LIBRARY_VOLUME_MARKERS") or DEFAULT_VOLUME_MARKERS

    def get_log_level(self) -> str:
        return (self._get("SHEET_LIBRARY_LOG_LEVEL") or "INFO").upper()

    def load_library_settings(self) -> LibrarySettings:
        return LibrarySettings(
            root_folder=self.get_root_folder(),
            prefer_legacy=self.get_prefer_legacy(),
            max_workers=self.get_max_workers(),
            auto_toc_page_limit=self.get_auto_toc_page_limit(),
            volume_markers=self.get_volume_markers(),
            log_level=self.get_log_level(),
        )

    def reload_env(self) -> None:
        """Reload environment variables from .env file."""
        env_path = self._project_root / ".env"
        load_dotenv(dotenv_path=env_path, override=True)

    @staticmethod
    def _get(name: str) -> Optional[str]:
        value = os.getenv(name)
        return value.strip() if value and value.strip() else None

    def _get_positive_int(self, name: str, default: int) -> int:
        value = self._get(name)
        if value is None:
            return default
        try:
            number = int(value)
        except ValueError:
            raise RuntimeError(f"{name} must be an integer, got {value!r}")
        if number <= 0:
            raise RuntimeError(f"{name} must be positive, got {number}")
        return number
