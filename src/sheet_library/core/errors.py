"""Error taxonomy for library scanning, sidecar I/O and migration.

All errors derive from RuntimeError so callers that only care about
"something failed" can keep catching RuntimeError, the way the rest of
the package reports failures.
"""

from pathlib import Path
from typing import Optional


class LibraryError(RuntimeError):
    """Base class for every failure raised by sheet_library."""

    def __init__(self, message: str, path: Optional[Path] = None) -> None:
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class ScanIOError(LibraryError):
    """A directory could not be read; its subtree is skipped."""


class ParseError(LibraryError):
    """A sidecar file is malformed. The source file is always preserved."""


class VerificationMismatch(LibraryError):
    """A migrated sidecar does not round-trip to the original content."""

    def __init__(self, message: str, path: Optional[Path] = None, mismatches=None) -> None:
        super().__init__(message, path)
        self.mismatches = list(mismatches or [])


class ProviderFailure(LibraryError):
    """The page-count provider could not open a document."""


class WriteFailure(LibraryError):
    """Persisting a sidecar failed; the dirty flag stays set for a retry."""
