"""Domain layer - pure entities and rules for songbook metadata."""

from .continuation_resolver import (
    ContinuationGroup,
    base_name,
    is_continuation_of,
    resolve_continuations,
    sort_stems,
)
from .document_entries import Annotation, Favorite, TocEntry
from .document_metadata import (
    LEGACY_SIDECAR_EXTENSION,
    NEW_SIDECAR_EXTENSION,
    DocumentMetadata,
    sidecar_path_for,
)
from .errors import (
    LibraryError,
    ParseError,
    ProviderFailure,
    ScanIOError,
    VerificationMismatch,
    WriteFailure,
)
from .folder_index import FolderIndex
from .volume_descriptor import Rotation, VolumeDescriptor

__all__ = [
    "Annotation",
    "ContinuationGroup",
    "DocumentMetadata",
    "Favorite",
    "FolderIndex",
    "LEGACY_SIDECAR_EXTENSION",
    "LibraryError",
    "NEW_SIDECAR_EXTENSION",
    "ParseError",
    "ProviderFailure",
    "Rotation",
    "ScanIOError",
    "TocEntry",
    "VerificationMismatch",
    "VolumeDescriptor",
    "WriteFailure",
    "base_name",
    "is_continuation_of",
    "resolve_continuations",
    "sidecar_path_for",
    "sort_stems",
]
