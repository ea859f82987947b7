"""I/O layer - sidecar formats, discovery and persistence."""

from .directory_scanner import DirectoryScanner, ScannedDocument, ScanResult, resolve_primary_file
from .metadata_migrator import MetadataMigrator, MigrationReport, compare_documents
from .metadata_reader import MetadataReader
from .metadata_writer import MetadataWriter

__all__ = [
    "DirectoryScanner",
    "MetadataMigrator",
    "MetadataReader",
    "MetadataWriter",
    "MigrationReport",
    "ScanResult",
    "ScannedDocument",
    "compare_documents",
    "resolve_primary_file",
]
