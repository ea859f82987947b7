"""
Sheet Library - metadata management for multi-volume PDF songbooks.

This package provides:
- Discovery of songbooks and their continuation volumes
- Reading, repairing and saving per-book sidecar metadata
- Migration from the legacy XML sidecars to JSON
- In-memory caches for volume bytes and derived previews
"""

__version__ = "0.1.0"

# Make key components available at package level
from sheet_library.core import DocumentMetadata, VolumeDescriptor
from sheet_library.coordinators import LoadPipeline, LoadResult
from sheet_library.io import DirectoryScanner, MetadataMigrator, MetadataReader, MetadataWriter

__all__ = [
    "DocumentMetadata",
    "VolumeDescriptor",
    "LoadPipeline",
    "LoadResult",
    "DirectoryScanner",
    "MetadataMigrator",
    "MetadataReader",
    "MetadataWriter",
]
