"""Metadata Reader - loads a sidecar and repairs it into a usable document."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from sheet_library.core import (
    LEGACY_SIDECAR_EXTENSION,
    NEW_SIDECAR_EXTENSION,
    DocumentMetadata,
    ParseError,
    ProviderFailure,
    TocEntry,
    VolumeDescriptor,
    sidecar_path_for,
)
from sheet_library.io.sidecar_formats import parse_sidecar
from sheet_library.services.error_reporter import ErrorReporter, LoggingErrorReporter
from sheet_library.services.page_count_provider import PageCountProvider

logger = logging.getLogger(__name__)


class MetadataReader:
    """Data Factory turning sidecar files into repaired DocumentMetadata.

    A sidecar that fails to parse is reported and skipped. It is never
    deleted: it may hold hours of TOC editing the user wants to fix by hand.
    """

    def __init__(
        self,
        page_count_provider: PageCountProvider,
        error_reporter: Optional[ErrorReporter] = None,
        prefer_legacy: bool = False,
    ) -> None:
        if page_count_provider is None:
            raise ValueError("PageCountProvider must not be None")
        self.page_count_provider = page_count_provider
        self.error_reporter = error_reporter or LoggingErrorReporter()
        self.prefer_legacy = prefer_legacy

    @property
    def extension_order(self):
        if self.prefer_legacy:
            return (LEGACY_SIDECAR_EXTENSION, NEW_SIDECAR_EXTENSION)
        return (NEW_SIDECAR_EXTENSION, LEGACY_SIDECAR_EXTENSION)

    def locate_sidecar(self, source_path: Path, is_singles: bool = False) -> Optional[Path]:
        """Find the sidecar of a PDF or singles folder, newer schema first."""
        for extension in self.extension_order:
            candidate = sidecar_path_for(source_path, extension, is_singles)
            if candidate.is_file():
                return candidate
        return None

    def read(self, source_path: Path, is_singles: bool = False) -> Optional[DocumentMetadata]:
        """Load and repair the metadata of one document.

        A document without a sidecar is synthesized from its physical file.

        Returns:
            The repaired document, or None when the sidecar could not be
            parsed or the document has no pages.
        """
        source_path = Path(source_path)
        sidecar = self.locate_sidecar(source_path, is_singles)
        if sidecar is None:
            doc = self.synthesize(source_path, is_singles)
        else:
            doc = self.load_sidecar(sidecar, source_path, is_singles)
            if doc is None:
                return None
        return doc if self.repair(doc) else None

    def load_sidecar(
        self, sidecar: Path, source_path: Path, is_singles: bool = False
    ) -> Optional[DocumentMetadata]:
        """Parse a sidecar without repairing it. Failures are reported."""
        try:
            return self.parse_file(sidecar, source_path, is_singles)
        except (ParseError, OSError) as e:
            self.error_reporter.on_exception(f"Reading {sidecar}", e)
            return None

    @staticmethod
    def parse_file(sidecar: Path, source_path: Path, is_singles: bool = False) -> DocumentMetadata:
        """Parse a sidecar file, sniffing its schema generation from the content.

        Raises:
            ParseError: If the content is malformed.
            OSError: If the file cannot be read.
        """
        sidecar = Path(sidecar)
        data = sidecar.read_bytes()
        mtime = datetime.fromtimestamp(sidecar.stat().st_mtime)
        try:
            doc = parse_sidecar(data, source_path, is_singles, sidecar_mtime=mtime)
        except ParseError as e:
            e.path = sidecar
            raise
        doc.sidecar_file = sidecar
        return doc

    def synthesize(self, source_path: Path, is_singles: bool = False) -> DocumentMetadata:
        """Default metadata for a document that has no sidecar yet."""
        doc = DocumentMetadata(source_path=source_path, is_singles=is_singles, dirty=True)
        if not is_singles:
            doc.volumes.append(
                VolumeDescriptor(file_name=source_path.name, page_count=self.page_count(source_path))
            )
        return doc

    def page_count(self, pdf_path: Path) -> int:
        """Page count from the provider; 0 when the provider fails."""
        try:
            return self.page_count_provider.get_page_count(pdf_path)
        except ProviderFailure as e:
            self.error_reporter.on_exception(f"Counting pages of {pdf_path}", e)
            return 0

    def repair(self, doc: DocumentMetadata) -> bool:
        """Apply the load-time repair rules in order.

        Returns:
            False when the document has no pages and must be excluded.
        """
        if not doc.is_singles:
            if not doc.volumes:
                doc.volumes.append(
                    VolumeDescriptor(
                        file_name=doc.source_path.name,
                        page_count=self.page_count(doc.source_path),
                    )
                )
                doc.dirty = True
            if not doc.volumes[0].file_name:
                doc.volumes[0].file_name = doc.source_path.name
                doc.dirty = True
            if not doc.toc_entries:
                doc.toc_entries.append(
                    TocEntry(song_name=doc.source_path.stem, page_no=doc.page_number_offset)
                )
                doc.dirty = True

        doc.clamp_last_viewed_page()

        if doc.total_pages == 0:
            logger.debug("Excluding %s: no pages", doc.source_path)
            return False
        return True
