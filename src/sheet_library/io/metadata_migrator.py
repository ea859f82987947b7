"""Metadata Migrator - converts legacy .bmk sidecars to the JSON format.

A conversion is only written after the JSON output has been parsed back
and compared with the original, so a bug in either codec can never
silently lose a user's TOC or favorites.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, List, Optional

from sheet_library.core import (
    LEGACY_SIDECAR_EXTENSION,
    NEW_SIDECAR_EXTENSION,
    DocumentMetadata,
    ParseError,
    VerificationMismatch,
)
from sheet_library.io.directory_scanner import DirectoryScanner
from sheet_library.io.metadata_reader import MetadataReader
from sheet_library.io.sidecar_formats import parse_new_schema, serialize_new_schema

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[Path, str], None]
NewSchemaParser = Callable[[bytes, Path, bool], DocumentMetadata]


@dataclass
class MigrationReport:
    """Counts for one migration batch."""

    total: int = 0
    converted: int = 0
    skipped_existing: int = 0
    parse_errors: int = 0
    verification_errors: int = 0
    write_errors: int = 0
    deleted: int = 0

    @property
    def failed(self) -> int:
        return self.parse_errors + self.verification_errors + self.write_errors


def compare_documents(original: DocumentMetadata, reparsed: DocumentMetadata) -> List[str]:
    """List the differences that matter for a safe migration.

    Scalars are compared directly; lists by count plus their salient fields.
    An empty list means the two documents are equivalent.
    """
    mismatches = []

    for name in ("page_number_offset", "last_viewed_page", "notes", "last_write"):
        before, after = getattr(original, name), getattr(reparsed, name)
        if before != after:
            mismatches.append(f"{name}: {before!r} != {after!r}")

    if len(original.volumes) != len(reparsed.volumes):
        mismatches.append(f"volume count: {len(original.volumes)} != {len(reparsed.volumes)}")
    else:
        for i, (a, b) in enumerate(zip(original.volumes, reparsed.volumes)):
            if a.page_count != b.page_count:
                mismatches.append(f"volume {i} page count: {a.page_count} != {b.page_count}")
            if a.file_name != b.file_name:
                mismatches.append(f"volume {i} file name: {a.file_name!r} != {b.file_name!r}")

    if len(original.toc_entries) != len(reparsed.toc_entries):
        mismatches.append(f"TOC count: {len(original.toc_entries)} != {len(reparsed.toc_entries)}")
    else:
        for i, (a, b) in enumerate(zip(original.toc_entries, reparsed.toc_entries)):
            if a.song_name != b.song_name:
                mismatches.append(f"TOC {i} song name: {a.song_name!r} != {b.song_name!r}")
            if a.page_no != b.page_no:
                mismatches.append(f"TOC {i} PageNo: {a.page_no} != {b.page_no}")

    if len(original.favorites) != len(reparsed.favorites):
        mismatches.append(f"favorite count: {len(original.favorites)} != {len(reparsed.favorites)}")
    if len(original.annotations) != len(reparsed.annotations):
        mismatches.append(f"ink count: {len(original.annotations)} != {len(reparsed.annotations)}")

    return mismatches


class MetadataMigrator:
    """Batch converter from the legacy XML generation to JSON."""

    def __init__(
        self,
        scanner: Optional[DirectoryScanner] = None,
        parse_new: NewSchemaParser = parse_new_schema,
    ) -> None:
        self.scanner = scanner or DirectoryScanner()
        self._parse_new = parse_new

    def legacy_sidecars(self, root: Path) -> Iterator[Path]:
        """Every .bmk file below root, with the scanner's skip rules.

        A singles folder's sidecar sits beside the folder, so it is listed
        with the parent folder's files.
        """
        root = Path(root)
        if not root.is_dir():
            return
        for listing in self.scanner.walk(root):
            for sidecar in listing.sidecar_files:
                if sidecar.suffix.lower() == LEGACY_SIDECAR_EXTENSION:
                    yield sidecar

    def migrate_all(
        self,
        root: Path,
        delete_legacy: bool = False,
        on_error: Optional[ErrorCallback] = None,
    ) -> MigrationReport:
        """Convert every legacy sidecar below root.

        Args:
            root: Library root folder.
            delete_legacy: Remove each .bmk after its JSON was written and verified.
            on_error: Called with (sidecar path, message) for every failure.

        Returns:
            Counts of the batch. No single file aborts it.
        """
        report = MigrationReport()
        for sidecar in self.legacy_sidecars(root):
            report.total += 1
            self.migrate_file(sidecar, report, delete_legacy, on_error)
        logger.info(
            "Migrated %d of %d legacy sidecars (%d already converted, %d failed)",
            report.converted,
            report.total,
            report.skipped_existing,
            report.failed,
        )
        return report

    def migrate_file(
        self,
        sidecar: Path,
        report: MigrationReport,
        delete_legacy: bool = False,
        on_error: Optional[ErrorCallback] = None,
    ) -> bool:
        """Convert one legacy sidecar, updating ``report``.

        Returns:
            True if a JSON sidecar was written.
        """
        sidecar = Path(sidecar)
        target = sidecar.with_suffix(NEW_SIDECAR_EXTENSION)
        source_path = sidecar.with_suffix(".pdf")

        def fail(message: str) -> bool:
            logger.warning("%s: %s", sidecar, message)
            if on_error is not None:
                on_error(sidecar, message)
            return False

        try:
            original = MetadataReader.parse_file(sidecar, source_path)
        except (ParseError, OSError) as e:
            report.parse_errors += 1
            return fail(f"parse error: {e}")

        try:
            serialized = serialize_new_schema(original)
            reparsed = self._parse_new(serialized.encode("utf-8"), source_path, False)
            mismatches = compare_documents(original, reparsed)
            if mismatches:
                raise VerificationMismatch(
                    f"{len(mismatches)} mismatch(es): " + "; ".join(mismatches), sidecar, mismatches
                )
        except ParseError as e:
            report.verification_errors += 1
            return fail(f"verification failed, converted output does not parse: {e}")
        except VerificationMismatch as e:
            report.verification_errors += 1
            return fail(f"verification failed, {e}")

        if target.exists():
            report.skipped_existing += 1
            logger.debug("Skipping %s: %s already exists", sidecar, target.name)
            return False

        try:
            target.write_text(serialized, encoding="utf-8")
        except OSError as e:
            report.write_errors += 1
            return fail(f"write error: {e}")
        report.converted += 1

        if delete_legacy:
            try:
                sidecar.unlink()
                report.deleted += 1
            except OSError as e:
                fail(f"could not delete legacy sidecar: {e}")
        return True
