"""Directory Scanner - walks a library root and classifies what it finds.

The walk is iterative and returns a flat classification; no state is kept
between folders except the explicit ScanResult accumulator.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence

from sheet_library.core import (
    LEGACY_SIDECAR_EXTENSION,
    NEW_SIDECAR_EXTENSION,
    ScanIOError,
    base_name,
    resolve_continuations,
    sort_stems,
)
from sheet_library.core.continuation_resolver import DEFAULT_VOLUME_MARKERS
from sheet_library.services.error_reporter import ErrorReporter, LoggingErrorReporter

logger = logging.getLogger(__name__)

PDF_EXTENSION = ".pdf"
HIDDEN_FOLDER_NAME = "hidden"
SINGLES_FOLDER_SUFFIX = "singles"
MACOS_ARCHIVE_FOLDER = "__MACOSX"
MACOS_RESOURCE_PREFIX = "._"


def is_os_artifact(path: Path) -> bool:
    """macOS resource forks and archive folders are never library content."""
    return path.name.startswith(MACOS_RESOURCE_PREFIX) or MACOS_ARCHIVE_FOLDER in path.parts


def is_singles_folder(path: Path) -> bool:
    return path.name.lower().endswith(SINGLES_FOLDER_SUFFIX)


def resolve_primary_file(
    sidecar: Path,
    pdf_files: Sequence[Path],
    volume_markers: str = DEFAULT_VOLUME_MARKERS,
) -> Optional[Path]:
    """Find the PDF a sidecar belongs to.

    Exact stem match first; otherwise a PDF whose base name is the sidecar
    stem (``Book.json`` for ``Book0.pdf``) or whose stem is the sidecar stem
    followed by a digit.
    """
    stem = sidecar.stem.strip().lower()
    for pdf in pdf_files:
        if pdf.stem.strip().lower() == stem:
            return pdf
    for pdf in sorted(pdf_files, key=lambda p: p.name.lower()):
        pdf_stem = pdf.stem.strip().lower()
        if base_name(pdf_stem, volume_markers) == stem:
            return pdf
        if len(pdf_stem) > len(stem) and pdf_stem.startswith(stem) and pdf_stem[len(stem)].isdigit():
            return pdf
    return None


@dataclass
class FolderListing:
    """Files of one folder, as seen by the walk."""

    path: Path
    relative_folder: str
    pdf_files: List[Path] = field(default_factory=list)
    sidecar_files: List[Path] = field(default_factory=list)


@dataclass
class ScannedDocument:
    """A logical book: primary PDF, continuation PDFs and its sidecar if any."""

    folder: Path
    relative_folder: str
    primary: Path
    continuations: List[Path] = field(default_factory=list)
    sidecar: Optional[Path] = None


@dataclass
class ScanResult:
    """Disjoint classification of a library root."""

    documents_with_sidecars: List[ScannedDocument] = field(default_factory=list)
    new_documents: List[ScannedDocument] = field(default_factory=list)
    singles_folders: List[Path] = field(default_factory=list)
    orphan_sidecars: List[Path] = field(default_factory=list)

    @property
    def task_count(self) -> int:
        return len(self.documents_with_sidecars) + len(self.new_documents) + len(self.singles_folders)


class DirectoryScanner:
    """Finds songbooks, their continuation volumes and their sidecars."""

    def __init__(
        self,
        error_reporter: Optional[ErrorReporter] = None,
        prefer_legacy: bool = False,
        volume_markers: str = DEFAULT_VOLUME_MARKERS,
    ) -> None:
        self.error_reporter = error_reporter or LoggingErrorReporter()
        self.prefer_legacy = prefer_legacy
        self.volume_markers = volume_markers

    def scan(self, root: Path) -> ScanResult:
        """Classify everything below ``root``.

        A missing or unreadable root gives an empty result, not an error.
        """
        result = ScanResult()
        root = Path(root)
        if not root.is_dir():
            logger.info("Library root %s does not exist", root)
            return result

        for listing in self.walk(root):
            if is_singles_folder(listing.path):
                result.singles_folders.append(listing.path)
            else:
                self._classify_folder(listing, result)

        logger.info(
            "Scanned %s: %d with sidecar, %d new, %d singles folders",
            root,
            len(result.documents_with_sidecars),
            len(result.new_documents),
            len(result.singles_folders),
        )
        return result

    def walk(self, root: Path) -> Iterator[FolderListing]:
        """Depth-first walk yielding one listing per library folder.

        Hidden folders and OS artifacts are skipped. A singles folder is
        yielded like any other; its subfolders are still walked and grouped
        as ordinary folders. Unreadable folders are reported and their
        subtree is skipped.
        """
        root = Path(root)
        stack = [root]
        while stack:
            folder = stack.pop()
            try:
                entries = sorted(folder.iterdir(), key=lambda p: p.name.lower())
            except OSError as e:
                self.error_reporter.on_exception(
                    f"Reading folder {folder}", ScanIOError(f"Cannot read folder: {e}", folder)
                )
                continue

            relative = folder.relative_to(root).as_posix()
            listing = FolderListing(path=folder, relative_folder="" if relative == "." else relative)
            subfolders = []
            for entry in entries:
                if is_os_artifact(entry):
                    continue
                if entry.is_dir():
                    if entry.name.lower() != HIDDEN_FOLDER_NAME:
                        subfolders.append(entry)
                    continue
                suffix = entry.suffix.lower()
                if suffix == PDF_EXTENSION:
                    listing.pdf_files.append(entry)
                elif suffix in (NEW_SIDECAR_EXTENSION, LEGACY_SIDECAR_EXTENSION):
                    listing.sidecar_files.append(entry)

            yield listing
            stack.extend(reversed(subfolders))

    def preferred_sidecars(self, sidecar_files: Sequence[Path]) -> Dict[str, Path]:
        """One sidecar per stem, the preferred generation winning."""
        order = (NEW_SIDECAR_EXTENSION, LEGACY_SIDECAR_EXTENSION)
        if self.prefer_legacy:
            order = order[::-1]
        chosen: Dict[str, Path] = {}
        for sidecar in sorted(sidecar_files, key=lambda p: order.index(p.suffix.lower())):
            chosen.setdefault(sidecar.stem.strip().lower(), sidecar)
        return chosen

    def _classify_folder(self, listing: FolderListing, result: ScanResult) -> None:
        by_stem = {pdf.stem: pdf for pdf in listing.pdf_files}
        groups = resolve_continuations(sort_stems(by_stem), self.volume_markers)

        documents = [
            ScannedDocument(
                folder=listing.path,
                relative_folder=listing.relative_folder,
                primary=by_stem[group.primary],
                continuations=[by_stem[stem] for stem in group.continuations],
            )
            for group in groups
        ]
        by_primary = {doc.primary: doc for doc in documents}

        primary_stems = {stem.strip().lower() for stem in by_stem}
        sidecars = sorted(
            self.preferred_sidecars(listing.sidecar_files).items(),
            key=lambda item: (item[0] not in primary_stems, item[0]),
        )
        for _, sidecar in sidecars:
            unclaimed = [doc.primary for doc in documents if doc.sidecar is None]
            primary = resolve_primary_file(sidecar, unclaimed, self.volume_markers)
            if primary is None:
                logger.debug("No document for sidecar %s", sidecar)
                result.orphan_sidecars.append(sidecar)
                continue
            by_primary[primary].sidecar = sidecar

        for doc in documents:
            if doc.sidecar is not None:
                result.documents_with_sidecars.append(doc)
            else:
                result.new_documents.append(doc)
