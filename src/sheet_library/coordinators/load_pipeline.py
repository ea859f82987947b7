"""Load Pipeline - Orchestrates scanning, parallel metadata loading and auto-save."""

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from PySide6.QtCore import QThreadPool

from sheet_library.core import (
    DocumentMetadata,
    FolderIndex,
    Rotation,
    ScanIOError,
    TocEntry,
    VolumeDescriptor,
)
from sheet_library.io import DirectoryScanner, MetadataReader, MetadataWriter, ScannedDocument
from sheet_library.io.directory_scanner import PDF_EXTENSION, is_os_artifact
from sheet_library.services import (
    ErrorReporter,
    LibrarySettings,
    LoggingErrorReporter,
    PageCountProvider,
    VolumeByteCache,
    WorkerBatch,
)

logger = logging.getLogger(__name__)


@dataclass
class LoadResult:
    """Everything a load produced.

    Attributes:
        documents: Loaded books, sorted by book name.
        folders: Sorted folders below the root that contain books.
        folder_index: Folder -> book names.
        saved_count: Sidecars written by the auto-save.
        failed_count: Tasks that raised; each was reported and excluded.
        skipped_count: Tasks that produced no document (parse error, no pages).
    """

    documents: List[DocumentMetadata] = field(default_factory=list)
    folders: List[str] = field(default_factory=list)
    folder_index: FolderIndex = field(default_factory=FolderIndex)
    saved_count: int = 0
    failed_count: int = 0
    skipped_count: int = 0


class LoadPipeline:
    """Loads a whole library with one pool task per book or singles folder.

    Responsibilities:
    - Scan the root into documents with sidecars, new documents and singles folders
    - Read/repair, reconcile or synthesize each of them concurrently
    - Collect results into a shared aggregate and folder index
    - Attach a VolumeByteCache to every loaded document
    - Save every dirty document once all tasks have finished
    """

    def __init__(
        self,
        page_count_provider: PageCountProvider,
        error_reporter: Optional[ErrorReporter] = None,
        settings: Optional[LibrarySettings] = None,
        writer: Optional[MetadataWriter] = None,
        thread_pool: Optional[QThreadPool] = None,
    ):
        if page_count_provider is None:
            raise ValueError("PageCountProvider must not be None")

        self.settings = settings or LibrarySettings()
        self.error_reporter = error_reporter or LoggingErrorReporter()
        self.reader = MetadataReader(
            page_count_provider, self.error_reporter, prefer_legacy=self.settings.prefer_legacy
        )
        self.scanner = DirectoryScanner(
            self.error_reporter,
            prefer_legacy=self.settings.prefer_legacy,
            volume_markers=self.settings.volume_markers,
        )
        self.writer = writer or MetadataWriter()

        if thread_pool is None:
            thread_pool = QThreadPool()
            thread_pool.setMaxThreadCount(self.settings.max_workers)
        self.thread_pool = thread_pool

    def load(self, root: Path, auto_save: bool = True) -> LoadResult:
        """Load every book below ``root``.

        Args:
            root: Library root folder. A missing root gives an empty result.
            auto_save: Write dirty documents once loading is complete.

        Returns:
            LoadResult with the aggregate and counters.
        """
        root = Path(root)
        result = LoadResult()
        scan = self.scanner.scan(root)
        if scan.task_count == 0:
            return result

        aggregate: List[DocumentMetadata] = []
        aggregate_lock = threading.Lock()
        skipped = [0]

        def collect(produce: Callable[[], Optional[DocumentMetadata]], relative_folder: str) -> None:
            doc = produce()
            if doc is None:
                with aggregate_lock:
                    skipped[0] += 1
                return
            with aggregate_lock:
                aggregate.append(doc)
            result.folder_index.add(relative_folder, doc.book_name(root, self.settings.volume_markers))

        batch = WorkerBatch(self.thread_pool, self.error_reporter)
        for scanned in scan.documents_with_sidecars:
            batch.submit(
                lambda s=scanned: collect(lambda: self.load_sidecar_document(s), s.relative_folder),
                f"Reading {scanned.sidecar}",
            )
        for folder in scan.singles_folders:
            relative = folder.relative_to(root).as_posix()
            batch.submit(
                lambda f=folder, r=relative: collect(lambda: self.load_singles_folder(f), r),
                f"Loading singles folder {folder}",
            )
        for scanned in scan.new_documents:
            batch.submit(
                lambda s=scanned: collect(lambda: self.load_new_document(s), s.relative_folder),
                f"Loading {scanned.primary}",
            )
        batch.wait()

        for doc in aggregate:
            doc.byte_cache = VolumeByteCache(doc.volume_paths())

        result.documents = sorted(
            aggregate, key=lambda d: d.book_name(root, self.settings.volume_markers).lower()
        )
        result.folders = result.folder_index.folder_names()
        result.failed_count = batch.failed_count
        result.skipped_count = skipped[0]

        if auto_save:
            result.saved_count = self.writer.save_all_dirty(result.documents)

        logger.info(
            "Loaded %d books from %s (%d failed, %d skipped, %d saved)",
            len(result.documents),
            root,
            result.failed_count,
            result.skipped_count,
            result.saved_count,
        )
        return result

    def load_sidecar_document(self, scanned: ScannedDocument) -> Optional[DocumentMetadata]:
        """Read and repair a book that already has a sidecar."""
        if not scanned.primary.is_file():
            raise ScanIOError(f"Document vanished during load: {scanned.primary}", scanned.primary)

        doc = self.reader.load_sidecar(scanned.sidecar, scanned.primary)
        if doc is None:
            return None

        for volume_no, continuation in enumerate(scanned.continuations, start=1):
            if volume_no < len(doc.volumes) and not doc.volumes[volume_no].file_name:
                doc.volumes[volume_no].file_name = continuation.name
                doc.dirty = True

        return doc if self.reader.repair(doc) else None

    def load_singles_folder(self, folder: Path) -> Optional[DocumentMetadata]:
        """Load a singles folder as one book whose TOC mirrors its files."""
        sidecar = self.reader.locate_sidecar(folder, is_singles=True)
        if sidecar is not None:
            doc = self.reader.load_sidecar(sidecar, folder, is_singles=True)
            if doc is None:
                return None
        else:
            doc = DocumentMetadata(source_path=folder, is_singles=True, dirty=True)

        self.reconcile_singles(doc)
        return doc if self.reader.repair(doc) else None

    def reconcile_singles(self, doc: DocumentMetadata) -> bool:
        """Bring a singles document in line with the files in its folder.

        Volumes whose file is gone are removed, new files are appended with
        their page counts, volumes are sorted by file name and the TOC is
        rebuilt with one entry per volume.

        Returns:
            True if anything changed.
        """
        physical = sorted(
            (
                p
                for p in doc.folder.iterdir()
                if p.suffix.lower() == PDF_EXTENSION and p.is_file() and not is_os_artifact(p)
            ),
            key=lambda p: p.name,
        )
        physical_names = {p.name.lower() for p in physical}
        declared_names = {vol.file_name.lower() for vol in doc.volumes}

        deleted = [vol for vol in doc.volumes if vol.file_name.lower() not in physical_names]
        new_files = [p for p in physical if p.name.lower() not in declared_names]
        if not deleted and not new_files and doc.toc_entries:
            return False

        doc.dirty = True
        doc.volumes = [vol for vol in doc.volumes if vol.file_name.lower() in physical_names]
        for new_file in new_files:
            doc.volumes.append(
                VolumeDescriptor(file_name=new_file.name, page_count=self.reader.page_count(new_file))
            )
        doc.volumes.sort(key=lambda vol: (vol.file_name.lower(), vol.file_name))

        doc.toc_entries = []
        page_no = doc.page_number_offset
        for vol in doc.volumes:
            doc.toc_entries.append(TocEntry(song_name=Path(vol.file_name).stem, page_no=page_no))
            page_no += vol.page_count
        return True

    def load_new_document(self, scanned: ScannedDocument) -> Optional[DocumentMetadata]:
        """Synthesize metadata for a book seen for the first time."""
        doc = self.reader.synthesize(scanned.primary)
        for continuation in scanned.continuations:
            page_count = self.reader.page_count(continuation)
            doc.volumes.append(
                VolumeDescriptor(
                    file_name=continuation.name,
                    page_count=page_count,
                    rotation=Rotation.ROTATE_180 if page_count != 1 else Rotation.ROTATE_0,
                )
            )

        if not doc.toc_entries and doc.total_pages < self.settings.auto_toc_page_limit:
            doc.toc_entries.append(
                TocEntry(song_name=scanned.primary.stem, page_no=doc.page_number_offset)
            )

        doc.clamp_last_viewed_page()
        if doc.total_pages == 0:
            logger.debug("Excluding %s: no pages", scanned.primary)
            return None
        return doc
