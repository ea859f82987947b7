"""DocumentMetadata entity - the aggregate root for one logical book."""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from .continuation_resolver import DEFAULT_VOLUME_MARKERS
from .document_entries import Annotation, Favorite, TocEntry
from .volume_descriptor import VolumeDescriptor

if TYPE_CHECKING:
    from sheet_library.services.volume_byte_cache import VolumeByteCache

NEW_SIDECAR_EXTENSION = ".json"
LEGACY_SIDECAR_EXTENSION = ".bmk"


def sidecar_path_for(source_path: Path, extension: str, is_singles: bool = False) -> Path:
    """Sidecar path for a PDF or a singles folder.

    A PDF's sidecar replaces its extension; a singles folder's sidecar sits
    beside the folder with the extension appended to the folder name.
    """
    source_path = Path(source_path)
    if is_singles:
        return source_path.parent / f"{source_path.name}{extension}"
    return source_path.with_suffix(extension)


def _remove_quotes(value: Optional[str]) -> str:
    if not value:
        return ""
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return value.replace('"', "")
    return value


@dataclass
class DocumentMetadata:
    """All bookkeeping for one book: volumes, TOC, favorites and ink.

    Page numbers are logical: the first page of the first volume is
    ``page_number_offset`` so that a scanned TOC can keep the numbers
    printed on the pages.
    """

    source_path: Path
    is_singles: bool = False
    dirty: bool = False
    page_number_offset: int = 0
    last_viewed_page: int = 0
    last_write: datetime = field(default_factory=datetime.now)
    notes: Optional[str] = None
    volumes: List[VolumeDescriptor] = field(default_factory=list)
    toc_entries: List[TocEntry] = field(default_factory=list)
    favorites: List[Favorite] = field(default_factory=list)
    annotations: List[Annotation] = field(default_factory=list)
    byte_cache: Optional["VolumeByteCache"] = field(default=None, repr=False, compare=False)
    sidecar_file: Optional[Path] = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.source_path = Path(self.source_path)

    @property
    def total_pages(self) -> int:
        return sum(vol.page_count for vol in self.volumes)

    @property
    def max_page_number(self) -> int:
        """One past the last logical page number."""
        return self.page_number_offset + self.total_pages

    @property
    def folder(self) -> Path:
        """Folder holding the volume files."""
        return self.source_path if self.is_singles else self.source_path.parent

    def sidecar_path(self, extension: str = NEW_SIDECAR_EXTENSION) -> Path:
        return sidecar_path_for(self.source_path, extension, self.is_singles)

    def volume_index_for_page(self, page_no: int) -> int:
        """Index of the volume containing a logical page number."""
        index = 0
        page_sum = self.page_number_offset
        for vol in self.volumes:
            page_sum += vol.page_count
            if page_no < page_sum:
                break
            index += 1
        return index

    def first_page_of_volume(self, index: int) -> int:
        page_no = self.page_number_offset
        for vol in self.volumes[: max(index, 0)]:
            page_no += vol.page_count
        return page_no

    def volume_path(self, index: int) -> Path:
        """Full path of a volume file; out-of-range indexes clamp to the last volume."""
        if index >= len(self.volumes):
            index = len(self.volumes) - 1
        if index < 0:
            return self.source_path
        return self.folder / self.volumes[index].file_name

    def volume_paths(self) -> List[Path]:
        return [self.folder / vol.file_name for vol in self.volumes]

    def book_name(self, root: Optional[Path] = None,
                  volume_markers: str = DEFAULT_VOLUME_MARKERS) -> str:
        """Display name: path relative to root, no extension, no volume marker."""
        path = self.volume_path(0)
        if root is not None:
            try:
                relative = path.relative_to(Path(root))
            except ValueError:
                relative = Path(path.name)
        else:
            relative = Path(path.name)
        if relative.suffix.lower() == ".pdf":
            relative = relative.with_suffix("")
        name = relative.as_posix()
        if name and name[-1] in volume_markers:
            name = name[:-1]
        return name

    def is_favorite(self, page_no: int) -> bool:
        return any(fav.page_no == page_no for fav in self.favorites)

    def description_for_page(self, page_no: int, fallback: str = "") -> str:
        """Describe a page from the TOC.

        Entries starting on the page are joined with " | " in insertion order.
        A page without entries takes those of the closest preceding page.
        """
        by_page = {}
        for entry in self.toc_entries:
            by_page.setdefault(entry.page_no, []).append(entry)
        entries = by_page.get(page_no)
        if entries is None:
            preceding = [p for p in by_page if p < page_no]
            if preceding:
                entries = by_page[max(preceding)]
        if entries is None:
            return fallback.strip()
        descriptions = []
        for entry in entries:
            text = " ".join(
                _remove_quotes(part)
                for part in (entry.song_name, entry.composer, entry.date, entry.notes)
            )
            descriptions.append(" ".join(text.split()))
        return " | ".join(descriptions).strip()

    def clamp_last_viewed_page(self) -> bool:
        """Reset an out-of-range last viewed page to the offset.

        Returns:
            True if the value was changed.
        """
        if self.page_number_offset <= self.last_viewed_page < self.max_page_number:
            return False
        previous = self.last_viewed_page
        self.last_viewed_page = self.page_number_offset
        return previous != self.last_viewed_page

    def __str__(self) -> str:
        return f"{self.source_path.name} vols={len(self.volumes)} pages={self.total_pages}"
