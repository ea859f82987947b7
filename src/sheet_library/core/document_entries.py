"""Page-anchored entries of a document: TOC entries, favorites, annotations."""

from dataclasses import dataclass
from typing import Optional

JSON_PAYLOAD = "json"
ISF_PAYLOAD = "isf"


@dataclass
class TocEntry:
    """A named reference to the starting page of a piece within a book."""

    song_name: Optional[str] = None
    composer: Optional[str] = None
    notes: Optional[str] = None
    date: Optional[str] = None
    page_no: int = 0
    link: Optional[str] = None

    def __str__(self) -> str:
        parts = [str(self.page_no), self.song_name, self.composer, self.date, self.notes]
        return " ".join(p for p in parts if p).strip()


@dataclass
class Favorite:
    """A page the user marked as favorite."""

    page_no: int
    name: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.name or ''} {self.page_no}".strip()


@dataclass
class Annotation:
    """Ink captured on a page, kept as an opaque payload.

    Attributes:
        page_no: Page the ink belongs to.
        canvas_width: Width of the canvas when the ink was captured.
        canvas_height: Height of the canvas when the ink was captured.
        payload: Raw stroke data, never interpreted by this package.
        payload_format: "json" for portable strokes, "isf" for binary ink.
    """

    page_no: int
    canvas_width: float = 0.0
    canvas_height: float = 0.0
    payload: bytes = b""
    payload_format: str = JSON_PAYLOAD

    def __post_init__(self) -> None:
        # An empty payload carries no strokes to decode.
        if not self.payload:
            self.payload_format = ISF_PAYLOAD

    @staticmethod
    def detect_format(payload: bytes) -> str:
        """JSON stroke payloads start with '{'; anything else is binary ink."""
        return JSON_PAYLOAD if payload[:1] == b"{" else ISF_PAYLOAD
