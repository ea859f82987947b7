"""Shared fixtures: a fake page-count provider and an in-memory error reporter."""

import os
import threading
from pathlib import Path

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from sheet_library.core import ProviderFailure  # noqa: E402
from sheet_library.services import CollectingErrorReporter, PageCountProvider  # noqa: E402


class FakePageCountProvider(PageCountProvider):
    """Page counts by file name, without opening anything.

    Unknown files get ``default_count``; names in ``failing`` raise
    ProviderFailure like an unreadable PDF would.
    """

    def __init__(self, counts=None, default_count=1):
        self.counts = dict(counts or {})
        self.default_count = default_count
        self.failing = set()
        self.calls = []
        self._lock = threading.Lock()

    def get_page_count(self, pdf_path: Path) -> int:
        pdf_path = Path(pdf_path)
        with self._lock:
            self.calls.append(pdf_path.name)
        if pdf_path.name in self.failing:
            raise ProviderFailure(f"Cannot open {pdf_path}", pdf_path)
        return self.counts.get(pdf_path.name, self.default_count)


@pytest.fixture
def provider():
    return FakePageCountProvider()


@pytest.fixture
def reporter():
    return CollectingErrorReporter(forward_to_log=False)


@pytest.fixture
def make_pdf():
    """Create a placeholder PDF file; only its name and existence matter."""

    def _make(path: Path, content: bytes = b"%PDF-1.4\n%%EOF\n") -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path

    return _make


LEGACY_SAMPLE = """<?xml version="1.0" encoding="utf-8"?>
<PdfMetaData xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">
  <lstVolInfo>
    <PdfVolumeInfo>
      <NPages>20</NPages>
      <Rotation>0</Rotation>
      <FileName>Book0.pdf</FileName>
    </PdfVolumeInfo>
    <PdfVolumeInfo>
      <NPages>10</NPages>
      <Rotation>2</Rotation>
      <FileName>Book1.pdf</FileName>
    </PdfVolumeInfo>
  </lstVolInfo>
  <LastPageNo>12</LastPageNo>
  <dtLastWrite>2024-04-27T15:40:35.0660114-07:00</dtLastWrite>
  <PageNumberOffset>3</PageNumberOffset>
  <Notes>Bought in Vienna</Notes>
  <LstInkStrokes>
    <InkStrokeClass>
      <Pageno>5</Pageno>
      <InkStrokeDimension>
        <X>800</X>
        <Y>600</Y>
      </InkStrokeDimension>
      <StrokeData>AAECAwQ=</StrokeData>
    </InkStrokeClass>
  </LstInkStrokes>
  <Favorites>
    <Favorite>
      <Pageno>7</Pageno>
      <FavoriteName>Encore</FavoriteName>
    </Favorite>
  </Favorites>
  <lstTocEntries>
    <TOCEntry>
      <SongName>Yesterday</SongName>
      <Composer>McCartney</Composer>
      <Date>1965</Date>
      <PageNo>3</PageNo>
    </TOCEntry>
    <TOCEntry>
      <SongName>Help</SongName>
      <Composer>Lennon</Composer>
      <PageNo>9</PageNo>
    </TOCEntry>
  </lstTocEntries>
</PdfMetaData>
"""


@pytest.fixture
def legacy_sample():
    return LEGACY_SAMPLE
