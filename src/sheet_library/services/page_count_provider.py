"""Page count providers - the only place a PDF is ever opened for its structure."""

from abc import ABC, abstractmethod
from pathlib import Path

from PySide6.QtPdf import QPdfDocument

from sheet_library.core import ProviderFailure


class PageCountProvider(ABC):
    """Returns the number of pages of a PDF file.

    Called concurrently from load tasks, so implementations must be
    thread-safe.
    """

    @abstractmethod
    def get_page_count(self, pdf_path: Path) -> int:
        """Count the pages of a document.

        Raises:
            ProviderFailure: If the document cannot be opened.
        """


class QtPdfPageCountProvider(PageCountProvider):
    """Counts pages with Qt's PDF module.

    A QPdfDocument is created per call and never shared between threads.
    """

    def get_page_count(self, pdf_path: Path) -> int:
        pdf_path = Path(pdf_path)
        if not pdf_path.is_file():
            raise ProviderFailure(f"PDF file does not exist: {pdf_path}", pdf_path)

        document = QPdfDocument()
        try:
            error = document.load(str(pdf_path))
            if error != QPdfDocument.Error.None_:
                raise ProviderFailure(f"Failed to open PDF ({error.name}): {pdf_path}", pdf_path)
            return document.pageCount()
        finally:
            document.close()
