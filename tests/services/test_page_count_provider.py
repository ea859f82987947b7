"""Tests for the QtPdf-backed page count provider."""

import pytest
from PySide6.QtCore import QCoreApplication

from sheet_library.core import ProviderFailure
from sheet_library.services import QtPdfPageCountProvider


def ensure_qt_app():
    if QCoreApplication.instance() is None:
        QCoreApplication([])


def test_missing_file_raises_provider_failure(tmp_path):
    provider = QtPdfPageCountProvider()

    with pytest.raises(ProviderFailure) as excinfo:
        provider.get_page_count(tmp_path / "Gone.pdf")
    assert excinfo.value.path == tmp_path / "Gone.pdf"


def test_unreadable_content_raises_provider_failure(tmp_path):
    ensure_qt_app()
    not_a_pdf = tmp_path / "Notes.pdf"
    not_a_pdf.write_bytes(b"this is not a pdf")

    with pytest.raises(ProviderFailure):
        QtPdfPageCountProvider().get_page_count(not_a_pdf)
