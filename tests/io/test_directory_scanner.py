"""Tests for DirectoryScanner - walking a library and classifying its files."""

import os
import sys
from pathlib import Path

import pytest

from sheet_library.io import DirectoryScanner, resolve_primary_file


@pytest.fixture
def scanner(reporter):
    return DirectoryScanner(reporter)


def names(paths):
    return [Path(p).name for p in paths]


class TestResolvePrimaryFile:
    def test_exact_stem_match(self):
        pdfs = [Path("Book.pdf"), Path("Book1.pdf")]
        assert resolve_primary_file(Path("Book.json"), pdfs) == Path("Book.pdf")

    def test_base_name_match(self):
        assert resolve_primary_file(Path("Beatles.json"), [Path("Beatles0.pdf")]) == Path("Beatles0.pdf")

    def test_stem_followed_by_digit(self):
        assert resolve_primary_file(Path("Song.bmk"), [Path("Song2.pdf")]) == Path("Song2.pdf")

    def test_no_match(self):
        assert resolve_primary_file(Path("Song.json"), [Path("Songbook.pdf")]) is None


class TestScan:
    def test_groups_continuations_and_splits_by_sidecar(self, scanner, tmp_path, make_pdf):
        for name in ("Beatles0.pdf", "Beatles1.pdf", "Beatles2.pdf", "Stones.pdf"):
            make_pdf(tmp_path / name)
        (tmp_path / "Beatles0.json").write_text("{}")

        result = scanner.scan(tmp_path)

        assert len(result.documents_with_sidecars) == 1
        beatles = result.documents_with_sidecars[0]
        assert beatles.primary.name == "Beatles0.pdf"
        assert names(beatles.continuations) == ["Beatles1.pdf", "Beatles2.pdf"]
        assert beatles.sidecar.name == "Beatles0.json"
        assert [d.primary.name for d in result.new_documents] == ["Stones.pdf"]
        assert result.task_count == 2

    def test_plain_and_numbered_volumes_without_sidecar(self, scanner, tmp_path, make_pdf):
        for name in ("Song.pdf", "Song1.pdf", "Song2.pdf", "Other.pdf"):
            make_pdf(tmp_path / name)

        result = scanner.scan(tmp_path)

        assert [(d.primary.name, names(d.continuations)) for d in result.new_documents] == [
            ("Other.pdf", []),
            ("Song.pdf", ["Song1.pdf", "Song2.pdf"]),
        ]

    def test_sidecar_matched_by_pattern(self, scanner, tmp_path, make_pdf):
        make_pdf(tmp_path / "Jazz0.pdf")
        make_pdf(tmp_path / "Jazz1.pdf")
        (tmp_path / "Jazz.bmk").write_text("<PdfMetaData/>")

        result = scanner.scan(tmp_path)

        assert result.documents_with_sidecars[0].sidecar.name == "Jazz.bmk"
        assert result.new_documents == []

    def test_new_sidecar_preferred_over_legacy(self, scanner, tmp_path, make_pdf):
        make_pdf(tmp_path / "Book.pdf")
        (tmp_path / "Book.bmk").write_text("<PdfMetaData/>")
        (tmp_path / "Book.json").write_text("{}")

        result = scanner.scan(tmp_path)
        assert result.documents_with_sidecars[0].sidecar.name == "Book.json"

    def test_prefer_legacy(self, reporter, tmp_path, make_pdf):
        make_pdf(tmp_path / "Book.pdf")
        (tmp_path / "Book.bmk").write_text("<PdfMetaData/>")
        (tmp_path / "Book.json").write_text("{}")

        result = DirectoryScanner(reporter, prefer_legacy=True).scan(tmp_path)
        assert result.documents_with_sidecars[0].sidecar.name == "Book.bmk"

    def test_orphan_sidecar_ignored(self, scanner, tmp_path, make_pdf):
        make_pdf(tmp_path / "Book.pdf")
        (tmp_path / "Gone.json").write_text("{}")

        result = scanner.scan(tmp_path)

        assert names(result.orphan_sidecars) == ["Gone.json"]
        assert len(result.new_documents) == 1

    def test_subfolders_and_relative_paths(self, scanner, tmp_path, make_pdf):
        make_pdf(tmp_path / "Rock" / "Queen.pdf")
        make_pdf(tmp_path / "Rock" / "70s" / "Kiss.pdf")

        result = scanner.scan(tmp_path)

        assert sorted(d.relative_folder for d in result.new_documents) == ["Rock", "Rock/70s"]

    def test_hidden_and_os_artifacts_skipped(self, scanner, tmp_path, make_pdf):
        make_pdf(tmp_path / "Book.pdf")
        make_pdf(tmp_path / "._Book.pdf")
        make_pdf(tmp_path / "HIDDEN" / "Secret.pdf")
        make_pdf(tmp_path / "__MACOSX" / "Book.pdf")

        result = scanner.scan(tmp_path)

        assert [d.primary.name for d in result.new_documents] == ["Book.pdf"]

    def test_singles_folder_files_are_not_grouped(self, scanner, tmp_path, make_pdf):
        make_pdf(tmp_path / "Jazz Singles" / "A.pdf")
        make_pdf(tmp_path / "Jazz Singles" / "A1.pdf")

        result = scanner.scan(tmp_path)

        assert names(result.singles_folders) == ["Jazz Singles"]
        assert result.new_documents == []

    def test_subfolders_of_singles_folder_are_scanned(self, scanner, tmp_path, make_pdf):
        make_pdf(tmp_path / "Jazz Singles" / "A.pdf")
        make_pdf(tmp_path / "Jazz Singles" / "Archive" / "Old Book0.pdf")
        make_pdf(tmp_path / "Jazz Singles" / "Archive" / "Old Book1.pdf")

        result = scanner.scan(tmp_path)

        assert names(result.singles_folders) == ["Jazz Singles"]
        (old_book,) = result.new_documents
        assert old_book.primary.name == "Old Book0.pdf"
        assert names(old_book.continuations) == ["Old Book1.pdf"]
        assert old_book.relative_folder == "Jazz Singles/Archive"

    def test_pdf_extension_case_insensitive(self, scanner, tmp_path, make_pdf):
        make_pdf(tmp_path / "Loud.PDF")

        result = scanner.scan(tmp_path)
        assert names(d.primary for d in result.new_documents) == ["Loud.PDF"]

    def test_missing_root_gives_empty_result(self, scanner, tmp_path):
        result = scanner.scan(tmp_path / "nowhere")
        assert result.task_count == 0

    @pytest.mark.skipif(
        sys.platform == "win32" or (hasattr(os, "geteuid") and os.geteuid() == 0),
        reason="permissions are not enforced",
    )
    def test_unreadable_folder_reported_and_skipped(self, scanner, reporter, tmp_path, make_pdf):
        make_pdf(tmp_path / "Book.pdf")
        locked = tmp_path / "Locked"
        make_pdf(locked / "Inner.pdf")
        locked.chmod(0)
        try:
            result = scanner.scan(tmp_path)
        finally:
            locked.chmod(0o755)

        assert [d.primary.name for d in result.new_documents] == ["Book.pdf"]
        assert len(reporter) == 1
