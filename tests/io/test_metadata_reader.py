"""Tests for MetadataReader - locating, parsing and repairing sidecars."""

import json
from pathlib import Path

import pytest

from sheet_library.io import MetadataReader


@pytest.fixture
def reader(provider, reporter):
    return MetadataReader(provider, reporter)


def write_json(path: Path, data: dict) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestConstruction:
    def test_provider_required(self):
        with pytest.raises(ValueError):
            MetadataReader(None)


class TestLocateSidecar:
    def test_new_schema_preferred(self, reader, tmp_path, make_pdf):
        pdf = make_pdf(tmp_path / "Book.pdf")
        (tmp_path / "Book.bmk").write_text("<PdfMetaData/>")
        (tmp_path / "Book.json").write_text("{}")

        assert reader.locate_sidecar(pdf) == tmp_path / "Book.json"

    def test_prefer_legacy_inverts_order(self, provider, tmp_path, make_pdf):
        pdf = make_pdf(tmp_path / "Book.pdf")
        (tmp_path / "Book.bmk").write_text("<PdfMetaData/>")
        (tmp_path / "Book.json").write_text("{}")

        reader = MetadataReader(provider, prefer_legacy=True)
        assert reader.locate_sidecar(pdf) == tmp_path / "Book.bmk"

    def test_singles_sidecar_beside_folder(self, reader, tmp_path):
        folder = tmp_path / "Jazz Singles"
        folder.mkdir()
        (tmp_path / "Jazz Singles.json").write_text("{}")

        assert reader.locate_sidecar(folder, is_singles=True) == tmp_path / "Jazz Singles.json"

    def test_none_when_missing(self, reader, tmp_path, make_pdf):
        assert reader.locate_sidecar(make_pdf(tmp_path / "Book.pdf")) is None


class TestRead:
    def test_legacy_sidecar_loaded_without_repairs(self, reader, tmp_path, make_pdf, legacy_sample):
        pdf = make_pdf(tmp_path / "Book0.pdf")
        (tmp_path / "Book0.bmk").write_text(legacy_sample, encoding="utf-8")

        doc = reader.read(pdf)

        assert doc.total_pages == 30
        assert doc.last_viewed_page == 12
        assert doc.dirty is False

    def test_legacy_content_under_json_name(self, reader, tmp_path, make_pdf, legacy_sample):
        pdf = make_pdf(tmp_path / "Book0.pdf")
        (tmp_path / "Book0.json").write_text(legacy_sample, encoding="utf-8")

        doc = reader.read(pdf)
        assert len(doc.toc_entries) == 2

    def test_synthesized_when_no_sidecar(self, reader, provider, tmp_path, make_pdf):
        provider.counts["Book.pdf"] = 7
        pdf = make_pdf(tmp_path / "Book.pdf")

        doc = reader.read(pdf)

        assert doc.dirty is True
        assert [(v.file_name, v.page_count) for v in doc.volumes] == [("Book.pdf", 7)]
        assert [(t.song_name, t.page_no) for t in doc.toc_entries] == [("Book", 0)]

    def test_parse_error_reported_and_sidecar_kept(self, reader, reporter, tmp_path, make_pdf):
        pdf = make_pdf(tmp_path / "Book.pdf")
        sidecar = tmp_path / "Book.json"
        sidecar.write_text("{broken", encoding="utf-8")

        assert reader.read(pdf) is None
        assert len(reporter) == 1
        assert reporter.errors[0].error.path == sidecar
        assert sidecar.read_text(encoding="utf-8") == "{broken"

    def test_unknown_content_reported(self, reader, reporter, tmp_path, make_pdf):
        pdf = make_pdf(tmp_path / "Book.pdf")
        (tmp_path / "Book.json").write_text("garbage", encoding="utf-8")

        assert reader.read(pdf) is None
        assert len(reporter) == 1


class TestRepair:
    def test_missing_volumes_filled_from_provider(self, reader, provider, tmp_path, make_pdf):
        provider.counts["Book.pdf"] = 4
        pdf = make_pdf(tmp_path / "Book.pdf")
        write_json(tmp_path / "Book.json", {"tableOfContents": [{"songName": "A", "pageNo": 0}]})

        doc = reader.read(pdf)

        assert doc.dirty is True
        assert [(v.file_name, v.page_count) for v in doc.volumes] == [("Book.pdf", 4)]

    def test_missing_file_name_filled_from_primary(self, reader, tmp_path, make_pdf):
        pdf = make_pdf(tmp_path / "Book.pdf")
        write_json(
            tmp_path / "Book.json",
            {"volumes": [{"pageCount": 3}], "tableOfContents": [{"songName": "A", "pageNo": 0}]},
        )

        doc = reader.read(pdf)

        assert doc.volumes[0].file_name == "Book.pdf"
        assert doc.dirty is True

    def test_missing_toc_gets_entry_at_offset(self, reader, tmp_path, make_pdf):
        pdf = make_pdf(tmp_path / "Book.pdf")
        write_json(
            tmp_path / "Book.json",
            {"pageNumberOffset": 5, "lastPageNo": 5,
             "volumes": [{"fileName": "Book.pdf", "pageCount": 3}]},
        )

        doc = reader.read(pdf)

        assert [(t.song_name, t.page_no) for t in doc.toc_entries] == [("Book", 5)]
        assert doc.dirty is True

    def test_last_viewed_page_clamped_to_offset(self, reader, tmp_path, make_pdf):
        pdf = make_pdf(tmp_path / "Book.pdf")
        write_json(
            tmp_path / "Book.json",
            {"pageNumberOffset": 2, "lastPageNo": 99,
             "volumes": [{"fileName": "Book.pdf", "pageCount": 3}],
             "tableOfContents": [{"songName": "A", "pageNo": 2}]},
        )

        doc = reader.read(pdf)

        assert doc.last_viewed_page == 2
        assert doc.dirty is False

    def test_zero_pages_excluded(self, reader, provider, reporter, tmp_path, make_pdf):
        provider.failing.add("Book.pdf")
        pdf = make_pdf(tmp_path / "Book.pdf")

        assert reader.read(pdf) is None
        assert len(reporter) == 1

    def test_provider_failure_leaves_zero_count(self, reader, provider, tmp_path, make_pdf):
        provider.failing.add("Broken.pdf")
        doc = reader.synthesize(make_pdf(tmp_path / "Broken.pdf"))

        assert doc.volumes[0].page_count == 0
        assert doc.dirty is True
