"""Tests for PreviewCache - factory-produced artifacts per document page."""

import hashlib
from pathlib import Path

import pytest

from sheet_library.services import PreviewCache, preview_key


def test_key_is_sha1_of_resolved_path_and_page(tmp_path):
    pdf = tmp_path / "Book.pdf"
    expected = hashlib.sha1(f"{pdf.resolve()}#4".encode("utf-8")).hexdigest()
    assert preview_key(pdf, 4) == expected
    assert preview_key(pdf, 4) != preview_key(pdf, 5)


def test_factory_called_once_per_key(tmp_path):
    calls = []

    def factory(path: Path, page_no: int):
        calls.append((path.name, page_no))
        return f"preview of {path.name} p{page_no}"

    cache = PreviewCache(factory)
    pdf = tmp_path / "Book.pdf"

    assert cache.get(pdf, 2) == "preview of Book.pdf p2"
    assert cache.get(pdf, 2) == "preview of Book.pdf p2"
    assert cache.get(pdf, 3) == "preview of Book.pdf p3"
    assert calls == [("Book.pdf", 2), ("Book.pdf", 3)]
    assert len(cache) == 2


def test_has_cached_and_clear(tmp_path):
    cache = PreviewCache(lambda path, page: object())
    pdf = tmp_path / "Book.pdf"

    assert not cache.has_cached(pdf)
    cache.get(pdf)
    assert cache.has_cached(pdf)
    assert cache.get_cached(pdf) is not None

    cache.clear()

    assert not cache.has_cached(pdf)
    assert cache.get_cached(pdf) is None


def test_factory_errors_propagate_and_cache_nothing(tmp_path):
    def factory(path, page_no):
        raise RuntimeError("render failed")

    cache = PreviewCache(factory)
    with pytest.raises(RuntimeError):
        cache.get(tmp_path / "Book.pdf")
    assert len(cache) == 0


def test_factory_required():
    with pytest.raises(ValueError):
        PreviewCache(None)
