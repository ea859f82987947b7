"""Metadata Writer - persists dirty documents in the JSON sidecar format."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable

from sheet_library.core import NEW_SIDECAR_EXTENSION, DocumentMetadata, WriteFailure
from sheet_library.io.sidecar_formats import serialize_new_schema

logger = logging.getLogger(__name__)


def target_path(doc: DocumentMetadata) -> Path:
    """JSON sidecar a document is saved to.

    A document read from a sidecar is written back beside it under the same
    stem, so a pattern-matched ``Book.json`` for ``Book0.pdf`` stays the one
    sidecar of the book.
    """
    if doc.sidecar_file is not None:
        return doc.sidecar_file.with_suffix(NEW_SIDECAR_EXTENSION)
    return doc.sidecar_path(NEW_SIDECAR_EXTENSION)


class MetadataWriter:
    """Writes DocumentMetadata beside its document, only when it changed."""

    def save(self, doc: DocumentMetadata) -> None:
        """Unconditionally write the JSON sidecar and clear the dirty flag.

        Raises:
            WriteFailure: If the document cannot be serialized or the file
                cannot be written. The document is left untouched.
        """
        sidecar = target_path(doc)
        previous_write, doc.last_write = doc.last_write, datetime.now()
        try:
            content = serialize_new_schema(doc)
            sidecar.write_text(content, encoding="utf-8")
        except (OSError, ValueError) as e:
            doc.last_write = previous_write
            raise WriteFailure(f"Failed to write sidecar {sidecar}: {e}", sidecar) from e
        doc.sidecar_file = sidecar
        doc.dirty = False
        logger.debug("Saved %s", sidecar)

    def save_if_dirty(self, doc: DocumentMetadata, force: bool = False) -> bool:
        """Persist a document if it is dirty (or when forced).

        A failed write is logged and leaves the dirty flag set so the next
        save retries it.

        Returns:
            True on success or when there was nothing to save.
        """
        if doc is None:
            return False
        if not doc.dirty and not force:
            return True
        try:
            self.save(doc)
        except WriteFailure as e:
            logger.error("%s", e)
            return False
        return True

    def save_all_dirty(self, docs: Iterable[DocumentMetadata]) -> int:
        """Save every dirty document. A failing document never stops the rest.

        Returns:
            Number of documents actually written.
        """
        saved = 0
        for doc in docs:
            if doc.dirty and self.save_if_dirty(doc):
                saved += 1
        return saved
