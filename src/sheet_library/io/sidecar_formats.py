"""Sidecar formats - legacy XML (.bmk) and compact JSON (.json) codecs.

Both generations describe the same fields. The generation is always chosen
by looking at the content, never the extension: legacy XML is found under
``.json`` names and JSON under ``.bmk`` names in real libraries.

JSON layout::

    {
        "version": 1,
        "lastWrite": "2024-04-27T15:40:35.066011-07:00",
        "lastPageNo": 27,
        "pageNumberOffset": 0,
        "notes": "...",
        "volumes": [{"fileName": "Book0.pdf", "pageCount": 84, "rotation": 2}],
        "tableOfContents": [{"songName": "...", "composer": "...", "pageNo": 4}],
        "favorites": [{"pageNo": 12, "name": "..."}],
        "inkStrokes": {"12": {"pageNo": 12, "canvasWidth": 800, "canvasHeight": 600,
                              "strokes": [...]}}
    }
"""

import base64
import binascii
import json
import re
import xml.etree.ElementTree as ET
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from sheet_library.core import (
    Annotation,
    DocumentMetadata,
    Favorite,
    ParseError,
    TocEntry,
    VolumeDescriptor,
)
from sheet_library.core.document_entries import ISF_PAYLOAD, JSON_PAYLOAD

SCHEMA_VERSION = 1
LEGACY_SCHEMA = "legacy"
NEW_SCHEMA = "new"

_UTF8_BOM = b"\xef\xbb\xbf"
_TIMESTAMP_RE = re.compile(r"^(?P<base>[^.]+)(?:\.(?P<fraction>\d+))?(?P<zone>.*)$")


def sniff_schema(data: bytes) -> str:
    """Tell the schema generation from the first significant character."""
    head = data[len(_UTF8_BOM):] if data.startswith(_UTF8_BOM) else data
    head = head.lstrip()
    if head[:1] == b"{":
        return NEW_SCHEMA
    if head[:1] == b"<":
        return LEGACY_SCHEMA
    raise ParseError("Unrecognized sidecar content: expected '{' or '<'")


def parse_sidecar(
    data: bytes,
    source_path: Path,
    is_singles: bool = False,
    sidecar_mtime: Optional[datetime] = None,
) -> DocumentMetadata:
    """Parse sidecar bytes of either generation into a DocumentMetadata."""
    if sniff_schema(data) == NEW_SCHEMA:
        return parse_new_schema(data, source_path, is_singles)
    return parse_legacy_schema(data, source_path, is_singles, sidecar_mtime)


def parse_timestamp(text: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp as written by either generation.

    .NET writes up to seven fractional digits; Python keeps six.
    """
    if not text or not text.strip():
        return None
    text = text.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    match = _TIMESTAMP_RE.match(text)
    if match is None:
        raise ValueError(f"Invalid timestamp: {text}")
    fraction = match.group("fraction")
    if fraction:
        text = f"{match.group('base')}.{fraction[:6].ljust(6, '0')}{match.group('zone')}"
    return datetime.fromisoformat(text)


def canonical_ink_payload(strokes: Any, canvas_width: float, canvas_height: float) -> bytes:
    """Compact JSON payload shared by both generations."""
    document = {"strokes": strokes, "canvasWidth": canvas_width, "canvasHeight": canvas_height}
    return json.dumps(document, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


# Legacy XML ------------------------------------------------------------

def parse_legacy_schema(
    data: bytes,
    source_path: Path,
    is_singles: bool = False,
    sidecar_mtime: Optional[datetime] = None,
) -> DocumentMetadata:
    """Parse the legacy ``PdfMetaData`` XML document.

    Args:
        data: Raw file content.
        source_path: PDF or singles folder the sidecar belongs to.
        is_singles: Whether ``source_path`` is a singles folder.
        sidecar_mtime: Used when the stored write time is missing or unset.

    Raises:
        ParseError: If the XML is malformed or holds invalid values.
    """
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise ParseError(f"Malformed legacy sidecar: {e}") from e
    if root.tag != "PdfMetaData":
        raise ParseError(f"Unexpected legacy root element <{root.tag}>")

    try:
        last_write = parse_timestamp(_text(root, "dtLastWrite"))
        if last_write is None or last_write.year < 1900:
            last_write = sidecar_mtime or datetime.now()

        doc = DocumentMetadata(
            source_path=source_path,
            is_singles=is_singles,
            page_number_offset=_int(root, "PageNumberOffset"),
            last_viewed_page=_int(root, "LastPageNo"),
            last_write=last_write,
            notes=_text(root, "Notes"),
        )
        for vol in _items(root, "lstVolInfo"):
            doc.volumes.append(
                VolumeDescriptor(
                    file_name=_text(vol, "FileName") or "",
                    page_count=_int(vol, "NPages"),
                    rotation=_int(vol, "Rotation"),
                )
            )
        for toc in _items(root, "lstTocEntries"):
            doc.toc_entries.append(
                TocEntry(
                    song_name=_text(toc, "SongName"),
                    composer=_text(toc, "Composer"),
                    notes=_text(toc, "Notes"),
                    date=_text(toc, "Date"),
                    page_no=_int(toc, "PageNo"),
                )
            )
        for fav in _items(root, "Favorites"):
            doc.favorites.append(
                Favorite(page_no=_int(fav, "Pageno"), name=_text(fav, "FavoriteName"))
            )
        for ink in _items(root, "LstInkStrokes"):
            doc.annotations.append(_parse_legacy_ink(ink))
    except (ValueError, binascii.Error) as e:
        raise ParseError(f"Invalid value in legacy sidecar: {e}") from e
    return doc


def _parse_legacy_ink(element: ET.Element) -> Annotation:
    dimension = element.find("InkStrokeDimension")
    width = _float(dimension, "X") if dimension is not None else 0.0
    height = _float(dimension, "Y") if dimension is not None else 0.0
    raw = base64.b64decode(_text(element, "StrokeData") or "", validate=True)
    annotation = Annotation(
        page_no=_int(element, "Pageno"),
        canvas_width=width,
        canvas_height=height,
        payload=raw,
        payload_format=Annotation.detect_format(raw),
    )
    if annotation.payload_format == JSON_PAYLOAD:
        _canonicalize_json_ink(annotation)
    return annotation


def _canonicalize_json_ink(annotation: Annotation) -> None:
    try:
        document = json.loads(annotation.payload.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        annotation.payload_format = ISF_PAYLOAD
        return
    strokes = document.get("strokes", []) if isinstance(document, dict) else []
    annotation.payload = canonical_ink_payload(
        strokes, annotation.canvas_width, annotation.canvas_height
    )


def _items(root: ET.Element, list_tag: str) -> List[ET.Element]:
    container = root.find(list_tag)
    return list(container) if container is not None else []


def _text(element: ET.Element, tag: str) -> Optional[str]:
    child = element.find(tag)
    if child is None or child.text is None:
        return None
    return child.text


def _int(element: ET.Element, tag: str) -> int:
    value = _text(element, tag)
    return int(value.strip()) if value and value.strip() else 0


def _float(element: ET.Element, tag: str) -> float:
    value = _text(element, tag)
    return float(value.strip()) if value and value.strip() else 0.0


# New JSON --------------------------------------------------------------

def parse_new_schema(data: bytes, source_path: Path, is_singles: bool = False) -> DocumentMetadata:
    """Parse the JSON generation. Property names match case-insensitively.

    Raises:
        ParseError: If the JSON is malformed or holds invalid values.
    """
    try:
        raw = json.loads(data.decode("utf-8-sig"))
    except (UnicodeDecodeError, ValueError) as e:
        raise ParseError(f"Malformed sidecar JSON: {e}") from e
    if not isinstance(raw, dict):
        raise ParseError("Sidecar JSON must be an object")

    try:
        top = _lower_keys(raw)
        doc = DocumentMetadata(
            source_path=source_path,
            is_singles=is_singles,
            page_number_offset=int(top.get("pagenumberoffset") or 0),
            last_viewed_page=int(top.get("lastpageno") or 0),
            last_write=parse_timestamp(top.get("lastwrite")) or datetime.now(),
            notes=top.get("notes"),
        )
        for vol in map(_lower_keys, top.get("volumes") or []):
            doc.volumes.append(
                VolumeDescriptor(
                    file_name=vol.get("filename") or "",
                    page_count=int(vol.get("pagecount") or 0),
                    rotation=int(vol.get("rotation") or 0),
                )
            )
        for toc in map(_lower_keys, top.get("tableofcontents") or []):
            doc.toc_entries.append(
                TocEntry(
                    song_name=toc.get("songname"),
                    composer=toc.get("composer"),
                    notes=toc.get("notes"),
                    date=toc.get("date"),
                    page_no=int(toc.get("pageno") or 0),
                    link=toc.get("link"),
                )
            )
        for fav in map(_lower_keys, top.get("favorites") or []):
            doc.favorites.append(Favorite(page_no=int(fav.get("pageno") or 0), name=fav.get("name")))
        for key, ink in (top.get("inkstrokes") or {}).items():
            doc.annotations.append(_parse_new_ink(key, _lower_keys(ink)))
    except (AttributeError, TypeError, ValueError, binascii.Error) as e:
        raise ParseError(f"Invalid value in sidecar JSON: {e}") from e
    return doc


def _parse_new_ink(key: str, ink: Dict[str, Any]) -> Annotation:
    page_no = int(ink.get("pageno", key))
    width = float(ink.get("canvaswidth") or 0.0)
    height = float(ink.get("canvasheight") or 0.0)
    if ink.get("format") == ISF_PAYLOAD:
        payload = base64.b64decode(ink.get("strokedata") or "", validate=True)
        return Annotation(page_no, width, height, payload, ISF_PAYLOAD)
    payload = canonical_ink_payload(ink.get("strokes") or [], width, height)
    return Annotation(page_no, width, height, payload, JSON_PAYLOAD)


def _lower_keys(value: Any) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise TypeError(f"Expected an object, got {type(value).__name__}")
    return {str(k).lower(): v for k, v in value.items()}


def serialize_new_schema(doc: DocumentMetadata) -> str:
    """Serialize to the JSON generation. Unset optional fields are omitted."""
    data: Dict[str, Any] = {
        "version": SCHEMA_VERSION,
        "lastWrite": doc.last_write.isoformat(),
        "lastPageNo": doc.last_viewed_page,
    }
    if doc.page_number_offset:
        data["pageNumberOffset"] = doc.page_number_offset
    if doc.notes is not None:
        data["notes"] = doc.notes

    volumes = []
    for vol in doc.volumes:
        entry: Dict[str, Any] = {"fileName": vol.file_name, "pageCount": vol.page_count}
        if vol.rotation:
            entry["rotation"] = int(vol.rotation)
        volumes.append(entry)
    data["volumes"] = volumes

    data["tableOfContents"] = [
        _without_none(
            {
                "songName": toc.song_name,
                "composer": toc.composer,
                "date": toc.date,
                "notes": toc.notes,
                "pageNo": toc.page_no,
                "link": toc.link,
            }
        )
        for toc in doc.toc_entries
    ]
    data["favorites"] = [
        _without_none({"pageNo": fav.page_no, "name": fav.name}) for fav in doc.favorites
    ]

    ink_strokes: Dict[str, Any] = {}
    for annotation in doc.annotations:
        entry = {
            "pageNo": annotation.page_no,
            "canvasWidth": annotation.canvas_width,
            "canvasHeight": annotation.canvas_height,
        }
        if annotation.payload_format == JSON_PAYLOAD:
            document = json.loads(annotation.payload.decode("utf-8"))
            entry["strokes"] = document.get("strokes", []) if isinstance(document, dict) else []
        else:
            entry["format"] = ISF_PAYLOAD
            entry["strokeData"] = base64.b64encode(annotation.payload).decode("ascii")
        ink_strokes[str(annotation.page_no)] = entry
    data["inkStrokes"] = ink_strokes

    return json.dumps(data, indent=2, ensure_ascii=False)


def _without_none(values: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}
