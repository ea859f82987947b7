"""Continuation Resolver - groups the files of one folder into logical books.

Scanned songbooks are often split across several PDFs: ``Beatles0.pdf``,
``Beatles1.pdf``, ``Beatles2.pdf`` or ``Song2.pdf``, ``Song2a.pdf``... The
first file of a run is the primary; the rest are continuation volumes.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

DEFAULT_VOLUME_MARKERS = "01"


@dataclass
class ContinuationGroup:
    """A primary stem and the stems that continue it, in volume order."""

    primary: str
    continuations: List[str] = field(default_factory=list)

    @property
    def stems(self) -> List[str]:
        return [self.primary, *self.continuations]


def sort_stems(stems: Iterable[str]) -> List[str]:
    """Case-insensitive ordering expected by :func:`resolve_continuations`."""
    return sorted(stems, key=lambda s: (s.strip().lower(), s))


def base_name(stem: str, volume_markers: str = DEFAULT_VOLUME_MARKERS) -> str:
    """Lower-cased stem with one trailing volume marker removed.

    ``"Beatles0"`` and ``"Beatles1"`` both give ``"beatles"``; the marker
    tells whether the set is zero- or one-based.
    """
    name = stem.strip().lower()
    if name and name[-1] in volume_markers:
        name = name[:-1]
    return name


def is_one_based(stem: str) -> bool:
    name = stem.strip()
    return bool(name) and name[-1] == "1"


def is_continuation_of(
    primary: str, candidate: str, volume_markers: str = DEFAULT_VOLUME_MARKERS
) -> bool:
    """True when ``candidate`` continues the book started by ``primary``.

    The primary's base name must be a strict prefix of the candidate and
    the character right after that prefix must be a digit.
    """
    base = base_name(primary, volume_markers)
    current = candidate.strip().lower()
    if len(base) >= len(current) or not current.startswith(base):
        return False
    return current[len(base)].isdigit()


def resolve_continuations(
    sorted_stems: Iterable[str], volume_markers: str = DEFAULT_VOLUME_MARKERS
) -> List[ContinuationGroup]:
    """Partition stems into primaries and their continuations.

    Single forward pass over the sorted stems; a group only ever extends
    with the stem directly following it, so groups are contiguous and a
    stem is never its own continuation.

    Args:
        sorted_stems: File stems of one folder, sorted case-insensitively.
        volume_markers: Trailing characters treated as volume markers.

    Returns:
        Groups in input order.
    """
    groups: List[ContinuationGroup] = []
    current: Optional[ContinuationGroup] = None
    for stem in sorted_stems:
        if current is not None and is_continuation_of(current.primary, stem, volume_markers):
            current.continuations.append(stem)
            continue
        current = ContinuationGroup(primary=stem)
        groups.append(current)
    return groups
