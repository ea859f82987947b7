"""VolumeDescriptor entity - one physical file of a logical book."""

from dataclasses import dataclass
from enum import IntEnum


class Rotation(IntEnum):
    """Page rotation codes as stored in sidecar files."""

    ROTATE_0 = 0
    ROTATE_90 = 1
    ROTATE_180 = 2
    ROTATE_270 = 3


@dataclass
class VolumeDescriptor:
    """A physical PDF contributing a contiguous page range to a document.

    Attributes:
        file_name: File name with extension, relative to the document folder.
        page_count: Number of pages in this file.
        rotation: Rotation code 0-3 applied when displaying its pages.
    """

    file_name: str
    page_count: int = 0
    rotation: Rotation = Rotation.ROTATE_0

    def __post_init__(self) -> None:
        if self.page_count < 0:
            raise ValueError(f"Page count must not be negative: {self.page_count}")
        self.rotation = Rotation(int(self.rotation))

    def __str__(self) -> str:
        return f"{self.file_name} #Pgs={self.page_count:4} Rotation={self.rotation.name}"
