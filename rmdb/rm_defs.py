"""On-disk structures of table record files."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import ClassVar

RM_NO_PAGE = -1
RM_FILE_HDR_PAGE = 0
RM_FIRST_RECORD_PAGE = 1
RM_MAX_RECORD_SIZE = 512

_INT = struct.Struct("<i")


def _unpack(layout: struct.Struct, data: bytes | bytearray | memoryview, what: str) -> tuple:
    try:
        return layout.unpack_from(data)
    except struct.error as exc:
        raise ValueError(f"truncated {what}") from exc


@dataclass(frozen=True, order=True)
class Rid:
    """Location of a record: page number and slot number."""

    page_no: int = -1
    slot_no: int = -1

    LAYOUT: ClassVar[struct.Struct] = struct.Struct("<ii")

    def pack(self) -> bytes:
        return self.LAYOUT.pack(self.page_no, self.slot_no)

    @classmethod
    def unpack(cls, data: bytes | bytearray | memoryview) -> Rid:
        return cls(*_unpack(cls.LAYOUT, data, "rid"))


@dataclass
class RmFileHdr:
    """Metadata of a record file, kept in its first page."""

    record_size: int
    num_pages: int
    num_records_per_page: int
    first_free_page_no: int
    bitmap_size: int

    LAYOUT: ClassVar[struct.Struct] = struct.Struct("<5i")

    def pack(self) -> bytes:
        return self.LAYOUT.pack(
            self.record_size,
            self.num_pages,
            self.num_records_per_page,
            self.first_free_page_no,
            self.bitmap_size,
        )

    @classmethod
    def unpack(cls, data: bytes | bytearray | memoryview) -> RmFileHdr:
        return cls(*_unpack(cls.LAYOUT, data, "file header"))


@dataclass
class RmPageHdr:
    """Metadata at the head of each record page."""

    next_free_page_no: int = RM_NO_PAGE
    num_records: int = 0

    LAYOUT: ClassVar[struct.Struct] = struct.Struct("<2i")

    def pack(self) -> bytes:
        return self.LAYOUT.pack(self.next_free_page_no, self.num_records)

    @classmethod
    def unpack(cls, data: bytes | bytearray | memoryview) -> RmPageHdr:
        return cls(*_unpack(cls.LAYOUT, data, "page header"))


@dataclass
class RmRecord:
    """The bytes of one record."""

    data: bytes = b""

    def __post_init__(self) -> None:
        self.data = bytes(self.data)

    @property
    def size(self) -> int:
        return len(self.data)

    def serialize(self) -> bytes:
        """The record as a length prefix followed by its bytes."""
        return _INT.pack(self.size) + self.data

    @classmethod
    def deserialize(cls, data: bytes | bytearray | memoryview) -> RmRecord:
        """Read a record written by serialize; trailing bytes are ignored."""
        (size,) = _unpack(_INT, data, "record")
        if size < 0:
            raise ValueError(f"negative record size: {size}")
        end = _INT.size + size
        if len(data) < end:
            raise ValueError("truncated record")
        return cls(bytes(data[_INT.size:end]))