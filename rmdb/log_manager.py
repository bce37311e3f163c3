"""Write-ahead log records, the in-memory log buffer and the log manager."""

from __future__ import annotations

import struct
import threading
from dataclasses import dataclass, field
from enum import IntEnum
from typing import ClassVar

from rmdb.disk_manager import DiskManager
from rmdb.page import INVALID_LSN, PAGE_SIZE
from rmdb.rm_defs import Rid, RmRecord

INVALID_TXN_ID = -1
LOG_BUFFER_SIZE = 1024 * PAGE_SIZE
FLUSH_TIMEOUT = 3.0

_HEADER = struct.Struct("<iiIii")
OFFSET_LOG_TYPE = 0
OFFSET_LSN = 4
OFFSET_LOG_TOT_LEN = 8
OFFSET_LOG_TID = 12
OFFSET_PREV_LSN = 16
OFFSET_LOG_DATA = 20
LOG_HEADER_SIZE = _HEADER.size

_INT = struct.Struct("<i")
_SIZE_T = struct.Struct("<Q")


class LogType(IntEnum):
    """Kind of operation a log record describes."""

    UPDATE = 0
    INSERT = 1
    DELETE = 2
    BEGIN = 3
    COMMIT = 4
    ABORT = 5


_RECORD_TYPES: dict[int, type[LogRecord]] = {}


def _pack_record(record: RmRecord) -> bytes:
    return record.serialize()


def _pack_name(name: str) -> bytes:
    raw = name.encode("utf-8")
    return _SIZE_T.pack(len(raw)) + raw


def _read_record(body: bytes, offset: int) -> tuple[RmRecord, int]:
    record = RmRecord.deserialize(body[offset:])
    return record, offset + _INT.size + record.size


def _read_rid(body: bytes, offset: int) -> tuple[Rid, int]:
    end = offset + Rid.LAYOUT.size
    if len(body) < end:
        raise ValueError("truncated rid in log record")
    return Rid.unpack(body[offset:end]), end


def _read_name(body: bytes, offset: int) -> tuple[str, int]:
    try:
        (size,) = _SIZE_T.unpack_from(body, offset)
    except struct.error as exc:
        raise ValueError("truncated table name in log record") from exc
    start = offset + _SIZE_T.size
    end = start + size
    if len(body) < end:
        raise ValueError("truncated table name in log record")
    return body[start:end].decode("utf-8"), end


@dataclass
class LogRecord:
    """Common header of every log record."""

    log_tid: int = INVALID_TXN_ID
    lsn: int = INVALID_LSN
    prev_lsn: int = INVALID_LSN

    LOG_TYPE: ClassVar[LogType]

    def __init_subclass__(cls, **kwargs) -> None:
        super().__init_subclass__(**kwargs)
        if "LOG_TYPE" in cls.__dict__:
            _RECORD_TYPES[int(cls.LOG_TYPE)] = cls

    @property
    def log_type(self) -> LogType:
        return self.LOG_TYPE

    @property
    def log_tot_len(self) -> int:
        """Length of the whole serialized record in bytes."""
        return LOG_HEADER_SIZE + len(self._body())

    def _body(self) -> bytes:
        return b""

    @classmethod
    def _decode_body(cls, body: bytes) -> dict:
        return {}

    def _format_body(self) -> list[str]:
        return []

    def serialize(self) -> bytes:
        """The record as header followed by its type-specific data."""
        body = self._body()
        header = _HEADER.pack(
            int(self.log_type), self.lsn, LOG_HEADER_SIZE + len(body), self.log_tid, self.prev_lsn
        )
        return header + body

    @classmethod
    def deserialize(cls, data: bytes | bytearray | memoryview) -> LogRecord:
        """Read one record from the start of data; trailing bytes are ignored."""
        try:
            log_type, lsn, tot_len, tid, prev_lsn = _HEADER.unpack_from(data)
        except struct.error as exc:
            raise ValueError("truncated log record header") from exc
        record_cls = _RECORD_TYPES.get(log_type)
        if record_cls is None:
            raise ValueError(f"unknown log record type: {log_type}")
        if not issubclass(record_cls, cls):
            raise ValueError(f"log record is {record_cls.__name__}, not {cls.__name__}")
        if tot_len < LOG_HEADER_SIZE or len(data) < tot_len:
            raise ValueError("truncated log record")
        body = bytes(data[LOG_HEADER_SIZE:tot_len])
        return record_cls(log_tid=tid, lsn=lsn, prev_lsn=prev_lsn, **record_cls._decode_body(body))

    def format(self) -> str:
        """A readable multi-line description of the record."""
        lines = [
            "Print Log Record:",
            f"log_type_: {self.log_type.name}",
            f"lsn: {self.lsn}",
            f"log_tot_len: {self.log_tot_len}",
            f"log_tid: {self.log_tid}",
            f"prev_lsn: {self.prev_lsn}",
            *self._format_body(),
        ]
        return "\n".join(lines) + "\n"


@dataclass
class BeginLogRecord(LogRecord):
    LOG_TYPE: ClassVar[LogType] = LogType.BEGIN


@dataclass
class CommitLogRecord(LogRecord):
    LOG_TYPE: ClassVar[LogType] = LogType.COMMIT


@dataclass
class AbortLogRecord(LogRecord):
    LOG_TYPE: ClassVar[LogType] = LogType.ABORT


@dataclass
class InsertLogRecord(LogRecord):
    """An inserted record, where it went and into which table."""

    LOG_TYPE: ClassVar[LogType] = LogType.INSERT

    insert_value: RmRecord = field(default_factory=RmRecord)
    rid: Rid = field(default_factory=Rid)
    table_name: str = ""

    def _body(self) -> bytes:
        return _pack_record(self.insert_value) + self.rid.pack() + _pack_name(self.table_name)

    @classmethod
    def _decode_body(cls, body: bytes) -> dict:
        value, offset = _read_record(body, 0)
        rid, offset = _read_rid(body, offset)
        name, _ = _read_name(body, offset)
        return {"insert_value": value, "rid": rid, "table_name": name}

    def _format_body(self) -> list[str]:
        return [
            f"insert_value: {self.insert_value.data!r}",
            f"insert rid: {self.rid.page_no}, {self.rid.slot_no}",
            f"table name: {self.table_name}",
        ]


@dataclass
class DeleteLogRecord(LogRecord):
    """A deleted record, where it was and in which table."""

    LOG_TYPE: ClassVar[LogType] = LogType.DELETE

    delete_value: RmRecord = field(default_factory=RmRecord)
    rid: Rid = field(default_factory=Rid)
    table_name: str = ""

    def _body(self) -> bytes:
        return _pack_record(self.delete_value) + self.rid.pack() + _pack_name(self.table_name)

    @classmethod
    def _decode_body(cls, body: bytes) -> dict:
        value, offset = _read_record(body, 0)
        rid, offset = _read_rid(body, offset)
        name, _ = _read_name(body, offset)
        return {"delete_value": value, "rid": rid, "table_name": name}

    def _format_body(self) -> list[str]:
        return [
            f"delete_value: {self.delete_value.data!r}",
            f"delete rid: {self.rid.page_no}, {self.rid.slot_no}",
            f"table name: {self.table_name}",
        ]


@dataclass
class UpdateLogRecord(LogRecord):
    """A record's value before and after an update."""

    LOG_TYPE: ClassVar[LogType] = LogType.UPDATE

    old_value: RmRecord = field(default_factory=RmRecord)
    new_value: RmRecord = field(default_factory=RmRecord)
    rid: Rid = field(default_factory=Rid)
    table_name: str = ""

    def _body(self) -> bytes:
        return (
            _pack_record(self.old_value)
            + _pack_record(self.new_value)
            + self.rid.pack()
            + _pack_name(self.table_name)
        )

    @classmethod
    def _decode_body(cls, body: bytes) -> dict:
        old, offset = _read_record(body, 0)
        new, offset = _read_record(body, offset)
        rid, offset = _read_rid(body, offset)
        name, _ = _read_name(body, offset)
        return {"old_value": old, "new_value": new, "rid": rid, "table_name": name}

    def _format_body(self) -> list[str]:
        return [
            f"old_value: {self.old_value.data!r}",
            f"new_value: {self.new_value.data!r}",
            f"update rid: {self.rid.page_no}, {self.rid.slot_no}",
            f"table name: {self.table_name}",
        ]


class LogBuffer:
    """A fixed-capacity byte buffer that log records are appended to."""

    def __init__(self, size: int = LOG_BUFFER_SIZE) -> None:
        self.size = size
        self.buffer = bytearray(size)
        self.offset = 0

    def is_full(self, append_size: int) -> bool:
        """True if append_size more bytes would not fit."""
        return self.offset + append_size > self.size

    def append(self, data: bytes) -> None:
        """Append data; raises BufferError if it does not fit."""
        if self.is_full(len(data)):
            raise BufferError(f"log buffer cannot take {len(data)} more bytes")
        end = self.offset + len(data)
        self.buffer[self.offset:end] = data
        self.offset = end

    @property
    def data(self) -> bytes:
        """The bytes written so far."""
        return bytes(self.buffer[:self.offset])

    def clear(self) -> None:
        self.offset = 0

    def __len__(self) -> int:
        return self.offset


class LogManager:
    """Assigns log sequence numbers, buffers records and writes them to the log file."""

    def __init__(self, disk_manager: DiskManager, buffer_size: int = LOG_BUFFER_SIZE) -> None:
        self.disk_manager = disk_manager
        self.log_buffer = LogBuffer(buffer_size)
        self.persist_lsn = INVALID_LSN
        self._next_lsn = 0
        self._buffered_lsn = INVALID_LSN
        self._lock = threading.Lock()

    @property
    def global_lsn(self) -> int:
        """The sequence number the next record will get."""
        return self._next_lsn

    def add_log_to_buffer(self, log_record: LogRecord) -> int:
        """Give the record the next sequence number, buffer it and return the number."""
        with self._lock:
            lsn = self._next_lsn
            self._next_lsn += 1
            log_record.lsn = lsn
            data = log_record.serialize()
            if self.log_buffer.is_full(len(data)):
                self._flush()
            if self.log_buffer.is_full(len(data)):
                # Larger than the whole buffer: write it straight through.
                self.disk_manager.write_log(data)
                self.persist_lsn = lsn
            else:
                self.log_buffer.append(data)
                self._buffered_lsn = lsn
            return lsn

    def flush_log_to_disk(self) -> None:
        """Write the buffered records to the log file and empty the buffer."""
        with self._lock:
            self._flush()

    def _flush(self) -> None:
        if not len(self.log_buffer):
            return
        self.disk_manager.write_log(self.log_buffer.data)
        self.persist_lsn = self._buffered_lsn
        self.log_buffer.clear()