# rmdb

The lower layers of a small relational storage engine, in pure Python with
no third-party dependencies: page files on disk, a pin-counted buffer pool
with LRU eviction, fixed-size record files, write-ahead log records, and the
syntax-tree nodes of SQL statements with a tree printer.

## Modules

- `rmdb.page`: `PageId` (file descriptor and page number) and `Page`, a
  4096-byte frame with `is_dirty`, `pin_count`, `reset_memory()` and a
  `page_lsn` property stored in the first four bytes.
- `rmdb.replacer`: the `Replacer` interface and `LRUReplacer`, whose
  `victim()` returns the frame unpinned longest ago, or `None`.
- `rmdb.disk_manager`: `DiskManager` creates, opens, closes and removes files
  and directories, reads and writes pages (`read_page`, `write_page`), hands out
  page numbers (`allocate_page`) and appends to and reads from a log file
  (`write_log`, `read_log`; `db.log` unless another name is given). Its errors
  derive from `RmdbError`: `InternalError`, `UnixError`,
  `FileAlreadyExistsError`, `FileMissingError`, `FileNotClosedError`,
  `FileNotOpenError`.
- `rmdb.buffer_pool`: `BufferPoolManager` caches pages in a fixed number of
  frames: `fetch_page`, `new_page`, `unpin_page`, `flush_page`,
  `flush_all_pages`, `delete_page`. `fetch_page` and `new_page` return `None`
  when every frame is pinned.
- `rmdb.bitmap`: `init`, `set_bit`, `reset_bit`, `is_set`, `next_bit` and
  `first_bit` over a `bytearray`, most significant bit first.
- `rmdb.rm_defs`: `Rid`, `RmFileHdr`, `RmPageHdr` with `pack()`/`unpack()`,
  and `RmRecord` with `serialize()`/`deserialize()`.
- `rmdb.rm_manager`: `RmManager` creates, opens, closes and removes record
  files; a record size outside 1..512 raises `InvalidRecordSizeError`.
- `rmdb.rm_file_handle`: `RmFileHandle` with `insert_record`,
  `insert_record_at`, `get_record`, `update_record`, `delete_record` and
  `is_record`. A missing record raises `RecordNotFoundError`; a page outside
  the file raises `PageNotExistError`. Pages with free slots are kept on a
  free list in the file header.
- `rmdb.rm_scan`: `RmScan` visits the locations of stored records in page
  and slot order; it is iterable and also offers `next()` and `is_end()`.
- `rmdb.log_manager`: `LogType`, the record classes `BeginLogRecord`,
  `CommitLogRecord`, `AbortLogRecord`, `InsertLogRecord`, `DeleteLogRecord`
  and `UpdateLogRecord` (each with `serialize()`, `format()`, and
  `LogRecord.deserialize()` picking the class from the stored type), a
  `LogBuffer`, and `LogManager`, whose `add_log_to_buffer` assigns the next
  sequence number and whose `flush_log_to_disk` appends the buffer to the log
  file.
- `rmdb.ast` and `rmdb.ast_printer`: dataclass nodes for SQL statements
  (`CreateTable`, `SelectStmt`, `BinaryExpr`, …) and `format_tree` /
  `print_tree`, which render a tree as indented lines.

## Installing

```
pip install .
```

## Example

```python
from rmdb.disk_manager import DiskManager
from rmdb.buffer_pool import BufferPoolManager
from rmdb.rm_manager import RmManager
from rmdb.rm_scan import RmScan

disk = DiskManager()
pool = BufferPoolManager(64, disk)
records = RmManager(disk, pool)

records.create_file("people.tbl", 8)
handle = records.open_file("people.tbl")
rid = handle.insert_record(b"alice\0\0\0")
print(handle.get_record(rid).data)
for rid in RmScan(handle):
    print(rid)
records.close_file(handle)
```

Writing a log record and reading it back:

```python
from rmdb.disk_manager import DiskManager
from rmdb.log_manager import BeginLogRecord, LogManager, LogRecord

disk = DiskManager("example.log")
disk.create_file("example.log")
log = LogManager(disk)
lsn = log.add_log_to_buffer(BeginLogRecord(log_tid=1))
log.flush_log_to_disk()
record = LogRecord.deserialize(disk.read_log(4096, 0))
print(record.format())
```

Printing a syntax tree:

```python
from rmdb import ast
from rmdb.ast_printer import format_tree

print(format_tree(ast.DropTable("tb")))
```

## What it does not do

- There is no SQL parser: syntax trees are built by constructing the node
  classes directly.
- There is no query planning or execution, no system catalogue, no indexes,
  no transactions or locking, and no network server or command-line program.
- Log records are written and read back, but nothing replays them: there is no
  crash recovery.

## Running the tests

```
pip install .[test]
pytest
```