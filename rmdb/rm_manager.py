"""Creation, opening and removal of table files."""

from __future__ import annotations

from rmdb.bitmap import BITMAP_WIDTH
from rmdb.buffer_pool import BufferPoolManager
from rmdb.disk_manager import DiskManager, RmdbError
from rmdb.page import PAGE_SIZE, PageId
from rmdb.rm_defs import (
    RM_FILE_HDR_PAGE,
    RM_FIRST_RECORD_PAGE,
    RM_MAX_RECORD_SIZE,
    RM_NO_PAGE,
    RmFileHdr,
)
from rmdb.rm_file_handle import RmFileHandle


class InvalidRecordSizeError(RmdbError):
    def __init__(self, record_size: int) -> None:
        super().__init__(f"Invalid record size: {record_size}")
        self.record_size = record_size


class RmManager:
    """Manages the record files of tables."""

    def __init__(self, disk_manager: DiskManager, buffer_pool_manager: BufferPoolManager) -> None:
        self.disk_manager = disk_manager
        self.buffer_pool_manager = buffer_pool_manager

    def create_file(self, filename: str, record_size: int) -> None:
        """Create a record file for records of record_size bytes."""
        if not 1 <= record_size <= RM_MAX_RECORD_SIZE:
            raise InvalidRecordSizeError(record_size)
        self.disk_manager.create_file(filename)
        fd = self.disk_manager.open_file(filename)
        try:
            # header + (n + 7) / 8 + n * record_size <= PAGE_SIZE
            per_page = (BITMAP_WIDTH * (PAGE_SIZE - 1 - RmFileHdr.LAYOUT.size) + 1) // (
                1 + record_size * BITMAP_WIDTH
            )
            file_hdr = RmFileHdr(
                record_size=record_size,
                num_pages=1,
                num_records_per_page=per_page,
                first_free_page_no=RM_NO_PAGE,
                bitmap_size=(per_page + BITMAP_WIDTH - 1) // BITMAP_WIDTH,
            )
            self.disk_manager.write_page(fd, RM_FILE_HDR_PAGE, file_hdr.pack())
        finally:
            self.disk_manager.close_file(fd)

    def destroy_file(self, filename: str) -> None:
        """Remove a closed record file."""
        self.disk_manager.destroy_file(filename)

    def open_file(self, filename: str) -> RmFileHandle:
        """Open a record file and return its handle."""
        fd = self.disk_manager.open_file(filename)
        return RmFileHandle(self.disk_manager, self.buffer_pool_manager, fd)

    def close_file(self, file_handle: RmFileHandle) -> None:
        """Persist the file header and cached pages, then close the file."""
        fd = file_handle.fd
        self.disk_manager.write_page(fd, RM_FILE_HDR_PAGE, file_handle.file_hdr.pack())
        self.buffer_pool_manager.flush_all_pages(fd)
        # Drop cached frames so a later file given the same descriptor sees no stale pages.
        for page_no in range(RM_FIRST_RECORD_PAGE, file_handle.file_hdr.num_pages):
            self.buffer_pool_manager.delete_page(PageId(fd, page_no))
        self.disk_manager.close_file(fd)