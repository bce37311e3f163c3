"""Access to the records stored in one table file."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from rmdb import bitmap
from rmdb.buffer_pool import BufferPoolManager
from rmdb.disk_manager import DiskManager, InternalError, RmdbError
from rmdb.page import Page, PageId
from rmdb.rm_defs import (
    RM_FILE_HDR_PAGE,
    RM_FIRST_RECORD_PAGE,
    RM_NO_PAGE,
    Rid,
    RmFileHdr,
    RmPageHdr,
    RmRecord,
)

_PAGE_HDR_OFFSET = Page.OFFSET_PAGE_HDR
_BITMAP_OFFSET = _PAGE_HDR_OFFSET + RmPageHdr.LAYOUT.size


class PageNotExistError(RmdbError):
    """A record page outside the file was requested."""

    def __init__(self, table_name: str, page_no: int) -> None:
        super().__init__(f"Page {page_no} in table {table_name} does not exist")
        self.table_name = table_name
        self.page_no = page_no


class RecordNotFoundError(RmdbError, LookupError):
    """No record is stored at the requested location."""

    def __init__(self, rid: Rid) -> None:
        super().__init__(f"Record not found: page {rid.page_no}, slot {rid.slot_no}")
        self.rid = rid


class RmPageHandle:
    """A view of a record page: header, bitmap and record slots."""

    def __init__(self, file_hdr: RmFileHdr, page: Page) -> None:
        self.file_hdr = file_hdr
        self.page = page

    @property
    def page_no(self) -> int:
        return self.page.id.page_no

    @property
    def page_hdr(self) -> RmPageHdr:
        return RmPageHdr.unpack(self.page.data[_PAGE_HDR_OFFSET:_BITMAP_OFFSET])

    @page_hdr.setter
    def page_hdr(self, hdr: RmPageHdr) -> None:
        self.page.data[_PAGE_HDR_OFFSET:_BITMAP_OFFSET] = hdr.pack()

    @property
    def bitmap(self) -> memoryview:
        """A writable view of the page's slot bitmap."""
        return memoryview(self.page.data)[_BITMAP_OFFSET:_BITMAP_OFFSET + self.file_hdr.bitmap_size]

    def _slot_offset(self, slot_no: int) -> int:
        if not 0 <= slot_no < self.file_hdr.num_records_per_page:
            raise IndexError(f"slot out of range: {slot_no}")
        return _BITMAP_OFFSET + self.file_hdr.bitmap_size + slot_no * self.file_hdr.record_size

    def get_slot(self, slot_no: int) -> bytes:
        """The bytes stored in the slot."""
        start = self._slot_offset(slot_no)
        return bytes(self.page.data[start:start + self.file_hdr.record_size])

    def set_slot(self, slot_no: int, data: bytes) -> None:
        """Overwrite the slot with data of exactly one record's size."""
        if len(data) != self.file_hdr.record_size:
            raise ValueError(f"record must be {self.file_hdr.record_size} bytes, got {len(data)}")
        start = self._slot_offset(slot_no)
        self.page.data[start:start + self.file_hdr.record_size] = data


class RmFileHandle:
    """An open table file whose pages are accessed through the buffer pool."""

    def __init__(self, disk_manager: DiskManager, buffer_pool_manager: BufferPoolManager, fd: int) -> None:
        self.disk_manager = disk_manager
        self.buffer_pool_manager = buffer_pool_manager
        self.fd = fd
        raw = disk_manager.read_page(fd, RM_FILE_HDR_PAGE, RmFileHdr.LAYOUT.size)
        self.file_hdr = RmFileHdr.unpack(raw)
        disk_manager.set_fd2pageno(fd, self.file_hdr.num_pages)

    # helpers

    def _unpin(self, handle: RmPageHandle, dirty: bool) -> None:
        self.buffer_pool_manager.unpin_page(handle.page.id, dirty)

    @contextmanager
    def _page(self, page_no: int, dirty: bool = False) -> Iterator[RmPageHandle]:
        handle = self.fetch_page_handle(page_no)
        try:
            yield handle
        finally:
            self._unpin(handle, dirty)

    def _check_size(self, buf: bytes) -> bytes:
        buf = bytes(buf)
        if len(buf) != self.file_hdr.record_size:
            raise ValueError(f"record must be {self.file_hdr.record_size} bytes, got {len(buf)}")
        return buf

    def _slot_in_range(self, slot_no: int) -> bool:
        return 0 <= slot_no < self.file_hdr.num_records_per_page

    def _require_record(self, handle: RmPageHandle, rid: Rid) -> None:
        if not self._slot_in_range(rid.slot_no) or not bitmap.is_set(handle.bitmap, rid.slot_no):
            raise RecordNotFoundError(rid)

    # records

    def is_record(self, rid: Rid) -> bool:
        """True if a record is stored at rid."""
        if not self._slot_in_range(rid.slot_no):
            return False
        with self._page(rid.page_no) as handle:
            return bitmap.is_set(handle.bitmap, rid.slot_no)

    def get_record(self, rid: Rid) -> RmRecord:
        """The record stored at rid."""
        with self._page(rid.page_no) as handle:
            self._require_record(handle, rid)
            return RmRecord(handle.get_slot(rid.slot_no))

    def insert_record(self, buf: bytes) -> Rid:
        """Store a record in the first free slot and return its location."""
        buf = self._check_size(buf)
        per_page = self.file_hdr.num_records_per_page
        handle = self._create_page_handle()
        try:
            slot_no = bitmap.first_bit(False, handle.bitmap, per_page)
            if slot_no == per_page:
                raise InternalError(f"page {handle.page_no} on the free list is full")
            handle.set_slot(slot_no, buf)
            bitmap.set_bit(handle.bitmap, slot_no)
            hdr = handle.page_hdr
            hdr.num_records += 1
            handle.page_hdr = hdr
            if hdr.num_records == per_page:
                self.file_hdr.first_free_page_no = hdr.next_free_page_no
        finally:
            self._unpin(handle, True)
        return Rid(handle.page_no, slot_no)

    def insert_record_at(self, rid: Rid, buf: bytes) -> None:
        """Store a record at the given location, overwriting any record there."""
        buf = self._check_size(buf)
        if not self._slot_in_range(rid.slot_no):
            raise IndexError(f"slot out of range: {rid.slot_no}")
        became_full = False
        with self._page(rid.page_no, dirty=True) as handle:
            handle.set_slot(rid.slot_no, buf)
            if not bitmap.is_set(handle.bitmap, rid.slot_no):
                bitmap.set_bit(handle.bitmap, rid.slot_no)
                hdr = handle.page_hdr
                hdr.num_records += 1
                handle.page_hdr = hdr
                became_full = hdr.num_records == self.file_hdr.num_records_per_page
                next_free = hdr.next_free_page_no
        if became_full:
            self._unlink_free_page(rid.page_no, next_free)

    def _unlink_free_page(self, page_no: int, next_free: int) -> None:
        """Remove a page that has just become full from the free list."""
        if self.file_hdr.first_free_page_no == page_no:
            self.file_hdr.first_free_page_no = next_free
            return
        current = self.file_hdr.first_free_page_no
        while current != RM_NO_PAGE:
            with self._page(current) as handle:
                hdr = handle.page_hdr
                if hdr.next_free_page_no == page_no:
                    hdr.next_free_page_no = next_free
                    handle.page_hdr = hdr
                    BufferPoolManager.mark_dirty(handle.page)
                    return
                current = hdr.next_free_page_no

    def delete_record(self, rid: Rid) -> None:
        """Remove the record stored at rid."""
        with self._page(rid.page_no, dirty=True) as handle:
            self._require_record(handle, rid)
            bitmap.reset_bit(handle.bitmap, rid.slot_no)
            hdr = handle.page_hdr
            was_full = hdr.num_records == self.file_hdr.num_records_per_page
            hdr.num_records -= 1
            handle.page_hdr = hdr
            if was_full:
                self._release_page_handle(handle)

    def update_record(self, rid: Rid, buf: bytes) -> None:
        """Replace the record stored at rid."""
        buf = self._check_size(buf)
        with self._page(rid.page_no, dirty=True) as handle:
            self._require_record(handle, rid)
            handle.set_slot(rid.slot_no, buf)

    # pages

    def fetch_page_handle(self, page_no: int) -> RmPageHandle:
        """A pinned handle of an existing record page; unpin it when done."""
        if not RM_FIRST_RECORD_PAGE <= page_no < self.file_hdr.num_pages:
            raise PageNotExistError(self.disk_manager.get_file_name(self.fd), page_no)
        page = self.buffer_pool_manager.fetch_page(PageId(self.fd, page_no))
        if page is None:
            raise InternalError("buffer pool has no free frame")
        return RmPageHandle(self.file_hdr, page)

    def create_new_page_handle(self) -> RmPageHandle:
        """Append an empty record page, put it at the head of the free list and return it pinned."""
        page = self.buffer_pool_manager.new_page(self.fd)
        if page is None:
            raise InternalError("buffer pool has no free frame")
        handle = RmPageHandle(self.file_hdr, page)
        handle.page_hdr = RmPageHdr(next_free_page_no=self.file_hdr.first_free_page_no, num_records=0)
        self.file_hdr.num_pages += 1
        self.file_hdr.first_free_page_no = handle.page_no
        BufferPoolManager.mark_dirty(page)
        return handle

    def _create_page_handle(self) -> RmPageHandle:
        if self.file_hdr.first_free_page_no == RM_NO_PAGE:
            return self.create_new_page_handle()
        return self.fetch_page_handle(self.file_hdr.first_free_page_no)

    def _release_page_handle(self, handle: RmPageHandle) -> None:
        """Put a page that is no longer full at the head of the free list."""
        hdr = handle.page_hdr
        hdr.next_free_page_no = self.file_hdr.first_free_page_no
        handle.page_hdr = hdr
        self.file_hdr.first_free_page_no = handle.page_no