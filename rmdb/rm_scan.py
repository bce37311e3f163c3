"""Sequential scan over the records of a table file."""

from __future__ import annotations

from collections.abc import Iterator

from rmdb import bitmap
from rmdb.rm_defs import RM_FIRST_RECORD_PAGE, RM_NO_PAGE, Rid
from rmdb.rm_file_handle import RmFileHandle


class RmScan:
    """Walks the locations of stored records in page and slot order."""

    def __init__(self, file_handle: RmFileHandle) -> None:
        self.file_handle = file_handle
        self.rid = Rid(RM_FIRST_RECORD_PAGE, -1)
        self.next()

    def next(self) -> None:
        """Move to the next stored record, or to the end."""
        if self.is_end():
            return
        file_handle = self.file_handle
        per_page = file_handle.file_hdr.num_records_per_page
        page_no, slot_no = self.rid.page_no, self.rid.slot_no
        while page_no < file_handle.file_hdr.num_pages:
            handle = file_handle.fetch_page_handle(page_no)
            try:
                slot_no = bitmap.next_bit(True, handle.bitmap, per_page, slot_no)
            finally:
                file_handle.buffer_pool_manager.unpin_page(handle.page.id, False)
            if slot_no < per_page:
                self.rid = Rid(page_no, slot_no)
                return
            page_no += 1
            slot_no = -1
        self.rid = Rid(RM_NO_PAGE, -1)

    def is_end(self) -> bool:
        """True once every record has been visited."""
        return self.rid.page_no == RM_NO_PAGE

    def __iter__(self) -> Iterator[Rid]:
        while not self.is_end():
            yield self.rid
            self.next()