"""A fixed-size pool of page frames cached in memory."""

from __future__ import annotations

import threading
from collections import deque

from rmdb.disk_manager import DiskManager
from rmdb.page import INVALID_PAGE_ID, PAGE_SIZE, Page, PageId
from rmdb.replacer import LRUReplacer, Replacer


class BufferPoolManager:
    """Caches disk pages in a fixed number of frames, evicting with a replacer."""

    def __init__(
        self,
        pool_size: int,
        disk_manager: DiskManager,
        replacer: Replacer | None = None,
    ) -> None:
        self.pool_size = pool_size
        self.disk_manager = disk_manager
        self.replacer = replacer if replacer is not None else LRUReplacer(pool_size)
        self._pages = [Page() for _ in range(pool_size)]
        self._page_table: dict[PageId, int] = {}
        self._free_list: deque[int] = deque(range(pool_size))
        self._lock = threading.Lock()

    @staticmethod
    def mark_dirty(page: Page) -> None:
        """Mark a page as modified."""
        page.is_dirty = True

    def _find_victim_frame(self) -> int | None:
        if self._free_list:
            return self._free_list.popleft()
        return self.replacer.victim()

    def _write_back(self, page: Page) -> None:
        self.disk_manager.write_page(page.id.fd, page.id.page_no, bytes(page.data))

    def _rebind(self, page: Page, new_page_id: PageId, frame_id: int) -> None:
        """Write back a dirty frame and assign it to a new page."""
        if page.is_dirty:
            self._write_back(page)
            page.is_dirty = False
        self._page_table.pop(page.id, None)
        page.reset_memory()
        page.id = new_page_id
        page.pin_count = 0
        page.is_dirty = False
        self._page_table[new_page_id] = frame_id

    def fetch_page(self, page_id: PageId) -> Page | None:
        """Return the page pinned in the pool, reading it from disk if needed.

        Returns None when every frame is pinned.
        """
        with self._lock:
            frame_id = self._page_table.get(page_id)
            if frame_id is not None:
                page = self._pages[frame_id]
                page.pin_count += 1
                self.replacer.pin(frame_id)
                return page
            frame_id = self._find_victim_frame()
            if frame_id is None:
                return None
            page = self._pages[frame_id]
            self._rebind(page, page_id, frame_id)
            page.data[:] = self.disk_manager.read_page(page_id.fd, page_id.page_no, PAGE_SIZE)
            self.replacer.pin(frame_id)
            page.pin_count += 1
            page.is_dirty = False
            return page

    def unpin_page(self, page_id: PageId, is_dirty: bool) -> bool:
        """Drop one pin on the page; False if it is not cached or not pinned."""
        with self._lock:
            frame_id = self._page_table.get(page_id)
            if frame_id is None:
                return False
            page = self._pages[frame_id]
            if page.pin_count <= 0:
                return False
            page.pin_count -= 1
            if page.pin_count <= 0:
                self.replacer.unpin(frame_id)
            if is_dirty:
                page.is_dirty = True
            return True

    def flush_page(self, page_id: PageId) -> bool:
        """Write the page to disk whether or not it is dirty; False if not cached."""
        with self._lock:
            frame_id = self._page_table.get(page_id)
            if frame_id is None:
                return False
            page = self._pages[frame_id]
            self.disk_manager.write_page(page_id.fd, page_id.page_no, bytes(page.data))
            page.is_dirty = False
            return True

    def new_page(self, fd: int) -> Page | None:
        """Allocate a new zeroed page in the file, pinned; None if no frame is free."""
        with self._lock:
            frame_id = self._find_victim_frame()
            if frame_id is None:
                return None
            page_id = PageId(fd, self.disk_manager.allocate_page(fd))
            page = self._pages[frame_id]
            self._rebind(page, page_id, frame_id)
            self.replacer.pin(frame_id)
            page.pin_count = 1
            page.is_dirty = False
            return page

    def delete_page(self, page_id: PageId) -> bool:
        """Remove the page from the pool after writing it back.

        True if it was removed or not cached, False if it is still pinned.
        """
        with self._lock:
            frame_id = self._page_table.get(page_id)
            if frame_id is None:
                return True
            page = self._pages[frame_id]
            if page.pin_count > 0:
                return False
            self.disk_manager.write_page(page_id.fd, page_id.page_no, bytes(page.data))
            del self._page_table[page_id]
            self.replacer.pin(frame_id)
            page.reset_memory()
            page.id = PageId()
            page.pin_count = 0
            page.is_dirty = False
            self._free_list.appendleft(frame_id)
            return True

    def flush_all_pages(self, fd: int) -> None:
        """Write every cached page of the file to disk."""
        with self._lock:
            for page in self._pages:
                if page.id.fd == fd and page.id.page_no != INVALID_PAGE_ID:
                    self._write_back(page)
                    page.is_dirty = False