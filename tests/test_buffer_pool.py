import pytest

from rmdb.buffer_pool import BufferPoolManager
from rmdb.disk_manager import DiskManager
from rmdb.page import PAGE_SIZE, Page, PageId


@pytest.fixture
def disk(tmp_path):
    manager = DiskManager(log_file_name=tmp_path / "db.log")
    yield manager
    for fd in list(manager._fd2path):
        manager.close_file(fd)


@pytest.fixture
def fd(disk, tmp_path):
    path = tmp_path / "table"
    disk.create_file(path)
    return disk.open_file(path)


def test_new_page_is_pinned_zeroed_and_numbered_in_order(disk, fd):
    pool = BufferPoolManager(4, disk)
    first = pool.new_page(fd)
    second = pool.new_page(fd)
    assert first.id == PageId(fd, 0)
    assert second.id == PageId(fd, 1)
    assert first.pin_count == 1
    assert not first.is_dirty
    assert first.data == bytearray(PAGE_SIZE)


def test_new_page_returns_none_when_all_pinned(disk, fd):
    pool = BufferPoolManager(2, disk)
    assert pool.new_page(fd) is not None
    assert pool.new_page(fd) is not None
    assert pool.new_page(fd) is None


def test_fetch_returns_none_when_all_pinned(disk, fd):
    pool = BufferPoolManager(1, disk)
    pool.new_page(fd)
    assert pool.fetch_page(PageId(fd, 5)) is None


def test_dirty_page_survives_eviction(disk, fd):
    pool = BufferPoolManager(1, disk)
    page = pool.new_page(fd)
    page.data[:5] = b"hello"
    page_id = page.id
    assert pool.unpin_page(page_id, True)

    other = pool.new_page(fd)
    other.data[:5] = b"world"
    assert pool.unpin_page(other.id, True)

    fetched = pool.fetch_page(page_id)
    assert bytes(fetched.data[:5]) == b"hello"
    assert fetched.pin_count == 1
    assert not fetched.is_dirty


def test_fetch_cached_page_increments_pin(disk, fd):
    pool = BufferPoolManager(2, disk)
    page = pool.new_page(fd)
    again = pool.fetch_page(page.id)
    assert again is page
    assert page.pin_count == 2


def test_least_recently_unpinned_is_evicted(disk, fd):
    pool = BufferPoolManager(2, disk)
    p0 = pool.new_page(fd)
    p1 = pool.new_page(fd)
    id0, id1 = p0.id, p1.id
    pool.unpin_page(id0, True)
    pool.unpin_page(id1, True)
    p2 = pool.new_page(fd)
    assert p2 is p0
    assert pool.fetch_page(id1) is p1


def test_unpin_unknown_or_unpinned_page(disk, fd):
    pool = BufferPoolManager(2, disk)
    assert pool.unpin_page(PageId(fd, 3), False) is False
    page = pool.new_page(fd)
    assert pool.unpin_page(page.id, False) is True
    assert pool.unpin_page(page.id, False) is False


def test_unpin_clean_keeps_dirty_flag(disk, fd):
    pool = BufferPoolManager(2, disk)
    page = pool.new_page(fd)
    pool.fetch_page(page.id)
    pool.unpin_page(page.id, True)
    pool.unpin_page(page.id, False)
    assert page.is_dirty is True


def test_flush_page(disk, fd):
    pool = BufferPoolManager(2, disk)
    assert pool.flush_page(PageId(fd, 0)) is False
    page = pool.new_page(fd)
    page.data[:3] = b"abc"
    BufferPoolManager.mark_dirty(page)
    assert page.is_dirty
    assert pool.flush_page(page.id) is True
    assert not page.is_dirty
    assert disk.read_page(fd, page.id.page_no, 3) == b"abc"


def test_delete_page(disk, fd):
    pool = BufferPoolManager(1, disk)
    assert pool.delete_page(PageId(fd, 7)) is True
    page = pool.new_page(fd)
    page_id = page.id
    page.data[:4] = b"data"
    assert pool.delete_page(page_id) is False
    pool.unpin_page(page_id, True)
    assert pool.delete_page(page_id) is True
    assert page.id == PageId()
    assert disk.read_page(fd, page_id.page_no, 4) == b"data"
    fresh = pool.new_page(fd)
    assert fresh is not None
    assert fresh.pin_count == 1


def test_flush_all_pages(disk, fd):
    pool = BufferPoolManager(4, disk)
    pages = [pool.new_page(fd) for _ in range(3)]
    for index, page in enumerate(pages):
        page.data[:1] = bytes([index + 1])
        BufferPoolManager.mark_dirty(page)
    pool.flush_all_pages(fd)
    for index, page in enumerate(pages):
        assert not page.is_dirty
        assert disk.read_page(fd, page.id.page_no, 1) == bytes([index + 1])


def test_mark_dirty_static():
    page = Page()
    BufferPoolManager.mark_dirty(page)
    assert page.is_dirty is True