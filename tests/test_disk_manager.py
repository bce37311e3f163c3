import pytest

from rmdb.disk_manager import (
    DiskManager,
    FileAlreadyExistsError,
    FileMissingError,
    FileNotClosedError,
    FileNotOpenError,
    InternalError,
    RmdbError,
    UnixError,
)
from rmdb.page import PAGE_SIZE


@pytest.fixture
def dm(tmp_path):
    return DiskManager(tmp_path / "db.log")


def test_create_open_close(dm, tmp_path):
    path = str(tmp_path / "t.dat")
    assert not dm.is_file(path)
    dm.create_file(path)
    assert dm.is_file(path)
    fd = dm.open_file(path)
    assert dm.get_file_name(fd) == path
    assert dm.get_file_fd(path) == fd
    dm.close_file(fd)
    with pytest.raises(FileNotOpenError):
        dm.get_file_name(fd)


def test_create_twice_raises(dm, tmp_path):
    path = tmp_path / "t.dat"
    dm.create_file(path)
    with pytest.raises(FileAlreadyExistsError):
        dm.create_file(path)


def test_errors_share_base_class(dm, tmp_path):
    with pytest.raises(RmdbError):
        dm.open_file(tmp_path / "nope")


def test_open_missing_raises(dm, tmp_path):
    with pytest.raises(FileMissingError):
        dm.open_file(tmp_path / "nope")


def test_open_twice_raises(dm, tmp_path):
    path = tmp_path / "t.dat"
    dm.create_file(path)
    fd = dm.open_file(path)
    with pytest.raises(FileNotClosedError):
        dm.open_file(path)
    dm.close_file(fd)


def test_destroy_open_file_raises(dm, tmp_path):
    path = tmp_path / "t.dat"
    dm.create_file(path)
    fd = dm.open_file(path)
    with pytest.raises(FileNotClosedError):
        dm.destroy_file(path)
    dm.close_file(fd)
    dm.destroy_file(path)
    assert not dm.is_file(path)


def test_destroy_missing_raises(dm, tmp_path):
    with pytest.raises(FileMissingError):
        dm.destroy_file(tmp_path / "nope")


def test_close_unknown_fd_raises(dm):
    with pytest.raises(FileNotOpenError):
        dm.close_file(12345)


def test_page_round_trip(dm, tmp_path):
    path = tmp_path / "t.dat"
    dm.create_file(path)
    fd = dm.open_file(path)
    first = bytes(range(256)) * (PAGE_SIZE // 256)
    second = b"\x07" * PAGE_SIZE
    dm.write_page(fd, 0, first)
    dm.write_page(fd, 1, second)
    assert dm.read_page(fd, 0, PAGE_SIZE) == first
    assert dm.read_page(fd, 1, PAGE_SIZE) == second
    assert dm.get_file_size(path) == 2 * PAGE_SIZE
    dm.close_file(fd)


def test_partial_page_write_and_read(dm, tmp_path):
    path = tmp_path / "t.dat"
    dm.create_file(path)
    fd = dm.open_file(path)
    dm.write_page(fd, 2, b"hello")
    assert dm.read_page(fd, 2, 5) == b"hello"
    dm.close_file(fd)


def test_read_past_end_raises(dm, tmp_path):
    path = tmp_path / "t.dat"
    dm.create_file(path)
    fd = dm.open_file(path)
    with pytest.raises(InternalError):
        dm.read_page(fd, 3, PAGE_SIZE)
    dm.close_file(fd)


def test_allocate_page_counts_up(dm):
    assert [dm.allocate_page(5) for _ in range(3)] == [0, 1, 2]
    assert dm.get_fd2pageno(5) == 3
    assert dm.allocate_page(6) == 0


def test_set_fd2pageno(dm):
    dm.set_fd2pageno(4, 10)
    assert dm.get_fd2pageno(4) == 10
    assert dm.allocate_page(4) == 10


def test_allocate_page_rejects_bad_fd(dm):
    with pytest.raises(ValueError):
        dm.allocate_page(DiskManager.MAX_FD)


def test_get_file_size_missing(dm, tmp_path):
    assert dm.get_file_size(tmp_path / "nope") == -1


def test_directories(dm, tmp_path):
    path = tmp_path / "sub"
    assert not dm.is_dir(path)
    dm.create_dir(path)
    assert dm.is_dir(path)
    (path / "inner.txt").write_text("x")
    dm.destroy_dir(path)
    assert not dm.is_dir(path)


def test_create_existing_dir_raises(dm, tmp_path):
    with pytest.raises(UnixError):
        dm.create_dir(tmp_path)


def test_log_round_trip(dm, tmp_path):
    dm.create_file(tmp_path / "db.log")
    dm.write_log(b"abc")
    dm.write_log(b"defg")
    assert dm.read_log(100, 0) == b"abcdefg"
    assert dm.read_log(2, 3) == b"de"
    assert dm.read_log(10, 7) == b""
    assert dm.read_log(10, 8) is None
    assert dm.log_fd != -1


def test_log_missing_file_raises(dm):
    with pytest.raises(FileMissingError):
        dm.write_log(b"x")