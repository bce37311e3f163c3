"""File, page and log I/O on disk."""

from __future__ import annotations

import os
import shutil
import threading
from collections import defaultdict

from rmdb.page import PAGE_SIZE

LOG_FILE_NAME = "db.log"


class RmdbError(Exception):
    """Base class for database errors."""


class InternalError(RmdbError):
    """An internal consistency failure."""


class UnixError(RmdbError):
    """An operating-system call failed."""

    def __init__(self, message: str = "operating system call failed") -> None:
        super().__init__(message)


class FileAlreadyExistsError(RmdbError):
    def __init__(self, path: str) -> None:
        super().__init__(f"File already exists: {path}")
        self.path = path


class FileMissingError(RmdbError):
    def __init__(self, path: str) -> None:
        super().__init__(f"File not found: {path}")
        self.path = path


class FileNotClosedError(RmdbError):
    def __init__(self, path: str) -> None:
        super().__init__(f"File is opened: {path}")
        self.path = path


class FileNotOpenError(RmdbError):
    def __init__(self, fd: int) -> None:
        super().__init__(f"Invalid file descriptor: {fd}")
        self.fd = fd


_BINARY = getattr(os, "O_BINARY", 0)


class DiskManager:
    """Opens, creates and removes files and moves pages and log data to and from them."""

    MAX_FD = 8192

    def __init__(self, log_file_name: str | os.PathLike = LOG_FILE_NAME) -> None:
        self.log_file_name = os.fspath(log_file_name)
        self.log_fd = -1
        self._path2fd: dict[str, int] = {}
        self._fd2path: dict[int, str] = {}
        self._fd2pageno: defaultdict[int, int] = defaultdict(int)
        self.deallocated_pages: set[int] = set()
        self._lock = threading.Lock()

    # pages

    def write_page(self, fd: int, page_no: int, data: bytes) -> None:
        """Write data at the start of page page_no of the file."""
        try:
            os.lseek(fd, page_no * PAGE_SIZE, os.SEEK_SET)
            written = os.write(fd, data)
        except OSError as exc:
            raise InternalError("DiskManager.write_page error") from exc
        if written != len(data):
            raise InternalError("DiskManager.write_page error")

    def read_page(self, fd: int, page_no: int, num_bytes: int) -> bytes:
        """Read num_bytes from the start of page page_no of the file."""
        try:
            os.lseek(fd, page_no * PAGE_SIZE, os.SEEK_SET)
            data = os.read(fd, num_bytes)
        except OSError as exc:
            raise InternalError("DiskManager.read_page error") from exc
        if len(data) != num_bytes:
            raise InternalError("DiskManager.read_page error")
        return data

    def allocate_page(self, fd: int) -> int:
        """Hand out the next page number of the file."""
        if not 0 <= fd < self.MAX_FD:
            raise ValueError(f"file descriptor out of range: {fd}")
        with self._lock:
            page_no = self._fd2pageno[fd]
            self._fd2pageno[fd] = page_no + 1
        return page_no

    def deallocate_page(self, page_no: int) -> None:
        """Record a page number as released; numbers are never handed out again."""
        if page_no < 0:
            raise ValueError(f"invalid page number: {page_no}")
        with self._lock:
            self.deallocated_pages.add(page_no)

    def set_fd2pageno(self, fd: int, start_page_no: int) -> None:
        """Set the number of pages already allocated in the file."""
        with self._lock:
            self._fd2pageno[fd] = start_page_no

    def get_fd2pageno(self, fd: int) -> int:
        """Number of pages already allocated in the file."""
        with self._lock:
            return self._fd2pageno[fd]

    # directories

    def is_dir(self, path: str | os.PathLike) -> bool:
        return os.path.isdir(path)

    def create_dir(self, path: str | os.PathLike) -> None:
        try:
            os.mkdir(path)
        except OSError as exc:
            raise UnixError(str(exc)) from exc

    def destroy_dir(self, path: str | os.PathLike) -> None:
        try:
            shutil.rmtree(path)
        except OSError as exc:
            raise UnixError(str(exc)) from exc

    # files

    def is_file(self, path: str | os.PathLike) -> bool:
        return os.path.isfile(path)

    def create_file(self, path: str | os.PathLike) -> None:
        """Create an empty file; it must not exist yet."""
        path = os.fspath(path)
        try:
            fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_RDWR | _BINARY, 0o644)
        except FileExistsError as exc:
            raise FileAlreadyExistsError(path) from exc
        except OSError as exc:
            raise UnixError(str(exc)) from exc
        try:
            os.close(fd)
        except OSError as exc:
            raise UnixError(str(exc)) from exc

    def destroy_file(self, path: str | os.PathLike) -> None:
        """Remove a closed file."""
        path = os.fspath(path)
        if not self.is_file(path):
            raise FileMissingError(path)
        if path in self._path2fd:
            raise FileNotClosedError(path)
        try:
            os.unlink(path)
        except OSError as exc:
            raise UnixError(str(exc)) from exc

    def open_file(self, path: str | os.PathLike) -> int:
        """Open an existing file for reading and writing and return its descriptor."""
        path = os.fspath(path)
        if not self.is_file(path):
            raise FileMissingError(path)
        if path in self._path2fd:
            raise FileNotClosedError(path)
        try:
            fd = os.open(path, os.O_RDWR | _BINARY)
        except OSError as exc:
            raise UnixError(str(exc)) from exc
        self._path2fd[path] = fd
        self._fd2path[fd] = path
        return fd

    def close_file(self, fd: int) -> None:
        """Close a file opened by this manager."""
        if fd not in self._fd2path:
            raise FileNotOpenError(fd)
        try:
            os.close(fd)
        except OSError as exc:
            raise UnixError(str(exc)) from exc
        path = self._fd2path.pop(fd)
        del self._path2fd[path]

    def get_file_size(self, path: str | os.PathLike) -> int:
        """Size of the file in bytes, or -1 if it cannot be examined."""
        try:
            return os.stat(path).st_size
        except OSError:
            return -1

    def get_file_name(self, fd: int) -> str:
        if fd not in self._fd2path:
            raise FileNotOpenError(fd)
        return self._fd2path[fd]

    def get_file_fd(self, path: str | os.PathLike) -> int:
        """Descriptor of the file, opening it if needed."""
        path = os.fspath(path)
        if path not in self._path2fd:
            return self.open_file(path)
        return self._path2fd[path]

    # log

    def _ensure_log_open(self) -> None:
        if self.log_fd == -1:
            self.log_fd = self.open_file(self.log_file_name)

    def read_log(self, size: int, offset: int) -> bytes | None:
        """Read up to size bytes of the log from offset; None if offset is past the end."""
        self._ensure_log_open()
        file_size = self.get_file_size(self.log_file_name)
        if offset > file_size:
            return None
        size = min(size, file_size - offset)
        if size == 0:
            return b""
        os.lseek(self.log_fd, offset, os.SEEK_SET)
        data = os.read(self.log_fd, size)
        if len(data) != size:
            raise InternalError("DiskManager.read_log error")
        return data

    def write_log(self, data: bytes) -> None:
        """Append data to the end of the log."""
        self._ensure_log_open()
        try:
            os.lseek(self.log_fd, 0, os.SEEK_END)
            written = os.write(self.log_fd, data)
        except OSError as exc:
            raise UnixError(str(exc)) from exc
        if written != len(data):
            raise UnixError("short write to log")