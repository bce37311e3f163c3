"""Bit operations on a byte array, most significant bit first."""

from __future__ import annotations

BITMAP_WIDTH = 8
BITMAP_HIGHEST_BIT = 0x80


def _bucket(pos: int) -> int:
    return pos // BITMAP_WIDTH


def _mask(pos: int) -> int:
    return BITMAP_HIGHEST_BIT >> (pos % BITMAP_WIDTH)


def init(size: int) -> bytearray:
    """A bitmap of size bytes with every bit cleared."""
    return bytearray(size)


def set_bit(bm: bytearray, pos: int) -> None:
    """Set bit pos to 1."""
    bm[_bucket(pos)] |= _mask(pos)


def reset_bit(bm: bytearray, pos: int) -> None:
    """Set bit pos to 0."""
    bm[_bucket(pos)] &= ~_mask(pos) & 0xFF


def is_set(bm: bytes | bytearray | memoryview, pos: int) -> bool:
    """True if bit pos is 1."""
    return bool(bm[_bucket(pos)] & _mask(pos))


def next_bit(bit: bool, bm: bytes | bytearray | memoryview, max_n: int, curr: int) -> int:
    """First position in [curr + 1, max_n) whose bit equals bit, else max_n."""
    return next((i for i in range(curr + 1, max_n) if is_set(bm, i) == bit), max_n)


def first_bit(bit: bool, bm: bytes | bytearray | memoryview, max_n: int) -> int:
    """First position in [0, max_n) whose bit equals bit, else max_n."""
    return next_bit(bit, bm, max_n, -1)