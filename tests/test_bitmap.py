import pytest

from rmdb import bitmap


def test_init_is_all_zero():
    bm = bitmap.init(4)
    assert bm == bytearray(4)
    assert all(not bitmap.is_set(bm, pos) for pos in range(32))


def test_highest_bit_first():
    bm = bitmap.init(2)
    bitmap.set_bit(bm, 0)
    assert bm[0] == bitmap.BITMAP_HIGHEST_BIT
    assert bm[1] == 0


@pytest.mark.parametrize("pos", [0, 3, 7, 8, 13, 15])
def test_set_and_reset_round_trip(pos):
    bm = bitmap.init(2)
    bitmap.set_bit(bm, pos)
    assert bitmap.is_set(bm, pos)
    assert [p for p in range(16) if bitmap.is_set(bm, p)] == [pos]
    bitmap.reset_bit(bm, pos)
    assert not bitmap.is_set(bm, pos)
    assert bm == bytearray(2)


def test_reset_leaves_other_bits():
    bm = bitmap.init(1)
    bitmap.set_bit(bm, 2)
    bitmap.set_bit(bm, 5)
    bitmap.reset_bit(bm, 2)
    assert bitmap.is_set(bm, 5)
    assert not bitmap.is_set(bm, 2)


def test_first_bit_set():
    bm = bitmap.init(2)
    bitmap.set_bit(bm, 5)
    assert bitmap.first_bit(True, bm, 16) == 5


def test_first_bit_clear_in_empty_map():
    bm = bitmap.init(2)
    assert bitmap.first_bit(False, bm, 16) == 0


def test_next_bit_skips_current():
    bm = bitmap.init(2)
    bitmap.set_bit(bm, 5)
    bitmap.set_bit(bm, 9)
    assert bitmap.next_bit(True, bm, 16, 5) == 9


def test_next_bit_not_found_returns_max():
    bm = bitmap.init(2)
    bitmap.set_bit(bm, 3)
    assert bitmap.next_bit(True, bm, 16, 3) == 16
    full = bytearray(b"\xff\xff")
    assert bitmap.first_bit(False, full, 16) == 16


def test_next_bit_respects_max_n():
    bm = bitmap.init(2)
    bitmap.set_bit(bm, 12)
    assert bitmap.first_bit(True, bm, 10) == 10