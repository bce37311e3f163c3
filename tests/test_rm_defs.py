import pytest

from rmdb.rm_defs import RM_NO_PAGE, Rid, RmFileHdr, RmPageHdr, RmRecord


def test_rid_wire_format():
    assert Rid(1, 2).pack() == b"\x01\x00\x00\x00\x02\x00\x00\x00"


@pytest.mark.parametrize("rid", [Rid(0, 0), Rid(3, 17), Rid(-1, -1), Rid(100000, 511)])
def test_rid_round_trip(rid):
    assert Rid.unpack(rid.pack()) == rid


def test_rid_default_is_invalid():
    assert Rid() == Rid(-1, -1)


def test_rid_unpack_truncated():
    with pytest.raises(ValueError):
        Rid.unpack(b"\x01\x00")


def test_file_hdr_round_trip():
    hdr = RmFileHdr(record_size=12, num_pages=3, num_records_per_page=300,
                    first_free_page_no=RM_NO_PAGE, bitmap_size=38)
    packed = hdr.pack()
    assert RmFileHdr.unpack(packed) == hdr
    assert RmFileHdr.unpack(packed + b"\x00" * 100) == hdr


def test_file_hdr_truncated():
    hdr = RmFileHdr(1, 1, 1, 1, 1)
    with pytest.raises(ValueError):
        RmFileHdr.unpack(hdr.pack()[:-1])


def test_page_hdr_defaults_and_round_trip():
    hdr = RmPageHdr()
    assert hdr.next_free_page_no == RM_NO_PAGE
    assert hdr.num_records == 0
    other = RmPageHdr(next_free_page_no=4, num_records=9)
    assert RmPageHdr.unpack(other.pack()) == other


def test_page_hdr_wire_format():
    assert RmPageHdr(1, 2).pack() == b"\x01\x00\x00\x00\x02\x00\x00\x00"


def test_record_size_and_round_trip():
    record = RmRecord(b"abcdef")
    assert record.size == len(b"abcdef")
    restored = RmRecord.deserialize(record.serialize())
    assert restored == record
    assert restored.data == b"abcdef"


def test_record_serialize_prefix():
    assert RmRecord(b"xy").serialize()[:4] == b"\x02\x00\x00\x00"


def test_record_deserialize_ignores_trailing():
    record = RmRecord(b"payload")
    assert RmRecord.deserialize(record.serialize() + b"junk") == record


def test_record_copies_input():
    buf = bytearray(b"abc")
    record = RmRecord(buf)
    buf[0] = ord("z")
    assert record.data == b"abc"


def test_record_deserialize_truncated():
    data = RmRecord(b"abcdef").serialize()
    with pytest.raises(ValueError):
        RmRecord.deserialize(data[:-2])
    with pytest.raises(ValueError):
        RmRecord.deserialize(b"\x01")