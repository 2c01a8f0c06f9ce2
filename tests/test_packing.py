import pytest

from natskafka.packing import pack_int32, unpack_int32


def test_pack_int32_in_string():
    assert pack_int32(2) == b"\x00\x00\x00\x02"


def test_unpack_int32_from_string():
    assert unpack_int32(b"\x00\x00\x00\x02") == 2


def test_unpack_accepts_text_form():
    assert unpack_int32("\x00\x00\x00\x02") == 2


@pytest.mark.parametrize("value", [0, 1, 255, 65536, -1, 2**31 - 1, -(2**31)])
def test_round_trip(value):
    assert unpack_int32(pack_int32(value)) == value


def test_pack_out_of_range():
    with pytest.raises(ValueError):
        pack_int32(2**31)


def test_unpack_too_short():
    with pytest.raises(ValueError):
        unpack_int32(b"\x00\x01")


def test_unpack_ignores_trailing_bytes():
    assert unpack_int32(b"\x00\x00\x00\x02\xff") == 2