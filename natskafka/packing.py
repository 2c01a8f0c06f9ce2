"""Big-endian packing of 32-bit partition numbers into map keys."""

from __future__ import annotations

import struct

_INT32 = struct.Struct(">i")


def pack_int32(value: int) -> bytes:
    """Pack a signed 32-bit integer into four big-endian bytes."""
    try:
        return _INT32.pack(value)
    except struct.error as exc:
        raise ValueError(f"{value} does not fit in a signed 32-bit integer") from exc


def unpack_int32(data: bytes | bytearray | memoryview | str) -> int:
    """Read a signed 32-bit big-endian integer from the first four bytes of ``data``.

    A ``str`` is taken byte for byte (each character one byte).
    """
    if isinstance(data, str):
        data = data.encode("latin-1")
    if len(data) < 4:
        raise ValueError("need at least 4 bytes to unpack a 32-bit integer")
    return _INT32.unpack_from(data)[0]