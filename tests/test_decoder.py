import sys

import numpy as np
import pytest
from hypothesis import given
from hypothesis import strategies as st

from h5info.decoder import (
    DECODE_FAILED,
    byte_order_name,
    decode,
    decode_all,
    decode_array,
    describe_enum,
    format_dims,
    iter_records,
    scalar_type_name,
)
from h5info.errors import DecodeError
from h5info.types import (
    HOST_ORDER,
    ArrayType,
    BitfieldType,
    ByteOrder,
    CompoundType,
    EnumType,
    FloatType,
    IntegerType,
    OpaqueType,
    ReferenceType,
    StringType,
    VlenType,
)

OTHER_ORDER = ByteOrder.BIG if HOST_ORDER == ByteOrder.LITTLE else ByteOrder.LITTLE


def int_bounds(size, signed):
    bits = size * 8
    if signed:
        return -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    return 0, (1 << bits) - 1


@st.composite
def integers_with_type(draw):
    size = draw(st.sampled_from([1, 2, 4, 8]))
    signed = draw(st.booleans())
    value = draw(st.integers(*int_bounds(size, signed)))
    return size, signed, value


@given(integers_with_type())
def test_integer_matching_order(args):
    size, signed, value = args
    buf = value.to_bytes(size, HOST_ORDER.value, signed=signed)
    t = IntegerType(size, signed=signed, order=HOST_ORDER)
    assert decode(t, buf) == str(value)


@given(integers_with_type())
def test_integer_mismatched_order_is_swapped(args):
    size, signed, value = args
    buf = value.to_bytes(size, HOST_ORDER.value, signed=signed)
    t = IntegerType(size, signed=signed, order=OTHER_ORDER)
    # single bytes are never swapped
    expected = int.from_bytes(buf[::-1], HOST_ORDER.value, signed=signed)
    assert decode(t, buf) == str(expected)


def test_integer_explicit_orders():
    t = IntegerType(2, signed=False)
    buf = b"\x01\x02"
    assert decode(t, buf, storage_order=ByteOrder.BIG, host_order=ByteOrder.BIG) == "258"
    assert decode(t, buf, storage_order=ByteOrder.BIG, host_order=ByteOrder.LITTLE) == "258"
    assert decode(t, buf, storage_order=ByteOrder.LITTLE, host_order=ByteOrder.LITTLE) == "513"
    assert decode(t, buf, storage_order=ByteOrder.LITTLE, host_order=ByteOrder.BIG) == "513"


def test_integer_signedness():
    assert decode(IntegerType(1, signed=True), b"\xff") == "-1"
    assert decode(IntegerType(1, signed=False), b"\xff") == "255"
    big = ByteOrder.BIG
    assert decode(IntegerType(4, signed=True, order=big), b"\xff\xff\xff\xfe") == "-2"
    assert decode(IntegerType(4, signed=False, order=big), b"\xff\xff\xff\xfe") == "4294967294"


def test_integer_offset_and_short_buffer():
    t = IntegerType(4, order=ByteOrder.LITTLE)
    buf = np.array([7, 8], dtype="<i4").tobytes()
    assert decode(t, buf, 4) == "8"
    with pytest.raises(DecodeError):
        decode(t, buf, 6)
    with pytest.raises(DecodeError):
        decode(t, b"\x01\x02")


def test_integer_unsupported_width():
    assert decode(IntegerType(3), b"\x00\x00\x00") == ""


@pytest.mark.parametrize(
    "size, value, expected",
    [
        (4, 0.0, "0.0"),
        (4, -1.5, "-1.5"),
        (4, float(np.finfo(np.float32).max), "3.4028235e+38"),
        (8, 0.0, "0.0"),
        (8, -1.5, "-1.5"),
        (8, float(np.finfo(np.float64).max), "1.7976931348623157e+308"),
    ],
)
def test_float_matching_order(size, value, expected):
    buf = np.array([value], dtype=f"=f{size}").tobytes()
    assert decode(FloatType(size, order=HOST_ORDER), buf) == expected


@pytest.mark.parametrize("size", [4, 8])
def test_float_mismatched_order(size):
    buf = np.array([-1.5], dtype=f">f{size}").tobytes()
    t = FloatType(size, order=ByteOrder.BIG)
    assert decode(t, buf, host_order=ByteOrder.LITTLE) == "-1.5"
    assert decode(t, buf, host_order=ByteOrder.BIG) == "-1.5"


def test_float_unsupported_width():
    assert decode(FloatType(2), b"\x00\x3c") == ""


def test_fixed_string():
    assert decode(StringType(5), b"abc\0\0") == "abc"
    assert decode(StringType(3), b"abcdef") == "abc"
    assert decode(StringType(3), b"xxabc", 2) == "abc"
    assert decode(StringType(4), "äb".encode("utf-8") + b"\0") == "äb"


def test_variable_string():
    t = StringType(8, variable=True)
    handles = np.array([1, 0, 2], dtype=np.uint64).tobytes()
    heap = (b"hello\0junk", b"world")
    assert decode(t, handles, 0, heap=heap) == "hello"
    assert decode(t, handles, 8, heap=heap) == ""  # null handle
    assert decode(t, handles, 16, heap=heap) == "world"

    dangling = (5).to_bytes(8, sys.byteorder)
    with pytest.raises(DecodeError):
        decode(t, dangling, heap=heap)


def test_unhandled_types():
    assert decode(CompoundType(4), b"\0" * 4) == "(H5T_COMPOUND not a handled type)"
    assert decode(EnumType(1, (("A", 0),)), b"\0") == "(H5T_ENUM not a handled type)"
    assert decode(BitfieldType(1), b"\0") == "(H5T_BITFIELD not a handled type)"
    assert decode(OpaqueType(2), b"\0\0") == "(H5T_OPAQUE not a handled type)"
    assert decode(ReferenceType(8), b"") == "(H5T_REFERENCE not a handled type)"
    assert decode(VlenType(16), b"") == "(H5T_VLEN not a handled type)"


def test_describe_enum():
    t = EnumType(1, (("RED", 0), ("GREEN", 1), ("BLUE", 2)))
    assert describe_enum(t) == "RED, GREEN, BLUE"


def test_array_of_integers():
    t = ArrayType(IntegerType(4, order=ByteOrder.LITTLE), (2, 3))
    buf = np.arange(6, dtype="<i4").tobytes()
    assert t.count == 6
    assert t.size == 24
    assert decode_array(t, buf) == "(0, 1, 2, 3, 4, 5)"
    assert decode(t, buf) == "(0, 1, 2, 3, 4, 5)"
    assert format_dims(t.dims) == "(2,3)"


def test_array_of_floats_and_strings():
    t = ArrayType(FloatType(8, order=ByteOrder.BIG), (2,))
    assert decode_array(t, np.array([0.5, -2.0], dtype=">f8").tobytes()) == "(0.5, -2.0)"

    t = ArrayType(StringType(2), (3,))
    assert decode_array(t, b"abc\0de") == '("ab", "c", "de")'


def test_array_unsupported_elements():
    t = ArrayType(EnumType(1, (("A", 0),)), (2,))
    assert decode_array(t, b"\0\0") == ""


def test_array_element_failure_is_isolated():
    t = ArrayType(IntegerType(4, order=ByteOrder.LITTLE), (3,))
    buf = np.array([4, 5], dtype="<i4").tobytes()
    assert decode_array(t, buf) == f"(4, 5, {DECODE_FAILED})"


def test_decode_all():
    t = IntegerType(2, order=ByteOrder.LITTLE)
    buf = np.array([1, 2, 3], dtype="<i2").tobytes()
    assert list(decode_all(t, buf, 3)) == ["1", "2", "3"]
    assert list(decode_all(t, buf, 4)) == ["1", "2", "3", DECODE_FAILED]


def test_iter_records():
    assert list(iter_records(4, 3, b"\0" * 12)) == [(0, 0), (1, 4), (2, 8)]
    assert list(iter_records(4, 3, b"\0" * 9)) == [(0, 0), (1, 4)]
    assert list(iter_records(0, 3, b"")) == []


def test_scalar_type_and_byte_order_names():
    assert scalar_type_name(IntegerType(1, signed=False)) == "uint8"
    assert scalar_type_name(IntegerType(8)) == "int64"
    assert scalar_type_name(FloatType(4)) == "float32"
    assert scalar_type_name(StringType(3)) == "UNKNOWN"
    assert byte_order_name(ByteOrder.BIG) == "big_endian"
    assert byte_order_name(ByteOrder.LITTLE) == "little_endian"
    assert byte_order_name(ByteOrder.NONE) == "little_endian"
