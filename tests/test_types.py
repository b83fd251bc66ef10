import pytest

from h5info.types import (
    ArrayType,
    ByteOrder,
    CompoundType,
    EnumType,
    FloatType,
    IntegerType,
    Member,
    OpaqueType,
    StringType,
    TypeClass,
    UnknownType,
    byte_order_of,
    describe_type,
    element_count,
)


@pytest.mark.parametrize(
    "t, expected",
    [
        (IntegerType(4, order=ByteOrder.LITTLE), "integer, 4 bytes (Little Endian)"),
        (IntegerType(2, order=ByteOrder.BIG), "integer, 2 bytes (Big Endian)"),
        (IntegerType(1, order=ByteOrder.BIG), "integer, 1 bytes"),
        (FloatType(8, order=ByteOrder.BIG), "float, 8 bytes (Big Endian)"),
        (StringType(12), "string, 12 bytes"),
        (EnumType(2, (("A", 0),), ByteOrder.BIG), "enumeration, 2 bytes"),
        (ArrayType(IntegerType(4), (2, 3)), "array, 24 bytes"),
        (OpaqueType(3), "opaque, 3 bytes"),
        (UnknownType(), "unknown, 0 bytes"),
    ],
)
def test_describe_type(t, expected):
    assert describe_type(t) == expected


def test_type_classes():
    assert IntegerType(4).type_class == TypeClass.INTEGER
    assert CompoundType(4).type_class.value == "H5T_COMPOUND"
    assert UnknownType().type_class.value == "H5T_NO_CLASS"
    assert TypeClass.VLEN.label == "variable-length"


def test_byte_order_of():
    assert byte_order_of(IntegerType(4, order=ByteOrder.BIG)) == ByteOrder.BIG
    assert byte_order_of(IntegerType(1, order=ByteOrder.BIG)) == ByteOrder.NONE
    assert byte_order_of(ArrayType(FloatType(8, order=ByteOrder.LITTLE), (2,))) == ByteOrder.LITTLE
    assert byte_order_of(StringType(4)) == ByteOrder.NONE


def test_compound_and_enum_helpers():
    t = CompoundType(6, (Member("x", 0, IntegerType(4)), Member("y", 4, IntegerType(2))))
    assert [m.name for m in t.members] == ["x", "y"]
    assert EnumType(1, (("RED", 0), ("BLUE", 2))).names == ("RED", "BLUE")
    assert element_count([]) == 1
    assert element_count([2, 3]) == 6
    assert element_count([4, 0]) == 0
