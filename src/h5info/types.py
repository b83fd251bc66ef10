"""Type descriptors describing how to interpret a contiguous range of bytes.

A descriptor is one of the frozen dataclasses below (a tagged union over
`TypeClass`). They are produced by a store from the type of a dataset or
attribute and are immutable afterwards.
"""
from __future__ import annotations

import math
import sys
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Dict, Iterable, Tuple, Union

from typing_extensions import Final, assert_never


class TypeClass(str, Enum):
    """HDF5 datatype classes, named after the HDF5 class constants."""

    INTEGER = "H5T_INTEGER"
    FLOAT = "H5T_FLOAT"
    TIME = "H5T_TIME"
    STRING = "H5T_STRING"
    BITFIELD = "H5T_BITFIELD"
    OPAQUE = "H5T_OPAQUE"
    COMPOUND = "H5T_COMPOUND"
    REFERENCE = "H5T_REFERENCE"
    ENUM = "H5T_ENUM"
    VLEN = "H5T_VLEN"
    ARRAY = "H5T_ARRAY"
    UNKNOWN = "H5T_NO_CLASS"

    @property
    def label(self) -> str:
        """Human readable name of the class (as used in tree renderings)."""
        return _CLASS_LABELS[self]


_CLASS_LABELS: Dict[TypeClass, str] = {
    TypeClass.INTEGER: "integer",
    TypeClass.FLOAT: "float",
    TypeClass.TIME: "date/time",
    TypeClass.STRING: "string",
    TypeClass.BITFIELD: "bit-field",
    TypeClass.OPAQUE: "opaque",
    TypeClass.COMPOUND: "compound",
    TypeClass.REFERENCE: "reference",
    TypeClass.ENUM: "enumeration",
    TypeClass.VLEN: "variable-length",
    TypeClass.ARRAY: "array",
    TypeClass.UNKNOWN: "unknown",
}


class ByteOrder(str, Enum):
    """Byte order of a stored numeric value."""

    LITTLE = "little"
    BIG = "big"
    NONE = "none"
    """Single byte values and non-numeric types."""

    @property
    def label(self) -> str:
        if self == ByteOrder.LITTLE:
            return "Little Endian"
        elif self == ByteOrder.BIG:
            return "Big Endian"
        return ""


HOST_ORDER: Final[ByteOrder] = ByteOrder(sys.byteorder)
"""Native byte order of the running interpreter."""

VLEN_HANDLE_SIZE: Final[int] = 8
"""Width of the slot that holds a variable-length string handle."""


@dataclass(frozen=True)
class IntegerType:
    size: int
    signed: bool = True
    order: ByteOrder = HOST_ORDER

    type_class: ClassVar[TypeClass] = TypeClass.INTEGER


@dataclass(frozen=True)
class FloatType:
    size: int
    order: ByteOrder = HOST_ORDER

    type_class: ClassVar[TypeClass] = TypeClass.FLOAT


@dataclass(frozen=True)
class StringType:
    """Fixed-length (`size` bytes) or variable-length string.

    Variable-length strings occupy a handle slot of `VLEN_HANDLE_SIZE` bytes,
    the string bytes themselves are provided by the store.
    """

    size: int
    variable: bool = False

    type_class: ClassVar[TypeClass] = TypeClass.STRING


@dataclass(frozen=True)
class EnumType:
    size: int
    members: Tuple[Tuple[str, int], ...] = ()
    """Ordered (name, raw value) pairs of the enumeration definition."""

    order: ByteOrder = HOST_ORDER

    type_class: ClassVar[TypeClass] = TypeClass.ENUM

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.members)


@dataclass(frozen=True)
class ArrayType:
    base: TypeDescriptor
    dims: Tuple[int, ...]

    type_class: ClassVar[TypeClass] = TypeClass.ARRAY

    @property
    def count(self) -> int:
        """Number of elements (product of the dimensions)."""
        return element_count(self.dims)

    @property
    def size(self) -> int:
        return self.base.size * self.count


@dataclass(frozen=True)
class Member:
    """Named member of a compound type, located at `offset` inside a record."""

    name: str
    offset: int
    type: TypeDescriptor


@dataclass(frozen=True)
class CompoundType:
    size: int
    members: Tuple[Member, ...] = ()

    type_class: ClassVar[TypeClass] = TypeClass.COMPOUND


@dataclass(frozen=True)
class TimeType:
    size: int

    type_class: ClassVar[TypeClass] = TypeClass.TIME


@dataclass(frozen=True)
class BitfieldType:
    size: int

    type_class: ClassVar[TypeClass] = TypeClass.BITFIELD


@dataclass(frozen=True)
class OpaqueType:
    size: int
    tag: str = ""

    type_class: ClassVar[TypeClass] = TypeClass.OPAQUE


@dataclass(frozen=True)
class ReferenceType:
    size: int

    type_class: ClassVar[TypeClass] = TypeClass.REFERENCE


@dataclass(frozen=True)
class VlenType:
    size: int

    type_class: ClassVar[TypeClass] = TypeClass.VLEN


@dataclass(frozen=True)
class UnknownType:
    size: int = 0

    type_class: ClassVar[TypeClass] = TypeClass.UNKNOWN


TypeDescriptor = Union[
    IntegerType,
    FloatType,
    StringType,
    EnumType,
    ArrayType,
    CompoundType,
    TimeType,
    BitfieldType,
    OpaqueType,
    ReferenceType,
    VlenType,
    UnknownType,
]
"""Union of all descriptor variants."""


def element_count(dims: Iterable[int]) -> int:
    """Return the number of elements of a shape (1 for the empty shape)."""
    return math.prod(dims)


def byte_order_of(t: TypeDescriptor) -> ByteOrder:
    """Return the storage byte order of a descriptor (NONE if not applicable)."""
    if isinstance(t, (IntegerType, FloatType, EnumType)):
        return t.order if t.size > 1 else ByteOrder.NONE
    if isinstance(t, ArrayType):
        return byte_order_of(t.base)
    return ByteOrder.NONE


def describe_type(t: TypeDescriptor) -> str:
    """Return a short description of a datatype, e.g. `integer, 4 bytes (Little Endian)`.

    The byte order is only mentioned for integers and floats.
    """
    desc = f"{t.type_class.label}, {t.size} bytes"
    cls = t.type_class
    if cls in (TypeClass.INTEGER, TypeClass.FLOAT):
        order = byte_order_of(t)
        if order != ByteOrder.NONE:
            desc += f" ({order.label})"
    elif cls in (
        TypeClass.TIME,
        TypeClass.STRING,
        TypeClass.BITFIELD,
        TypeClass.OPAQUE,
        TypeClass.COMPOUND,
        TypeClass.REFERENCE,
        TypeClass.ENUM,
        TypeClass.VLEN,
        TypeClass.ARRAY,
        TypeClass.UNKNOWN,
    ):
        pass
    else:
        assert_never(cls)
    return desc


__all__ = [
    "TypeClass",
    "ByteOrder",
    "HOST_ORDER",
    "VLEN_HANDLE_SIZE",
    "IntegerType",
    "FloatType",
    "StringType",
    "EnumType",
    "ArrayType",
    "Member",
    "CompoundType",
    "TimeType",
    "BitfieldType",
    "OpaqueType",
    "ReferenceType",
    "VlenType",
    "UnknownType",
    "TypeDescriptor",
    "element_count",
    "byte_order_of",
    "describe_type",
]
