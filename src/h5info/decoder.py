"""Decoding of raw buffers into display strings, driven by type descriptors.

All reads go through `_read_slice`, which checks the requested range before
any bytes are interpreted. Numbers are reinterpreted with explicit numpy
dtypes in host order and byte-swapped when the storage order differs.
"""
from __future__ import annotations

import logging
from typing import Iterator, Optional, Sequence, Tuple

import numpy as np
from typing_extensions import Final, assert_never

from .errors import DecodeError
from .types import (
    HOST_ORDER,
    VLEN_HANDLE_SIZE,
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
    TimeType,
    TypeDescriptor,
    UnknownType,
    VlenType,
)

logger = logging.getLogger(__name__)

Heap = Sequence[bytes]
"""Targets of variable-length string handles (handle n refers to heap[n-1])."""

DECODE_FAILED: Final[str] = "(decode error)"
"""Placeholder for a value that could not be decoded."""

INTEGER_SIZES: Final = (1, 2, 4, 8)
FLOAT_SIZES: Final = (4, 8)


def unhandled(t: TypeDescriptor) -> str:
    """Placeholder rendered for a type class without value decoding."""
    return f"({t.type_class.value} not a handled type)"


def _read_slice(buffer: bytes, offset: int, size: int) -> bytes:
    end = offset + size
    if offset < 0 or size < 0 or end > len(buffer):
        msg = f"Cannot read {size} bytes at offset {offset} from buffer of {len(buffer)} bytes"
        raise DecodeError(msg)
    return bytes(buffer[offset:end])


def _host_bytes(raw: bytes, storage_order: ByteOrder, host_order: ByteOrder) -> bytes:
    """Return the bytes of a value in host order (single bytes are never swapped)."""
    if len(raw) > 1 and storage_order != ByteOrder.NONE and storage_order != host_order:
        return raw[::-1]
    return raw


def _host_dtype(kind: str, size: int, host_order: ByteOrder) -> np.dtype:
    char = ">" if host_order == ByteOrder.BIG else "<"
    return np.dtype(f"{char}{kind}{size}")


def decode_integer(
    t: IntegerType,
    buffer: bytes,
    offset: int = 0,
    *,
    storage_order: Optional[ByteOrder] = None,
    host_order: ByteOrder = HOST_ORDER,
) -> str:
    if t.size not in INTEGER_SIZES:
        logger.warning("Integer of %d bytes is not supported", t.size)
        return ""
    raw = _read_slice(buffer, offset, t.size)
    raw = _host_bytes(raw, storage_order or t.order, host_order)
    kind = "i" if t.signed else "u"
    value = np.frombuffer(raw, dtype=_host_dtype(kind, t.size, host_order))[0]
    return str(int(value))


def decode_float(
    t: FloatType,
    buffer: bytes,
    offset: int = 0,
    *,
    storage_order: Optional[ByteOrder] = None,
    host_order: ByteOrder = HOST_ORDER,
) -> str:
    if t.size not in FLOAT_SIZES:
        logger.warning("Float of %d bytes is not supported", t.size)
        return ""
    raw = _read_slice(buffer, offset, t.size)
    raw = _host_bytes(raw, storage_order or t.order, host_order)
    value = np.frombuffer(raw, dtype=_host_dtype("f", t.size, host_order))[0]
    # numpy renders the shortest string that round-trips in the value's precision
    return str(value)


def _until_nul(raw: bytes) -> str:
    end = raw.find(b"\0")
    if end >= 0:
        raw = raw[:end]
    return raw.decode("utf-8", errors="replace")


def decode_string(t: StringType, buffer: bytes, offset: int = 0, heap: Heap = ()) -> str:
    """Decode a fixed-length or variable-length string.

    Fixed-length strings are read up to their declared length,
    variable-length strings are resolved through the heap.
    In both cases the result ends at the first NUL byte.
    """
    if not t.variable:
        return _until_nul(_read_slice(buffer, offset, t.size))

    raw = _read_slice(buffer, offset, VLEN_HANDLE_SIZE)
    handle = int.from_bytes(raw, HOST_ORDER.value)
    if handle == 0:
        return ""  # null string
    if handle > len(heap):
        raise DecodeError(f"Dangling string handle {handle} (heap has {len(heap)} entries)")
    return _until_nul(heap[handle - 1])


def describe_enum(t: EnumType) -> str:
    """Render the member names of an enumeration definition."""
    return ", ".join(t.names)


def format_dims(dims: Sequence[int]) -> str:
    """Render array dimensions compactly, e.g. `(2,3)`."""
    return "(" + ",".join(map(str, dims)) + ")"


def join_values(values: Sequence) -> str:
    return ", ".join(map(str, values))


def decode_array(
    t: ArrayType,
    buffer: bytes,
    offset: int = 0,
    *,
    storage_order: Optional[ByteOrder] = None,
    host_order: ByteOrder = HOST_ORDER,
    heap: Heap = (),
) -> str:
    """Decode all elements of a fixed-size array, e.g. `(1, 2, 3)` or `("a", "b")`.

    Only string, integer and float elements are rendered, other element
    classes yield an empty string. A failing element is replaced by a
    placeholder, the remaining elements are still decoded.
    """
    base = t.base
    if not isinstance(base, (StringType, IntegerType, FloatType)):
        logger.debug("Array elements of class %s are not rendered", base.type_class.value)
        return ""

    values = []
    for idx in range(t.count):
        pos = offset + idx * base.size
        try:
            val = decode(
                base,
                buffer,
                pos,
                storage_order=storage_order,
                host_order=host_order,
                heap=heap,
            )
        except DecodeError as e:
            logger.warning("Array element %d: %s", idx, e)
            val = DECODE_FAILED
        values.append(f'"{val}"' if isinstance(base, StringType) else val)
    return "(" + join_values(values) + ")"


def decode(
    t: TypeDescriptor,
    buffer: bytes,
    offset: int = 0,
    *,
    storage_order: Optional[ByteOrder] = None,
    host_order: ByteOrder = HOST_ORDER,
    heap: Heap = (),
) -> str:
    """Decode the value of type `t` located at `offset` in `buffer`.

    If `storage_order` is not given, the order declared by the descriptor is
    used. Types without value decoding (enumerations, compounds and the
    unsupported classes) render a placeholder instead.

    Raises DecodeError if the buffer is too short for the value.
    """
    if isinstance(t, IntegerType):
        return decode_integer(
            t, buffer, offset, storage_order=storage_order, host_order=host_order
        )
    elif isinstance(t, FloatType):
        return decode_float(
            t, buffer, offset, storage_order=storage_order, host_order=host_order
        )
    elif isinstance(t, StringType):
        return decode_string(t, buffer, offset, heap)
    elif isinstance(t, ArrayType):
        return decode_array(
            t,
            buffer,
            offset,
            storage_order=storage_order,
            host_order=host_order,
            heap=heap,
        )
    elif isinstance(
        t,
        (
            EnumType,
            CompoundType,
            TimeType,
            BitfieldType,
            OpaqueType,
            ReferenceType,
            VlenType,
            UnknownType,
        ),
    ):
        return unhandled(t)
    else:
        assert_never(t)


def decode_all(
    t: TypeDescriptor, buffer: bytes, count: int, *, heap: Heap = ()
) -> Iterator[str]:
    """Decode `count` consecutive values of type `t`.

    Values that fail to decode are logged and yield a placeholder.
    """
    for idx in range(count):
        try:
            yield decode(t, buffer, idx * t.size, heap=heap)
        except DecodeError as e:
            logger.warning("Element %d: %s", idx, e)
            yield DECODE_FAILED


def iter_records(size: int, count: int, buffer: bytes) -> Iterator[Tuple[int, int]]:
    """Yield index and byte offset of each fixed-size record in a buffer.

    Stops early (with a warning) if the buffer holds fewer records than expected.
    """
    available = len(buffer) // size if size else 0
    if available < count:
        logger.warning(
            "Buffer of %d bytes holds only %d of %d records", len(buffer), available, count
        )
    for idx in range(min(count, available)):
        yield idx, idx * size


def scalar_type_name(t: TypeDescriptor) -> str:
    """Return the name of the numpy scalar type matching a numeric descriptor."""
    if isinstance(t, IntegerType) and t.size in INTEGER_SIZES:
        return f"{'int' if t.signed else 'uint'}{t.size * 8}"
    if isinstance(t, FloatType) and t.size in FLOAT_SIZES:
        return f"float{t.size * 8}"
    return "UNKNOWN"


def byte_order_name(order: ByteOrder) -> str:
    """Return `big_endian` or `little_endian` (also for single byte types)."""
    return "big_endian" if order == ByteOrder.BIG else "little_endian"


__all__ = [
    "DECODE_FAILED",
    "decode",
    "decode_integer",
    "decode_float",
    "decode_string",
    "decode_array",
    "decode_all",
    "describe_enum",
    "format_dims",
    "join_values",
    "iter_records",
    "scalar_type_name",
    "byte_order_name",
    "unhandled",
]
