"""Metadata store backed by h5py.

Types are described from the numpy dtype that h5py reads a dataset or
attribute with, refined by the low-level HDF5 type where numpy cannot tell
classes apart (bit-fields, opaque, references, date/time).
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Hashable, List, Optional, Type, Union

import h5py
import numpy as np
from h5py import h5s, h5t

from ..errors import OpenFailure
from ..types import (
    HOST_ORDER,
    VLEN_HANDLE_SIZE,
    ArrayType,
    BitfieldType,
    ByteOrder,
    CompoundType,
    EnumType,
    FloatType,
    IntegerType,
    Member,
    OpaqueType,
    ReferenceType,
    StringType,
    TimeType,
    TypeDescriptor,
    UnknownType,
    VlenType,
    byte_order_of,
)
from .protocols import AttributeRef, Payload, SpaceClass

logger = logging.getLogger(__name__)

H5Node = Union[h5py.Group, h5py.Dataset]

_SPACE_CLASSES = {
    h5s.SCALAR: SpaceClass.SCALAR,
    h5s.SIMPLE: SpaceClass.SIMPLE,
    h5s.NULL: SpaceClass.NULL,
}


def _order(dt: np.dtype) -> ByteOrder:
    if dt.byteorder == ">":
        return ByteOrder.BIG
    elif dt.byteorder == "<":
        return ByteOrder.LITTLE
    elif dt.byteorder == "=":
        return HOST_ORDER
    return ByteOrder.NONE


def _unsupported_class(tid) -> Optional[TypeDescriptor]:
    """Descriptor for HDF5 classes that have no faithful numpy counterpart."""
    cls, size = tid.get_class(), tid.get_size()
    if cls == h5t.TIME:
        return TimeType(size)
    elif cls == h5t.BITFIELD:
        return BitfieldType(size)
    elif cls == h5t.OPAQUE:
        return OpaqueType(size, tag=tid.get_tag().decode("utf-8", errors="replace"))
    elif cls == h5t.REFERENCE:
        return ReferenceType(size)
    elif cls == h5t.VLEN:
        return VlenType(size)
    return None


def _member_tid(tid, name: str):
    if tid is None or tid.get_class() != h5t.COMPOUND:
        return None
    return tid.get_member_type(tid.get_member_index(name.encode("utf-8")))


def _enum_members(dt: np.dtype, tid):
    if tid is not None and tid.get_class() == h5t.ENUM:
        return tuple(
            (tid.get_member_name(i).decode("utf-8"), int(tid.get_member_value(i)))
            for i in range(tid.get_nmembers())
        )
    mapping = h5py.check_enum_dtype(dt)
    if mapping is None:  # numpy bool, stored by h5py as enum
        return (("FALSE", 0), ("TRUE", 1))
    return tuple((k, int(v)) for k, v in mapping.items())


def dtype_descriptor(dt: np.dtype, tid=None) -> TypeDescriptor:
    """Return the descriptor of the memory layout given by a numpy dtype.

    The optional low-level type id `tid` of the same type is used to detect
    classes that h5py maps to generic numpy types.
    """
    if tid is not None:
        special = _unsupported_class(tid)
        if special is not None:
            return special

    if dt.subdtype is not None:
        base, shape = dt.subdtype
        btid = tid.get_super() if tid is not None and tid.get_class() == h5t.ARRAY else None
        return ArrayType(base=dtype_descriptor(base, btid), dims=tuple(shape))

    if dt.names is not None:
        members = []
        for name in dt.names:
            fdt, offset = dt.fields[name][:2]
            members.append(Member(name, offset, dtype_descriptor(fdt, _member_tid(tid, name))))
        return CompoundType(dt.itemsize, tuple(members))

    str_info = h5py.check_string_dtype(dt)
    if str_info is not None:
        if str_info.length is None:
            return StringType(VLEN_HANDLE_SIZE, variable=True)
        return StringType(dt.itemsize)

    if h5py.check_enum_dtype(dt) is not None or dt.kind == "b":
        return EnumType(dt.itemsize, _enum_members(dt, tid), _order(dt))
    if h5py.check_ref_dtype(dt) is not None:
        return ReferenceType(dt.itemsize)
    if h5py.check_vlen_dtype(dt) is not None:
        return VlenType(dt.itemsize)

    if dt.kind in "iu":
        return IntegerType(dt.itemsize, signed=dt.kind == "i", order=_order(dt))
    elif dt.kind == "f":
        return FloatType(dt.itemsize, order=_order(dt))
    elif dt.kind == "c":
        # complex numbers are stored as compound of real and imaginary part
        half = FloatType(dt.itemsize // 2, order=_order(dt))
        return CompoundType(dt.itemsize, (Member("r", 0, half), Member("i", half.size, half)))
    elif dt.kind == "V":
        return OpaqueType(dt.itemsize)
    elif dt.kind in "Mm":
        return TimeType(dt.itemsize)
    elif dt.kind == "O":
        return VlenType(dt.itemsize)
    return UnknownType(dt.itemsize)


def type_id_descriptor(tid) -> TypeDescriptor:
    """Return the descriptor for a low-level HDF5 type id."""
    special = _unsupported_class(tid)
    if special is not None:
        return special
    try:
        dt = tid.dtype
    except TypeError:
        return UnknownType(tid.get_size())
    return dtype_descriptor(dt, tid)


# ----


def _handle_dtype(dt: np.dtype) -> np.dtype:
    """Same layout as `dt`, but with object slots replaced by 8 byte handles."""
    if dt.names is not None:
        return np.dtype(
            {
                "names": list(dt.names),
                "formats": [_handle_dtype(dt.fields[n][0]) for n in dt.names],
                "offsets": [dt.fields[n][1] for n in dt.names],
                "itemsize": dt.itemsize,
            }
        )
    if dt.subdtype is not None:
        base, shape = dt.subdtype
        return np.dtype((_handle_dtype(base), shape))
    if dt.kind == "O":
        return np.dtype(np.uint64)
    return dt


def _to_heap(value: Any, heap: List[bytes]) -> int:
    if isinstance(value, str):
        value = value.encode("utf-8")
    if isinstance(value, bytes):
        heap.append(value)
        return len(heap)
    return 0  # null handle (also for references and vlen sequences)


def _fill_handles(src: np.ndarray, dst: np.ndarray, heap: List[bytes]) -> None:
    if src.dtype.names is not None:
        for name in src.dtype.names:
            _fill_handles(src[name], dst[name], heap)
    elif src.dtype.kind == "O":
        for idx in np.ndindex(src.shape):
            dst[idx] = _to_heap(src[idx], heap)
    else:
        dst[...] = src


def pack(arr: np.ndarray) -> Payload:
    """Serialize an array read by h5py into raw bytes and a string heap."""
    if not arr.dtype.hasobject:
        return Payload(arr.tobytes())
    heap: List[bytes] = []
    out = np.zeros(arr.shape, dtype=_handle_dtype(arr.dtype))
    _fill_handles(arr, out, heap)
    return Payload(out.tobytes(), tuple(heap))


def _as_array(value: Any, dt: np.dtype) -> Optional[np.ndarray]:
    if isinstance(value, h5py.Empty):
        return None
    if isinstance(value, np.ndarray):
        return value
    # scalars (numpy scalars drop string padding, python bytes/str for vlen strings)
    base = dt.subdtype[0] if dt.subdtype is not None else dt
    return np.asarray(value, dtype=base)


# ----


class H5Store:
    """Read-only store over an opened `h5py.File`."""

    def __init__(self, file: Optional[h5py.File] = None):
        self._file = file

    @classmethod
    def open(cls, path: Union[str, Path]) -> H5Store:
        try:
            f = h5py.File(path, "r")
        except (OSError, ValueError) as e:
            raise OpenFailure(f"Could not open file {path}: {e}") from e
        return cls(f)

    @property
    def file(self) -> Optional[h5py.File]:
        return self._file

    def close(self) -> None:
        if self._file:
            self._file.close()
        self._file = None

    def __enter__(self) -> H5Store:
        return self

    def __exit__(self, ex_type, ex_value, ex_traceback) -> None:
        self.close()

    # tree access

    def open_root(self) -> h5py.Group:
        if not self._file:
            raise OpenFailure("No HDF5 file has been opened.")
        return self._file["/"]

    def _children(self, group: h5py.Group, cls: Type, recursive: bool) -> List[Any]:
        found: List[Any] = []
        if recursive:

            def collect(_, node):
                if isinstance(node, cls):
                    found.append(node)

            group.visititems(collect)
            return found

        for name in group:
            try:
                node = group[name]
            except (KeyError, OSError) as e:
                # e.g. dangling soft links or missing external files
                logger.warning("Cannot open %s in %s: %s", name, group.name, e)
                continue
            if isinstance(node, cls):
                found.append(node)
        return found

    def child_groups(self, group: h5py.Group, recursive: bool = False) -> List[h5py.Group]:
        return self._children(group, h5py.Group, recursive)

    def datasets(self, group: h5py.Group, recursive: bool = False) -> List[h5py.Dataset]:
        return self._children(group, h5py.Dataset, recursive)

    def attributes(self, obj: H5Node) -> List[AttributeRef]:
        return [AttributeRef(obj, name) for name in obj.attrs.keys()]

    def _resolve(self, path: str, root: h5py.Group, cls: Type, recursive: bool):
        try:
            node = root.get(path)
        except (KeyError, OSError, ValueError):
            node = None
        if isinstance(node, cls):
            return node
        if not recursive:
            return None

        target = path.strip("/")
        if not target:
            return None

        def match(name: str, node):
            if isinstance(node, cls) and (name == target or name.endswith("/" + target)):
                return node

        return root.visititems(match)

    def resolve_dataset(
        self, path: str, root: h5py.Group, recursive: bool = True
    ) -> Optional[h5py.Dataset]:
        """Look up a dataset by path, or (if recursive) by trailing path anywhere below root."""
        return self._resolve(path, root, h5py.Dataset, recursive)

    def resolve_group(
        self, path: str, root: h5py.Group, recursive: bool = True
    ) -> Optional[h5py.Group]:
        """Look up a group by path, or (if recursive) by trailing path anywhere below root."""
        return self._resolve(path, root, h5py.Group, recursive)

    def object_name(self, obj: Union[H5Node, AttributeRef]) -> str:
        if isinstance(obj, AttributeRef):
            return obj.name
        return obj.name or ""

    def object_key(self, obj: H5Node) -> Hashable:
        # h5py object ids compare by file and object address
        return obj.id

    # types and data

    def _attr_id(self, ref: AttributeRef):
        return ref.owner.attrs.get_id(ref.name)

    def _type_id(self, obj: Union[h5py.Dataset, AttributeRef]):
        if isinstance(obj, AttributeRef):
            return self._attr_id(obj).get_type()
        return obj.id.get_type()

    def type_descriptor(self, obj: Union[h5py.Dataset, AttributeRef]) -> TypeDescriptor:
        return type_id_descriptor(self._type_id(obj))

    def byte_order(self, obj: Union[h5py.Dataset, AttributeRef]) -> ByteOrder:
        order = byte_order_of(self.type_descriptor(obj))
        return HOST_ORDER if order == ByteOrder.NONE else order

    def space_class(self, obj: Union[h5py.Dataset, AttributeRef]) -> SpaceClass:
        if isinstance(obj, AttributeRef):
            space = self._attr_id(obj).get_space()
        else:
            space = obj.id.get_space()
        return _SPACE_CLASSES.get(space.get_simple_extent_type(), SpaceClass.UNKNOWN)

    def extents(self, obj: Union[h5py.Dataset, AttributeRef]) -> List[int]:
        if isinstance(obj, AttributeRef):
            return list(self._attr_id(obj).shape or ())
        return list(obj.shape or ())

    def raw_bytes(self, obj: Union[h5py.Dataset, AttributeRef]) -> Payload:
        if isinstance(obj, AttributeRef):
            dt = self._attr_id(obj).dtype
            value = obj.owner.attrs[obj.name]
        else:
            if obj.shape is None:
                return Payload()
            dt = obj.dtype
            value = obj[()]
        arr = _as_array(value, dt)
        if arr is None:
            return Payload()
        return pack(arr)


__all__ = ["H5Store", "dtype_descriptor", "type_id_descriptor", "pack"]
