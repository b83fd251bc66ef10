"""Protocol formalizing what the metadata walker needs from an opened file.

The walker only uses these methods, so any hierarchical container that can
report types and raw bytes in this shape can be decoded.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Hashable, List, Optional, Protocol, Tuple, runtime_checkable

from ..types import ByteOrder, TypeDescriptor

GroupHandle = Any
DatasetHandle = Any
ObjectHandle = Any


@dataclass(frozen=True)
class AttributeRef:
    """Handle of an attribute, i.e. a name attached to a group or dataset."""

    owner: ObjectHandle
    name: str


@dataclass(frozen=True)
class Payload:
    """Raw bytes of a whole dataset or attribute.

    Slots of variable-length strings inside `data` hold 8-byte handles in host
    order: 0 is the null string, n > 0 refers to `heap[n - 1]`.
    """

    data: bytes = b""
    heap: Tuple[bytes, ...] = ()


class SpaceClass(str, Enum):
    """Kind of dataspace (shape) of a dataset or attribute."""

    SCALAR = "scalar"
    SIMPLE = "simple"
    NULL = "null"
    UNKNOWN = "unknown"


@runtime_checkable
class MetadataStore(Protocol):  # pragma: no cover
    """Read-only access to the object tree of an opened file."""

    def open_root(self) -> GroupHandle:
        """Return the root group (raises OpenFailure if nothing is opened)."""

    def child_groups(self, group: GroupHandle, recursive: bool = False) -> List[GroupHandle]:
        ...

    def datasets(self, group: GroupHandle, recursive: bool = False) -> List[DatasetHandle]:
        ...

    def attributes(self, obj: ObjectHandle) -> List[AttributeRef]:
        ...

    def type_descriptor(self, obj: Any) -> TypeDescriptor:
        """Type of a dataset or attribute."""

    def byte_order(self, obj: Any) -> ByteOrder:
        """Storage byte order of a dataset or attribute."""

    def extents(self, obj: Any) -> List[int]:
        """Shape of a dataset or attribute (empty for scalar and null spaces)."""

    def space_class(self, obj: Any) -> SpaceClass:
        ...

    def raw_bytes(self, obj: Any) -> Payload:
        """Read the whole content of a dataset or attribute."""

    def resolve_dataset(
        self, path: str, root: GroupHandle, recursive: bool = True
    ) -> Optional[DatasetHandle]:
        ...

    def resolve_group(
        self, path: str, root: GroupHandle, recursive: bool = True
    ) -> Optional[GroupHandle]:
        ...

    def object_name(self, obj: Any) -> str:
        """Absolute name of a group or dataset, plain name of an attribute."""

    def object_key(self, obj: ObjectHandle) -> Hashable:
        """Identity of an object (equal for hard links to the same object)."""


__all__ = [
    "AttributeRef",
    "Payload",
    "SpaceClass",
    "MetadataStore",
    "GroupHandle",
    "DatasetHandle",
    "ObjectHandle",
]
