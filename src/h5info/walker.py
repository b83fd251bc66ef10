"""Recursive traversal of the object tree of a metadata store.

The walker has two modes sharing the same order of visits (depth first,
pre-order; per group: attributes, datasets, child groups):

* `render_tree` produces an indented text rendering,
* `flatten` collects dotted key/value pairs into a `KeywordList`.

Failures are isolated per node: an error while handling a group, dataset,
attribute or compound member is logged as warning and only the contribution
of that node is lost.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Hashable, Iterator, List, Optional

from typing_extensions import assert_never

from .config import InfoConfig
from .decoder import (
    DECODE_FAILED,
    byte_order_name,
    decode,
    decode_all,
    decode_array,
    describe_enum,
    format_dims,
    iter_records,
    join_values,
    scalar_type_name,
    unhandled,
)
from .errors import CycleDetected, DecodeError, DepthExceeded, H5InfoError
from .keywords import KeywordList
from .paths import object_prefix
from .store.protocols import AttributeRef, MetadataStore, Payload, SpaceClass
from .types import (
    ArrayType,
    BitfieldType,
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
    describe_type,
    element_count,
)

logger = logging.getLogger(__name__)

NODE_ERRORS = (H5InfoError, KeyError, OSError, ValueError, TypeError)
"""Errors that are absorbed at node level (broken links, unreadable data, ...)."""

_RENDERED = (StringType, IntegerType, FloatType)
"""Classes whose values are decoded for attributes and arrays."""


@dataclass
class RecursionGuard:
    """Bookkeeping of the groups currently being visited in one traversal."""

    detect_cycles: bool = True
    max_depth: Optional[int] = None
    depth: int = 0
    _ancestors: List[Hashable] = field(default_factory=list)

    @contextmanager
    def enter(self, key: Hashable, name: str) -> Iterator[int]:
        if self.detect_cycles and key in self._ancestors:
            raise CycleDetected(f"Group {name} links back to one of its ancestors")
        if self.max_depth is not None and self.depth >= self.max_depth:
            raise DepthExceeded(f"Group {name} is nested deeper than {self.max_depth} levels")

        self.depth += 1
        self._ancestors.append(key)
        logger.debug("Entering group %s (depth %d)", name, self.depth)
        try:
            yield self.depth
        finally:
            self._ancestors.pop()
            self.depth -= 1


class MetadataWalker:
    """Visit all groups, datasets and attributes reachable from a root group."""

    def __init__(self, store: MetadataStore, config: Optional[InfoConfig] = None):
        self._store = store
        self._config = config or InfoConfig()

    @property
    def config(self) -> InfoConfig:
        return self._config

    def _guard(self) -> RecursionGuard:
        return RecursionGuard(
            detect_cycles=self._config.detect_cycles, max_depth=self._config.max_depth
        )

    # ---- shared helpers

    def _count(self, obj: Any) -> int:
        """Number of elements of a dataset or attribute (0 for null spaces)."""
        if self._store.space_class(obj) == SpaceClass.NULL:
            return 0
        return element_count(self._store.extents(obj))

    def _describe_space(self, obj: Any) -> str:
        space = self._store.space_class(obj)
        if space == SpaceClass.SCALAR:
            return "(scalar)"
        elif space == SpaceClass.SIMPLE:
            dims = self._store.extents(obj)
            size = " x ".join(map(str, dims))
            return f"simple, rank: {len(dims)} size: {size}"
        elif space == SpaceClass.NULL:
            return "(NULL)"
        return "(Unknown Type)"

    def _values(self, obj: Any, t: TypeDescriptor) -> str:
        """Decode all elements of a dataset or attribute, joined by commas."""
        payload = self._store.raw_bytes(obj)
        values = decode_all(t, payload.data, self._count(obj), heap=payload.heap)
        return join_values(list(values))

    # ---- tree rendering

    def render_tree(self, root=None) -> str:
        """Return an indented text rendering of the tree below `root`.

        If no root is given, the root group of the store is used.
        """
        if root is None:
            root = self._store.open_root()
        lines: List[str] = []
        self._print_group(root, "", lines, self._guard())
        return "".join(f"{line}\n" for line in lines) + "\n"

    def _print_group(self, group, lm: str, out: List[str], guard: RecursionGuard) -> None:
        name = self._store.object_name(group)
        try:
            with guard.enter(self._store.object_key(group), name):
                out.append(f"{lm}GROUP: {name}")
                lm2 = lm + self._config.indent
                self._print_attributes(group, lm2, out)
                for dataset in self._store.datasets(group):
                    self._print_dataset(dataset, lm2, out)
                for child in self._store.child_groups(group):
                    self._print_group(child, lm2, out, guard)
        except NODE_ERRORS as e:
            logger.warning("Skipping group %s: %s", name, e)

    def _print_attributes(self, obj, lm: str, out: List[str]) -> None:
        try:
            attrs = self._store.attributes(obj)
        except NODE_ERRORS as e:
            logger.warning("Cannot list attributes of %s: %s", self._store.object_name(obj), e)
            return
        for attr in attrs:
            self._print_attribute(attr, lm, out)

    def _print_attribute(self, attr: AttributeRef, lm: str, out: List[str]) -> None:
        try:
            t = self._store.type_descriptor(attr)
            if isinstance(t, _RENDERED):
                out.append(f"{lm}ATTRIBUTE: {attr.name} = {self._values(attr, t)}")
                return

            lm2 = lm + self._config.indent
            out.append(f"{lm}ATTRIBUTE: {attr.name} (value not handled type)")
            out.append(f"{lm2}DATATYPE: {describe_type(t)}")
            out.append(f"{lm2}DATASPACE: {self._describe_space(attr)}")
        except NODE_ERRORS as e:
            logger.warning("Cannot decode attribute %s: %s", attr.name, e)
            out.append(f"{lm}ATTRIBUTE: {attr.name} = {DECODE_FAILED}")

    def _print_dataset(self, dataset, lm: str, out: List[str]) -> None:
        name = self._store.object_name(dataset)
        out.append(f"{lm}DATASET: {name}")
        lm2 = lm + self._config.indent
        try:
            t = self._store.type_descriptor(dataset)
            out.append(f"{lm2}DATATYPE: {describe_type(t)}")
            out.append(f"{lm2}DATASPACE: {self._describe_space(dataset)}")

            count = self._count(dataset)
            if isinstance(t, StringType) and 0 < count <= self._config.max_string_values:
                out.append(f"{lm2}values: {self._values(dataset, t)}")
        except NODE_ERRORS as e:
            logger.warning("Cannot describe dataset %s: %s", name, e)
        self._print_attributes(dataset, lm2, out)

    # ---- flattening

    def flatten(self, root=None, prefix: str = "", kwl: Optional[KeywordList] = None) -> KeywordList:
        """Flatten the tree below `root` into dotted key/value pairs.

        Entries are appended to `kwl` if given, otherwise a new list is returned.
        """
        if root is None:
            root = self._store.open_root()
        if kwl is None:
            kwl = KeywordList()
        self._dump_group(root, prefix, kwl, self._guard())
        return kwl

    def flatten_one(self, path: str) -> Optional[KeywordList]:
        """Flatten a single dataset found by path, or None if there is no such dataset."""
        root = self._store.open_root()
        dataset = self._store.resolve_dataset(path, root, recursive=True)
        if dataset is None:
            return None
        kwl = KeywordList()
        self._dump_dataset(dataset, "", kwl)
        return kwl

    def flatten_group(self, path: str) -> Optional[KeywordList]:
        """Flatten the subtree of a group found by path, or None if there is no such group."""
        root = self._store.open_root()
        group = self._store.resolve_group(path, root, recursive=True)
        if group is None:
            return None
        return self.flatten(group, "")

    def dataset_names(self, root=None) -> List[str]:
        """Return the full names of all datasets below `root`, recursively."""
        if root is None:
            root = self._store.open_root()
        return [self._store.object_name(d) for d in self._store.datasets(root, recursive=True)]

    def _dump_group(self, group, prefix: str, kwl: KeywordList, guard: RecursionGuard) -> None:
        name = self._store.object_name(group)
        try:
            with guard.enter(self._store.object_key(group), name):
                gprefix = object_prefix(prefix, name)
                kwl.add(gprefix, "type", "Group")
                self._dump_attributes(group, gprefix, kwl)
                for dataset in self._store.datasets(group):
                    self._dump_dataset(dataset, gprefix, kwl)
                for child in self._store.child_groups(group):
                    self._dump_group(child, gprefix, kwl, guard)
        except NODE_ERRORS as e:
            logger.warning("Skipping group %s: %s", name, e)

    def _dump_attributes(self, obj, prefix: str, kwl: KeywordList) -> None:
        try:
            attrs = self._store.attributes(obj)
        except NODE_ERRORS as e:
            logger.warning("Cannot list attributes of %s: %s", self._store.object_name(obj), e)
            return
        for attr in attrs:
            try:
                t = self._store.type_descriptor(attr)
                value = self._values(attr, t) if isinstance(t, _RENDERED) else unhandled(t)
            except NODE_ERRORS as e:
                logger.warning("Cannot decode attribute %s%s: %s", prefix, attr.name, e)
                continue
            kwl.add(prefix, attr.name, value)

    def _dump_dataset(self, dataset, prefix: str, kwl: KeywordList) -> None:
        name = self._store.object_name(dataset)
        dprefix = object_prefix(prefix, name)
        kwl.add(dprefix, "type", "DataSet")
        self._dump_attributes(dataset, dprefix, kwl)

        try:
            t = self._store.type_descriptor(dataset)
            kwl.add(dprefix, "class_type", t.type_class.value)
            self._dump_dataset_type(dataset, t, dprefix, kwl)
        except NODE_ERRORS as e:
            logger.warning("Cannot decode dataset %s: %s", name, e)

        try:
            extents = self._store.extents(dataset)
        except NODE_ERRORS as e:
            logger.warning("Cannot read extents of %s: %s", name, e)
            return
        if extents:
            kwl.add(dprefix, "extents", join_values(extents))

    def _dump_dataset_type(self, dataset, t: TypeDescriptor, prefix: str, kwl: KeywordList):
        if isinstance(t, CompoundType):
            self._dump_compound(dataset, t, prefix, kwl)
        elif isinstance(t, EnumType):
            self._dump_enum_info(t, prefix, kwl)
        elif isinstance(t, ArrayType):
            self._dump_array_info(t, prefix, kwl)
            self._dump_array_values(dataset, t, prefix, kwl)
        elif isinstance(t, (IntegerType, FloatType)):
            kwl.add(prefix, "scalar_type", scalar_type_name(t))
            kwl.add(prefix, "byte_order", byte_order_name(self._store.byte_order(dataset)))
        elif isinstance(
            t,
            (
                StringType,
                TimeType,
                BitfieldType,
                OpaqueType,
                ReferenceType,
                VlenType,
                UnknownType,
            ),
        ):
            kwl.add(prefix, "scalar_type", "UNKNOWN")
        else:
            assert_never(t)

    def _dump_enum_info(self, t: EnumType, prefix: str, kwl: KeywordList) -> None:
        if t.members and t.size:
            kwl.add(prefix, "enumerations", describe_enum(t))

    def _dump_array_info(self, t: ArrayType, prefix: str, kwl: KeywordList) -> None:
        kwl.add(prefix, "rank", len(t.dims))
        if t.dims:
            kwl.add(prefix, "dimensions", join_values(t.dims))

    def _dump_array_values(self, dataset, t: ArrayType, prefix: str, kwl: KeywordList):
        if not isinstance(t.base, _RENDERED):
            return
        payload = self._store.raw_bytes(dataset)
        for _, offset in iter_records(t.size, self._count(dataset), payload.data):
            kwl.add(prefix, "values", decode_array(t, payload.data, offset, heap=payload.heap))
        kwl.add(prefix, "array_type", t.base.type_class.value)

    def _dump_compound(self, dataset, t: CompoundType, prefix: str, kwl: KeywordList):
        extents = self._store.extents(dataset)
        if len(extents) > 1:
            logger.info(
                "Records of compound dataset %s with rank %d are not dumped",
                self._store.object_name(dataset),
                len(extents),
            )
            return
        payload = self._store.raw_bytes(dataset)
        for _, offset in iter_records(t.size, self._count(dataset), payload.data):
            self._dump_record(t, payload, offset, prefix, kwl)

    def _dump_record(
        self, t: CompoundType, payload: Payload, base: int, prefix: str, kwl: KeywordList
    ) -> None:
        """Add one entry per member of the record starting at byte `base`.

        Keys are `prefix + member name`, without index of the record.
        """
        for member in t.members:
            key = f"{prefix}{member.name}"
            mt = member.type
            offset = base + member.offset
            try:
                if isinstance(mt, CompoundType):
                    self._dump_record(mt, payload, offset, f"{key}.", kwl)
                elif isinstance(mt, _RENDERED):
                    kwl.add_value(key, decode(mt, payload.data, offset, heap=payload.heap))
                elif isinstance(mt, EnumType):
                    self._dump_enum_info(mt, f"{key}.", kwl)
                elif isinstance(mt, ArrayType):
                    self._dump_array_member(mt, payload, offset, key, kwl)
                elif isinstance(
                    mt,
                    (TimeType, BitfieldType, OpaqueType, ReferenceType, VlenType, UnknownType),
                ):
                    continue
                else:
                    assert_never(mt)
            except DecodeError as e:
                logger.warning("Cannot decode member %s: %s", key, e)
                kwl.add_value(key, DECODE_FAILED)

    def _dump_array_member(
        self, t: ArrayType, payload: Payload, offset: int, key: str, kwl: KeywordList
    ) -> None:
        if not t.dims:
            return
        kwl.add_value(f"{key}.dimensions", format_dims(t.dims))
        if isinstance(t.base, _RENDERED):
            kwl.add_value(f"{key}.values", decode_array(t, payload.data, offset, heap=payload.heap))
            kwl.add_value(f"{key}.array_type", t.base.type_class.value)


__all__ = ["MetadataWalker", "RecursionGuard", "NODE_ERRORS"]
