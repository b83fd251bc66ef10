"""Ordered dotted-key/value store produced by flattening a HDF5 file."""
from __future__ import annotations

from typing import Iterator, List, Tuple

Entry = Tuple[str, str]


class KeywordList:
    """Append-only list of `(key, value)` string pairs in insertion order.

    Keys are NOT unique: repeated attribute or compound member names at the
    same level (e.g. the members of each record of a compound dataset) are
    stored as separate entries under the same key. Consumers expecting a
    mapping should use `get_all` or group the entries themselves.
    """

    def __init__(self):
        self._entries: List[Entry] = []

    def add(self, prefix: str, key: str, value) -> None:
        """Append an entry with key `prefix + key`."""
        self._entries.append((f"{prefix}{key}", str(value)))

    def add_value(self, key: str, value) -> None:
        """Append an entry for a single-valued node whose key is the full prefix."""
        self._entries.append((key, str(value)))

    def clear(self) -> None:
        self._entries.clear()

    def entries(self) -> Iterator[Entry]:
        """Iterate over all entries in insertion order."""
        return iter(list(self._entries))

    def __iter__(self) -> Iterator[Entry]:
        return self.entries()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return any(k == key for k, _ in self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KeywordList):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._entries!r})"

    def keys(self) -> List[str]:
        return [k for k, _ in self._entries]

    def get(self, key: str, default=None):
        """Return the first value stored under `key`."""
        return next((v for k, v in self._entries if k == key), default)

    def get_all(self, key: str) -> List[str]:
        """Return all values stored under `key`, in insertion order."""
        return [v for k, v in self._entries if k == key]

    def extend(self, other: KeywordList) -> None:
        self._entries.extend(other.entries())

    def to_text(self) -> str:
        """Serialize as one `key: value` line per entry."""
        return "".join(f"{k}: {v}\n" for k, v in self._entries)
