"""Exceptions raised while opening, resolving and decoding HDF5 metadata.

Only `OpenFailure` and `PathNotFound` are surfaced to callers of `H5Info`.
The others are raised at node level and absorbed by the walker, which logs
them as traversal warnings and carries on with the siblings.
"""


class H5InfoError(Exception):
    """Base class of all errors raised by h5info."""


class OpenFailure(H5InfoError, OSError):
    """The file could not be opened as HDF5 file."""


class PathNotFound(H5InfoError, KeyError):
    """A dataset or group path could not be resolved."""

    def __str__(self):
        # KeyError would quote the message
        return str(self.args[0]) if self.args else ""


class DecodeError(H5InfoError, ValueError):
    """A raw buffer does not fit the type descriptor used to decode it."""


class CycleDetected(H5InfoError):
    """A group was reached again while it is still being visited."""


class DepthExceeded(H5InfoError):
    """A group is nested deeper than the configured maximum depth."""


__all__ = [
    "H5InfoError",
    "OpenFailure",
    "PathNotFound",
    "DecodeError",
    "CycleDetected",
    "DepthExceeded",
]
