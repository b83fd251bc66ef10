"""High-level access to the metadata of a HDF5 file."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from .config import InfoConfig
from .errors import OpenFailure, PathNotFound
from .keywords import KeywordList
from .store.h5 import H5Store
from .walker import MetadataWalker

logger = logging.getLogger(__name__)

NOT_OPENED_MSG = "No HDF5 file has been opened! Nothing to print.\n"


class H5Info:
    """Print or flatten the metadata of a HDF5 file.

    Every call traverses the file anew and returns a fresh result, nothing
    is cached between calls. The same instance must not be used from several
    threads at once.

    Example:
    ```
    with H5Info("data.h5") as info:
        print(info.print_tree())
        for key, value in info.dump_all():
            ...
    ```
    """

    def __init__(
        self,
        path: Union[str, Path, None] = None,
        *,
        config: Optional[InfoConfig] = None,
        store: Optional[H5Store] = None,
    ):
        self._config = config or InfoConfig()
        self._store: Optional[H5Store] = store
        if path is not None:
            self.open(path)

    @property
    def config(self) -> InfoConfig:
        return self._config

    @property
    def is_open(self) -> bool:
        return self._store is not None and self._store.file is not None

    def open(self, path: Union[str, Path]) -> None:
        """Open a HDF5 file for reading (closing a previously opened one).

        Raises OpenFailure if the file cannot be opened.
        """
        self.close()
        self._store = H5Store.open(path)
        logger.debug("Opened %s", path)

    def close(self) -> None:
        if self._store is not None:
            self._store.close()
        self._store = None

    def __enter__(self) -> H5Info:
        return self

    def __exit__(self, ex_type, ex_value, ex_traceback) -> None:
        self.close()

    def _walker(self) -> MetadataWalker:
        if not self.is_open:
            raise OpenFailure("No HDF5 file has been opened.")
        return MetadataWalker(self._store, self._config)

    def print_tree(self) -> str:
        """Return the indented rendering of the whole file."""
        if not self.is_open:
            logger.warning("No HDF5 file has been opened")
            return NOT_OPENED_MSG
        return self._walker().render_tree()

    def dump_all(self) -> KeywordList:
        """Flatten the whole file into keys starting with the configured prefix.

        The last entry (`<prefix>datasetnames`) lists all datasets of the file.
        """
        walker = self._walker()
        prefix = self._config.prefix
        kwl = walker.flatten(prefix=prefix)
        names = walker.dataset_names()
        kwl.add(prefix, "datasetnames", "(" + ", ".join(names) + ")")
        return kwl

    def dump_dataset(self, path: str) -> KeywordList:
        """Flatten a single dataset (keys start with the dataset name).

        Raises PathNotFound if there is no such dataset.
        """
        kwl = self._walker().flatten_one(path)
        if kwl is None:
            raise PathNotFound(f"No dataset found for path: {path}")
        return kwl

    def dump_group(self, path: str) -> KeywordList:
        """Flatten the subtree of a group (keys start with the group name).

        Raises PathNotFound if there is no such group.
        """
        kwl = self._walker().flatten_group(path)
        if kwl is None:
            raise PathNotFound(f"No group found for path: {path}")
        return kwl
