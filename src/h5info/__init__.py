"""h5info package."""
import importlib_metadata
from typing_extensions import Final

from .config import InfoConfig
from .errors import (
    CycleDetected,
    DecodeError,
    DepthExceeded,
    H5InfoError,
    OpenFailure,
    PathNotFound,
)
from .info import H5Info
from .keywords import KeywordList
from .walker import MetadataWalker

# Set version, will use version from pyproject.toml if defined
__version__: Final[str] = importlib_metadata.version(__package__ or __name__)

__all__ = [
    "H5Info",
    "InfoConfig",
    "KeywordList",
    "MetadataWalker",
    "H5InfoError",
    "OpenFailure",
    "PathNotFound",
    "DecodeError",
    "CycleDetected",
    "DepthExceeded",
]
