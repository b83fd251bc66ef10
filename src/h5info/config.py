"""Settings controlling tree rendering and flattening."""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class InfoConfig(BaseModel):
    """Options of `MetadataWalker` and `H5Info`."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    prefix: str = "hdf5."
    """Key prefix used when flattening the whole file."""

    indent: str = "  "
    """Indentation added per level of the rendered tree."""

    max_string_values: int = Field(10, ge=0)
    """String datasets with at most this many elements have their values printed."""

    max_depth: Optional[int] = Field(None, ge=1)
    """If set, groups nested deeper than this are skipped (with a warning)."""

    detect_cycles: bool = True
    """Skip groups that are reached again through a link to one of their ancestors."""
