"""Access layer between the walker and the underlying file."""
from .h5 import H5Store
from .protocols import AttributeRef, MetadataStore, Payload, SpaceClass

__all__ = ["H5Store", "MetadataStore", "AttributeRef", "Payload", "SpaceClass"]
