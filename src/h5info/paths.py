"""Helper functions to build dotted keys from HDF5 object names."""


def leaf_name(object_name: str) -> str:
    """Return the last component of a `/`-separated object name.

    The root group ("/") and the empty name have an empty leaf name.
    """
    return object_name.split("/")[-1]


def object_prefix(prefix: str, object_name: str) -> str:
    """Return the key prefix for an object located under `prefix`.

    Fully qualified names are reduced to their leaf, so
    `object_prefix("hdf5.", "/group/data")` gives `"hdf5.data."`.
    The root object contributes nothing and returns `prefix` unchanged.
    """
    name = leaf_name(object_name)
    if not name:
        return prefix
    return f"{prefix}{name}."
