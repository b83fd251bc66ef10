import secrets
from pathlib import Path

import h5py
import numpy as np
import pytest


@pytest.fixture(scope="session")
def h5_dir(tmpdir_factory):
    """Create a fresh temporary directory for files created in the tests."""
    return tmpdir_factory.mktemp("h5info_tests")


@pytest.fixture
def tmp_h5_path_factory(h5_dir):
    """Return a file name generator to be used for creating HDF5 files.

    All files will be cleaned up after completing the test.
    """
    paths = []

    def fresh_path() -> Path:
        path = Path(h5_dir / f"{secrets.token_hex(4)}.h5")
        paths.append(path)
        return path

    yield fresh_path

    for path in paths:
        if path.is_file():
            path.unlink()


@pytest.fixture
def tmp_h5_path(tmp_h5_path_factory):
    return tmp_h5_path_factory()


RECORD_DTYPE = np.dtype([("x", "<i4"), ("y", "<i2")])
COLOR_DTYPE = h5py.enum_dtype({"RED": 0, "GREEN": 1, "BLUE": 2}, basetype="u1")
MATRIX_DTYPE = np.dtype(("<i4", (2, 3)))


@pytest.fixture
def sample_h5(tmp_h5_path):
    """HDF5 file with groups, attributes and datasets of most supported classes.

    Layout:
    ```
    /                 @title="Sample" (vlen str), @version=3 (int32)
    /colors           enum RED, GREEN, BLUE
    /empty            float32, null dataspace
    /matrix           1 element of array type int32 (2,3)
    /records          3 compound records (x: int32, y: int16)
    /g1               @count=7 (uint16)
    /g1/ds1           int32 [1, 2, 3], @scale=0.5
    /g1/ds2           big-endian float32 [1.5], @unit="m" (fixed str)
    /g1/sub/names     vlen str ["a", "bb"]
    ```
    """
    with h5py.File(tmp_h5_path, "w") as f:
        f.attrs["title"] = "Sample"
        f.attrs["version"] = np.int32(3)

        f.create_dataset("colors", data=np.array([0, 1, 2], dtype="u1"), dtype=COLOR_DTYPE)
        f.create_dataset("empty", data=h5py.Empty("<f4"))
        matrix = f.create_dataset("matrix", (1,), dtype=MATRIX_DTYPE)
        matrix[0] = np.arange(6, dtype="<i4").reshape(2, 3)
        f.create_dataset(
            "records", data=np.array([(1, 10), (2, 20), (3, 30)], dtype=RECORD_DTYPE)
        )

        g1 = f.create_group("g1")
        g1.attrs["count"] = np.uint16(7)
        ds1 = g1.create_dataset("ds1", data=np.array([1, 2, 3], dtype="<i4"))
        ds1.attrs["scale"] = np.float64(0.5)
        ds2 = g1.create_dataset("ds2", data=np.array([1.5], dtype=">f4"))
        ds2.attrs["unit"] = np.bytes_(b"m")

        sub = g1.create_group("sub")
        sub.create_dataset("names", data=["a", "bb"], dtype=h5py.string_dtype())

    return tmp_h5_path


@pytest.fixture
def two_datasets_h5(tmp_h5_path):
    """A group with two integer datasets carrying one integer attribute each."""
    with h5py.File(tmp_h5_path, "w") as f:
        grp = f.create_group("group")
        for i, name in enumerate(["ds1", "ds2"]):
            ds = grp.create_dataset(name, data=np.arange(3, dtype="<i4"))
            ds.attrs["attr"] = np.int32(i + 1)
    return tmp_h5_path


@pytest.fixture
def sample_file(sample_h5):
    """The sample file opened for reading (closed after the test)."""
    with h5py.File(sample_h5, "r") as f:
        yield f
