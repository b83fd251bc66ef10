"""Commands about h5info itself and its environment."""
import platform
import tempfile
from pathlib import Path

import typer
from rich import print

from h5info import __version__

app = typer.Typer()


@app.command("info")
def info():
    """Show versions of the system, Python and the HDF5 stack."""
    import h5py
    import numpy

    un = platform.uname()
    print(f"[b]System:[/b] {un.system} {un.release} {un.version}")
    print(
        f"[b]Python:[/b] {platform.python_version()} ({platform.python_implementation()})"
    )
    print("[b]Env:[/b]")
    print("h5info", __version__)
    print("h5py", h5py.__version__, f"(HDF5 {h5py.version.hdf5_version})")
    print("numpy", numpy.__version__)


@app.command("check")
def check():
    """Write a small HDF5 file and make sure that it can be printed and flattened."""
    import h5py
    import numpy as np

    from h5info import H5Info

    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "check.h5"

        print("Creating HDF5 file with test data...")
        with h5py.File(path, "w") as f:
            f.attrs["title"] = "h5info self-check"
            grp = f.create_group("group")
            ds = grp.create_dataset("values", data=np.arange(4, dtype=">i4"))
            ds.attrs["unit"] = "m"
            rec = np.dtype([("id", "<u2"), ("x", "<f8")])
            grp.create_dataset("records", data=np.array([(1, 0.5), (2, 1.5)], dtype=rec))

        with H5Info(path) as h5i:
            print("Printing tree...")
            tree = h5i.print_tree()
            print("Flattening metadata...")
            kwl = h5i.dump_all()

    expected = {
        "hdf5.title": ["h5info self-check"],
        "hdf5.group.values.unit": ["m"],
        "hdf5.group.values.byte_order": ["big_endian"],
        "hdf5.group.records.x": ["0.5", "1.5"],
        "hdf5.datasetnames": ["(/group/records, /group/values)"],
    }
    for key, values in expected.items():
        if kwl.get_all(key) != values:
            print(f"[b][red]Unexpected value for {key}:[/red][/b] {kwl.get_all(key)}")
            raise typer.Exit(code=1)
    if "DATASET: /group/values" not in tree:
        print("[b][red]Dataset missing in printed tree![/red][/b]")
        raise typer.Exit(code=1)

    print("[b][green]Self-check successfully completed![/green][/b]")
