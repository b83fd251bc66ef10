"""Commands printing or flattening a HDF5 file."""
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from ..config import InfoConfig
from ..errors import OpenFailure, PathNotFound
from ..info import H5Info

err_console = Console(stderr=True)


def _fail(msg: str):
    err_console.print(f"[b red]Error:[/b red] {msg}", highlight=False)
    raise typer.Exit(code=1)


def tree(
    file: Path = typer.Argument(..., help="HDF5 file to inspect."),
    max_depth: Optional[int] = typer.Option(None, min=1, help="Skip deeper groups."),
):
    """Print groups, datasets and attributes as indented tree."""
    try:
        with H5Info(file, config=InfoConfig(max_depth=max_depth)) as info:
            text = info.print_tree()
    except OpenFailure as e:
        _fail(str(e))
    typer.echo(text, nl=False)


def dump(
    file: Path = typer.Argument(..., help="HDF5 file to inspect."),
    dataset: Optional[str] = typer.Option(None, help="Only dump this dataset."),
    group: Optional[str] = typer.Option(None, help="Only dump this group."),
    prefix: str = typer.Option(InfoConfig().prefix, help="Key prefix (whole file only)."),
):
    """Print the metadata as flat list of `key: value` lines."""
    if dataset is not None and group is not None:
        _fail("Pass either --dataset or --group, not both.")

    try:
        with H5Info(file, config=InfoConfig(prefix=prefix)) as info:
            if dataset is not None:
                kwl = info.dump_dataset(dataset)
            elif group is not None:
                kwl = info.dump_group(group)
            else:
                kwl = info.dump_all()
    except (OpenFailure, PathNotFound) as e:
        _fail(str(e))
    typer.echo(kwl.to_text(), nl=False)


def version():
    """Print the version of h5info."""
    from h5info import __version__

    typer.echo(__version__)
