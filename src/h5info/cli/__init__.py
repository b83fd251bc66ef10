"""h5info CLI for inspecting HDF5 files."""
import logging

import typer
from rich.logging import RichHandler

from . import commands, general

app = typer.Typer()
app.add_typer(general.app, name="self")
app.command("tree")(commands.tree)
app.command("dump")(commands.dump)
app.command("version")(commands.version)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug output."),
):
    """Print the structure of HDF5 files or flatten their metadata."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(show_time=False, show_path=False)],
    )
