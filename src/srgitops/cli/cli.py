"""CLI application for managing a schema registry from state files."""

import typer

from srgitops.cli.commands.state import apply, dump, plan, validate
from srgitops.cli.common.logs import setup_logging
from srgitops.cli.common.options import QuietOpt, VerboseOpt

app = typer.Typer(
    help="srgitops - manage schema registry subjects with GitOps",
    no_args_is_help=True,
)


@app.callback()
def _init(verbose: bool = VerboseOpt, quiet: bool = QuietOpt):
    """Configure logging for all commands."""
    setup_logging(verbose=verbose, quiet=quiet)


app.command()(validate)
app.command()(plan)
app.command()(apply)
app.command()(dump)


if __name__ == "__main__":
    app()
