"""scopedb CLI - Main entry point."""

import logging
import sys
from typing import Annotated

import typer

import scopedb
from scopedb.cli.context import CLIContext

# Create main Typer app
app = typer.Typer(
    name="scopedb",
    help="scopedb CLI - Language and shop scoped entity storage",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    database: Annotated[
        str | None,
        typer.Option(
            "--database",
            "-d",
            envvar="SCOPEDB_URL",
            help="Database URL (SQLite, PostgreSQL or MySQL)",
        ),
    ] = None,
    echo: Annotated[
        bool,
        typer.Option(
            "--echo",
            "-e",
            help="Echo SQL statements to console",
        ),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            "-j",
            help="Output as JSON (machine-readable)",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Log write targets and outcomes to stderr",
        ),
    ] = False,
) -> None:
    """Initialize CLI context with global options."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(levelname)s %(name)s: %(message)s",
        )

    ctx.obj = CLIContext(
        database_url=database,
        echo=echo,
        json_output=json_output,
    )


@app.command()
def version() -> None:
    """Show version information."""
    typer.echo(f"scopedb v{scopedb.__version__}")


# Register command groups
from scopedb.cli.commands import data, schema  # noqa: E402

app.add_typer(schema.app, name="schema")
app.add_typer(data.app, name="data")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
