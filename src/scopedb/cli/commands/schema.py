"""Schema commands."""

from typing import Annotated

import typer

from scopedb.cli.context import CLIContext
from scopedb.cli.output import OutputFormatter

# Create schema subcommand group
app = typer.Typer(help="Inspect entity declarations and create their tables")

SchemaFile = Annotated[
    str,
    typer.Option("--schema", "-s", help="JSON file with entity specs"),
]


@app.command("show")
def schema_show(
    ctx: typer.Context,
    schema_file: SchemaFile,
    entity_name: Annotated[
        str | None,
        typer.Argument(help="Only show this entity"),
    ] = None,
) -> None:
    """Show tables, fields and scope buckets of declared entities.

    Examples:

        scopedb schema show -s entities.json
        scopedb schema show -s entities.json Product
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        engine = cli_ctx.get_engine(schema_file)
        infos = engine.describe(entity_name)

        if cli_ctx.json_output:
            formatter.print_data({name: info.model_dump() for name, info in infos.items()})
        else:
            for info in infos.values():
                formatter.print_entity_info(info)
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("create")
def schema_create(
    ctx: typer.Context,
    schema_file: SchemaFile,
) -> None:
    """Create the tables of every declared entity (existing tables are kept).

    Examples:

        scopedb -d sqlite:///./shop.db schema create -s entities.json
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        engine = cli_ctx.get_engine(schema_file)
        engine.create_tables()
        tables = [table for info in engine.describe().values() for table in info.tables]
        formatter.print_success(
            f"Created tables for {len(engine.registry)} entities",
            {"tables": tables},
        )
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()
