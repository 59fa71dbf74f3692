"""Data CRUD commands."""

from typing import Annotated

import typer

from scopedb.cli.context import CLIContext
from scopedb.cli.output import OutputFormatter
from scopedb.cli.parsing import localize_keys, parse_json_object
from scopedb.schema.registry import EntitySchema

# Create data subcommand group
app = typer.Typer(help="Manage entity data (CRUD operations)")

SchemaFile = Annotated[
    str,
    typer.Option("--schema", "-s", help="JSON file with entity specs"),
]
LanguageOption = Annotated[
    int | None,
    typer.Option("--lang", "-l", help="Bind to one language id"),
]
ShopOption = Annotated[
    int | None,
    typer.Option("--shop", help="Bind to one shop id"),
]


def _lang_fields(schema: EntitySchema) -> set[str]:
    return {f.name for f in schema.fields.values() if f.lang}


@app.command("insert")
def data_insert(
    ctx: typer.Context,
    schema_file: SchemaFile,
    entity_name: Annotated[str, typer.Argument(help="Entity name")],
    data_json: Annotated[str, typer.Argument(help="Field values as JSON object")],
    shops: Annotated[
        list[int] | None,
        typer.Option("--shop", help="Associate with shop id (repeatable)"),
    ] = None,
    language_id: LanguageOption = None,
) -> None:
    """Insert a record.

    Per-language fields take a {language_id: value} object unless --lang is given.

    Examples:

        scopedb data insert -s entities.json Product '{"quantity": 3, "name": {"1": "Chair"}}'
        scopedb data insert -s entities.json Product '{"name": {"1": "Chair"}}' --shop 1 --shop 2
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        engine = cli_ctx.get_engine(schema_file)
        instance = engine.new(entity_name, language_id=language_id)
        data = localize_keys(parse_json_object(data_json), _lang_fields(instance.schema))
        instance.hydrate(data)
        if shops:
            instance.associated_shop_ids = shops

        record_id = engine.create(instance)
        details: dict[str, object] = {"id": record_id}
        if instance.associated_shop_ids:
            details["shops"] = instance.associated_shop_ids
        formatter.print_success("Inserted record", details)
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("get")
def data_get(
    ctx: typer.Context,
    schema_file: SchemaFile,
    entity_name: Annotated[str, typer.Argument(help="Entity name")],
    record_id: Annotated[int, typer.Argument(help="Record ID")],
    language_id: LanguageOption = None,
    shop_id: ShopOption = None,
) -> None:
    """Get a record by ID in a language and shop context.

    Examples:

        scopedb data get -s entities.json Product 1
        scopedb data get -s entities.json Product 1 --lang 2 --shop 2
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        engine = cli_ctx.get_engine(schema_file)
        instance = engine.read(entity_name, record_id, language_id=language_id, shop_id=shop_id)
        record = instance.to_dict()
        if instance.schema.multishop:
            record["associated_shop_ids"] = instance.associated_shop_ids
        formatter.print_data(record)
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("update")
def data_update(
    ctx: typer.Context,
    schema_file: SchemaFile,
    entity_name: Annotated[str, typer.Argument(help="Entity name")],
    record_id: Annotated[int, typer.Argument(help="Record ID")],
    data_json: Annotated[str, typer.Argument(help="Field values as JSON object")],
    language_id: LanguageOption = None,
    shop_id: ShopOption = None,
    fields: Annotated[
        str | None,
        typer.Option(
            "--fields",
            "-f",
            help='Fields to update as JSON, e.g. \'{"name": {"2": true}}\'',
        ),
    ] = None,
) -> None:
    """Update a record, optionally restricted to some fields and languages.

    Examples:

        scopedb data update -s entities.json Product 1 '{"quantity": 5}'
        scopedb data update -s entities.json Product 1 '{"active": false}' --shop 2
        scopedb data update -s entities.json Product 1 '{"name": {"2": "Fauteuil"}}' \\
            --fields '{"name": {"2": true}}'
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        engine = cli_ctx.get_engine(schema_file)
        instance = engine.read(entity_name, record_id, language_id=language_id, shop_id=shop_id)
        lang_fields = _lang_fields(instance.schema)

        data = parse_json_object(data_json)
        if not instance.is_language_bound:
            data = localize_keys(data, lang_fields)
        instance.hydrate(data)
        if fields is not None:
            instance.set_fields_to_update(
                localize_keys(parse_json_object(fields, "--fields"), lang_fields)
            )

        report = engine.update_with_report(instance)
        formatter.print_report(report)
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("delete")
def data_delete(
    ctx: typer.Context,
    schema_file: SchemaFile,
    entity_name: Annotated[str, typer.Argument(help="Entity name")],
    record_id: Annotated[int, typer.Argument(help="Record ID")],
) -> None:
    """Delete a record with all its language and shop rows.

    Examples:

        scopedb data delete -s entities.json Product 1
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        engine = cli_ctx.get_engine(schema_file)
        instance = engine.read(entity_name, record_id)
        engine.delete(instance)
        formatter.print_success(f"Record deleted: {record_id}")
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()
