"""Output formatting for CLI commands."""

import json
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from scopedb.core.types import EntityInfo, UpdateReport
from scopedb.exceptions import ScopeDBError

console = Console()


class OutputFormatter:
    """Formats output for terminal or JSON mode."""

    def __init__(self, json_mode: bool = False) -> None:
        """Initialize formatter.

        Args:
            json_mode: If True, output JSON instead of Rich formatting
        """
        self.json_mode = json_mode

    def print_table(
        self,
        title: str,
        data: list[dict[str, Any]],
        columns: list[str],
    ) -> None:
        """Print data as Rich table or JSON array."""
        if self.json_mode:
            print(json.dumps(data, default=str, indent=2))
        else:
            table = Table(title=title, show_header=True, header_style="bold magenta")
            for col in columns:
                table.add_column(col)
            for row in data:
                table.add_row(*[str(row.get(col, "")) for col in columns])
            console.print(table)

    def print_entity_info(self, entity: EntityInfo) -> None:
        """Print an entity's tables and fields with their scope buckets.

        Args:
            entity: Entity information to display
        """
        if self.json_mode:
            print(json.dumps(entity.model_dump(), default=str, indent=2))
            return

        console.print(f"\n[bold]Entity:[/bold] {entity.name}")
        console.print(f"Primary key: {entity.primary}")
        for table_name, columns in entity.tables.items():
            console.print(f"Table [cyan]{table_name}[/cyan]: {', '.join(columns)}")

        if entity.fields:
            console.print(f"\n[bold]Fields ({len(entity.fields)}):[/bold]")
            fields_table = Table(show_header=True, header_style="bold cyan")
            fields_table.add_column("Name")
            fields_table.add_column("Type")
            fields_table.add_column("Scope")
            fields_table.add_column("Rule")
            fields_table.add_column("Required")
            fields_table.add_column("Size")

            for field in entity.fields:
                fields_table.add_row(
                    field.name,
                    field.type,
                    field.bucket,
                    field.rule or "",
                    "✓" if field.required else "",
                    str(field.size) if field.size else "",
                )
            console.print(fields_table)

    def print_report(self, report: UpdateReport) -> None:
        """Print the per-target outcomes of an update."""
        if self.json_mode:
            print(json.dumps(report.model_dump(mode="json"), indent=2))
            return

        console.print(f"✓ Updated {report.entity_name} #{report.entity_id}", style="green")
        self.print_table(
            "Write targets",
            [
                {
                    "Table": r.table,
                    "Language": r.language_id if r.language_id is not None else "",
                    "Shop": r.shop_id if r.shop_id is not None else "",
                    "Columns": ", ".join(r.columns),
                    "Outcome": r.outcome,
                }
                for r in report.results
            ],
            ["Table", "Language", "Shop", "Columns", "Outcome"],
        )

    def print_success(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Print success message.

        Args:
            message: Success message
            details: Optional details to display
        """
        if self.json_mode:
            output = {"success": True, "message": message}
            if details:
                output.update(details)
            print(json.dumps(output, default=str, indent=2))
        else:
            console.print(f"✓ {message}", style="green")
            if details:
                for key, value in details.items():
                    console.print(f"  {key}: {value}", style="dim")

    def print_error(self, error: Exception) -> None:
        """Print error message.

        Args:
            error: Exception to display
        """
        if self.json_mode:
            if isinstance(error, ScopeDBError):
                print(json.dumps(error.to_dict(), default=str, indent=2))
            else:
                print(json.dumps({"error": str(error)}, indent=2))
        else:
            error_text = str(error)
            if isinstance(error, ScopeDBError) and error.context:
                context_str = "\n".join(f"{k}: {v}" for k, v in error.context.items())
                error_text = f"{error_text}\n\n{context_str}"

            panel = Panel(
                error_text,
                title="[red]Error[/red]",
                border_style="red",
            )
            console.print(panel)

    def print_data(self, data: Any) -> None:
        """Print generic data (dict, list, etc.)."""
        if self.json_mode:
            print(json.dumps(data, default=str, indent=2))
        else:
            console.print_json(json.dumps(data, default=str))
