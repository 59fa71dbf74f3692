"""CLI context management for engines and shared state."""

from dataclasses import dataclass, field, replace

from scopedb.cli.parsing import read_json_file
from scopedb.config import Settings
from scopedb.core.engine import PersistenceEngine
from scopedb.schema.registry import SchemaRegistry


def load_registry(schema_path: str) -> SchemaRegistry:
    """Build a registry from a JSON file of entity specs.

    The file holds either a list of EntitySpec objects or a single one.

    Raises:
        FileNotFoundError: If the file doesn't exist
        SchemaError: If a spec is invalid
    """
    specs = read_json_file(schema_path)
    if isinstance(specs, dict):
        specs = [specs]

    registry = SchemaRegistry()
    for spec in specs:
        registry.register(spec)
    return registry


@dataclass
class CLIContext:
    """Shared context for CLI commands.

    Manages engine lifecycle and output preferences.
    """

    database_url: str | None
    echo: bool
    json_output: bool
    _engine: PersistenceEngine | None = field(default=None, init=False, repr=False)

    def settings(self) -> Settings:
        settings = Settings.from_env(self.database_url)
        if self.echo:
            settings = replace(settings, echo=True)
        return settings

    def get_engine(self, schema_path: str) -> PersistenceEngine:
        """Get or create the engine for the entities declared in `schema_path`.

        Returns:
            PersistenceEngine instance
        """
        if self._engine is None:
            registry = load_registry(schema_path)
            self._engine = PersistenceEngine(registry, settings=self.settings())
        return self._engine

    def close(self) -> None:
        """Close the engine if open."""
        if self._engine is not None:
            self._engine.close()
            self._engine = None
