"""Input parsing utilities for CLI commands."""

import json
from pathlib import Path
from typing import Any


def read_json_file(path: str) -> Any:
    """Read a JSON document from file.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON document

    Raises:
        FileNotFoundError: If file doesn't exist
        json.JSONDecodeError: If file contains invalid JSON
    """
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    with file_path.open("r") as f:
        return json.load(f)


def parse_json_object(raw: str, what: str = "data") -> dict[str, Any]:
    """Parse an inline JSON object argument.

    Raises:
        ValueError: If `raw` is not a JSON object
    """
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON for {what}: {e.msg}") from e
    if not isinstance(value, dict):
        raise ValueError(f"Expected a JSON object for {what}, got {type(value).__name__}")
    return value


def localize_keys(values: dict[str, Any], localized_fields: set[str]) -> dict[str, Any]:
    """Turn JSON's string language keys back into ints.

    JSON object keys are always strings, so ``{"name": {"1": "Chair"}}``
    arrives with "1"; per-language mappings (and selector entries) are keyed
    by language id.

    Raises:
        ValueError: If a language key is not an integer
    """
    result: dict[str, Any] = {}
    for name, value in values.items():
        if name in localized_fields and isinstance(value, dict):
            try:
                value = {int(lang): v for lang, v in value.items()}
            except ValueError as e:
                raise ValueError(f"Language ids of '{name}' must be integers") from e
        result[name] = value
    return result
