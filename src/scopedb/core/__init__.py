"""Core components for scopedb."""

from scopedb.core.connection import DatabaseConnection
from scopedb.core.types import (
    AssociationType,
    EntityInfo,
    EntitySpec,
    FieldInfo,
    FieldSpec,
    FieldType,
    ScopeBucket,
    TargetResult,
    UpdateReport,
    WriteOutcome,
)

__all__ = [
    "DatabaseConnection",
    "FieldType",
    "FieldSpec",
    "EntitySpec",
    "FieldInfo",
    "EntityInfo",
    "ScopeBucket",
    "AssociationType",
    "WriteOutcome",
    "TargetResult",
    "UpdateReport",
]
