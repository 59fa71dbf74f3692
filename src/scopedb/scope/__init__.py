"""Write scoping: fields-to-update selection and target resolution."""

from scopedb.scope.resolver import FieldBuckets, RowKey, ScopeResolver, WriteTarget
from scopedb.scope.selector import FieldSelector

__all__ = ["FieldSelector", "FieldBuckets", "RowKey", "ScopeResolver", "WriteTarget"]
