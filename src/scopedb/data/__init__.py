"""Row-level data access."""

from scopedb.data.row_store import RowStore

__all__ = ["RowStore"]
