"""Fields-to-update selector.

A selector is either ``FieldSelector.ALL`` (write everything the instance
holds) or an explicit allow-list::

    FieldSelector({"quantity": True, "name": {2: True}})

Entries:
- ``True`` / ``False``: the whole field, for every target language
- ``{language_id: bool}``: a per-language field, only for the listed languages

Anything not listed is left untouched.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, ClassVar

SelectorEntry = bool | Mapping[int, bool]


class FieldSelector:
    """Explicit fields-to-update allow-list, or ALL."""

    ALL: ClassVar[FieldSelector]

    def __init__(self, entries: Mapping[str, SelectorEntry] | None = None) -> None:
        self._all = entries is None
        self._entries: dict[str, SelectorEntry] = {}
        for name, entry in (entries or {}).items():
            if isinstance(entry, Mapping):
                self._entries[name] = {int(lang): bool(flag) for lang, flag in entry.items()}
            else:
                self._entries[name] = bool(entry)

    @classmethod
    def coerce(cls, value: FieldSelector | Mapping[str, Any] | None) -> FieldSelector:
        """Accept a selector, a plain mapping, or None (meaning ALL)."""
        if value is None:
            return cls.ALL
        if isinstance(value, FieldSelector):
            return value
        return cls(value)

    @property
    def is_all(self) -> bool:
        return self._all

    @property
    def fields(self) -> list[str]:
        """Names listed with at least one true flag."""
        return [name for name in self._entries if self.selects(name)]

    def selects(self, field_name: str) -> bool:
        """Whether any part of `field_name` is selected."""
        if self._all:
            return True
        entry = self._entries.get(field_name)
        if entry is None:
            return False
        if isinstance(entry, Mapping):
            return any(entry.values())
        return entry

    def selects_language(self, field_name: str, language_id: int) -> bool:
        """Whether `field_name` is selected for `language_id`.

        A per-language mapping wins over a field-level boolean; languages
        missing from the mapping are not selected.
        """
        if self._all:
            return True
        entry = self._entries.get(field_name)
        if entry is None:
            return False
        if isinstance(entry, Mapping):
            return bool(entry.get(int(language_id), False))
        return entry

    def to_dict(self) -> dict[str, Any] | None:
        if self._all:
            return None
        return {
            name: dict(entry) if isinstance(entry, Mapping) else entry
            for name, entry in self._entries.items()
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FieldSelector):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self) -> int:
        return hash(repr(self))

    def __repr__(self) -> str:
        if self._all:
            return "FieldSelector.ALL"
        return f"FieldSelector({self.to_dict()!r})"


FieldSelector.ALL = FieldSelector()
