"""Secondary indices mapping alternate keys onto canonical record keys."""

from collections.abc import Mapping
from typing import Any

from zonekeeper.exceptions import IntegrityError


class SecondaryIndex:
    """Alternate-key lookup into one or more canonical record tables.

    The index and the tables are the snapshot's own dicts, so linking
    writes straight into the state that gets persisted. A key can only
    be linked to a canonical key that already exists in one of the
    tables, and lookups only return keys that still exist there.

    Args:
        mapping: Alias -> canonical key mapping (mutated in place).
        tables: Canonical record tables the aliases point into.
    """

    # An alias may point at a key that is itself re-pointed to a newer
    # canonical key; at most this many extra hops are followed.
    MAX_HOPS = 1

    def __init__(self, mapping: dict[str, str], *tables: Mapping[str, Any]):
        self.mapping = mapping
        self.tables = tables

    def _is_canonical(self, key: str) -> bool:
        return any(key in table for table in self.tables)

    def link(self, canonical: str, *aliases: str) -> None:
        """Point ``canonical`` at itself and every alias at ``canonical``.

        Raises:
            IntegrityError: If no table holds a record under ``canonical``.
        """
        if not self._is_canonical(canonical):
            raise IntegrityError(f"cannot index '{canonical}': no record stored under that key")

        self.mapping[canonical] = canonical
        for alias in aliases:
            self.mapping[alias] = canonical

    def resolve(self, key: str | None) -> str | None:
        """Return the canonical key for ``key``, or None if unknown."""
        if key is None:
            return None

        target = self.mapping.get(key)
        for _ in range(self.MAX_HOPS):
            if target is None or self._is_canonical(target):
                break
            target = self.mapping.get(target)

        if target is None or not self._is_canonical(target):
            return None
        return target

    def dangling(self) -> list[str]:
        """Return aliases that no longer resolve to a stored record."""
        return sorted(alias for alias in self.mapping if self.resolve(alias) is None)
