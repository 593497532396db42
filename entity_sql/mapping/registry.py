"""Table registry - resolves and caches table descriptors per entity type.

Descriptors are pure data derived from the entity type, so the cache is
write-once per type: concurrent first callers may both build a descriptor,
the last writer wins, and nobody observes a half-built one.
"""

from __future__ import annotations

import logging
import threading

from entity_sql.mapping.metadata import TableDescriptor, describe

logger = logging.getLogger(__name__)


class TableRegistry:
    """Caches the TableDescriptor of every entity type it has resolved.

    Create one at startup and hand it to the components that map entities;
    separate registries never share state.
    """

    def __init__(self) -> None:
        self._tables: dict[type, TableDescriptor] = {}
        self._lock = threading.Lock()

    def resolve(self, entity_type: type) -> TableDescriptor:
        """Return the descriptor of *entity_type*, building it on first use.

        Raises:
            AmbiguousIdentityError: If the type marks several identity columns.
        """
        table = self._tables.get(entity_type)
        if table is not None:
            return table

        table = describe(entity_type)
        with self._lock:
            self._tables[entity_type] = table
        logger.debug(
            "Resolved table %s for %s (%d columns, identity=%s)",
            table.name,
            entity_type.__qualname__,
            len(table.columns),
            table.identity_column.name if table.identity_column else None,
        )
        return table

    def has(self, entity_type: type) -> bool:
        """Check if a type has already been resolved."""
        return entity_type in self._tables

    def clear(self) -> None:
        """Forget every cached descriptor."""
        with self._lock:
            self._tables.clear()

    def __len__(self) -> int:
        """Number of cached descriptors."""
        return len(self._tables)


default_registry = TableRegistry()
