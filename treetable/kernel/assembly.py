"""
treetable Kernel - Assembly Layer

Sits between the pure functions (normalizer, collapse, merge) and the
orchestrator that feeds them server responses. Owns the lifecycle of each
table's state.

Operations: create, submit_initial_tree, submit_partial_update,
submit_toggle, load, view, delete

Every mutating operation computes the complete replacement Table first and
commits it with a single storage put. If anything raises, the previously
committed Table is left exactly as it was.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from typing import Any, Iterable

from treetable.kernel.collapse import build, toggle
from treetable.kernel.formatter import DATE_WIDGET_TYPES
from treetable.kernel.merge import merge_rows
from treetable.kernel.normalizer import flatten, parse_tree
from treetable.kernel.types import (
    DEFAULT_KEY_PROPERTY,
    CollapseState,
    FlatRow,
    MergeResult,
    Table,
    TableNotFound,
)

# ---------------------------------------------------------------------------
# Storage protocol
# ---------------------------------------------------------------------------


class TableStorage:
    """
    Abstract storage interface for committed table state.
    Tables are discarded when their view closes; nothing outlives the process.
    """

    def get(self, table_id: str) -> Table | None:
        """Fetch a table. Returns None if not found."""
        raise NotImplementedError

    def put(self, table: Table) -> None:
        """Commit a table, replacing any previous state under its id."""
        raise NotImplementedError

    def delete(self, table_id: str) -> None:
        """Discard a table."""
        raise NotImplementedError


class MemoryStorage(TableStorage):
    """In-memory storage."""

    def __init__(self) -> None:
        self.tables: dict[str, Table] = {}

    def get(self, table_id: str) -> Table | None:
        return self.tables.get(table_id)

    def put(self, table: Table) -> None:
        self.tables[table.id] = table

    def delete(self, table_id: str) -> None:
        self.tables.pop(table_id, None)


# ---------------------------------------------------------------------------
# Assembly class
# ---------------------------------------------------------------------------


class TableAssembly:
    """
    Manages the lifecycle of table state.
    Coordinates normalizer + collapse engine + merge engine + storage.
    """

    def __init__(
        self,
        storage: TableStorage | None = None,
        *,
        date_widget_types: Iterable[str] = DATE_WIDGET_TYPES,
    ):
        self._storage = storage if storage is not None else MemoryStorage()
        self._date_widget_types = tuple(date_widget_types)
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _get_lock(self, table_id: str) -> threading.Lock:
        """Per-table lock; serializes mutations issued to the same table."""
        with self._locks_guard:
            if table_id not in self._locks:
                self._locks[table_id] = threading.Lock()
            return self._locks[table_id]

    # -- load --

    def load(self, table_id: str) -> Table:
        table = self._storage.get(table_id)
        if table is None:
            raise TableNotFound(table_id)
        return table

    def exists(self, table_id: str) -> bool:
        return self._storage.get(table_id) is not None

    # -- create --

    def create(
        self,
        table_id: str,
        *,
        key_property: str = DEFAULT_KEY_PROPERTY,
        collapsible: bool = False,
        expanded_depth: int = 0,
    ) -> Table:
        """
        Register an empty table (layout loaded, no data yet).
        An existing table under the same id is replaced.
        """
        table = Table(
            id=table_id,
            key_property=key_property,
            collapsible=collapsible,
            expanded_depth=expanded_depth,
        )
        with self._get_lock(table_id):
            self._storage.put(table)
        return table

    # -- full load --

    def submit_initial_tree(
        self,
        table_id: str,
        raw_tree: Any,
        *,
        expanded_depth: int,
        collapsible: bool,
        key_property: str = DEFAULT_KEY_PROPERTY,
    ) -> Table:
        """
        Parse → flatten → build collapse state, then commit wholesale.
        Works for a new table and for a full reload of an existing one.
        """
        with self._get_lock(table_id):
            rows = flatten(parse_tree(raw_tree), date_widget_types=self._date_widget_types)

            if collapsible and rows:
                collapse = build(rows, expanded_depth, key_property)
            else:
                collapse = CollapseState.empty()

            table = Table(
                id=table_id,
                rows=rows,
                key_property=key_property,
                collapsible=collapsible,
                expanded_depth=expanded_depth,
                collapse=collapse,
            )
            self._storage.put(table)
            return table

    # -- partial update --

    def submit_partial_update(
        self,
        table_id: str,
        changed_rows: Any = None,
        changed_ids: Iterable[Any] | None = None,
        column_info: dict[str, dict[str, Any]] | None = None,
    ) -> MergeResult:
        """
        Merge a partial refresh into the table's rows.
        Collapse state is carried over untouched.
        """
        with self._get_lock(table_id):
            table = self.load(table_id)
            incoming = None if changed_rows is None else parse_tree(changed_rows)

            result = merge_rows(
                table.rows,
                incoming,
                None if changed_ids is None else list(changed_ids),
                column_info,
                key_property=table.key_property,
                date_widget_types=self._date_widget_types,
            )
            if result.rows is not table.rows:
                self._storage.put(replace(table, rows=result.rows))
            return result

    # -- toggle --

    def submit_toggle(self, table_id: str, row_id: Any, currently_collapsed: bool) -> CollapseState:
        with self._get_lock(table_id):
            table = self.load(table_id)
            collapse = toggle(table, row_id, currently_collapsed)
            self._storage.put(replace(table, collapse=collapse))
            return collapse

    # -- read-only projection --

    def view(self, table_id: str) -> dict[str, Any]:
        """Outbound projection for the rendering layer (a fresh dict)."""
        return self.load(table_id).to_dict()

    def visible_rows(self, table_id: str) -> list[FlatRow]:
        return self.load(table_id).visible_rows()

    # -- delete --

    def delete(self, table_id: str) -> None:
        """Discard a table when its owning view/document closes."""
        with self._get_lock(table_id):
            self._storage.delete(table_id)
        with self._locks_guard:
            self._locks.pop(table_id, None)
