"""
Table service: inbound facade for the data-fetch/orchestration layer.

Validates incoming payloads, resolves defaults from settings, delegates to
the kernel's TableAssembly and logs what happened. Kernel errors are logged
and re-raised unchanged.
"""

from __future__ import annotations

import logging
from typing import Any

from treetable.config import Settings, settings as default_settings
from treetable.kernel.assembly import MemoryStorage, TableAssembly
from treetable.kernel.types import CollapseState, FlatRow, MergeResult, Table, TableError
from treetable.models.table import (
    InitialTreeRequest,
    PartialUpdateRequest,
    TableOptions,
    ToggleRequest,
)

logger = logging.getLogger(__name__)


def configure_logging(level: str | None = None) -> None:
    """Apply the configured level to the package logger."""
    logging.getLogger("treetable").setLevel(level or default_settings.LOG_LEVEL)


class TableService:
    """Entry point for table state: full loads, partial refreshes, toggles."""

    def __init__(
        self,
        assembly: TableAssembly | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or default_settings
        self.assembly = assembly or TableAssembly(
            MemoryStorage(),
            date_widget_types=self.settings.DATE_WIDGET_TYPES,
        )

    def _options(self, options: TableOptions | dict[str, Any] | None) -> TableOptions:
        if not isinstance(options, TableOptions):
            options = TableOptions.model_validate(options or {})
        # settings fill in whatever the caller left unset
        defaults = {
            "expanded_depth": self.settings.DEFAULT_EXPANDED_DEPTH,
            "collapsible": self.settings.DEFAULT_COLLAPSIBLE,
            "key_property": self.settings.DEFAULT_KEY_PROPERTY,
        }
        unset = {k: v for k, v in defaults.items() if k not in options.model_fields_set}
        return options.model_copy(update=unset)

    # -- lifecycle --

    def create_table(self, table_id: str, options: TableOptions | dict[str, Any] | None = None) -> Table:
        opts = self._options(options)
        table = self.assembly.create(
            table_id,
            key_property=opts.key_property,
            collapsible=opts.collapsible,
            expanded_depth=opts.expanded_depth,
        )
        logger.info("table_service: created table %s (key=%s)", table_id, opts.key_property)
        return table

    def close_table(self, table_id: str) -> None:
        self.assembly.delete(table_id)
        logger.info("table_service: closed table %s", table_id)

    # -- inbound interface --

    def submit_initial_tree(
        self,
        table_id: str,
        raw_tree: list[dict[str, Any]] | None,
        options: TableOptions | dict[str, Any] | None = None,
    ) -> Table:
        request = InitialTreeRequest(
            table_id=table_id,
            raw_tree=raw_tree or [],
            options=self._options(options),
        )
        opts = request.options
        try:
            table = self.assembly.submit_initial_tree(
                request.table_id,
                request.raw_tree,
                expanded_depth=opts.expanded_depth,
                collapsible=opts.collapsible,
                key_property=opts.key_property,
            )
        except TableError as e:
            logger.warning("table_service: initial load rejected for %s: %s", table_id, e)
            raise

        logger.info(
            "table_service: loaded %d rows into %s, %d collapsed parents",
            len(table.rows),
            table_id,
            len(table.collapsed_parent_rows),
        )
        return table

    def submit_partial_update(
        self,
        table_id: str,
        changed_rows: list[dict[str, Any]] | None,
        changed_ids: list[Any] | None,
        column_info: dict[str, dict[str, Any]] | None = None,
    ) -> MergeResult:
        request = PartialUpdateRequest(
            table_id=table_id,
            changed_rows=changed_rows,
            changed_ids=changed_ids,
            column_info=column_info,
        )
        try:
            result = self.assembly.submit_partial_update(
                request.table_id,
                request.changed_rows,
                request.changed_ids,
                request.column_info,
            )
        except TableError as e:
            logger.warning("table_service: partial update rejected for %s: %s", table_id, e)
            raise

        if result.removed_rows:
            logger.info("table_service: removed %d rows from %s", len(result.removed_rows), table_id)
        elif request.changed_rows:
            logger.debug("table_service: merged %d changed rows into %s", len(request.changed_rows), table_id)
        return result

    def submit_toggle(self, table_id: str, row_id: Any, currently_collapsed: bool) -> CollapseState:
        request = ToggleRequest(
            table_id=table_id,
            row_id=row_id,
            currently_collapsed=currently_collapsed,
        )
        try:
            state = self.assembly.submit_toggle(
                request.table_id,
                request.row_id,
                request.currently_collapsed,
            )
        except TableError as e:
            logger.warning("table_service: toggle of %r rejected for %s: %s", row_id, table_id, e)
            raise

        logger.debug(
            "table_service: %s row %r in %s",
            "expanded" if request.currently_collapsed else "collapsed",
            row_id,
            table_id,
        )
        return state

    # -- outbound projection --

    def view(self, table_id: str) -> dict[str, Any]:
        return self.assembly.view(table_id)

    def visible_rows(self, table_id: str) -> list[FlatRow]:
        return self.assembly.visible_rows(table_id)
