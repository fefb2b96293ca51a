"""
treetable Kernel - Collapse State

Two pure operations over CollapseState:

  build   - (rows, expanded_depth) -> initial CollapseState after a full load
  toggle  - (table, row_id, currently_collapsed) -> next CollapseState

Collapse hides the whole subtree below a row. Expand reveals only the next
level: grandchildren keep whatever state they had.

Neither operation modifies its inputs. Both either return a complete new
state or raise; there is no partially updated result.
"""

from __future__ import annotations

from typing import Any

from treetable.kernel.types import (
    DEFAULT_KEY_PROPERTY,
    CollapseState,
    FlatRow,
    InconsistentCollapseState,
    MalformedTree,
    Node,
    Table,
    UnknownRowReference,
    node_key,
)

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build(
    rows: list[FlatRow],
    expanded_depth: int,
    key_property: str = DEFAULT_KEY_PROPERTY,
) -> CollapseState:
    """
    Derive the initial hidden/visible partition of a flattened list.

    For each row, in flattened order, with d = len(indent):
      - inside the subtree of a collapsed parent -> hidden (collapsed_rows)
      - d >= expanded_depth and has children    -> collapsed parent
      - d > expanded_depth                      -> hidden
      - otherwise                                -> visible

    Raises MalformedTree (and produces nothing) if any row lacks an indent
    vector or a key, or if two rows share a key.
    """
    if expanded_depth < 0:
        raise InconsistentCollapseState(f"expanded_depth must be >= 0, got {expanded_depth}")

    state = CollapseState.empty()
    seen: set[Any] = set()
    # depth of the collapsed parent whose subtree is being walked, if any
    collapsed_depth: int | None = None

    for position, row in enumerate(rows):
        depth = _depth(row, position)
        key = node_key(row, key_property)
        if key in seen:
            raise MalformedTree(f"duplicate key {key!r} for '{key_property}'")
        seen.add(key)

        if collapsed_depth is not None and depth > collapsed_depth:
            state.collapsed_rows.add(key)
            continue
        collapsed_depth = None

        if depth >= expanded_depth and row.has_children:
            state.collapsed_parent_rows.add(key)
            state.collapsed_array_map.append(row.snapshot())
            collapsed_depth = depth
        elif depth > expanded_depth:
            state.collapsed_rows.add(key)

    return state


def toggle(table: Table, row_id: Any, currently_collapsed: bool) -> CollapseState:
    """
    Apply one user expand/collapse action and return the new state.

    currently_collapsed=True  -> expand: the row's direct children become visible
    currently_collapsed=False -> collapse: the row's full subtree becomes hidden
    """
    if not table.collapsible:
        raise InconsistentCollapseState(f"table {table.id!r} is not collapsible")

    row = find_row(table.rows, row_id, table.key_property)
    if row is None:
        raise UnknownRowReference(f"row {row_id!r} not found in table {table.id!r}")

    if currently_collapsed:
        return _expand(table.collapse, row, row_id, table.key_property)
    return _collapse(table.collapse, row, row_id, table.key_property)


def find_row(rows: list[FlatRow], row_id: Any, key_property: str = DEFAULT_KEY_PROPERTY) -> FlatRow | None:
    for row in rows:
        if node_key(row, key_property) == row_id:
            return row
    return None


def descendant_keys(node: Node | FlatRow, key_property: str = DEFAULT_KEY_PROPERTY) -> list[Any]:
    """Keys of every descendant of node (direct and transitive), pre-order."""
    keys: list[Any] = []
    stack = list(reversed(node.included_documents or []))
    while stack:
        child = stack.pop()
        keys.append(node_key(child, key_property))
        stack.extend(reversed(child.included_documents or []))
    return keys


def is_row_visible(state: CollapseState, key: Any) -> bool:
    return key not in state.collapsed_rows


def visible_rows(
    rows: list[FlatRow],
    state: CollapseState,
    key_property: str = DEFAULT_KEY_PROPERTY,
) -> list[FlatRow]:
    """The visible subsequence of rows: those whose key is not hidden."""
    return [row for row in rows if is_row_visible(state, node_key(row, key_property))]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _depth(row: FlatRow, position: int) -> int:
    indent = getattr(row, "indent", None)
    if not isinstance(indent, list | tuple):
        raise MalformedTree(f"row at position {position} has no indent vector")
    return len(indent)


def _expand(state: CollapseState, row: FlatRow, key: Any, key_property: str) -> CollapseState:
    children = [node_key(child, key_property) for child in row.included_documents or []]

    nxt = state.copy()
    nxt.collapsed_parent_rows.discard(key)
    nxt.collapsed_array_map = [
        snap for snap in nxt.collapsed_array_map if node_key(snap, key_property) != key
    ]
    nxt.collapsed_rows.difference_update(children)
    return nxt


def _collapse(state: CollapseState, row: FlatRow, key: Any, key_property: str) -> CollapseState:
    if not row.has_children:
        raise InconsistentCollapseState(f"row {key!r} has no children to collapse")

    if key in state.collapsed_parent_rows:
        return state.copy()

    # Resolve every key first so a malformed descendant leaves nothing half-done
    hidden = descendant_keys(row, key_property)

    nxt = state.copy()
    nxt.collapsed_parent_rows.add(key)
    nxt.collapsed_array_map.append(row.snapshot())
    nxt.collapsed_rows.update(hidden)
    return nxt
