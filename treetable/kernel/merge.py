"""
treetable Kernel - Row Merge

Pure function: (existing rows, partial refresh) -> MergeResult

Three paths:
  nothing incoming, no ids       -> identity (same list object back)
  empty incoming + changed ids   -> deletion set
  non-empty incoming             -> replace rows in place by id

The replace path never inserts, deletes or reorders rows, and applying the
same refresh twice gives the same rows as applying it once. Collapse state
is not part of a merge.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Iterable

from treetable.kernel.formatter import DATE_WIDGET_TYPES, format_fields, merge_column_info
from treetable.kernel.types import DEFAULT_KEY_PROPERTY, FlatRow, MergeResult, Node, node_key

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def merge_rows(
    existing_rows: list[FlatRow],
    incoming_rows: list[Node] | None = None,
    changed_ids: Iterable[Any] | None = None,
    column_info: dict[str, dict[str, Any]] | None = None,
    *,
    key_property: str = DEFAULT_KEY_PROPERTY,
    date_widget_types: Iterable[str] = DATE_WIDGET_TYPES,
) -> MergeResult:
    """
    Reconcile a partial refresh into an existing flat list.

    incoming_rows may itself be a tree: nested includedDocuments are indexed
    too. A row that is not in incoming_rows and carries no replaced
    descendant is kept as the same object; one that carries a replaced
    descendant gets its children rebuilt. Removal only happens through the
    deletion path.

    Raises MalformedTree, before building anything, if an incoming node
    lacks key_property.
    """
    if incoming_rows is None and changed_ids is None:
        return MergeResult(rows=existing_rows, removed_rows=[])

    if not incoming_rows:
        return remove_rows(existing_rows, changed_ids or [])

    index = index_rows(incoming_rows)
    for node in index.values():
        node_key(node, key_property)
    widget_types = tuple(date_widget_types)

    rows: list[FlatRow] = []
    for row in existing_rows:
        entry = index.get(row.id)
        if entry is None:
            if _contains_indexed(row.included_documents, index):
                row = replace(
                    row,
                    indent=list(row.indent),
                    included_documents=_map_children(row.included_documents, index, column_info, widget_types),
                )
            rows.append(row)
            continue

        children = entry.included_documents
        if children is None:
            children = row.included_documents
        rows.append(
            FlatRow(
                id=entry.id,
                fields_by_name=_augment(entry, column_info, widget_types),
                indent=list(row.indent),
                last_child=row.last_child,
                included_documents=_map_children(children, index, column_info, widget_types),
                attributes=dict(entry.attributes),
            )
        )

    return MergeResult(rows=rows, removed_rows=[])


def remove_rows(rows: list[FlatRow], changed_ids: Iterable[Any]) -> MergeResult:
    """
    Drop every row whose id is in changed_ids.
    Ids that are not present are ignored. removed_rows lists the ids actually
    removed, in the order they were given, each once.
    """
    present = {row.id for row in rows}
    removed: list[Any] = []
    for row_id in changed_ids:
        if row_id in present and row_id not in removed:
            removed.append(row_id)

    if not removed:
        return MergeResult(rows=list(rows), removed_rows=[])

    drop = set(removed)
    return MergeResult(
        rows=[row for row in rows if row.id not in drop],
        removed_rows=removed,
    )


def index_rows(nodes: list[Node]) -> dict[Any, Node]:
    """id -> Node over a forest, nested nodes included. Last occurrence wins."""
    index: dict[Any, Node] = {}
    stack = list(reversed(nodes))
    while stack:
        node = stack.pop()
        index[node.id] = node
        stack.extend(reversed(node.included_documents or []))
    return index


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _augment(
    node: Node,
    column_info: dict[str, dict[str, Any]] | None,
    date_widget_types: tuple[str, ...],
) -> dict[str, dict[str, Any]]:
    return format_fields(merge_column_info(node.fields_by_name, column_info), date_widget_types)


def _contains_indexed(children: list[Node] | None, index: dict[Any, Node]) -> bool:
    stack = list(children or [])
    while stack:
        node = stack.pop()
        if node.id in index:
            return True
        stack.extend(node.included_documents or [])
    return False


def _map_children(
    children: list[Node] | None,
    index: dict[Any, Node],
    column_info: dict[str, dict[str, Any]] | None,
    date_widget_types: tuple[str, ...],
) -> list[Node] | None:
    """
    Rebuild a child list with every indexed node replaced, at any depth.
    Iterative; the same replacement rule as for top-level rows applies.
    """
    if children is None:
        return None

    result: list[Node] = []
    # (source children, target list)
    stack: list[tuple[list[Node], list[Node]]] = [(children, result)]
    while stack:
        sources, target = stack.pop()
        for child in sources:
            entry = index.get(child.id)
            if entry is None:
                source = child
                fields = child.fields_by_name
            else:
                source = entry
                fields = _augment(entry, column_info, date_widget_types)

            grandchildren = source.included_documents
            if entry is not None and grandchildren is None:
                grandchildren = child.included_documents

            copy = Node(id=source.id, fields_by_name=fields, attributes=dict(source.attributes))
            target.append(copy)
            if grandchildren is not None:
                copy.included_documents = []
                stack.append((grandchildren, copy.included_documents))

    return result
