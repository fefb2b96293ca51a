"""
treetable Kernel - Tree Normalizer

Pure function: tree of Nodes -> flat list of FlatRows.

Depth-first, pre-order, source sibling order. Each row carries the indent
vector a renderer needs to draw tree connector lines, plus a lastChild flag.

The input tree is never modified. Every FlatRow, and every child Node it
carries, is newly allocated with formatted fields, so the caller's tree
stays reusable.
"""

from __future__ import annotations

from typing import Any, Iterable

from treetable.kernel.formatter import DATE_WIDGET_TYPES, format_fields
from treetable.kernel.types import FlatRow, MalformedTree, Node

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_tree(raw_tree: Any) -> list[Node]:
    """Convert raw records (the external contract) into Nodes."""
    if raw_tree is None:
        return []
    if not isinstance(raw_tree, list):
        raise MalformedTree(f"tree must be a list of nodes, got {type(raw_tree).__name__}")
    return [Node.from_dict(record) for record in raw_tree]


def flatten(
    tree: list[Node],
    *,
    date_widget_types: Iterable[str] = DATE_WIDGET_TYPES,
) -> list[FlatRow]:
    """
    Flatten a forest into display rows.

    indent(child) = indent(parent) + [child has a further sibling below]
    Root rows have indent == [].
    lastChild marks the last element of every sibling list (roots included).

    Raises MalformedTree on duplicate ids anywhere in the forest.
    """
    widget_types = tuple(date_widget_types)
    formatted = [_formatted_copy(node, widget_types) for node in tree]

    rows: list[FlatRow] = []
    seen: set[Any] = set()

    # (node, indent, last_child); pushed in reverse so pops come out in order
    stack: list[tuple[Node, list[bool], bool]] = [
        (node, [], i == len(formatted) - 1) for i, node in reversed(list(enumerate(formatted)))
    ]
    while stack:
        node, indent, last_child = stack.pop()
        if node.id in seen:
            raise MalformedTree(f"duplicate id {node.id!r} in tree")
        seen.add(node.id)

        rows.append(
            FlatRow(
                id=node.id,
                fields_by_name=node.fields_by_name,
                indent=indent,
                last_child=last_child,
                included_documents=node.included_documents,
                attributes=node.attributes,
            )
        )

        children = node.included_documents or []
        for i in range(len(children) - 1, -1, -1):
            is_last = i == len(children) - 1
            stack.append((children[i], indent + [not is_last], is_last))

    return rows


def count_nodes(tree: list[Node]) -> int:
    """Total number of nodes in a forest, descendants included."""
    total = 0
    stack = list(tree)
    while stack:
        node = stack.pop()
        total += 1
        stack.extend(node.included_documents or [])
    return total


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _formatted_copy(node: Node, date_widget_types: tuple[str, ...]) -> Node:
    """New Node tree with formatted fields; shares nothing mutable with the input."""
    root = _copy_one(node, date_widget_types)
    stack = [(node, root)]
    while stack:
        source, target = stack.pop()
        if source.included_documents is None:
            continue
        target.included_documents = []
        for child in source.included_documents:
            child_copy = _copy_one(child, date_widget_types)
            target.included_documents.append(child_copy)
            stack.append((child, child_copy))
    return root


def _copy_one(node: Node, date_widget_types: tuple[str, ...]) -> Node:
    return Node(
        id=node.id,
        fields_by_name=format_fields(node.fields_by_name, date_widget_types),
        attributes=dict(node.attributes),
    )
