"""
treetable Kernel - Shared Types

Data classes used across the normalizer, collapse engine, merge engine and
assembly. These are the contracts that bind the kernel together.

External record shape (opaque, owned by the data-fetch layer):

    {
        "id": ...,
        "fieldsByName": {"<field>": {"value": ..., "widgetType": ..., ...}},
        "includedDocuments": [ <record>, ... ],   # absent => leaf
        ...                                       # any other keys, e.g. rowId
    }
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_KEY_PROPERTY = "id"

# Raw record keys the Node model maps to its own attributes
_ID_KEY = "id"
_FIELDS_KEY = "fieldsByName"
_CHILDREN_KEY = "includedDocuments"
_NODE_KEYS = (_ID_KEY, _FIELDS_KEY, _CHILDREN_KEY)

# Keys only FlatRow adds
_FLAT_KEYS = ("indent", "lastChild")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class TableError(Exception):
    """Base class for every error the kernel raises."""


class MalformedTree(TableError):
    """A node or row is structurally invalid (missing id, key field, indent...)."""


class UnknownRowReference(TableError):
    """An operation referenced a row id absent from the current table."""


class InconsistentCollapseState(TableError):
    """The requested operation would break a collapse-state invariant."""


class TableNotFound(TableError):
    """Table does not exist in storage."""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class Node:
    """
    A single hierarchical record.

    included_documents is None for a leaf. An empty list is kept as-is:
    the record declared a children list, it just happens to be empty.
    """

    id: Any
    fields_by_name: dict[str, dict[str, Any]] = field(default_factory=dict)
    included_documents: list[Node] | None = None
    attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def has_children(self) -> bool:
        return bool(self.included_documents)

    def to_dict(self) -> dict[str, Any]:
        root = self._record()
        stack = [(self, root)]
        while stack:
            node, out = stack.pop()
            if node.included_documents is None:
                continue
            out[_CHILDREN_KEY] = []
            for child in node.included_documents:
                child_out = child._record()
                out[_CHILDREN_KEY].append(child_out)
                stack.append((child, child_out))
        return root

    def _record(self) -> dict[str, Any]:
        """One record without its children; shares nothing mutable with self."""
        d: dict[str, Any] = copy.deepcopy(self.attributes)
        d[_ID_KEY] = self.id
        d[_FIELDS_KEY] = copy.deepcopy(self.fields_by_name)
        return d

    @classmethod
    def from_dict(cls, d: Any) -> Node:
        """
        Build a Node (and its whole subtree) from a raw record.
        The raw record is only read, never modified.
        Iterative, so deeply nested documents do not hit the recursion limit.
        """
        root = cls._from_record(d)
        stack = [(root, d)]
        while stack:
            node, raw = stack.pop()
            children = raw.get(_CHILDREN_KEY)
            if children is None:
                continue
            node.included_documents = []
            for raw_child in children:
                child = cls._from_record(raw_child)
                node.included_documents.append(child)
                stack.append((child, raw_child))
        return root

    @classmethod
    def _from_record(cls, d: Any) -> Node:
        """One record without its children; validates the shape."""
        if not isinstance(d, dict):
            raise MalformedTree(f"node must be an object, got {type(d).__name__}")
        if d.get(_ID_KEY) is None:
            raise MalformedTree(f"node is missing '{_ID_KEY}': {_short(d)}")

        fields_by_name = d.get(_FIELDS_KEY) or {}
        if not isinstance(fields_by_name, dict):
            raise MalformedTree(f"node {d[_ID_KEY]!r}: '{_FIELDS_KEY}' must be an object")

        children = d.get(_CHILDREN_KEY)
        if children is not None and not isinstance(children, list):
            raise MalformedTree(f"node {d[_ID_KEY]!r}: '{_CHILDREN_KEY}' must be a list")

        return cls(
            id=d[_ID_KEY],
            fields_by_name=copy.deepcopy(fields_by_name),
            attributes={k: copy.deepcopy(v) for k, v in d.items() if k not in _NODE_KEYS},
        )


@dataclass
class FlatRow:
    """
    A Node projected into the flat display list.

    indent has one entry per ancestor level. Entry i is True when the
    ancestor line at that level continues below this row (the node at
    depth i + 1 on the path has a further sibling), False when it ends.
    The last entry therefore describes the row itself.
    """

    id: Any
    fields_by_name: dict[str, dict[str, Any]]
    indent: list[bool]
    last_child: bool = False
    included_documents: list[Node] | None = None
    attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def has_children(self) -> bool:
        return bool(self.included_documents)

    @property
    def depth(self) -> int:
        return len(self.indent)

    def snapshot(self) -> Node:
        """The row as a Node, children included (for collapsedArrayMap)."""
        return Node(
            id=self.id,
            fields_by_name=self.fields_by_name,
            included_documents=self.included_documents,
            attributes=self.attributes,
        )

    def to_dict(self) -> dict[str, Any]:
        d = self.snapshot().to_dict()
        d["indent"] = list(self.indent)
        d["lastChild"] = self.last_child
        return d

    @classmethod
    def from_dict(cls, d: Any) -> FlatRow:
        """Rebuild a FlatRow from its projection (the inverse of to_dict)."""
        if not isinstance(d, dict) or "indent" not in d:
            raise MalformedTree(f"row is missing 'indent': {_short(d)}")
        node = Node.from_dict({k: v for k, v in d.items() if k not in _FLAT_KEYS})
        return cls(
            id=node.id,
            fields_by_name=node.fields_by_name,
            indent=list(d["indent"]),
            last_child=bool(d.get("lastChild", False)),
            included_documents=node.included_documents,
            attributes=node.attributes,
        )


@dataclass
class CollapseState:
    """
    The three structures that jointly describe expand/collapse state.

    collapsed_parent_rows - keys of parents whose children are hidden
    collapsed_rows        - keys of rows currently hidden
    collapsed_array_map   - snapshots of the collapsed parents, in collapse order
    """

    collapsed_parent_rows: set[Any] = field(default_factory=set)
    collapsed_rows: set[Any] = field(default_factory=set)
    collapsed_array_map: list[Node] = field(default_factory=list)

    @classmethod
    def empty(cls) -> CollapseState:
        return cls()

    def copy(self) -> CollapseState:
        return CollapseState(
            collapsed_parent_rows=set(self.collapsed_parent_rows),
            collapsed_rows=set(self.collapsed_rows),
            collapsed_array_map=list(self.collapsed_array_map),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "collapsedParentRows": _ordered(self.collapsed_parent_rows),
            "collapsedRows": _ordered(self.collapsed_rows),
            "collapsedArrayMap": [node.to_dict() for node in self.collapsed_array_map],
        }


@dataclass
class Table:
    """A table's full state: its flat rows plus collapse state."""

    id: str
    rows: list[FlatRow] = field(default_factory=list)
    key_property: str = DEFAULT_KEY_PROPERTY
    collapsible: bool = False
    expanded_depth: int = 0
    collapse: CollapseState = field(default_factory=CollapseState)

    @property
    def collapsed_parent_rows(self) -> set[Any]:
        return self.collapse.collapsed_parent_rows

    @property
    def collapsed_rows(self) -> set[Any]:
        return self.collapse.collapsed_rows

    @property
    def collapsed_array_map(self) -> list[Node]:
        return self.collapse.collapsed_array_map

    def visible_rows(self) -> list[FlatRow]:
        hidden = self.collapse.collapsed_rows
        return [row for row in self.rows if node_key(row, self.key_property) not in hidden]

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "rows": [row.to_dict() for row in self.rows],
            "keyProperty": self.key_property,
            "collapsible": self.collapsible,
            "expandedDepth": self.expanded_depth,
        }
        d.update(self.collapse.to_dict())
        return d


@dataclass
class MergeResult:
    """Result of merging a partial refresh into a table's rows."""

    rows: list[FlatRow]
    removed_rows: list[Any] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def node_key(node: Node | FlatRow, key_property: str = DEFAULT_KEY_PROPERTY) -> Any:
    """
    Identity of a node/row within a table.

    "id" reads the node id; any other key property (e.g. "rowId") is looked
    up among the record's extra attributes.
    """
    if key_property == _ID_KEY:
        return node.id
    value = node.attributes.get(key_property)
    if value is None:
        raise MalformedTree(f"node {node.id!r} is missing key property '{key_property}'")
    return value


def _ordered(keys: set[Any]) -> list[Any]:
    """Stable list form of a key set (keys may mix ints and strings)."""
    return sorted(keys, key=lambda k: (type(k).__name__, str(k)))


def _short(value: Any, limit: int = 120) -> str:
    text = repr(value)
    return text if len(text) <= limit else text[:limit] + "..."
