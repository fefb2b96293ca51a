"""
treetable Kernel - the pure engine.

Components:
  normalizer  - nested records -> flat, indentable display rows
  collapse    - initial collapse state (build) and expand/collapse (toggle)
  merge       - partial refresh reconciliation and row removal
  formatter   - date/time field normalization, column hints
  assembly    - per-table lifecycle over storage, all-or-nothing commits
"""

from treetable.kernel.assembly import MemoryStorage, TableAssembly
from treetable.kernel.collapse import build, toggle, visible_rows
from treetable.kernel.merge import merge_rows, remove_rows
from treetable.kernel.normalizer import count_nodes, flatten, parse_tree
from treetable.kernel.types import (
    CollapseState,
    FlatRow,
    InconsistentCollapseState,
    MalformedTree,
    MergeResult,
    Node,
    Table,
    TableError,
    TableNotFound,
    UnknownRowReference,
)

__all__ = [
    "flatten",
    "parse_tree",
    "count_nodes",
    "build",
    "toggle",
    "visible_rows",
    "merge_rows",
    "remove_rows",
    "TableAssembly",
    "MemoryStorage",
    "Node",
    "FlatRow",
    "CollapseState",
    "Table",
    "MergeResult",
    "TableError",
    "MalformedTree",
    "UnknownRowReference",
    "InconsistentCollapseState",
    "TableNotFound",
]
