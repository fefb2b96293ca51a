"""
treetable Collapse -- Toggle Tests

Covers:
  - Expand removes only direct children from collapsed_rows
  - Expanding a row hidden under a collapsed ancestor reveals its children
  - Collapse hides the full subtree and records a snapshot
  - Collapse/expand round trip restores collapsed_parent_rows
  - Grandchildren hidden before a collapse stay hidden after the expand
  - Tables keyed by rowId instead of id
  - Unknown rows, leaves and non-collapsible tables are rejected
  - The table's own state is never modified
"""

import copy

import pytest

from treetable.kernel.collapse import build, descendant_keys, toggle, visible_rows
from treetable.kernel.normalizer import flatten, parse_tree
from treetable.kernel.types import (
    InconsistentCollapseState,
    Table,
    UnknownRowReference,
)

# ============================================================================
# Helpers
# ============================================================================


def make_table(raw, expanded_depth=0, collapsible=True):
    rows = flatten(parse_tree(raw))
    return Table(
        id="tbl",
        rows=rows,
        collapsible=collapsible,
        expanded_depth=expanded_depth,
        collapse=build(rows, expanded_depth),
    )


def with_state(table, state):
    return Table(
        id=table.id,
        rows=table.rows,
        key_property=table.key_property,
        collapsible=table.collapsible,
        expanded_depth=table.expanded_depth,
        collapse=state,
    )


# ============================================================================
# 1. Expand
# ============================================================================


class TestExpand:
    def test_scenario_expand_root(self, scenario_tree):
        table = make_table(scenario_tree)
        state = toggle(table, 1, currently_collapsed=True)
        assert state.collapsed_parent_rows == set()
        assert state.collapsed_rows == {4}
        assert state.collapsed_array_map == []

    def test_grandchild_stays_hidden(self, scenario_tree):
        table = make_table(scenario_tree)
        state = toggle(table, 1, currently_collapsed=True)
        assert [row.id for row in visible_rows(table.rows, state)] == [1, 2, 3]

    def test_expand_hidden_child_reveals_next_level(self, scenario_tree):
        table = make_table(scenario_tree)
        state = toggle(table, 1, currently_collapsed=True)
        state = toggle(with_state(table, state), 3, currently_collapsed=True)
        assert state.collapsed_rows == set()
        assert [row.id for row in visible_rows(table.rows, state)] == [1, 2, 3, 4]

    def test_expand_drops_only_its_snapshot(self, deep_tree):
        table = make_table(deep_tree, expanded_depth=1)
        state = toggle(table, 2, currently_collapsed=True)
        assert [snap.id for snap in state.collapsed_array_map] == [3]
        assert state.collapsed_parent_rows == {3}
        assert state.collapsed_rows == {6, 4}

    def test_expand_one_level_only(self, deep_tree):
        table = make_table(deep_tree, expanded_depth=0)
        state = toggle(table, 1, currently_collapsed=True)
        # 2 and 3 visible, everything below them still hidden
        assert state.collapsed_rows == {5, 6, 4}


# ============================================================================
# 2. Collapse
# ============================================================================


class TestCollapse:
    def test_collapse_hides_full_subtree(self, deep_tree):
        table = make_table(deep_tree, expanded_depth=10)
        state = toggle(table, 1, currently_collapsed=False)
        assert state.collapsed_parent_rows == {1}
        assert state.collapsed_rows == {2, 5, 6, 3, 4}
        assert [snap.id for snap in state.collapsed_array_map] == [1]

    def test_collapse_snapshot_has_subtree(self, deep_tree):
        table = make_table(deep_tree, expanded_depth=10)
        state = toggle(table, 1, currently_collapsed=False)
        (snap,) = state.collapsed_array_map
        assert descendant_keys(snap) == [2, 5, 6, 3, 4]

    def test_collapse_leaves_siblings_alone(self, deep_tree):
        table = make_table(deep_tree, expanded_depth=10)
        state = toggle(table, 2, currently_collapsed=False)
        assert state.collapsed_rows == {5, 6}
        assert [row.id for row in visible_rows(table.rows, state)] == [1, 2, 3, 4, 7]

    def test_collapse_already_collapsed_is_noop(self, scenario_tree):
        table = make_table(scenario_tree)
        state = toggle(table, 1, currently_collapsed=False)
        assert state == table.collapse
        assert state is not table.collapse

    def test_collapse_leaf_rejected(self, scenario_tree):
        table = make_table(scenario_tree, expanded_depth=10)
        with pytest.raises(InconsistentCollapseState):
            toggle(table, 2, currently_collapsed=False)


# ============================================================================
# 3. Round trip
# ============================================================================


class TestRoundTrip:
    def test_parent_rows_restored(self, deep_tree):
        table = make_table(deep_tree, expanded_depth=2)
        before = set(table.collapsed_parent_rows)
        assert before == {5}

        collapsed = toggle(table, 1, currently_collapsed=False)
        expanded = toggle(with_state(table, collapsed), 1, currently_collapsed=True)
        assert expanded.collapsed_parent_rows == before

    def test_collapse_covers_subtree_then_expand_reveals_children(self, deep_tree):
        table = make_table(deep_tree, expanded_depth=2)
        hidden_before = set(table.collapsed_rows)
        assert hidden_before == {6}

        collapsed = toggle(table, 1, currently_collapsed=False)
        assert set(descendant_keys(table.rows[0])) <= collapsed.collapsed_rows

        expanded = toggle(with_state(table, collapsed), 1, currently_collapsed=True)
        assert 2 not in expanded.collapsed_rows
        assert 3 not in expanded.collapsed_rows
        assert hidden_before <= expanded.collapsed_rows


# ============================================================================
# 4. Key property
# ============================================================================


class TestToggleRowIdKey:
    def make_table(self, expanded_depth=0):
        raw = [
            {
                "id": 1,
                "rowId": "r1",
                "includedDocuments": [
                    {"id": 2, "rowId": "r2"},
                    {"id": 3, "rowId": "r3", "includedDocuments": [{"id": 4, "rowId": "r4"}]},
                ],
            }
        ]
        rows = flatten(parse_tree(raw))
        return Table(
            id="tbl",
            rows=rows,
            key_property="rowId",
            collapsible=True,
            expanded_depth=expanded_depth,
            collapse=build(rows, expanded_depth, key_property="rowId"),
        )

    def test_expand_by_row_id(self):
        table = self.make_table()
        state = toggle(table, "r1", currently_collapsed=True)
        assert state.collapsed_parent_rows == set()
        assert state.collapsed_rows == {"r4"}
        assert state.collapsed_array_map == []

    def test_collapse_by_row_id(self):
        table = self.make_table(expanded_depth=10)
        state = toggle(table, "r3", currently_collapsed=False)
        assert state.collapsed_parent_rows == {"r3"}
        assert state.collapsed_rows == {"r4"}
        assert [row.id for row in visible_rows(table.rows, state, "rowId")] == [1, 2, 3]

    def test_plain_id_is_unknown(self):
        table = self.make_table()
        with pytest.raises(UnknownRowReference):
            toggle(table, 1, currently_collapsed=True)

    def test_descendant_keys_by_row_id(self):
        table = self.make_table()
        assert descendant_keys(table.rows[0], "rowId") == ["r2", "r3", "r4"]

    def test_round_trip_by_row_id(self):
        table = self.make_table(expanded_depth=10)
        collapsed = toggle(table, "r1", currently_collapsed=False)
        assert collapsed.collapsed_rows == {"r2", "r3", "r4"}
        expanded = toggle(with_state(table, collapsed), "r1", currently_collapsed=True)
        assert expanded.collapsed_parent_rows == set()
        assert expanded.collapsed_rows == {"r4"}


# ============================================================================
# 5. Rejections
# ============================================================================


class TestToggleRejections:
    def test_unknown_row(self, scenario_tree):
        table = make_table(scenario_tree)
        with pytest.raises(UnknownRowReference):
            toggle(table, 99, currently_collapsed=True)

    def test_unknown_row_leaves_state_alone(self, scenario_tree):
        table = make_table(scenario_tree)
        before = copy.deepcopy(table.collapse)
        with pytest.raises(UnknownRowReference):
            toggle(table, 99, currently_collapsed=False)
        assert table.collapse == before

    def test_not_collapsible(self, scenario_tree):
        table = make_table(scenario_tree, collapsible=False)
        with pytest.raises(InconsistentCollapseState):
            toggle(table, 1, currently_collapsed=True)

    def test_table_state_not_modified(self, scenario_tree):
        table = make_table(scenario_tree)
        before = copy.deepcopy(table.collapse)
        toggle(table, 1, currently_collapsed=True)
        assert table.collapse == before
