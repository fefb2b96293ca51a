"""
Tests for treetable/services/table_service.py
"""

from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from treetable.config import Settings
from treetable.kernel.types import TableNotFound, UnknownRowReference
from treetable.models.table import TableOptions
from treetable.services.table_service import TableService, configure_logging


def tree():
    return [
        {
            "id": 1,
            "fieldsByName": {"created": {"value": "2024-03-01", "widgetType": "Date"}},
            "includedDocuments": [
                {"id": 2, "fieldsByName": {}},
                {"id": 3, "fieldsByName": {}, "includedDocuments": [{"id": 4, "fieldsByName": {}}]},
            ],
        }
    ]


def make_settings(**overrides):
    s = Settings()
    for name, value in overrides.items():
        setattr(s, name, value)
    return s


class TestOptions:
    def test_settings_defaults_used(self):
        service = TableService(settings=make_settings(DEFAULT_EXPANDED_DEPTH=1))
        table = service.submit_initial_tree("t", tree())
        assert table.expanded_depth == 1
        assert table.collapsed_parent_rows == {3}

    def test_camel_case_options(self):
        service = TableService()
        table = service.submit_initial_tree("t", tree(), {"expandedDepth": 1, "keyProperty": "id"})
        assert table.collapsed_parent_rows == {3}

    def test_explicit_option_beats_settings(self):
        service = TableService(settings=make_settings(DEFAULT_COLLAPSIBLE=True))
        table = service.submit_initial_tree("t", tree(), {"collapsible": False})
        assert not table.collapsible
        assert table.collapsed_rows == set()

    def test_options_model_accepted(self):
        service = TableService()
        table = service.submit_initial_tree("t", tree(), TableOptions(expanded_depth=5))
        assert table.collapsed_parent_rows == set()

    def test_negative_depth_rejected(self):
        service = TableService()
        with pytest.raises(ValidationError):
            service.submit_initial_tree("t", tree(), {"expanded_depth": -1})

    def test_unknown_option_rejected(self):
        service = TableService()
        with pytest.raises(ValidationError):
            service.submit_initial_tree("t", tree(), {"depth": 1})

    def test_empty_table_id_rejected(self):
        service = TableService()
        with pytest.raises(ValidationError):
            service.submit_initial_tree("", tree())


class TestInboundInterface:
    def test_initial_tree_formats_dates(self):
        service = TableService()
        table = service.submit_initial_tree("t", tree())
        assert str(table.rows[0].fields_by_name["created"]["value"]) == "2024-03-01"

    def test_toggle_then_view(self):
        service = TableService()
        service.submit_initial_tree("t", tree(), {"expanded_depth": 0})
        state = service.submit_toggle("t", 1, currently_collapsed=True)
        assert state.collapsed_rows == {4}
        assert [row.id for row in service.visible_rows("t")] == [1, 2, 3]
        assert service.view("t")["collapsedRows"] == [4]

    def test_partial_update(self):
        service = TableService()
        service.submit_initial_tree("t", tree())
        result = service.submit_partial_update(
            "t",
            [{"id": 2, "fieldsByName": {"qty": {"value": 7}}}],
            None,
            {"qty": {"widgetType": "Integer"}},
        )
        assert result.rows[1].fields_by_name["qty"] == {"value": 7, "widgetType": "Integer"}

    def test_partial_delete(self):
        service = TableService()
        service.submit_initial_tree("t", tree())
        result = service.submit_partial_update("t", [], [4])
        assert result.removed_rows == [4]

    def test_create_and_close(self):
        service = TableService()
        table = service.create_table("t", {"keyProperty": "rowId"})
        assert table.key_property == "rowId"
        service.close_table("t")
        with pytest.raises(TableNotFound):
            service.view("t")


class TestLogging:
    def test_rejection_logged_and_reraised(self, caplog):
        service = TableService()
        service.submit_initial_tree("t", tree())
        with caplog.at_level(logging.WARNING, logger="treetable"):
            with pytest.raises(UnknownRowReference):
                service.submit_toggle("t", 99, currently_collapsed=True)
        assert "toggle of 99 rejected" in caplog.text

    def test_load_logged(self, caplog):
        service = TableService()
        with caplog.at_level(logging.INFO, logger="treetable"):
            service.submit_initial_tree("t", tree())
        assert "loaded 4 rows into t" in caplog.text

    def test_configure_logging(self):
        configure_logging("DEBUG")
        assert logging.getLogger("treetable").level == logging.DEBUG
        configure_logging("WARNING")
        assert logging.getLogger("treetable").level == logging.WARNING
        configure_logging("NOTSET")
