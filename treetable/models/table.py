"""Request models for the inbound table interface."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, Field


class TableOptions(BaseModel):
    """Per-table settings that come with the layout."""

    model_config = {"extra": "forbid"}

    expanded_depth: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("expanded_depth", "expandedDepth"),
    )
    collapsible: bool = True
    key_property: str = Field(
        default="id",
        min_length=1,
        validation_alias=AliasChoices("key_property", "keyProperty"),
    )


class InitialTreeRequest(BaseModel):
    """Full (re)load of a table: the raw record tree plus its options."""

    model_config = {"extra": "forbid"}

    table_id: str = Field(min_length=1, validation_alias=AliasChoices("table_id", "tableId"))
    raw_tree: list[dict[str, Any]] = Field(
        default_factory=list,
        validation_alias=AliasChoices("raw_tree", "rawTree", "result"),
    )
    options: TableOptions = Field(default_factory=TableOptions)


class PartialUpdateRequest(BaseModel):
    """Partial refresh: changed rows (possibly nested) or a deletion set."""

    model_config = {"extra": "forbid"}

    table_id: str = Field(min_length=1, validation_alias=AliasChoices("table_id", "tableId"))
    changed_rows: list[dict[str, Any]] | None = Field(
        default=None,
        validation_alias=AliasChoices("changed_rows", "changedRows"),
    )
    changed_ids: list[Any] | None = Field(
        default=None,
        validation_alias=AliasChoices("changed_ids", "changedIds"),
    )
    column_info: dict[str, dict[str, Any]] | None = Field(
        default=None,
        validation_alias=AliasChoices("column_info", "columnInfo", "columnsByFieldName"),
    )


class ToggleRequest(BaseModel):
    """One user expand/collapse action."""

    model_config = {"extra": "forbid"}

    table_id: str = Field(min_length=1, validation_alias=AliasChoices("table_id", "tableId"))
    row_id: str | int = Field(validation_alias=AliasChoices("row_id", "rowId"))
    currently_collapsed: bool = Field(
        validation_alias=AliasChoices("currently_collapsed", "currentlyCollapsed", "collapse"),
    )
