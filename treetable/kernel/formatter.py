"""
treetable Kernel - Field Formatter

Normalizes date/time field values into Python temporal objects and merges
column hints (widget types) into row fields. Every other field passes
through untouched.

Pure functions: inputs are never modified, new mappings are returned.
"""

from __future__ import annotations

import re
from datetime import UTC, date, datetime, time
from typing import Any, Iterable

# Widget types whose values are temporal
DATE_WIDGET_TYPES: tuple[str, ...] = (
    "Date",
    "DateTime",
    "ZonedDateTime",
    "Time",
    "Timestamp",
)

TIME_PATTERN = re.compile(r"^\d{1,2}:\d{2}(:\d{2})?$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_temporal(value: Any, widget_type: str | None = None) -> Any:
    """
    Convert one field value to date / time / datetime.

    - already temporal -> unchanged (so formatting twice is a no-op)
    - "HH:MM" / "HH:MM:SS" -> time
    - "YYYY-MM-DD" for a Date widget -> date
    - any other ISO 8601 string -> datetime ("Z" means UTC)
    - int / float -> epoch milliseconds, UTC datetime

    Strings that do not parse, and epoch numbers out of range, are returned
    as-is.
    """
    if isinstance(value, datetime | date | time):
        return value

    if isinstance(value, bool):
        return value

    if isinstance(value, int | float):
        try:
            return datetime.fromtimestamp(value / 1000, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return value

    if not isinstance(value, str):
        return value

    text = value.strip()
    try:
        if TIME_PATTERN.match(text):
            hour, _, rest = text.partition(":")
            return time.fromisoformat(f"{int(hour):02d}:{rest}")

        if widget_type == "Date" and DATE_PATTERN.match(text):
            return date.fromisoformat(text)

        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return value

    if widget_type == "Date" and parsed.tzinfo is None and parsed.time() == time(0, 0):
        return parsed.date()
    return parsed


def format_fields(
    fields_by_name: dict[str, dict[str, Any]],
    date_widget_types: Iterable[str] = DATE_WIDGET_TYPES,
) -> dict[str, dict[str, Any]]:
    """
    Return a new fieldsByName mapping with temporal values parsed.
    Descriptors are copied, the input mapping is left as it was.
    """
    temporal = set(date_widget_types)
    result: dict[str, dict[str, Any]] = {}

    for name, descriptor in fields_by_name.items():
        if not isinstance(descriptor, dict):
            result[name] = descriptor
            continue

        widget_type = descriptor.get("widgetType")
        value = descriptor.get("value")
        if widget_type in temporal and value not in (None, ""):
            result[name] = {**descriptor, "value": parse_temporal(value, widget_type)}
        else:
            result[name] = dict(descriptor)

    return result


def merge_column_info(
    fields_by_name: dict[str, dict[str, Any]],
    column_info: dict[str, dict[str, Any]] | None,
) -> dict[str, dict[str, Any]]:
    """
    Copy widget type hints from the column info of the same field name.
    Fields without column info are kept as they are.
    """
    if not column_info:
        return dict(fields_by_name)

    result: dict[str, dict[str, Any]] = {}
    for name, descriptor in fields_by_name.items():
        info = column_info.get(name)
        if isinstance(descriptor, dict) and info and info.get("widgetType"):
            result[name] = {**descriptor, "widgetType": info["widgetType"]}
        else:
            result[name] = descriptor

    return result
