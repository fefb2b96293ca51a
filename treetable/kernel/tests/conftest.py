"""
Kernel test configuration.

Shared raw record builders. Every test gets fresh dicts, so a test that
checks non-mutation cannot be fooled by another test's changes.
"""

import pytest


def record(id, *children, **fields):
    """Raw record in the external shape; keyword args become text fields."""
    d = {
        "id": id,
        "fieldsByName": {
            name: {"field": name, "value": value, "widgetType": "Text"}
            for name, value in fields.items()
        },
    }
    if children:
        d["includedDocuments"] = list(children)
    return d


@pytest.fixture
def scenario_tree():
    """
    1
    ├── 2
    └── 3
        └── 4
    """
    return [record(1, record(2), record(3, record(4)))]


@pytest.fixture
def deep_tree():
    """
    1
    ├── 2
    │   └── 5
    │       └── 6
    └── 3
        └── 4
    7
    """
    return [
        record(1, record(2, record(5, record(6))), record(3, record(4))),
        record(7),
    ]
