"""
Pydantic models for treetable.

Inbound request shapes only. No imports from the kernel or services.
"""

from treetable.models.table import (
    InitialTreeRequest,
    PartialUpdateRequest,
    TableOptions,
    ToggleRequest,
)

__all__ = [
    "TableOptions",
    "InitialTreeRequest",
    "PartialUpdateRequest",
    "ToggleRequest",
]
