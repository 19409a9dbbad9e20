# core/types/status.py
"""
Core enums shared across the application.
This module should not import from other application modules.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ExecutionStatus(str, Enum):
    """Outcome of one processing attempt for a scheduled item."""

    SUCCESS = 'success'  # A todo item was created for the scheduled item.
    ERROR = 'error'  # Todo creation failed; the item stays due.
    SKIPPED = 'skipped'  # The item was looked at but intentionally not processed.

    @classmethod
    def parse(cls, value: object) -> Optional[ExecutionStatus]:
        """Return the member named by ``value``, or None if it is not in the set."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value)
        except ValueError:
            return None
