# periodic/core/repositories/base.py
"""
Storage contracts the scheduler core depends on.

Structural interfaces (``typing.Protocol``): implementations do not inherit
from them. Two implementations ship with periodic, ``memory`` and ``sql``;
both must agree on the due-query edge semantics documented on
``ScheduledItemRepository.get_next_scheduled_items``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Optional, Protocol, runtime_checkable

from periodic.core.models.items import ExecutionLog, ScheduledItem, TodoItem


@runtime_checkable
class ScheduledItemRepository(Protocol):
    async def create(self, item: ScheduledItem) -> ScheduledItem:
        """Persist ``item`` and return it with its assigned id.

        ``next_execution_at`` must already be computed by the caller.
        """
        ...

    async def get(self, item_id: int) -> Optional[ScheduledItem]: ...

    async def get_all(self) -> list[ScheduledItem]: ...

    async def get_next_scheduled_items(
        self,
        limit: int,
        offset: int,
        now: Optional[datetime] = None,
    ) -> list[ScheduledItem]:
        """Items due at ``now``, earliest ``next_execution_at`` first.

        Due means ``next_execution_at <= now`` (inclusive) and either no
        expiration or ``expiration > now`` (an item expiring exactly at
        ``now`` is excluded). Ties are ordered by id. Offsets past the end
        return an empty list. Raises on storage failure.
        """
        ...

    async def update_next_execution_at(self, item_id: int, next_execution_at: datetime) -> bool:
        """Change only ``next_execution_at``. Returns False if the item is gone."""
        ...

    async def delete(self, item_id: int) -> bool: ...

    async def add_sample_data(self) -> int:
        """Seed demo items into an empty repository; returns the number added."""
        ...


@runtime_checkable
class TodoItemRepository(Protocol):
    async def create(self, item: TodoItem) -> TodoItem: ...

    async def get(self, item_id: int) -> Optional[TodoItem]: ...

    async def get_all(self) -> list[TodoItem]: ...

    async def set_checked(self, item_id: int, checked: bool) -> Optional[TodoItem]: ...

    async def delete(self, item_id: int) -> bool: ...


@runtime_checkable
class ExecutionLogRepository(Protocol):
    async def create(self, log: ExecutionLog) -> ExecutionLog:
        """Append ``log``; ``executed_at`` is stamped when missing."""
        ...

    async def get(self, log_id: int) -> Optional[ExecutionLog]: ...

    async def get_all(self) -> list[ExecutionLog]: ...

    async def get_by_scheduled_item_id(self, scheduled_item_id: int) -> list[ExecutionLog]: ...


@dataclass
class Repositories:
    """The three repositories of one storage backend plus its lifecycle hooks."""

    scheduled_items: ScheduledItemRepository
    todo_items: TodoItemRepository
    execution_logs: ExecutionLogRepository
    on_open: Optional[Callable[[], Awaitable[None]]] = None
    on_close: Optional[Callable[[], Awaitable[None]]] = None

    async def open(self) -> None:
        """Prepare the backend (schema creation for relational storage)."""
        if self.on_open is not None:
            await self.on_open()

    async def close(self) -> None:
        if self.on_close is not None:
            await self.on_close()


def page_bounds(limit: int, offset: int) -> tuple[int, int]:
    """Clamp pagination arguments to non-negative values."""
    return max(limit, 0), max(offset, 0)
