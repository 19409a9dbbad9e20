# periodic/core/repositories/memory.py
"""
Process-local repositories backed by dicts.

Each repository guards its map with a ``threading.RLock`` that is never held
across an ``await``, so the same instance is safe to share between the event
loop and worker threads. Stored models are copied on the way in and out;
callers never alias repository state.
"""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Callable, Optional

from periodic.core.items import prepared_sample_items
from periodic.core.logging import get_logger
from periodic.core.models.items import ExecutionLog, ScheduledItem, TodoItem
from periodic.core.repositories.base import Repositories, page_bounds
from periodic.core.scheduler.calculator import is_due, is_expired
from periodic.core.utils.clock import ensure_utc, utc_now

logger = get_logger('repo.memory')


class InMemoryScheduledItemRepository:
    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self._items: dict[int, ScheduledItem] = {}
        self._next_id = 1
        self._lock = threading.RLock()
        self._clock = clock

    async def create(self, item: ScheduledItem) -> ScheduledItem:
        with self._lock:
            stored = item.model_copy(update={'id': self._next_id})
            self._items[stored.id] = stored
            self._next_id += 1
            return stored.model_copy()

    async def get(self, item_id: int) -> Optional[ScheduledItem]:
        with self._lock:
            item = self._items.get(item_id)
            return None if item is None else item.model_copy()

    async def get_all(self) -> list[ScheduledItem]:
        with self._lock:
            return [self._items[k].model_copy() for k in sorted(self._items)]

    async def get_next_scheduled_items(
        self,
        limit: int,
        offset: int,
        now: Optional[datetime] = None,
    ) -> list[ScheduledItem]:
        limit, offset = page_bounds(limit, offset)
        check_time = ensure_utc(now) if now is not None else self._clock()

        with self._lock:
            due = [
                item
                for item in self._items.values()
                if is_due(item.next_execution_at, check_time)
                and not is_expired(item.expiration, check_time)
            ]
            due.sort(key=lambda item: (item.next_execution_at, item.id))
            return [item.model_copy() for item in due[offset : offset + limit]]

    async def update_next_execution_at(self, item_id: int, next_execution_at: datetime) -> bool:
        with self._lock:
            item = self._items.get(item_id)
            if item is None:
                return False
            self._items[item_id] = item.model_copy(
                update={'next_execution_at': ensure_utc(next_execution_at)}
            )
            return True

    async def delete(self, item_id: int) -> bool:
        with self._lock:
            return self._items.pop(item_id, None) is not None

    async def add_sample_data(self) -> int:
        with self._lock:
            if self._items:
                return 0
            samples = prepared_sample_items(self._clock())
            for sample in samples:
                stored = sample.model_copy(update={'id': self._next_id})
                self._items[stored.id] = stored
                self._next_id += 1
        logger.info(f'Seeded {len(samples)} sample scheduled items')
        return len(samples)


class InMemoryTodoItemRepository:
    def __init__(self) -> None:
        self._items: dict[int, TodoItem] = {}
        self._next_id = 1
        self._lock = threading.RLock()

    async def create(self, item: TodoItem) -> TodoItem:
        with self._lock:
            stored = item.model_copy(update={'id': self._next_id})
            self._items[stored.id] = stored
            self._next_id += 1
            return stored.model_copy()

    async def get(self, item_id: int) -> Optional[TodoItem]:
        with self._lock:
            item = self._items.get(item_id)
            return None if item is None else item.model_copy()

    async def get_all(self) -> list[TodoItem]:
        with self._lock:
            return [self._items[k].model_copy() for k in sorted(self._items)]

    async def set_checked(self, item_id: int, checked: bool) -> Optional[TodoItem]:
        with self._lock:
            item = self._items.get(item_id)
            if item is None:
                return None
            updated = item.model_copy(update={'checked': checked})
            self._items[item_id] = updated
            return updated.model_copy()

    async def delete(self, item_id: int) -> bool:
        with self._lock:
            return self._items.pop(item_id, None) is not None


class InMemoryExecutionLogRepository:
    """Append-only; there is no update or delete."""

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self._logs: dict[int, ExecutionLog] = {}
        self._next_id = 1
        self._lock = threading.RLock()
        self._clock = clock

    async def create(self, log: ExecutionLog) -> ExecutionLog:
        with self._lock:
            stored = log.model_copy(
                update={
                    'id': self._next_id,
                    'executed_at': log.executed_at or self._clock(),
                }
            )
            self._logs[stored.id] = stored
            self._next_id += 1
            return stored.model_copy()

    async def get(self, log_id: int) -> Optional[ExecutionLog]:
        with self._lock:
            log = self._logs.get(log_id)
            return None if log is None else log.model_copy()

    async def get_all(self) -> list[ExecutionLog]:
        with self._lock:
            return [self._logs[k].model_copy() for k in sorted(self._logs)]

    async def get_by_scheduled_item_id(self, scheduled_item_id: int) -> list[ExecutionLog]:
        with self._lock:
            return [
                self._logs[k].model_copy()
                for k in sorted(self._logs)
                if self._logs[k].scheduled_item_id == scheduled_item_id
            ]


def build_memory_repositories(clock: Callable[[], datetime] = utc_now) -> Repositories:
    return Repositories(
        scheduled_items=InMemoryScheduledItemRepository(clock=clock),
        todo_items=InMemoryTodoItemRepository(),
        execution_logs=InMemoryExecutionLogRepository(clock=clock),
    )
