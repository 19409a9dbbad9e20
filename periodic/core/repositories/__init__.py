# periodic/core/repositories/__init__.py
from __future__ import annotations

from datetime import datetime
from typing import Callable

from periodic.core.errors import ConfigurationError, ErrorCode
from periodic.core.models.app import AppConfig, StorageBackend
from periodic.core.repositories.base import (
    ExecutionLogRepository,
    Repositories,
    ScheduledItemRepository,
    TodoItemRepository,
)
from periodic.core.repositories.memory import (
    InMemoryExecutionLogRepository,
    InMemoryScheduledItemRepository,
    InMemoryTodoItemRepository,
    build_memory_repositories,
)
from periodic.core.repositories.sql import (
    SqlExecutionLogRepository,
    SqlScheduledItemRepository,
    SqlStore,
    SqlTodoItemRepository,
    build_sql_repositories,
)
from periodic.core.utils.clock import utc_now


def build_repositories(
    config: AppConfig, clock: Callable[[], datetime] = utc_now
) -> Repositories:
    """Select the storage backend named by ``config``."""
    if config.backend == StorageBackend.MEMORY:
        return build_memory_repositories(clock=clock)
    if config.database is None:
        raise ConfigurationError(
            message='database backend selected without database settings',
            code=ErrorCode.CONFIG_INVALID_BACKEND,
            help_text='set DATABASE_URL',
        )
    return build_sql_repositories(config.database, clock=clock)


__all__ = [
    'ExecutionLogRepository',
    'InMemoryExecutionLogRepository',
    'InMemoryScheduledItemRepository',
    'InMemoryTodoItemRepository',
    'Repositories',
    'ScheduledItemRepository',
    'SqlExecutionLogRepository',
    'SqlScheduledItemRepository',
    'SqlStore',
    'SqlTodoItemRepository',
    'TodoItemRepository',
    'build_memory_repositories',
    'build_repositories',
    'build_sql_repositories',
]
