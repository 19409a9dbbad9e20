"""Periodic - materializes scheduled items into todo items on a cron schedule"""

# Install Rust-style error handler on import
from .core.errors import install_error_handler as _install_error_handler

_install_error_handler()

from .core.models.app import AppConfig, DatabaseConfig, SchedulerConfig, StorageBackend
from .core.models.items import (
    ExecutionLog,
    ScheduledItem,
    ScheduledItemCreate,
    TodoItem,
)
from .core.items import create_scheduled_item
from .core.repositories import (
    ExecutionLogRepository,
    Repositories,
    ScheduledItemRepository,
    TodoItemRepository,
    build_repositories,
)
from .core.scheduler import (
    ExecutionLogWriter,
    Scheduler,
    TickResult,
    calculate_next_execution,
    validate_cron_expression,
)
from .core.types.status import ExecutionStatus
from .core.errors import (
    ConfigurationError,
    ErrorCode,
    ItemValidationError,
    MultipleValidationErrors,
    PeriodicError,
    ValidationReport,
)

__all__ = [
    # Config
    'AppConfig',
    'DatabaseConfig',
    'SchedulerConfig',
    'StorageBackend',
    # Models
    'ExecutionLog',
    'ExecutionStatus',
    'ScheduledItem',
    'ScheduledItemCreate',
    'TodoItem',
    # Storage
    'ExecutionLogRepository',
    'Repositories',
    'ScheduledItemRepository',
    'TodoItemRepository',
    'build_repositories',
    # Scheduling
    'ExecutionLogWriter',
    'Scheduler',
    'TickResult',
    'calculate_next_execution',
    'create_scheduled_item',
    'validate_cron_expression',
    # Errors
    'ConfigurationError',
    'ErrorCode',
    'ItemValidationError',
    'MultipleValidationErrors',
    'PeriodicError',
    'ValidationReport',
]
