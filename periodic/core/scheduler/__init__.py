# periodic/core/scheduler/__init__.py
"""
Scheduler module for materializing due scheduled items.

Main components:
- Scheduler: Processing loop (tick, reschedule, retire)
- ExecutionLogWriter: Audit trail of processing attempts
- calculate_next_execution: Next execution time calculation

Example usage:
    from periodic.core.repositories import build_repositories
    from periodic.core.scheduler import Scheduler

    scheduler = Scheduler(build_repositories(config), config.scheduler)
    await scheduler.run_forever()
"""

from periodic.core.scheduler.calculator import (
    calculate_next_execution,
    is_due,
    is_expired,
    next_fire_times,
    validate_cron_expression,
)
from periodic.core.scheduler.execution_log import ExecutionLogWriter
from periodic.core.scheduler.service import Scheduler, TickResult

__all__ = [
    'ExecutionLogWriter',
    'Scheduler',
    'TickResult',
    'calculate_next_execution',
    'is_due',
    'is_expired',
    'next_fire_times',
    'validate_cron_expression',
]
