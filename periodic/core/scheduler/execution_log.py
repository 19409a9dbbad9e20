# periodic/core/scheduler/execution_log.py
from __future__ import annotations
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Optional, Union
from periodic.core.logging import get_logger
from periodic.core.models.items import ExecutionLog
from periodic.core.types.status import ExecutionStatus
from periodic.core.utils.clock import ensure_utc, utc_now

if TYPE_CHECKING:
    from periodic.core.repositories.base import ExecutionLogRepository

logger = get_logger('scheduler.log')


class ExecutionLogWriter:
    """
    Appends execution log entries for processed scheduled items.

    Invalid entries (non-positive item id, unknown status) are dropped with a
    warning. Storage failures are logged and swallowed: a missing audit row
    never fails the item being processed.
    """

    def __init__(
        self,
        repository: ExecutionLogRepository,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self._clock = clock

    async def log_execution(
        self,
        scheduled_item_id: int,
        status: Union[ExecutionStatus, str],
        error_message: Optional[str] = None,
        todo_item_id: Optional[int] = None,
        executed_at: Optional[datetime] = None,
    ) -> Optional[ExecutionLog]:
        """
        Record one processing attempt.

        Args:
            scheduled_item_id: Processed scheduled item (must be > 0)
            status: ExecutionStatus member or its string value
            error_message: Failure reason, for ERROR entries
            todo_item_id: Created todo item, for SUCCESS entries
            executed_at: Attempt time; stamped with the current time when absent

        Returns:
            The stored entry, or None when the entry was rejected or could not
            be stored.
        """
        if scheduled_item_id <= 0:
            logger.warning(
                f'Rejected execution log entry: invalid scheduled_item_id {scheduled_item_id}'
            )
            return None

        parsed_status = ExecutionStatus.parse(status)
        if parsed_status is None:
            logger.warning(
                f'Rejected execution log entry for item {scheduled_item_id}: '
                f'invalid status {status!r}'
            )
            return None

        entry = ExecutionLog(
            scheduled_item_id=scheduled_item_id,
            executed_at=self._clock() if executed_at is None else ensure_utc(executed_at),
            status=parsed_status,
            error_message=error_message,
            todo_item_id=todo_item_id,
        )

        try:
            stored = await self.repository.create(entry)
        except Exception as e:
            logger.error(
                f'Failed to write execution log for item {scheduled_item_id} '
                f'({parsed_status.value}): {e}'
            )
            return None

        logger.debug(
            f'Execution log {stored.id}: item={scheduled_item_id}, '
            f'status={parsed_status.value}'
        )
        return stored
