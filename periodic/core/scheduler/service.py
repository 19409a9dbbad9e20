# periodic/core/scheduler/service.py
from __future__ import annotations
import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Optional
from periodic.core.logging import get_logger
from periodic.core.models.app import SchedulerConfig
from periodic.core.models.items import ScheduledItem, TodoItem
from periodic.core.scheduler.calculator import calculate_next_execution
from periodic.core.scheduler.execution_log import ExecutionLogWriter
from periodic.core.types.status import ExecutionStatus
from periodic.core.utils.clock import utc_now
from periodic.core.utils.db import failure_kind

if TYPE_CHECKING:
    from periodic.core.repositories.base import Repositories

logger = get_logger('scheduler')


@dataclass(frozen=True)
class TickResult:
    """Aggregate outcome of one tick."""

    fetched: int = 0
    succeeded: int = 0
    failed: int = 0


class Scheduler:
    """
    Processing loop that turns due scheduled items into todo items.

    Each tick:
    1. Fetch up to ``batch_size`` due items (earliest first)
    2. Create a todo item per due item and record an execution log entry
    3. Reschedule repeating items, retire one-time and exhausted ones

    Items are processed sequentially and independently; one item's failure
    never aborts the batch. A stop request is only observed between ticks, so
    an in-flight batch always completes.
    """

    def __init__(
        self,
        repositories: Repositories,
        config: Optional[SchedulerConfig] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repositories = repositories
        self.config = config or SchedulerConfig()
        self._clock = clock
        self.log_writer = ExecutionLogWriter(repositories.execution_logs, clock=clock)
        self._stop = asyncio.Event()
        self._initialized = False

        logger.info(
            f'Scheduler initialized, interval={self.config.interval_seconds}s, '
            f'batch_size={self.config.batch_size}'
        )

    async def start(self) -> None:
        """Open the storage backend (creates the schema for relational storage)."""
        if self._initialized:
            return
        await self.repositories.open()
        self._initialized = True
        logger.info('Scheduler started successfully')

    async def stop(self) -> None:
        """Clean shutdown of scheduler."""
        self._stop.set()
        if self._initialized:
            try:
                await self.repositories.close()
            except Exception as e:
                logger.error(f'Storage close failed: {e}')
            else:
                logger.info('Storage closed')
            self._initialized = False
        logger.info('Scheduler stopped')

    def request_stop(self) -> None:
        """Request scheduler to stop gracefully."""
        self._stop.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    async def run_forever(self) -> None:
        """Main scheduler loop: tick immediately, then once per interval."""
        logger.info('Starting scheduler loop')

        try:
            await self.start()

            while not self._stop.is_set():
                try:
                    await self.tick()
                except Exception as e:
                    logger.error(f'Error in scheduler loop: {e}', exc_info=True)

                # Wait for tick interval or stop signal
                try:
                    await asyncio.wait_for(
                        self._stop.wait(),
                        timeout=self.config.interval_seconds,
                    )
                    break  # Stop signal received
                except asyncio.TimeoutError:
                    continue

        finally:
            await self.stop()

    async def tick(self) -> TickResult:
        """Process one batch of due items."""
        check_time = self._clock()

        try:
            items = await self.repositories.scheduled_items.get_next_scheduled_items(
                self.config.batch_size, 0, now=check_time
            )
        except Exception as e:
            logger.error(
                f'Failed to fetch due items ({failure_kind(e)}), skipping tick: {e}'
            )
            return TickResult()

        if not items:
            logger.debug('No due scheduled items')
            return TickResult()

        logger.info(f'Processing {len(items)} due scheduled item(s)')

        succeeded = 0
        failed = 0
        for item in items:
            try:
                ok = await self._process_item(item, check_time)
            except Exception as e:
                logger.error(
                    f'Unexpected error processing scheduled item {item.id}: {e}',
                    exc_info=True,
                )
                ok = False
            if ok:
                succeeded += 1
            else:
                failed += 1

        logger.info(
            f'Tick complete: {len(items)} processed, {succeeded} succeeded, {failed} failed'
        )
        return TickResult(fetched=len(items), succeeded=succeeded, failed=failed)

    async def _process_item(self, item: ScheduledItem, check_time: datetime) -> bool:
        """
        Create the todo item for one due scheduled item.

        Returns True on success. A failed todo creation leaves the scheduled
        item untouched, so it is retried on the next tick.
        """
        item_id = item.id or 0

        try:
            todo = await self.repositories.todo_items.create(TodoItem(text=item.todo_text()))
        except Exception as e:
            logger.error(
                f'Failed to create todo item for scheduled item {item_id} '
                f'({failure_kind(e)}): {e}'
            )
            await self.log_writer.log_execution(
                item_id,
                ExecutionStatus.ERROR,
                error_message=f'failed to create todo item: {e}',
            )
            return False

        if todo is None or todo.id is None or todo.id <= 0:
            logger.error(f'Todo repository returned no id for scheduled item {item_id}')
            await self.log_writer.log_execution(
                item_id,
                ExecutionStatus.ERROR,
                error_message='todo item was not assigned an id',
            )
            return False

        await self.log_writer.log_execution(
            item_id,
            ExecutionStatus.SUCCESS,
            todo_item_id=todo.id,
        )
        logger.debug(f'Created todo item {todo.id} for scheduled item {item_id}')

        await self._reconcile(item, check_time)
        return True

    async def _reconcile(self, item: ScheduledItem, check_time: datetime) -> None:
        """
        Advance or retire a processed item.

        One-time items are deleted. Repeating items get their next occurrence,
        or are deleted when the schedule is exhausted (expired, or a cron
        expression that no longer parses). Failures are logged only; an item
        left in place is picked up again on the next tick.
        """
        if item.id is None:
            return

        if not item.repeats:
            await self._retire(item, reason='one-time item executed')
            return

        next_run = calculate_next_execution(
            starts_at=item.starts_at,
            repeats=item.repeats,
            cron_expression=item.cron_expression,
            expiration=item.expiration,
            now=check_time,
        )
        if next_run is None:
            await self._retire(item, reason='no further executions')
            return

        try:
            updated = await self.repositories.scheduled_items.update_next_execution_at(
                item.id, next_run
            )
        except Exception as e:
            logger.error(
                f'Failed to reschedule item {item.id} ({failure_kind(e)}): {e}'
            )
            return
        if updated:
            logger.debug(f'Scheduled item {item.id} next_execution_at={next_run}')
        else:
            logger.warning(f'Scheduled item {item.id} vanished before rescheduling')

    async def _retire(self, item: ScheduledItem, reason: str) -> None:
        assert item.id is not None
        try:
            deleted = await self.repositories.scheduled_items.delete(item.id)
        except Exception as e:
            logger.error(
                f'Failed to delete scheduled item {item.id} ({failure_kind(e)}): {e}'
            )
            return
        if deleted:
            logger.info(f'Retired scheduled item {item.id}: {reason}')
        else:
            logger.warning(f'Scheduled item {item.id} already deleted')
