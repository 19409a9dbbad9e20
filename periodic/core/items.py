# periodic/core/items.py
"""Entry points the API layer uses to create scheduled items."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from periodic.core.logging import get_logger
from periodic.core.models.items import ScheduledItem, ScheduledItemCreate, sample_items
from periodic.core.scheduler.calculator import calculate_next_execution
from periodic.core.utils.clock import ensure_utc, utc_now

if TYPE_CHECKING:
    from periodic.core.repositories.base import ScheduledItemRepository

logger = get_logger('items')


def with_next_execution(item: ScheduledItem, now: datetime) -> ScheduledItem:
    """Copy of ``item`` with ``next_execution_at`` computed at ``now``."""
    next_execution_at = calculate_next_execution(
        starts_at=item.starts_at,
        repeats=item.repeats,
        cron_expression=item.cron_expression,
        expiration=item.expiration,
        now=now,
    )
    return item.model_copy(update={'next_execution_at': next_execution_at})


def prepared_sample_items(now: datetime) -> list[ScheduledItem]:
    """Sample items with their first execution already computed."""
    return [with_next_execution(item, now) for item in sample_items(now)]


async def create_scheduled_item(
    repository: ScheduledItemRepository,
    data: ScheduledItemCreate,
    now: Optional[datetime] = None,
) -> ScheduledItem:
    """
    Persist a validated scheduled item with its first execution time.

    Args:
        repository: Target scheduled-item repository
        data: Validated creation input
        now: Reference time for the calculator; defaults to the current UTC time

    Returns:
        The stored item. ``next_execution_at`` is None when the item would
        never run (one-time item in the past); it is stored anyway and
        never becomes due.
    """
    now = utc_now() if now is None else ensure_utc(now)
    item = with_next_execution(
        ScheduledItem(
            title=data.title.strip(),
            description=data.description,
            starts_at=data.starts_at,
            repeats=data.repeats,
            cron_expression=data.cron_expression,
            expiration=data.expiration,
        ),
        now,
    )
    if item.next_execution_at is None:
        logger.warning(f"Scheduled item '{item.title}' has no upcoming execution")

    created = await repository.create(item)
    logger.info(
        f'Created scheduled item {created.id} ({created.title}), '
        f'next_execution_at={created.next_execution_at}'
    )
    return created
