# periodic/core/repositories/sql.py
from __future__ import annotations

import hashlib
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import delete, func, or_, select, text, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from periodic.core.items import prepared_sample_items
from periodic.core.logging import get_logger
from periodic.core.models.app import DatabaseConfig
from periodic.core.models.items import ExecutionLog, ScheduledItem, TodoItem
from periodic.core.models.tables import (
    Base,
    ExecutionLogModel,
    ScheduledItemModel,
    TodoItemModel,
)
from periodic.core.repositories.base import Repositories, page_bounds
from periodic.core.utils.clock import ensure_utc, utc_now

logger = get_logger('repo.sql')


class SqlStore:
    """
    Owns the async engine and session factory for relational storage.

    Supports PostgreSQL (psycopg) and SQLite (aiosqlite). Each repository
    operation opens its own session from ``session_factory`` and commits
    immediately.
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.async_engine = create_async_engine(
            self.config.database_url, **self.config.engine_options()
        )
        self.session_factory = async_sessionmaker(
            self.async_engine, expire_on_commit=False
        )
        self._initialized = False
        logger.info(f'SqlStore initialized for {self.config.masked_url()}')

    def _schema_advisory_key(self) -> int:
        """Stable 64-bit advisory lock key derived from the database URL."""
        basis = self.config.database_url.encode('utf-8', errors='ignore')
        h = hashlib.sha256(b'periodic-schema:' + basis).digest()
        return int.from_bytes(h[:8], byteorder='big', signed=True)

    async def ensure_schema(self) -> None:
        """
        Create the periodic tables and indexes if they do not exist.

        Safe to call repeatedly. On PostgreSQL, concurrent callers are
        serialized with a transaction-scoped advisory lock.
        """
        if self._initialized:
            return
        async with self.async_engine.begin() as conn:
            if self.config.is_postgres:
                await conn.execute(
                    text('SELECT pg_advisory_xact_lock(CAST(:key AS BIGINT))'),
                    {'key': self._schema_advisory_key()},
                )
            await conn.run_sync(Base.metadata.create_all)
        self._initialized = True
        logger.info('Schema ensured')

    async def close(self) -> None:
        await self.async_engine.dispose()


def _to_scheduled_item(row: ScheduledItemModel) -> ScheduledItem:
    # ScheduledItem validators normalize naive (SQLite) datetimes to UTC
    return ScheduledItem.model_validate(row)


class SqlScheduledItemRepository:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session_factory = session_factory
        self._clock = clock

    async def create(self, item: ScheduledItem) -> ScheduledItem:
        async with self.session_factory() as session:
            row = ScheduledItemModel(
                title=item.title,
                description=item.description,
                starts_at=item.starts_at,
                repeats=item.repeats,
                cron_expression=item.cron_expression,
                expiration=item.expiration,
                next_execution_at=item.next_execution_at,
            )
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return _to_scheduled_item(row)

    async def get(self, item_id: int) -> Optional[ScheduledItem]:
        async with self.session_factory() as session:
            row = await session.get(ScheduledItemModel, item_id)
            return None if row is None else _to_scheduled_item(row)

    async def get_all(self) -> list[ScheduledItem]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(ScheduledItemModel).order_by(ScheduledItemModel.id.asc())
            )
            return [_to_scheduled_item(row) for row in result.scalars()]

    async def get_next_scheduled_items(
        self,
        limit: int,
        offset: int,
        now: Optional[datetime] = None,
    ) -> list[ScheduledItem]:
        limit, offset = page_bounds(limit, offset)
        if limit == 0:
            return []
        check_time = ensure_utc(now) if now is not None else self._clock()

        async with self.session_factory() as session:
            stmt = (
                select(ScheduledItemModel)
                .where(ScheduledItemModel.next_execution_at.is_not(None))
                .where(ScheduledItemModel.next_execution_at <= check_time)
                .where(
                    or_(
                        ScheduledItemModel.expiration.is_(None),
                        ScheduledItemModel.expiration > check_time,
                    )
                )
                .order_by(
                    ScheduledItemModel.next_execution_at.asc(),
                    ScheduledItemModel.id.asc(),
                )
                .limit(limit)
                .offset(offset)
            )
            result = await session.execute(stmt)
            return [_to_scheduled_item(row) for row in result.scalars()]

    async def update_next_execution_at(self, item_id: int, next_execution_at: datetime) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(
                update(ScheduledItemModel)
                .where(ScheduledItemModel.id == item_id)
                .values(next_execution_at=ensure_utc(next_execution_at))
            )
            await session.commit()
            rows_updated = getattr(result, 'rowcount', 0)
            return bool(rows_updated)

    async def delete(self, item_id: int) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(
                delete(ScheduledItemModel).where(ScheduledItemModel.id == item_id)
            )
            await session.commit()
            rows_deleted = getattr(result, 'rowcount', 0)
            return bool(rows_deleted)

    async def add_sample_data(self) -> int:
        async with self.session_factory() as session:
            count = await session.scalar(
                select(func.count()).select_from(ScheduledItemModel)
            )
            if count:
                logger.debug(f'Skipping sample data, {count} items already stored')
                return 0

            samples = prepared_sample_items(self._clock())
            session.add_all(
                [
                    ScheduledItemModel(
                        title=sample.title,
                        description=sample.description,
                        starts_at=sample.starts_at,
                        repeats=sample.repeats,
                        cron_expression=sample.cron_expression,
                        expiration=sample.expiration,
                        next_execution_at=sample.next_execution_at,
                    )
                    for sample in samples
                ]
            )
            await session.commit()
        logger.info(f'Seeded {len(samples)} sample scheduled items')
        return len(samples)


class SqlTodoItemRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def create(self, item: TodoItem) -> TodoItem:
        async with self.session_factory() as session:
            row = TodoItemModel(text=item.text, checked=item.checked)
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return TodoItem.model_validate(row)

    async def get(self, item_id: int) -> Optional[TodoItem]:
        async with self.session_factory() as session:
            row = await session.get(TodoItemModel, item_id)
            return None if row is None else TodoItem.model_validate(row)

    async def get_all(self) -> list[TodoItem]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(TodoItemModel).order_by(TodoItemModel.id.asc())
            )
            return [TodoItem.model_validate(row) for row in result.scalars()]

    async def set_checked(self, item_id: int, checked: bool) -> Optional[TodoItem]:
        async with self.session_factory() as session:
            row = await session.get(TodoItemModel, item_id)
            if row is None:
                return None
            row.checked = checked
            await session.commit()
            return TodoItem.model_validate(row)

    async def delete(self, item_id: int) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(
                delete(TodoItemModel).where(TodoItemModel.id == item_id)
            )
            await session.commit()
            return bool(getattr(result, 'rowcount', 0))


class SqlExecutionLogRepository:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session_factory = session_factory
        self._clock = clock

    async def create(self, log: ExecutionLog) -> ExecutionLog:
        async with self.session_factory() as session:
            row = ExecutionLogModel(
                scheduled_item_id=log.scheduled_item_id,
                executed_at=log.executed_at or self._clock(),
                status=log.status.value,
                error_message=log.error_message,
                todo_item_id=log.todo_item_id,
            )
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return ExecutionLog.model_validate(row)

    async def get(self, log_id: int) -> Optional[ExecutionLog]:
        async with self.session_factory() as session:
            row = await session.get(ExecutionLogModel, log_id)
            return None if row is None else ExecutionLog.model_validate(row)

    async def get_all(self) -> list[ExecutionLog]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(ExecutionLogModel).order_by(ExecutionLogModel.id.asc())
            )
            return [ExecutionLog.model_validate(row) for row in result.scalars()]

    async def get_by_scheduled_item_id(self, scheduled_item_id: int) -> list[ExecutionLog]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(ExecutionLogModel)
                .where(ExecutionLogModel.scheduled_item_id == scheduled_item_id)
                .order_by(ExecutionLogModel.id.asc())
            )
            return [ExecutionLog.model_validate(row) for row in result.scalars()]


def build_sql_repositories(
    config: DatabaseConfig, clock: Callable[[], datetime] = utc_now
) -> Repositories:
    store = SqlStore(config)
    return Repositories(
        scheduled_items=SqlScheduledItemRepository(store.session_factory, clock=clock),
        todo_items=SqlTodoItemRepository(store.session_factory),
        execution_logs=SqlExecutionLogRepository(store.session_factory, clock=clock),
        on_open=store.ensure_schema,
        on_close=store.close,
    )
