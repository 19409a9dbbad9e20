from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    false as sa_false,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for periodic tables"""

    pass


class ScheduledItemModel(Base):
    """
    Relational storage for scheduled items.

    - id: int # server-assigned
    - title: str
    - description: str # may be empty, never NULL
    - starts_at: datetime # UTC
    - repeats: bool
    - cron_expression: str | None # only for repeating items
    - expiration: datetime | None # UTC
    - next_execution_at: datetime | None # UTC, calculator output; the due query reads only this
    """

    __tablename__ = 'periodic_scheduled_items'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(
        Text, nullable=False, default='', server_default=text("''"),
    )
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    repeats: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa_false(),
    )
    cron_expression: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    expiration: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    next_execution_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index('idx_periodic_scheduled_items_next_execution', 'next_execution_at'),
    )


class TodoItemModel(Base):
    """Todo items derived from processed scheduled items."""

    __tablename__ = 'periodic_todo_items'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    checked: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa_false(),
    )


class ExecutionLogModel(Base):
    """
    Append-only audit trail, one row per (scheduled item, tick) attempt.

    scheduled_item_id is not a foreign key: rows outlive retired (deleted)
    scheduled items.
    """

    __tablename__ = 'periodic_execution_logs'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    scheduled_item_id: Mapped[int] = mapped_column(Integer, nullable=False)
    executed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text('CURRENT_TIMESTAMP'),
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, server_default=text("'success'"),
    )
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    todo_item_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('success', 'error', 'skipped')",
            name='chk_periodic_execution_logs_status',
        ),
        CheckConstraint(
            'scheduled_item_id > 0',
            name='chk_periodic_execution_logs_scheduled_item_id',
        ),
        Index('idx_periodic_execution_logs_scheduled_item_id', 'scheduled_item_id'),
        Index('idx_periodic_execution_logs_executed_at', 'executed_at'),
        Index('idx_periodic_execution_logs_status', 'status'),
    )
