# periodic/core/models/items.py
from __future__ import annotations
from datetime import datetime, timedelta
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing_extensions import Self
from periodic.core.errors import (
    ErrorCode,
    ItemValidationError,
    ValidationReport,
    raise_collected,
)
from periodic.core.types.status import ExecutionStatus
from periodic.core.utils.clock import ensure_utc, ensure_utc_optional


class ScheduledItem(BaseModel):
    """
    A user-defined task that is materialized into todo items when due.

    Fields:
        - id: Server-assigned identity (None until created)
        - title / description: Free text; description may be empty
        - starts_at: Anchor for one-time items, lower bound for repeating items
        - repeats: Whether the item recurs on cron_expression
        - cron_expression: 5-field Unix cron expression (repeating items only)
        - expiration: Repeating occurrences at or after this instant are not scheduled
        - next_execution_at: Output of the next-execution calculator; None means
          the item never executes again
    """

    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    title: str
    description: str = ''
    starts_at: datetime
    repeats: bool = False
    cron_expression: Optional[str] = None
    expiration: Optional[datetime] = None
    next_execution_at: Optional[datetime] = None

    @field_validator('starts_at', mode='after')
    @classmethod
    def _normalize_starts_at(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @field_validator('expiration', 'next_execution_at', mode='after')
    @classmethod
    def _normalize_optional_instants(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc_optional(value)

    @field_validator('description', mode='before')
    @classmethod
    def _none_description_is_empty(cls, value: Optional[str]) -> str:
        return value or ''

    def todo_text(self) -> str:
        """Text of the todo item derived from this scheduled item."""
        if self.description:
            return f'{self.title} - {self.description}'
        return self.title


class TodoItem(BaseModel):
    """Actionable entry derived from a due scheduled item."""

    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    text: str
    checked: bool = False


class ExecutionLog(BaseModel):
    """
    Audit record of one processing attempt for a scheduled item.

    Rows are append-only. ``error_message`` is only meaningful for
    ``ExecutionStatus.ERROR``, ``todo_item_id`` only for ``SUCCESS``.
    """

    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    scheduled_item_id: int = Field(gt=0, description='Processed scheduled item')
    executed_at: Optional[datetime] = None
    status: ExecutionStatus
    error_message: Optional[str] = None
    todo_item_id: Optional[int] = None

    @field_validator('executed_at', mode='after')
    @classmethod
    def _normalize_executed_at(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc_optional(value)


class ScheduledItemCreate(BaseModel):
    """
    Input for creating a scheduled item.

    Independent problems are collected and raised together
    (ItemValidationError for one, MultipleValidationErrors for several).
    """

    title: str
    description: str = ''
    starts_at: datetime
    repeats: bool = False
    cron_expression: Optional[str] = None
    expiration: Optional[datetime] = None

    @field_validator('starts_at', mode='after')
    @classmethod
    def _normalize_starts_at(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @field_validator('expiration', mode='after')
    @classmethod
    def _normalize_expiration(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc_optional(value)

    @field_validator('cron_expression', mode='after')
    @classmethod
    def _blank_cron_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return ' '.join(value.split())

    @model_validator(mode='after')
    def validate_schedule(self) -> Self:
        from periodic.core.scheduler.calculator import validate_cron_expression

        report = ValidationReport('scheduled_item')

        if not self.title.strip():
            report.add(
                ItemValidationError(
                    message='scheduled item title is empty',
                    code=ErrorCode.ITEM_MISSING_TITLE,
                    help_text='provide a non-blank title; it becomes the todo text',
                )
            )

        if self.repeats:
            if self.cron_expression is None:
                report.add(
                    ItemValidationError(
                        message='repeating item requires a cron expression',
                        code=ErrorCode.ITEM_INVALID_CRON,
                        notes=['repeats=True but cron_expression is empty'],
                        help_text="use a 5-field expression, e.g. '0 9 * * 1-5'",
                    )
                )
            elif not validate_cron_expression(self.cron_expression):
                report.add(
                    ItemValidationError(
                        message='invalid cron expression',
                        code=ErrorCode.ITEM_INVALID_CRON,
                        notes=[f'got: {self.cron_expression!r}'],
                        help_text=(
                            'expected 5 fields: minute hour day-of-month month day-of-week\n'
                            "seconds fields and '@hourly'-style shortcuts are not supported"
                        ),
                    )
                )
        elif self.cron_expression is not None:
            report.add(
                ItemValidationError(
                    message='cron expression given for a non-repeating item',
                    code=ErrorCode.ITEM_UNEXPECTED_CRON,
                    notes=[f'cron_expression={self.cron_expression!r}, repeats=False'],
                    help_text='set repeats=True or drop cron_expression',
                )
            )

        if self.expiration is not None and self.expiration <= self.starts_at:
            report.add(
                ItemValidationError(
                    message='expiration must be after starts_at',
                    code=ErrorCode.ITEM_INVALID_WINDOW,
                    notes=[
                        f'starts_at={self.starts_at.isoformat()}',
                        f'expiration={self.expiration.isoformat()}',
                    ],
                )
            )

        raise_collected(report)
        return self


def sample_items(now: datetime) -> list[ScheduledItem]:
    """
    Demo items used to seed an empty repository.

    One one-time item an hour from ``now`` and a weekday-morning repeating
    item valid for 90 days. ``next_execution_at`` is left for the caller to
    compute.
    """
    return [
        ScheduledItem(
            title='Sample scheduled item',
            description='One-time reminder',
            starts_at=now + timedelta(hours=1),
            repeats=False,
        ),
        ScheduledItem(
            title='Daily standup',
            description='Team standup to discuss progress',
            starts_at=now,
            repeats=True,
            cron_expression='0 9 * * MON-FRI',
            expiration=now + timedelta(days=90),
        ),
    ]
