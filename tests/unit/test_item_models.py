"""Unit tests for scheduled item, todo item and execution log models."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from periodic.core.errors import ErrorCode, ItemValidationError, MultipleValidationErrors
from periodic.core.models.items import (
    ExecutionLog,
    ScheduledItem,
    ScheduledItemCreate,
    TodoItem,
    sample_items,
)
from periodic.core.types.status import ExecutionStatus

pytestmark = pytest.mark.unit


def _utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


class TestScheduledItem:
    def test_todo_text_with_description(self) -> None:
        item = ScheduledItem(title='Standup', description='Daily sync', starts_at=_utc(2025, 6, 1))

        assert item.todo_text() == 'Standup - Daily sync'

    def test_todo_text_without_description(self) -> None:
        item = ScheduledItem(title='Standup', starts_at=_utc(2025, 6, 1))

        assert item.todo_text() == 'Standup'

    def test_none_description_becomes_empty(self) -> None:
        item = ScheduledItem(title='Standup', description=None, starts_at=_utc(2025, 6, 1))

        assert item.description == ''

    def test_naive_datetimes_are_utc(self) -> None:
        item = ScheduledItem(
            title='t',
            starts_at=datetime(2025, 6, 1, 9, 0),
            expiration=datetime(2025, 7, 1),
            next_execution_at=datetime(2025, 6, 2, 9, 0),
        )

        assert item.starts_at == _utc(2025, 6, 1, 9, 0)
        assert item.expiration is not None and item.expiration.tzinfo == timezone.utc
        assert item.next_execution_at == _utc(2025, 6, 2, 9, 0)

    def test_offset_datetimes_are_converted(self) -> None:
        item = ScheduledItem(
            title='t',
            starts_at=datetime(2025, 6, 1, 11, 0, tzinfo=timezone(timedelta(hours=2))),
        )

        assert item.starts_at == _utc(2025, 6, 1, 9, 0)
        assert item.starts_at.tzinfo == timezone.utc


class TestTodoItem:
    def test_defaults_unchecked(self) -> None:
        todo = TodoItem(text='Standup')

        assert todo.id is None
        assert todo.checked is False


class TestExecutionLog:
    def test_accepts_status_string(self) -> None:
        log = ExecutionLog(scheduled_item_id=1, status='success', todo_item_id=3)

        assert log.status is ExecutionStatus.SUCCESS

    def test_rejects_non_positive_item_id(self) -> None:
        with pytest.raises(ValidationError):
            ExecutionLog(scheduled_item_id=0, status=ExecutionStatus.ERROR)

    def test_rejects_unknown_status(self) -> None:
        with pytest.raises(ValidationError):
            ExecutionLog(scheduled_item_id=1, status='running')


class TestExecutionStatusParse:
    def test_member_passthrough(self) -> None:
        assert ExecutionStatus.parse(ExecutionStatus.SKIPPED) is ExecutionStatus.SKIPPED

    def test_string_value(self) -> None:
        assert ExecutionStatus.parse('error') is ExecutionStatus.ERROR

    @pytest.mark.parametrize('value', ['SUCCESS', 'done', '', None, 1])
    def test_outside_closed_set(self, value: object) -> None:
        assert ExecutionStatus.parse(value) is None


class TestScheduledItemCreate:
    def test_valid_one_time_item(self) -> None:
        data = ScheduledItemCreate(title='Dentist', starts_at=_utc(2025, 6, 1, 9, 0))

        assert data.repeats is False
        assert data.cron_expression is None

    def test_valid_repeating_item_normalizes_cron(self) -> None:
        data = ScheduledItemCreate(
            title='Standup',
            starts_at=_utc(2025, 6, 1),
            repeats=True,
            cron_expression=' 0  9 * * MON-FRI ',
            expiration=_utc(2025, 9, 1),
        )

        assert data.cron_expression == '0 9 * * MON-FRI'

    def test_blank_cron_on_one_time_item_is_dropped(self) -> None:
        data = ScheduledItemCreate(title='Dentist', starts_at=_utc(2025, 6, 1), cron_expression='  ')

        assert data.cron_expression is None

    def test_missing_title(self) -> None:
        with pytest.raises(ItemValidationError) as exc_info:
            ScheduledItemCreate(title='   ', starts_at=_utc(2025, 6, 1))

        assert exc_info.value.code == ErrorCode.ITEM_MISSING_TITLE

    def test_repeating_without_cron(self) -> None:
        with pytest.raises(ItemValidationError) as exc_info:
            ScheduledItemCreate(title='Standup', starts_at=_utc(2025, 6, 1), repeats=True)

        assert exc_info.value.code == ErrorCode.ITEM_INVALID_CRON

    @pytest.mark.parametrize('expression', ['0 0 9 * * *', '@hourly', '61 * * * *'])
    def test_repeating_with_invalid_cron(self, expression: str) -> None:
        with pytest.raises(ItemValidationError) as exc_info:
            ScheduledItemCreate(
                title='Standup',
                starts_at=_utc(2025, 6, 1),
                repeats=True,
                cron_expression=expression,
            )

        assert exc_info.value.code == ErrorCode.ITEM_INVALID_CRON
        assert any(expression in note for note in exc_info.value.notes)

    def test_cron_on_one_time_item(self) -> None:
        with pytest.raises(ItemValidationError) as exc_info:
            ScheduledItemCreate(
                title='Dentist', starts_at=_utc(2025, 6, 1), cron_expression='0 9 * * *'
            )

        assert exc_info.value.code == ErrorCode.ITEM_UNEXPECTED_CRON

    def test_expiration_not_after_start(self) -> None:
        with pytest.raises(ItemValidationError) as exc_info:
            ScheduledItemCreate(
                title='Standup',
                starts_at=_utc(2025, 6, 1),
                repeats=True,
                cron_expression='0 9 * * *',
                expiration=_utc(2025, 6, 1),
            )

        assert exc_info.value.code == ErrorCode.ITEM_INVALID_WINDOW

    def test_multiple_problems_are_collected(self) -> None:
        with pytest.raises(MultipleValidationErrors) as exc_info:
            ScheduledItemCreate(
                title='',
                starts_at=_utc(2025, 6, 1),
                repeats=True,
                expiration=_utc(2025, 5, 1),
            )

        codes = {error.code for error in exc_info.value.report.errors}
        assert codes == {
            ErrorCode.ITEM_MISSING_TITLE,
            ErrorCode.ITEM_INVALID_CRON,
            ErrorCode.ITEM_INVALID_WINDOW,
        }


class TestSampleItems:
    def test_one_time_and_repeating(self) -> None:
        now = _utc(2025, 6, 1, 8, 0)

        one_time, repeating = sample_items(now)

        assert one_time.repeats is False
        assert one_time.starts_at == now + timedelta(hours=1)
        assert repeating.repeats is True
        assert repeating.cron_expression == '0 9 * * MON-FRI'
        assert repeating.expiration == now + timedelta(days=90)
        assert all(item.next_execution_at is None for item in (one_time, repeating))
