"""Tests for CLI argument handling and config overrides (no scheduler loop)."""

from __future__ import annotations

import argparse
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from periodic.core.cli import load_config, main, seed_sample_data
from periodic.core.errors import ConfigurationError, ErrorCode
from periodic.core.models.app import StorageBackend
from periodic.core.repositories.base import Repositories
from periodic.core.repositories.memory import (
    InMemoryExecutionLogRepository,
    InMemoryTodoItemRepository,
)
from periodic.core.scheduler import Scheduler

pytestmark = pytest.mark.unit

ENV_VARS = (
    'PERIODIC_STORAGE_BACKEND',
    'USE_POSTGRES_DB',
    'DATABASE_URL',
    'SCHEDULER_INTERVAL',
    'SCHEDULER_BATCH_SIZE',
    'DB_HOST',
    'DB_PORT',
    'DB_USER',
    'DB_PASSWORD',
    'DB_NAME',
    'DB_SSL_MODE',
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # setenv first so that values loaded from dotenv files are undone too
    for name in ENV_VARS:
        monkeypatch.setenv(name, '')
        monkeypatch.delenv(name)


def _args(**kwargs: object) -> argparse.Namespace:
    defaults: dict[str, object] = {'env_file': None, 'interval': None, 'batch_size': None}
    defaults.update(kwargs)
    return argparse.Namespace(**defaults)


class TestCheckCron:
    def test_valid_expression_prints_fire_times(self, capsys: pytest.CaptureFixture[str]) -> None:
        main(['check-cron', '0 9 * * MON-FRI', '--count', '2'])

        out = capsys.readouterr().out
        assert "ok: '0 9 * * MON-FRI' is valid" in out
        assert out.count('T09:00:00+00:00') == 2

    def test_invalid_expression_exits_1(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(['check-cron', '0 0 9 * * *'])

        assert exc_info.value.code == 1
        assert 'E100' in capsys.readouterr().err

    def test_non_positive_count_exits_1(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(['check-cron', '* * * * *', '--count', '0'])

        assert exc_info.value.code == 1


class TestMain:
    def test_no_command_prints_help_and_exits(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 1
        assert 'periodic' in capsys.readouterr().out

    def test_init_db_requires_database_backend(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(['init-db'])

        assert exc_info.value.code == 1
        assert 'E200' in capsys.readouterr().err


class TestLoadConfig:
    def test_defaults_from_empty_environment(self) -> None:
        config = load_config(_args())

        assert config.backend == StorageBackend.MEMORY
        assert config.scheduler.interval_seconds == 30.0

    def test_interval_and_batch_size_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv('SCHEDULER_INTERVAL', '10s')

        config = load_config(_args(interval='2m', batch_size=7))

        assert config.scheduler.interval_seconds == 120.0
        assert config.scheduler.batch_size == 7

    def test_invalid_interval_override(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(_args(interval='soon'))

        assert exc_info.value.code == ErrorCode.CONFIG_INVALID_INTERVAL

    def test_invalid_batch_size_override(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(_args(batch_size=0))

        assert exc_info.value.code == ErrorCode.CONFIG_INVALID_BATCH_SIZE

    def test_env_file_is_loaded(self, tmp_path: Path) -> None:
        env_file = tmp_path / '.env'
        db_path = tmp_path / 'periodic.db'
        env_file.write_text(
            'PERIODIC_STORAGE_BACKEND=database\n'
            f'DATABASE_URL=sqlite+aiosqlite:///{db_path}\n'
            'SCHEDULER_BATCH_SIZE=5\n'
        )

        config = load_config(_args(env_file=str(env_file)))

        assert config.backend == StorageBackend.DATABASE
        assert config.scheduler.batch_size == 5

    def test_missing_env_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(_args(env_file=str(tmp_path / 'missing.env')))

        assert exc_info.value.code == ErrorCode.CLI_INVALID_ARGS


def _seeding_scheduler(add_sample_data: AsyncMock) -> tuple[Scheduler, AsyncMock]:
    scheduled_items = AsyncMock()
    scheduled_items.add_sample_data = add_sample_data
    on_close = AsyncMock()
    repositories = Repositories(
        scheduled_items=scheduled_items,
        todo_items=InMemoryTodoItemRepository(),
        execution_logs=InMemoryExecutionLogRepository(),
        on_open=AsyncMock(),
        on_close=on_close,
    )
    return Scheduler(repositories), on_close


class TestSeedSampleData:
    @pytest.mark.asyncio
    async def test_seeds_and_keeps_storage_open(self) -> None:
        scheduler, on_close = _seeding_scheduler(AsyncMock(return_value=2))

        added = await seed_sample_data(scheduler)

        assert added == 2
        on_close.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_closes_storage(self) -> None:
        scheduler, on_close = _seeding_scheduler(
            AsyncMock(side_effect=RuntimeError('disk full'))
        )

        with pytest.raises(RuntimeError, match='disk full'):
            await seed_sample_data(scheduler)

        on_close.assert_awaited_once()
        assert scheduler.stop_requested is True
