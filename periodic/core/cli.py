# periodic/core/cli.py
"""
CLI for the periodic scheduler, schema setup and cron preview commands.

Configuration is read from the environment (see ``AppConfig.from_env``);
``--env-file`` loads a dotenv file first without overriding variables that
are already set.
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from typing import Optional, Sequence

from dotenv import load_dotenv

from periodic.core.defaults import MAX_BATCH_SIZE
from periodic.core.errors import (
    ConfigurationError,
    ErrorCode,
    ItemValidationError,
    PeriodicError,
)
from periodic.core.logging import get_logger
from periodic.core.models.app import (
    AppConfig,
    SchedulerConfig,
    StorageBackend,
    parse_interval,
)
from periodic.core.repositories import build_repositories
from periodic.core.scheduler import Scheduler
from periodic.core.scheduler.calculator import next_fire_times, validate_cron_expression
from periodic.core.utils.clock import utc_now


def setup_logging(loglevel: str) -> None:
    """Configure logging level globally."""
    from periodic.core.logging import set_default_level

    level = getattr(logging, loglevel.upper(), logging.INFO)
    set_default_level(level)

    root_logger = logging.getLogger('periodic')
    root_logger.setLevel(level)

    for handler in root_logger.handlers:
        handler.setLevel(level)

    for name in logging.Logger.manager.loggerDict:
        if isinstance(name, str) and name.startswith('periodic.'):
            lgr = logging.getLogger(name)
            lgr.setLevel(level)
            for handler in lgr.handlers:
                handler.setLevel(level)


def _load_env_file(env_file: Optional[str]) -> None:
    if not env_file:
        return
    if not os.path.isfile(env_file):
        raise ConfigurationError(
            message=f'env file not found: {env_file}',
            code=ErrorCode.CLI_INVALID_ARGS,
            help_text='pass an existing dotenv file to --env-file',
        )
    load_dotenv(env_file, override=False)


def load_config(args: argparse.Namespace) -> AppConfig:
    """Build the app configuration from the environment plus CLI overrides."""
    _load_env_file(getattr(args, 'env_file', None))
    config = AppConfig.from_env()

    interval_arg: Optional[str] = getattr(args, 'interval', None)
    batch_size_arg: Optional[int] = getattr(args, 'batch_size', None)
    if interval_arg is None and batch_size_arg is None:
        return config

    interval = config.scheduler.interval_seconds
    if interval_arg is not None:
        parsed = parse_interval(interval_arg)
        if parsed is None:
            raise ConfigurationError(
                message=f'invalid --interval: {interval_arg!r}',
                code=ErrorCode.CONFIG_INVALID_INTERVAL,
                notes=['must be a positive duration'],
                help_text="use seconds ('45') or a duration ('30s', '1m30s', '500ms')",
            )
        interval = parsed

    batch_size = config.scheduler.batch_size
    if batch_size_arg is not None:
        if not 1 <= batch_size_arg <= MAX_BATCH_SIZE:
            raise ConfigurationError(
                message=f'invalid --batch-size: {batch_size_arg}',
                code=ErrorCode.CONFIG_INVALID_BATCH_SIZE,
                notes=[f'must be between 1 and {MAX_BATCH_SIZE}'],
            )
        batch_size = batch_size_arg

    return config.model_copy(
        update={
            'scheduler': SchedulerConfig(interval_seconds=interval, batch_size=batch_size)
        }
    )


async def seed_sample_data(scheduler: Scheduler) -> int:
    """Open storage and add the sample items; storage is closed if seeding fails."""
    try:
        await scheduler.start()
        added = await scheduler.repositories.scheduled_items.add_sample_data()
    except BaseException:
        await scheduler.stop()
        raise
    get_logger('cli').info(f'Sample data: {added} item(s) added')
    return added


def scheduler_command(args: argparse.Namespace) -> None:
    """Handle scheduler command."""
    logger = get_logger('cli')

    # Setup logging first
    loglevel: str = args.loglevel
    setup_logging(loglevel)
    logger.info(f'Starting scheduler with loglevel={loglevel}')

    try:
        config = load_config(args)
    except PeriodicError as e:
        print(e.format_rust_style(), file=sys.stderr)
        sys.exit(1)

    config.log_config()
    seed: bool = args.seed

    try:

        async def run_scheduler() -> None:
            try:
                scheduler = Scheduler(build_repositories(config), config.scheduler)

                loop = asyncio.get_running_loop()

                def signal_handler() -> None:
                    logger.info('Received interrupt signal, stopping scheduler...')
                    scheduler.request_stop()

                for sig in (signal.SIGTERM, signal.SIGINT):
                    try:
                        loop.add_signal_handler(sig, signal_handler)
                    except NotImplementedError:
                        pass

                if seed:
                    await seed_sample_data(scheduler)

                await scheduler.run_forever()

            except Exception as e:
                logger.error(f'Scheduler error: {e}', exc_info=True)
                raise

        try:
            asyncio.run(run_scheduler())
        except KeyboardInterrupt:
            logger.info('Scheduler interrupted by user')
            return

    except KeyboardInterrupt:
        logger.info('Scheduler interrupted by user')
        return
    except Exception as e:
        logger.error(f'Scheduler failed: {e}')
        sys.exit(1)


def init_db_command(args: argparse.Namespace) -> None:
    """Handle init-db command: create tables and indexes."""
    logger = get_logger('cli')
    setup_logging(args.loglevel)

    try:
        config = load_config(args)
    except PeriodicError as e:
        print(e.format_rust_style(), file=sys.stderr)
        sys.exit(1)

    if config.backend != StorageBackend.DATABASE:
        error = ConfigurationError(
            message='init-db requires the database backend',
            code=ErrorCode.CONFIG_INVALID_BACKEND,
            notes=[f'current backend: {config.backend.value}'],
            help_text='set PERIODIC_STORAGE_BACKEND=database and DATABASE_URL',
        )
        print(error.format_rust_style(), file=sys.stderr)
        sys.exit(1)

    async def run_init() -> None:
        repositories = build_repositories(config)
        try:
            await repositories.open()
        finally:
            await repositories.close()

    try:
        asyncio.run(run_init())
    except Exception as e:
        logger.error(f'Schema initialization failed: {e}')
        sys.exit(1)

    assert config.database is not None
    print(f'ok: schema ready at {config.database.masked_url()}')


def check_cron_command(args: argparse.Namespace) -> None:
    """Handle check-cron command: validate an expression and preview fire times."""
    expression: str = args.expression
    count: int = args.count

    if count < 1:
        error = ConfigurationError(
            message=f'invalid --count: {count}',
            code=ErrorCode.CLI_INVALID_ARGS,
            notes=['must be at least 1'],
        )
        print(error.format_rust_style(), file=sys.stderr)
        sys.exit(1)

    if not validate_cron_expression(expression):
        error = ItemValidationError(
            message='invalid cron expression',
            code=ErrorCode.ITEM_INVALID_CRON,
            notes=[f'got: {expression!r}'],
            help_text=(
                'expected 5 fields: minute hour day-of-month month day-of-week\n'
                "e.g. '*/15 * * * *' or '0 9 * * MON-FRI'"
            ),
        )
        print(error.format_rust_style(), file=sys.stderr)
        sys.exit(1)

    print(f'ok: {expression!r} is valid')
    for fire_time in next_fire_times(expression, utc_now(), count):
        print(f'  {fire_time.isoformat()}')


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main CLI entry point."""
    try:
        parser = argparse.ArgumentParser(
            prog='periodic',
            description='Periodic - scheduled items to todo items',
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # Run the scheduler with in-memory storage and demo data
  periodic scheduler --seed

  # Run against PostgreSQL, settings from a dotenv file
  periodic scheduler --env-file .env --interval 1m

  # Create tables
  periodic init-db --env-file .env

  # Preview a cron expression
  periodic check-cron '0 9 * * MON-FRI' --count 3
""",
        )
        subparsers = parser.add_subparsers(dest='command', help='Available commands')

        # Scheduler command
        scheduler_parser = subparsers.add_parser(
            'scheduler',
            help='Start the scheduler service',
        )
        scheduler_parser.add_argument(
            '--loglevel',
            choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
            default='INFO',
            type=str.upper,
            help='Logging level (default: INFO)',
        )
        scheduler_parser.add_argument(
            '--env-file',
            dest='env_file',
            help='Load environment variables from a dotenv file',
        )
        scheduler_parser.add_argument(
            '--interval',
            help='Tick interval, overrides SCHEDULER_INTERVAL (e.g. 30s, 1m)',
        )
        scheduler_parser.add_argument(
            '--batch-size',
            dest='batch_size',
            type=int,
            help='Due items per tick, overrides SCHEDULER_BATCH_SIZE',
        )
        scheduler_parser.add_argument(
            '--seed',
            action='store_true',
            default=False,
            help='Add sample scheduled items when storage is empty',
        )

        # Init-db command
        init_db_parser = subparsers.add_parser(
            'init-db',
            help='Create the database schema',
        )
        init_db_parser.add_argument(
            '--env-file',
            dest='env_file',
            help='Load environment variables from a dotenv file',
        )
        init_db_parser.add_argument(
            '--loglevel',
            choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
            default='WARNING',
            type=str.upper,
            help='Logging level (default: WARNING)',
        )

        # Check-cron command
        check_cron_parser = subparsers.add_parser(
            'check-cron',
            help='Validate a cron expression and show upcoming fire times',
        )
        check_cron_parser.add_argument(
            'expression',
            help="5-field cron expression, e.g. '*/5 * * * *'",
        )
        check_cron_parser.add_argument(
            '--count',
            type=int,
            default=5,
            help='Number of upcoming fire times to show (default: 5)',
        )

        args = parser.parse_args(argv)

        match args.command:
            case 'scheduler':
                scheduler_command(args)
            case 'init-db':
                init_db_command(args)
            case 'check-cron':
                check_cron_command(args)
            case _:
                parser.print_help()
                sys.exit(1)
    except KeyboardInterrupt:
        print('\nInterrupted by user')
        sys.exit(0)


if __name__ == '__main__':
    main()
