"""Shared default constants for the periodic scheduler."""

# Seconds between scheduler ticks when SCHEDULER_INTERVAL is unset or unparseable.
DEFAULT_TICK_INTERVAL_SECONDS: float = 30.0

# Maximum due items fetched (and processed) per tick.
DEFAULT_BATCH_SIZE: int = 100
MAX_BATCH_SIZE: int = 10_000

# PostgreSQL connection parts used when DATABASE_URL is unset.
DEFAULT_DB_HOST: str = 'localhost'
DEFAULT_DB_PORT: str = '5432'
DEFAULT_DB_USER: str = 'postgres'
DEFAULT_DB_PASSWORD: str = 'your-password'
DEFAULT_DB_NAME: str = 'scheduled_items_db'
DEFAULT_DB_SSL_MODE: str = 'disable'
