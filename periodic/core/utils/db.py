# periodic/core/utils/db.py
"""Classification of repository failures for tick-level logging."""

from __future__ import annotations

from psycopg import InterfaceError, OperationalError
from sqlalchemy.exc import DBAPIError, OperationalError as SAOperationalError


def is_dbapi_disconnect(exc: DBAPIError) -> bool:
    """Check whether a SQLAlchemy DBAPIError represents a connection disconnect."""
    return bool(getattr(exc, 'connection_invalidated', False)) or bool(
        getattr(exc, 'is_disconnect', False)
    )


def is_retryable_connection_error(exc: BaseException) -> bool:
    """Check whether an exception is a transient connection error.

    Transient errors are expected to clear up by the next tick.
    """
    match exc:
        case OperationalError() | InterfaceError() | SAOperationalError():
            return True
        case DBAPIError() as db_exc if is_dbapi_disconnect(db_exc):
            return True
        case ConnectionError() | TimeoutError():
            return True
        case _:
            return False


def failure_kind(exc: BaseException) -> str:
    """Label used in log lines: 'transient' or 'permanent'."""
    return 'transient' if is_retryable_connection_error(exc) else 'permanent'
