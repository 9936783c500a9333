"""Retry of conflicting units of work.

Order creation, reconciliation and cart edits each run as one database
transaction. When the database reports that two of those collided, the
whole unit is run again from the start a bounded number of times.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from checkout_api.domain.exceptions import TransactionConflictError
from checkout_api.infrastructure.config import settings

logger = structlog.get_logger()

T = TypeVar("T")

# PostgreSQL serialization_failure, deadlock_detected, unique_violation
_RETRYABLE_SQLSTATES = frozenset({"40001", "40P01", "23505"})

_SQLITE_BUSY_MESSAGES = ("database is locked", "database table is locked")


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    for attr in ("sqlstate", "pgcode"):
        code = getattr(orig, attr, None)
        if isinstance(code, str):
            return code
    return None


def is_transient_conflict(exc: BaseException) -> bool:
    """Check if a driver error means "another transaction got there first"."""
    if not isinstance(exc, DBAPIError):
        return False

    if _sqlstate(exc) in _RETRYABLE_SQLSTATES:
        return True

    message = str(exc.orig).lower()
    if isinstance(exc, OperationalError):
        return any(text in message for text in _SQLITE_BUSY_MESSAGES)
    if isinstance(exc, IntegrityError):
        return "unique" in message
    return False


async def run_with_retry(
    operation: str,
    fn: Callable[[], Awaitable[T]],
    max_attempts: int | None = None,
    backoff_seconds: float | None = None,
) -> T:
    """Run ``fn`` and re-run it while it fails with a transaction conflict.

    ``fn`` must open its own transaction so that every attempt starts from
    a clean session.

    Args:
        operation: Name used in logs and in the final error.
        fn: Zero-argument coroutine function performing the unit of work.
        max_attempts: Total attempts (defaults to settings).
        backoff_seconds: Base delay, doubled after each failed attempt.

    Returns:
        Whatever ``fn`` returns.

    Raises:
        TransactionConflictError: If every attempt conflicted.
    """
    attempts = max_attempts or settings.transaction_max_attempts
    base_delay = settings.transaction_backoff_seconds if backoff_seconds is None else backoff_seconds

    last_reason = ""
    for attempt in range(1, attempts + 1):
        try:
            return await fn()
        except TransactionConflictError as e:
            last_reason = e.details.get("reason", "")
        except DBAPIError as e:
            if not is_transient_conflict(e):
                raise
            last_reason = type(e).__name__

        logger.warning(
            "Transaction conflict",
            operation=operation,
            attempt=attempt,
            max_attempts=attempts,
            reason=last_reason,
        )
        if attempt < attempts:
            await asyncio.sleep(base_delay * (2 ** (attempt - 1)))

    logger.error("Transaction conflict retries exhausted", operation=operation, attempts=attempts)
    raise TransactionConflictError(operation, reason=last_reason)
