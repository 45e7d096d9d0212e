"""Bounded retry for transactions that lose a concurrency race.

Stock reservation relies on row locks; under contention the database may
abort one transaction with a deadlock, a serialization failure or a lock
wait timeout.  Those aborts leave no partial state behind, so the whole unit
of work can safely run again.  Anything else (and the last failed attempt)
propagates unchanged.

The decorator must sit **outside** ``transaction.atomic`` so every attempt
opens a fresh transaction::

    @retry_on_conflict()
    @transaction.atomic
    def reserve(...): ...
"""

from __future__ import annotations

import time
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

import structlog
from django.conf import settings
from django.db import OperationalError

logger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

# PostgreSQL SQLSTATE: serialization_failure, deadlock_detected
PG_RETRY_ERRCODES = {"40001", "40P01"}
# MySQL: ER_LOCK_WAIT_TIMEOUT, ER_LOCK_DEADLOCK
MYSQL_RETRY_ERRCODES = {1205, 1213}
RETRY_MESSAGES = (
    "deadlock",
    "could not serialize access",
    "lock wait timeout",
    "database is locked",
)


def _pgcode_from(exc: BaseException) -> Optional[str]:
    cause = exc.__cause__
    return (
        getattr(exc, "pgcode", None)
        or getattr(cause, "pgcode", None)
        or getattr(cause, "sqlstate", None)
    )


def is_retryable(exc: BaseException) -> bool:
    """Return ``True`` for transient lock/serialization conflicts."""
    if not isinstance(exc, OperationalError):
        return False
    if _pgcode_from(exc) in PG_RETRY_ERRCODES:
        return True
    if exc.args and exc.args[0] in MYSQL_RETRY_ERRCODES:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in RETRY_MESSAGES)


def retry_on_conflict(
    max_attempts: Optional[int] = None, backoff: float = 0.05
) -> Callable[[F], F]:
    """Retry the wrapped unit of work on transient database conflicts.

    ``max_attempts`` defaults to ``settings.ORDER_TX_MAX_ATTEMPTS``.  The
    sleep between attempts grows linearly (``backoff * attempt``).
    """

    def deco(fn: F) -> F:
        @wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            limit = max_attempts or settings.ORDER_TX_MAX_ATTEMPTS
            attempt = 0
            while True:
                attempt += 1
                try:
                    return fn(*args, **kwargs)
                except OperationalError as exc:
                    if attempt >= limit or not is_retryable(exc):
                        raise
                    logger.warning(
                        "transaction.conflict_retry",
                        operation=fn.__qualname__,
                        attempt=attempt,
                        max_attempts=limit,
                        error=str(exc),
                    )
                    time.sleep(backoff * attempt)

        return wrapper  # type: ignore[return-value]

    return deco
