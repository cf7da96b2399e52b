"""
Logistics Service — Optimistic lock conflicts and retry

Two kinds of conflict are retried:
  - StaleDataError below, raised when a conditional lot UPDATE matches no row
  - SQLAlchemy's own StaleDataError, raised when a supply or output row's
    mapper-managed version_id moved under us
The decorated operation owns its transaction, so each retry starts from a
clean read.
"""
import asyncio
import functools
import logging
import random

from sqlalchemy.orm.exc import StaleDataError as OrmStaleDataError

from logistics_service.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class StaleDataError(Exception):
    """A lot changed (version or remaining quantity) between our read and our write."""


CONFLICT_ERRORS = (StaleDataError, OrmStaleDataError)


def backoff_delay(attempt: int) -> float:
    """Seconds to wait after failed attempt `attempt` (1-based): capped exponential plus jitter."""
    base = settings.OPT_LOCK_BASE_DELAY_MS / 1000.0
    cap = settings.OPT_LOCK_MAX_DELAY_MS / 1000.0
    jitter = random.uniform(0, settings.OPT_LOCK_JITTER_MS / 1000.0)
    return min(base * (2 ** attempt), cap) + jitter


def with_optimistic_retry(max_retries: int | None = None):
    """
    Re-run an async write operation when it loses an optimistic lock race.

    Usage:
        @with_optimistic_retry()
        async def create_supply_output(db, ...):
            async with db.begin():
                ...

    Any other exception propagates on the first attempt.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            attempts = max_retries or settings.OPT_LOCK_MAX_RETRIES
            attempt = 1
            while True:
                try:
                    return await func(*args, **kwargs)
                except CONFLICT_ERRORS as exc:
                    if attempt >= attempts:
                        logger.error("%s still conflicting after %d attempts: %s", func.__name__, attempts, exc)
                        raise
                    delay = backoff_delay(attempt)
                    logger.warning(
                        "%s lost a version race (attempt %d/%d), retrying in %.3fs",
                        func.__name__, attempt, attempts, delay,
                    )
                    await asyncio.sleep(delay)
                    attempt += 1

        return wrapper

    return decorator
