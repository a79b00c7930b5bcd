"""Transactional read-modify-write helper."""

from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from core.config import settings
from core.exceptions import ServiceUnavailableError, TransactionConflictError
from domain.repositories.unit_of_work import IUnitOfWork

logger = structlog.get_logger()

T = TypeVar("T")

# Upper bound for a single backoff sleep, in seconds.
MAX_BACKOFF_SECONDS = 1.0


def _log_conflict(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "transaction_conflict",
        attempt=retry_state.attempt_number,
        error=str(error),
    )


async def run_in_transaction(
    uow_factory: Callable[[], IUnitOfWork],
    work: Callable[[IUnitOfWork], Awaitable[T]],
    *,
    max_attempts: int | None = None,
    backoff_seconds: float | None = None,
) -> T:
    """Run ``work`` inside a fresh unit of work and commit it.

    ``work`` must read everything it validates through the given unit of work,
    so a retry after a conflict re-reads the latest snapshot. Application
    errors raised by ``work`` abort the transaction and propagate unchanged.

    Raises:
        ServiceUnavailableError: If every attempt ended in a conflict.
    """
    attempts = max_attempts or settings.transaction_max_attempts
    backoff = (
        settings.transaction_retry_backoff_seconds
        if backoff_seconds is None
        else backoff_seconds
    )

    retrying = AsyncRetrying(
        retry=retry_if_exception_type(TransactionConflictError),
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=backoff, max=MAX_BACKOFF_SECONDS),
        before_sleep=_log_conflict,
        reraise=False,
    )

    try:
        async for attempt in retrying:
            with attempt:
                async with uow_factory() as uow:
                    result = await work(uow)
                    await uow.commit()
    except RetryError as exc:
        logger.warning("transaction_abandoned", max_attempts=attempts)
        raise ServiceUnavailableError(
            "Could not complete the operation, please retry"
        ) from exc.last_attempt.exception()

    return result
