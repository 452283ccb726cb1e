"""Retry policy for full storefront scrapes."""

import structlog
from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from itemshop.core.exceptions import EmptyCatalogError

logger = structlog.get_logger(__name__)

RETRYABLE_ERRORS = (PlaywrightError, PlaywrightTimeoutError, EmptyCatalogError)


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "scrape_attempt_failed",
        attempt=retry_state.attempt_number,
        next_delay=retry_state.next_action.sleep if retry_state.next_action else None,
        error=str(error),
        error_type=type(error).__name__,
    )


def scrape_retrying(attempts: int, delay_seconds: float) -> AsyncRetrying:
    """Build the retry controller for one scrape run.

    Browser errors and empty catalogs are retried after a fixed delay; the
    last error is re-raised once attempts are exhausted.

    Args:
        attempts: Total attempts, including the first
        delay_seconds: Pause between attempts
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_fixed(delay_seconds),
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        before_sleep=_log_retry,
        reraise=True,
    )
