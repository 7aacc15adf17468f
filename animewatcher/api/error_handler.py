"""Unified error handling for catalog API interactions."""

from typing import Optional, Tuple, Callable, Awaitable, Union
from enum import Enum
import asyncio
import logging

import httpx

logger = logging.getLogger(__name__)


class ErrorCategory(Enum):
    """Categorize errors for selective retry logic."""
    RETRYABLE = "retryable"          # timeouts, connection errors, 5xx
    NOT_FOUND = "not_found"          # empty lookups - never retried
    NON_RETRYABLE = "non_retryable"  # 4xx, malformed responses


class CatalogError(Exception):
    """Base exception for catalog lookups."""
    pass


class NetworkError(CatalogError):
    """HTTP or transport failure talking to the catalog."""

    def __init__(self, message: str, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable


class ParseError(CatalogError):
    """Catalog response could not be decoded into the expected shape."""
    pass


class NotFoundError(CatalogError):
    """Lookup succeeded but returned nothing usable."""
    pass


# HTTP status code mapping
HTTP_STATUS_MESSAGES = {
    400: "Malformed request",
    403: "Access denied by catalog",
    404: "Catalog endpoint not found",
    429: "Rate limited by catalog",
    500: "Catalog server error",
    502: "Bad gateway",
    503: "Catalog unavailable",
    504: "Gateway timeout",
}


def get_error_message(status_code: int) -> str:
    """
    Get user-friendly error message for HTTP status code.

    Args:
        status_code: HTTP status code

    Returns:
        Error message string
    """
    return HTTP_STATUS_MESSAGES.get(
        status_code,
        f"Unexpected response (HTTP {status_code})"
    )


def handle_http_status(status_code: int, context: str = "") -> None:
    """
    Raise the appropriate exception for a non-success HTTP status.

    Args:
        status_code: HTTP status code from the catalog
        context: Additional context for error message

    Raises:
        NetworkError: retryable for 429 and 5xx, non-retryable otherwise
    """
    if 200 <= status_code < 300:
        return

    msg = get_error_message(status_code)
    if context:
        msg = f"{msg} ({context})"

    retryable = status_code == 429 or status_code >= 500
    raise NetworkError(msg, retryable=retryable)


def categorize_error(exception: Exception) -> Tuple[Exception, ErrorCategory]:
    """
    Categorize an error for selective retry logic.

    httpx transport exceptions are converted into ``NetworkError`` so
    callers only ever see the catalog taxonomy.

    Args:
        exception: Exception to categorize

    Returns:
        Tuple of (possibly converted exception, ErrorCategory)
    """
    if isinstance(exception, NotFoundError):
        return (exception, ErrorCategory.NOT_FOUND)

    if isinstance(exception, NetworkError):
        category = ErrorCategory.RETRYABLE if exception.retryable else ErrorCategory.NON_RETRYABLE
        return (exception, category)

    if isinstance(exception, (httpx.TimeoutException, httpx.TransportError)):
        return (NetworkError(str(exception) or type(exception).__name__, retryable=True),
                ErrorCategory.RETRYABLE)

    if isinstance(exception, httpx.HTTPStatusError):
        status = exception.response.status_code
        retryable = status == 429 or status >= 500
        converted = NetworkError(get_error_message(status), retryable=retryable)
        return (converted, ErrorCategory.RETRYABLE if retryable else ErrorCategory.NON_RETRYABLE)

    if isinstance(exception, ParseError):
        return (exception, ErrorCategory.NON_RETRYABLE)

    return (exception, ErrorCategory.NON_RETRYABLE)


async def retry_with_backoff(
    func: Union[Callable, Callable[[], Awaitable]],
    max_attempts: int = 4,
    initial_delay: float = 0.5,
    backoff_factor: float = 2.0,
    context: str = ""
):
    """
    Retry a function with exponential backoff using selective retry logic.

    Supports both sync and async functions.

    Args:
        func: Function to retry (sync or async)
        max_attempts: Maximum number of attempts
        initial_delay: Initial delay in seconds
        backoff_factor: Multiplier for each retry
        context: Context string for error messages

    Returns:
        Function result if successful

    Raises:
        The categorized exception once retries are exhausted, or at once
        for NOT_FOUND / NON_RETRYABLE errors
    """
    delay = initial_delay
    last_exception: Optional[Exception] = None
    is_async = asyncio.iscoroutinefunction(func)

    for attempt in range(1, max_attempts + 1):
        try:
            if is_async:
                result = await func()
            else:
                result = func()
            if attempt > 1:
                logger.info(f"{context} succeeded after {attempt} attempts")
            return result
        except Exception as e:
            exception, category = categorize_error(e)
            last_exception = exception

            if category != ErrorCategory.RETRYABLE:
                if exception is e:
                    raise
                raise exception from e

            if attempt < max_attempts:
                logger.warning(
                    f"{context} failed (attempt {attempt}/{max_attempts}): {exception}. "
                    f"Retrying in {delay:.1f}s..."
                )
                await asyncio.sleep(delay)
                delay *= backoff_factor
            else:
                logger.error(f"{context} failed after {max_attempts} attempts: {exception}")

    if last_exception:
        raise last_exception
    raise CatalogError(f"{context} failed after {max_attempts} attempts")
