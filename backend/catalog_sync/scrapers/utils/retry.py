"""Retry utilities with exponential backoff for HTTP requests."""

import logging

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)
import httpx


# tenacity's before_sleep_log wants a stdlib logger and a numeric level
logger = logging.getLogger(__name__)


# Transport-level failures only: HTTP status codes are handled by the caller,
# a 404 on a listing page is a normal end-of-pagination signal.
RETRYABLE_HTTP_ERRORS = (
    httpx.ConnectError,
    httpx.TimeoutException,
    httpx.RemoteProtocolError,
)


# Reusable retry decorator for page and image fetches (httpx)
http_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=30),
    retry=retry_if_exception_type(RETRYABLE_HTTP_ERRORS),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
