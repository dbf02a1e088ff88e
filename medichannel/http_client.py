"""HTTP session for the hosted backend, with retries and connection pooling.

Pattern: requests.Session with a urllib3 retry adapter for idempotent calls
plus a tenacity wrapper for connection-level failures.

Retried (GET and PATCH only): connection errors, timeouts, HTTP 429 and 5xx.
POST and DELETE are never resent, so an insert whose response was lost
surfaces as a failure instead of being stored twice.
Not retried: any other 4xx. Those are answers (not found, conflict, bad
request) and are handed back to the caller untouched.
"""
import logging

import requests
from requests.adapters import HTTPAdapter
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from urllib3.util.retry import Retry

from medichannel import config

# tenacity's before_sleep hook expects a stdlib logger
logger = logging.getLogger(__name__)

RETRY_STATUSES = (429, 500, 502, 503, 504)

RETRYABLE_EXCEPTIONS = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    requests.exceptions.HTTPError,
)


def create_http_session(
    max_retries: int = config.HTTP_MAX_RETRIES,
    backoff_factor: float = 1.0,
    timeout: int = config.HTTP_TIMEOUT_SECONDS,
    wait_min: float = 1,
    wait_max: float = 8
) -> requests.Session:
    """
    Create HTTP session with retry and connection pooling.

    Args:
        max_retries: Retry attempts after the first call (default: 3)
        backoff_factor: Multiplier for exponential waits (1s, 2s, 4s ...)
        timeout: Per-request timeout in seconds (default: 15)
        wait_min: Lower bound of a single wait in seconds
        wait_max: Upper bound of a single wait in seconds

    Returns:
        requests.Session whose get/patch retry transient failures
    """
    session = requests.Session()

    retry_strategy = Retry(
        total=max_retries,
        backoff_factor=backoff_factor,
        status_forcelist=list(RETRY_STATUSES),
        allowed_methods=["GET", "PATCH"],
        raise_on_status=False,
    )
    adapter = HTTPAdapter(
        max_retries=retry_strategy,
        pool_connections=10,
        pool_maxsize=10,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    def with_timeout(send):
        def send_with_timeout(*args, **kwargs):
            kwargs.setdefault("timeout", timeout)
            return send(*args, **kwargs)

        return send_with_timeout

    def with_retry(send):
        @retry(
            stop=stop_after_attempt(max_retries + 1),
            wait=wait_exponential(multiplier=backoff_factor, min=wait_min, max=wait_max),
            retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True
        )
        def send_with_retry(*args, **kwargs):
            response = send(*args, **kwargs)
            if response.status_code in RETRY_STATUSES:
                response.raise_for_status()
            return response

        return send_with_retry

    # POST and DELETE are sent exactly once
    session.get = with_retry(with_timeout(session.get))
    session.patch = with_retry(with_timeout(session.patch))
    session.post = with_timeout(session.post)
    session.delete = with_timeout(session.delete)

    return session
