"""
Rate limiting and retry utilities shared by the WordPress and Contentful
HTTP clients.
"""

from __future__ import annotations

import time
from typing import Callable

import requests

RETRY_STATUSES = (429, 500, 502, 503, 504)


class RateLimiter:
    """
    Simple time-based rate limiter.  Ensures that no more than ``rps``
    requests are dispatched per second.  Contentful's Management API
    allows 10 requests per second per space by default.
    """

    def __init__(self, rps: float = 7.0) -> None:
        self.rps = max(0.1, float(rps))
        self.interval = 1.0 / self.rps
        self._last = 0.0

    def wait(self, time_fn: Callable[[], float] = time.monotonic, sleep_fn: Callable[[float], None] = time.sleep) -> None:
        now = time_fn()
        dt = now - self._last
        if dt < self.interval:
            sleep_fn(self.interval - dt)
        self._last = time_fn()


def with_retries(
    fn: Callable[[], requests.Response],
    *,
    max_attempts: int = 5,
    base_delay: float = 0.7,
    sleep_fn: Callable[[float], None] = time.sleep,
) -> requests.Response:
    """
    Execute a function returning a ``requests.Response``, retrying on
    transient HTTP errors.  Retries are attempted on status codes 429
    (too many requests) and 5xx server errors, and on connection-level
    failures.  Backoff is exponential.

    :param fn: A zero-argument callable that performs the HTTP request.
    :param max_attempts: Maximum number of attempts before giving up.
    :param base_delay: Base delay in seconds for exponential backoff.
    :return: The successful ``requests.Response``.
    :raises requests.HTTPError: if all attempts fail.
    """
    attempt = 0
    while True:
        try:
            resp = fn()
            resp.raise_for_status()
            return resp
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status not in RETRY_STATUSES or attempt >= max_attempts - 1:
                raise
            # Contentful sends X-Contentful-RateLimit-Reset, others Retry-After
            headers = e.response.headers
            retry_after = headers.get("X-Contentful-RateLimit-Reset") or headers.get("Retry-After")
            try:
                wait = float(retry_after) if retry_after else base_delay * (2 ** attempt)
            except ValueError:
                wait = base_delay * (2 ** attempt)
            sleep_fn(wait)
            attempt += 1
        except requests.RequestException:
            if attempt >= max_attempts - 1:
                raise
            sleep_fn(base_delay * (2 ** attempt))
            attempt += 1
