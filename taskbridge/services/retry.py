"""Retry helpers shared by the HTTP clients"""

import time

import httpx

RETRY_STATUS_CODES = (429, 500, 502, 503, 504)


def should_retry(exc: Exception) -> bool:
    """True for transport errors and throttled or failing responses."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRY_STATUS_CODES
    return False


def with_retries(fn, *, max_attempts: int = 3, base_delay_s: float = 0.5):
    """Call ``fn``, backing off exponentially between transient failures."""
    for attempt in range(1, max_attempts + 1):
        try:
            return fn()
        except Exception as e:
            if attempt == max_attempts or not should_retry(e):
                raise
            time.sleep(base_delay_s * 2 ** (attempt - 1))
