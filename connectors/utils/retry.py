"""
Exponential backoff for throttled requests.
"""

import logging
import time
from typing import Optional

from connectors.exceptions import (BackoffMaxRetriesException,
                                   RateLimitException)
from connectors.utils.rest import (HttpRunner, RateLimitHeader, Request,
                                   Response)

logger = logging.getLogger(__name__)

# Log a warning once the remaining quota drops below this.
LOW_REMAINING_QUOTA = 10


def is_throttled(response: Response) -> bool:
    """
    Whether the server is asking us to slow down.

    GitHub signals its primary and secondary rate limits with a 403 plus rate
    limit headers instead of a 429.
    """
    if response.status == 429:
        return True
    if response.status == 403:
        rate_limit = response.rate_limit
        return rate_limit is not None and (
            rate_limit.remaining == 0 or rate_limit.retry_after is not None
        )
    return False


def backoff_delay(
    attempt: int,
    base_wait: float,
    max_wait: float,
    server_wait: Optional[float] = None,
) -> float:
    """
    Compute the wait before retry number ``attempt`` (0-indexed).

    :param attempt: Retry attempt number.
    :param base_wait: Initial wait in seconds, doubled on every attempt.
    :param max_wait: Cap for the exponential schedule.
    :param server_wait: Wait requested by the server, if any.
    :return: Delay in seconds, never below ``base_wait``.
    """
    if server_wait is not None:
        return max(server_wait, base_wait)
    return min(base_wait * (2 ** attempt), max(max_wait, base_wait))


class BackoffRunner(HttpRunner):
    """
    Runner decorator that retries throttled requests with exponential backoff.

    Any response that is not a throttling signal, including 5xx errors, is
    returned untouched.
    """

    def __init__(
        self,
        runner: HttpRunner,
        max_retries: int = 0,
        base_wait: float = 60.0,
        max_wait: float = 3600.0,
    ):
        """
        :param runner: Wrapped runner.
        :param max_retries: Retries allowed after the first call. With 0, the
            first throttled response raises RateLimitException.
        :param base_wait: Initial wait in seconds.
        :param max_wait: Cap for the exponential schedule.
        """
        self.runner = runner
        self.max_retries = max(0, int(max_retries))
        self.base_wait = float(base_wait)
        self.max_wait = float(max_wait)

    def run(self, request: Request) -> Response:
        attempt = 0
        while True:
            response = self.runner.run(request)
            self._warn_low_quota(request, response)
            if not is_throttled(response):
                return response

            rate_limit = response.rate_limit or RateLimitHeader()
            if self.max_retries == 0:
                raise RateLimitException(
                    f"Rate limit exceeded for {request.url} "
                    f"(status {response.status})",
                    rate_limit=rate_limit,
                )
            if attempt >= self.max_retries:
                raise BackoffMaxRetriesException(
                    f"Exponential backoff max retries reached ({self.max_retries}) "
                    f"for {request.url}"
                )

            delay = backoff_delay(
                attempt, self.base_wait, self.max_wait, rate_limit.server_wait()
            )
            attempt += 1
            logger.warning(
                f"Throttled by {request.url} (status {response.status}), "
                f"retry {attempt}/{self.max_retries} in {delay:.1f}s"
            )
            time.sleep(delay)

    def close(self) -> None:
        self.runner.close()

    @staticmethod
    def _warn_low_quota(request: Request, response: Response) -> None:
        rate_limit = response.rate_limit
        if (
            rate_limit is not None
            and rate_limit.remaining is not None
            and 0 < rate_limit.remaining < LOW_REMAINING_QUOTA
        ):
            logger.warning(
                f"Rate limit quota running low: {rate_limit.remaining} "
                f"requests remaining after {request.url}"
            )
