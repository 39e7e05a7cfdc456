"""
Lazy pagination over REST list endpoints.
"""

import logging
import time
from typing import Optional

from connectors.utils.rest import (HttpRunner, Request, Response,
                                   get_query_param, set_query_param)

logger = logging.getLogger(__name__)


class Paginator:
    """
    Single-pass iterator of responses, one remote page per step.

    Each ``next()`` performs one call, so a consumer that stops early pays
    nothing for the remaining pages.

    Two strategies:

    - Link relations (default): follow the ``next`` page advertised by each
      response until there is none, optionally capped by ``max_pages``.
    - Explicit range: with ``from_page``, fetch exactly ``max_pages`` pages
      starting there, whatever the headers say. GitHub drops pagination
      headers when it has nothing to add, so their absence cannot always be
      trusted.
    """

    def __init__(
        self,
        runner: HttpRunner,
        request: Request,
        from_page: Optional[int] = None,
        max_pages: Optional[int] = None,
        throttle: Optional[float] = None,
    ):
        """
        :param runner: Runner used for every page (usually a BackoffRunner).
        :param request: Request for the first page.
        :param from_page: Start page for the explicit range strategy.
        :param max_pages: Number of pages for the explicit range, or a cap
            for the link relation strategy.
        :param throttle: Seconds to sleep between two page fetches.
        """
        self.runner = runner
        self.request = request
        self.from_page = from_page
        self.max_pages = max_pages
        self.throttle = throttle
        self.pages_fetched = 0
        self._next_url = request.url
        self._done = False

        if from_page is not None:
            if max_pages is None:
                self.max_pages = 1
            self._next_url = set_query_param(request.url, "page", from_page)

    def __iter__(self) -> "Paginator":
        return self

    def __next__(self) -> Response:
        if self._done or self._next_url is None:
            self._done = True
            raise StopIteration
        if self.max_pages is not None and self.pages_fetched >= self.max_pages:
            self._done = True
            raise StopIteration

        if self.pages_fetched > 0 and self.throttle:
            logger.debug(f"Throttling: waiting {self.throttle}s before next page")
            time.sleep(self.throttle)

        request = self.request.with_url(self._next_url)
        try:
            response = self.runner.run(request)
        except Exception:
            self._done = True
            raise
        self.pages_fetched += 1
        logger.debug(
            f"Fetched page {self.pages_fetched} from {request.url} "
            f"(status {response.status})"
        )

        if not response.is_success:
            self._done = True
        else:
            self._next_url = self._advance(request.url, response)
        return response

    def _advance(self, current_url: str, response: Response) -> Optional[str]:
        if self.from_page is not None:
            return set_query_param(
                self.request.url, "page", self.from_page + self.pages_fetched
            )

        page_header = response.page_header
        if page_header is None or page_header.next is None:
            return None

        current = get_query_param(current_url, "page")
        current_number = int(current) if current and current.isdigit() else 1
        if page_header.next.number <= current_number:
            logger.debug(
                f"Next page {page_header.next.number} does not advance past "
                f"{current_number}, stopping"
            )
            return None
        if page_header.last is not None and current_number >= page_header.last.number:
            return None
        return set_query_param(current_url, "page", page_header.next.number)
