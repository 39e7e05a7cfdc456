"""
REST API helper utilities.

Provides the request/response value types shared by both backends, the
parsing of pagination and rate limit headers, and the ``requests`` based
runner that performs exactly one HTTP call per request.
"""

import json
import logging
import time
from collections import Counter
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import requests
from requests.structures import CaseInsensitiveDict
from requests.utils import parse_header_links

from connectors.exceptions import (TransportException,
                                   UnexpectedResponseContractException)

logger = logging.getLogger(__name__)


class Method(str, Enum):
    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"


class ApiOperation(str, Enum):
    """Classification of a request, used for logging and call accounting."""

    PROJECT = "project"
    MERGE_REQUEST = "merge_request"
    PIPELINE = "pipeline"
    RELEASE = "release"
    CONTAINER_REGISTRY = "container_registry"
    REPOSITORY_TAG = "repository_tag"
    GIST = "gist"
    USER = "user"


# Expected success status per method when the caller does not override it.
SUCCESS_STATUS = {
    Method.GET: 200,
    Method.HEAD: 200,
    Method.POST: 201,
    Method.PUT: 200,
    Method.PATCH: 200,
}


def set_query_param(url: str, name: str, value: Any) -> str:
    """
    Return ``url`` with query parameter ``name`` set to ``value``.

    An existing parameter is replaced in place, otherwise it is appended.

    :param url: URL to rewrite.
    :param name: Query parameter name.
    :param value: New value.
    :return: Rewritten URL.
    """
    parts = urlsplit(url)
    params = parse_qsl(parts.query, keep_blank_values=True)
    replaced = False
    updated = []
    for key, current in params:
        if key == name:
            if not replaced:
                updated.append((key, str(value)))
                replaced = True
            continue
        updated.append((key, current))
    if not replaced:
        updated.append((name, str(value)))
    return urlunsplit(parts._replace(query=urlencode(updated, safe=",:")))


def get_query_param(url: str, name: str) -> Optional[str]:
    for key, value in parse_qsl(urlsplit(url).query, keep_blank_values=True):
        if key == name:
            return value
    return None


def _to_int(value: Optional[str]) -> Optional[int]:
    if value is None or str(value).strip() == "":
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _to_float(value: Optional[str]) -> Optional[float]:
    if value is None or str(value).strip() == "":
        return None
    try:
        return float(str(value).strip())
    except ValueError:
        return None


@dataclass(frozen=True)
class Page:
    url: str
    number: int


@dataclass(frozen=True)
class PageHeader:
    """Pagination metadata of a single response."""

    next: Optional[Page] = None
    last: Optional[Page] = None
    total: Optional[int] = None

    @classmethod
    def from_headers(cls, headers) -> Optional["PageHeader"]:
        """
        Parse ``Link`` relations plus GitLab's ``x-*`` pagination headers.

        :param headers: Case-insensitive header mapping.
        :return: PageHeader, or None when the response carries no pagination
            headers at all (which means a single page).
        """
        link = headers.get("link")
        next_page = None
        last_page = None
        if link:
            for entry in parse_header_links(link):
                number = _to_int(get_query_param(entry.get("url", ""), "page"))
                if number is None:
                    continue
                page = Page(url=entry["url"], number=number)
                rel = entry.get("rel")
                if rel == "next":
                    next_page = page
                elif rel == "last":
                    last_page = page

        x_next = _to_int(headers.get("x-next-page"))
        x_total_pages = _to_int(headers.get("x-total-pages"))
        total = _to_int(headers.get("x-total"))

        if next_page is None and x_next is not None:
            next_page = Page(url="", number=x_next)
        if last_page is None and x_total_pages is not None:
            last_page = Page(url="", number=x_total_pages)

        if not link and next_page is None and last_page is None and total is None:
            return None
        return cls(next=next_page, last=last_page, total=total)


@dataclass(frozen=True)
class RateLimitHeader:
    """Rate limit metadata of a single response."""

    remaining: Optional[int] = None
    reset: Optional[float] = None
    retry_after: Optional[float] = None

    @classmethod
    def from_headers(cls, headers) -> Optional["RateLimitHeader"]:
        remaining = _to_int(
            headers.get("x-ratelimit-remaining", headers.get("ratelimit-remaining"))
        )
        reset = _to_float(
            headers.get("x-ratelimit-reset", headers.get("ratelimit-reset"))
        )
        retry_after = _to_float(headers.get("retry-after"))
        if remaining is None and reset is None and retry_after is None:
            return None
        return cls(remaining=remaining, reset=reset, retry_after=retry_after)

    def server_wait(self, now: Optional[float] = None) -> Optional[float]:
        """
        Seconds the server asked us to wait, if it said anything.

        ``retry-after`` wins over the reset timestamp.
        """
        if self.retry_after is not None:
            return max(self.retry_after, 0.0)
        if self.reset is not None and self.remaining == 0:
            now = time.time() if now is None else now
            return max(self.reset - now, 0.0)
        return None


@dataclass
class Request:
    """
    An outbound HTTP call.

    Mutable until it is handed to a runner; retries resend it verbatim.
    """

    url: str
    method: Method = Method.GET
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[Any] = None
    api_operation: Optional[ApiOperation] = None

    def with_url(self, url: str) -> "Request":
        """Copy of this request against another URL."""
        return replace(self, url=url, headers=dict(self.headers))


@dataclass(frozen=True)
class Response:
    """An inbound HTTP result. Two responses are equal if status and body are."""

    status: int
    body: str = ""
    headers: CaseInsensitiveDict = field(
        default_factory=CaseInsensitiveDict, compare=False, repr=False
    )

    def __post_init__(self):
        if not isinstance(self.headers, CaseInsensitiveDict):
            object.__setattr__(
                self, "headers", CaseInsensitiveDict(self.headers or {})
            )

    @property
    def page_header(self) -> Optional[PageHeader]:
        return PageHeader.from_headers(self.headers)

    @property
    def rate_limit(self) -> Optional[RateLimitHeader]:
        return RateLimitHeader.from_headers(self.headers)

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300

    def is_ok(self, method: Method) -> bool:
        return self.status == SUCCESS_STATUS[method]

    def json(self) -> Any:
        """
        Decode the body as JSON.

        :raises UnexpectedResponseContractException: If the body is not JSON.
        """
        try:
            return json.loads(self.body)
        except (TypeError, ValueError) as e:
            raise UnexpectedResponseContractException(
                f"Expected a JSON body but got: {self.body!r} ({e})"
            )


class HttpRunner:
    """
    Executes one Request and returns one Response.

    Implementations must raise TransportException when no status could be
    obtained, and must return non-2xx responses instead of raising.
    """

    def run(self, request: Request) -> Response:
        raise NotImplementedError

    def close(self) -> None:
        pass


class RESTClient(HttpRunner):
    """
    Runner backed by a ``requests`` session. No retry logic of its own.
    """

    def __init__(
        self,
        timeout: float = 30,
        headers: Optional[Dict[str, str]] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize REST client.

        :param timeout: Request timeout in seconds.
        :param headers: Optional headers added to every request.
        :param session: Optional pre-configured session.
        """
        self.timeout = timeout
        self.headers = headers or {}
        self.session = session or requests.Session()
        self.calls = Counter()

    def run(self, request: Request) -> Response:
        """
        Perform the HTTP call described by ``request``.

        :param request: Request to execute.
        :return: Response with whatever status the server returned.
        :raises TransportException: If the network call failed.
        """
        request_headers = {**self.headers, **request.headers}
        operation = request.api_operation.value if request.api_operation else "-"
        self.calls[operation] += 1
        logger.debug(f"{request.method.value} {request.url} [{operation}]")

        kwargs = {"headers": request_headers, "timeout": self.timeout}
        if request.body is not None:
            kwargs["json"] = request.body

        try:
            response = self.session.request(
                request.method.value, request.url, **kwargs
            )
        except requests.exceptions.Timeout:
            raise TransportException(f"Request timeout: {request.url}")
        except requests.exceptions.RequestException as e:
            raise TransportException(f"Request failed: {request.url}: {e}")

        logger.debug(f"{request.method.value} {request.url} -> {response.status_code}")
        return Response(
            status=response.status_code,
            body=response.text,
            headers=CaseInsensitiveDict(response.headers),
        )

    def close(self) -> None:
        self.session.close()
