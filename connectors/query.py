"""
Request helpers shared by every resource of both backends.

Every single-request and paged-list operation goes through these functions,
so status checks, error translation and pagination policy behave the same
for all resources. Each call is parameterized by the backend fields class
that maps a JSON record to a domain entity.
"""

import logging
from typing import Any, Dict, List, Optional

from connectors.args import ListBodyArgs
from connectors.config import (DEFAULT_BACKOFF_MAX_WAIT,
                               DEFAULT_BACKOFF_RETRY_AFTER)
from connectors.exceptions import APIException
from connectors.fields import map_page
from connectors.utils.dates import sort_filter_by_date
from connectors.utils.pagination import Paginator
from connectors.utils.rest import (SUCCESS_STATUS, ApiOperation, HttpRunner,
                                   Method, Request, Response, set_query_param)
from connectors.utils.retry import BackoffRunner

logger = logging.getLogger(__name__)


def query_error(url: str, response: Response) -> APIException:
    return APIException(
        f"Failed to submit request to URL: {url} with status code: "
        f"{response.status} and body: {response.body}",
        status=response.status,
        body=response.body,
    )


def with_refresh(headers: Dict[str, str], refresh: bool) -> Dict[str, str]:
    """Ask intermediaries to skip their cache when ``refresh`` is set."""
    if not refresh:
        return headers
    return {**headers, "Cache-Control": "no-cache"}


def send_request(
    runner: HttpRunner,
    url: str,
    headers: Dict[str, str],
    method: Method = Method.GET,
    body: Optional[Any] = None,
    operation: Optional[ApiOperation] = None,
    expected_status: Optional[int] = None,
) -> Response:
    """
    Execute a single request and check its status.

    :param runner: Runner to use, normally the connector's backoff runner.
    :param url: Target URL.
    :param headers: Request headers, token included.
    :param method: HTTP method.
    :param body: Optional JSON body.
    :param operation: Operation tag of the request.
    :param expected_status: Success status; defaults per method.
    :return: The successful response.
    :raises APIException: If the status is not the expected one.
    """
    request = Request(
        url=url,
        method=method,
        headers=dict(headers),
        body=body,
        api_operation=operation,
    )
    response = runner.run(request)
    expected = SUCCESS_STATUS[method] if expected_status is None else expected_status
    if response.status != expected:
        raise query_error(url, response)
    return response


def send(
    runner: HttpRunner,
    url: str,
    fields,
    headers: Dict[str, str],
    method: Method = Method.GET,
    body: Optional[Any] = None,
    operation: Optional[ApiOperation] = None,
    expected_status: Optional[int] = None,
):
    """Execute a single request and map its JSON body to one entity."""
    response = send_request(
        runner, url, headers, method, body, operation, expected_status
    )
    return fields.from_json(response.json()).to_entity()


def send_json(
    runner: HttpRunner,
    url: str,
    headers: Dict[str, str],
    method: Method = Method.GET,
    body: Optional[Any] = None,
    operation: Optional[ApiOperation] = None,
    expected_status: Optional[int] = None,
) -> Any:
    """Execute a single request and return its decoded JSON body."""
    response = send_request(
        runner, url, headers, method, body, operation, expected_status
    )
    return response.json()


def list_paged(
    runner: HttpRunner,
    url: str,
    fields,
    headers: Dict[str, str],
    list_args: ListBodyArgs,
    operation: Optional[ApiOperation] = None,
    sub_array: Optional[str] = None,
) -> List:
    """
    Walk every page of a list endpoint and map all records.

    Any error aborts the whole listing; pages already fetched are discarded.

    :param runner: Raw runner; throttling backoff is applied per ``list_args``.
    :param url: URL of the first page.
    :param fields: Backend fields class mapping one record.
    :param headers: Request headers, token included.
    :param list_args: Paging, throttling, backoff and date window settings.
    :param operation: Operation tag of the requests.
    :param sub_array: Key of the records array when the body is an object.
    :return: Entities sorted most recent first, or an empty list in flush mode.
    """
    request = Request(
        url=url,
        method=Method.GET,
        headers=with_refresh(dict(headers), list_args.refresh),
        api_operation=operation,
    )
    backoff = BackoffRunner(
        runner,
        max_retries=list_args.backoff_max_retries or 0,
        base_wait=(
            DEFAULT_BACKOFF_RETRY_AFTER
            if list_args.backoff_retry_after is None
            else list_args.backoff_retry_after
        ),
        max_wait=(
            DEFAULT_BACKOFF_MAX_WAIT
            if list_args.backoff_max_wait is None
            else list_args.backoff_max_wait
        ),
    )
    paginator = Paginator(
        backoff,
        request,
        from_page=list_args.page,
        max_pages=list_args.max_pages,
        throttle=list_args.throttle,
    )

    entities = []
    for response in paginator:
        if not response.is_ok(Method.GET):
            raise query_error(url, response)
        page = map_page(response.json(), fields, sub_array)
        if list_args.flush:
            list_args.sink(
                sort_filter_by_date(
                    page, list_args.created_after, list_args.created_before
                )
            )
            continue
        entities.extend(page)

    if list_args.flush:
        return []
    logger.info(
        f"Retrieved {len(entities)} records in {paginator.pages_fetched} pages "
        f"from {url}"
    )
    return sort_filter_by_date(
        entities, list_args.created_after, list_args.created_before
    )


def num_pages(
    runner: HttpRunner,
    url: str,
    headers: Dict[str, str],
    operation: Optional[ApiOperation] = None,
) -> Optional[int]:
    """
    Number of pages of a list endpoint, read from headers of a HEAD request.

    :return: The last page number; 1 when the response has no pagination
        headers (GitHub omits them for a single page); None when headers exist
        but do not say where the last page is.
    """
    response = send_request(
        runner,
        set_query_param(url, "page", 1),
        headers,
        method=Method.HEAD,
        operation=operation,
    )
    page_header = response.page_header
    if page_header is None:
        return 1
    if page_header.last is not None:
        return page_header.last.number
    return None


def num_resources(
    runner: HttpRunner,
    url: str,
    headers: Dict[str, str],
    per_page: int,
    operation: Optional[ApiOperation] = None,
    sub_array: Optional[str] = None,
) -> Optional[int]:
    """
    Number of records behind a list endpoint.

    Uses GitLab's ``x-total`` header when present. Otherwise the last page is
    fetched and counted on top of the full pages before it.

    :return: Record count, or None when the remote gives no usable signal.
    """
    first_url = set_query_param(set_query_param(url, "page", 1), "per_page", per_page)
    response = send_request(runner, first_url, headers, operation=operation)
    page_header = response.page_header
    if page_header is None:
        return len(_records(response, sub_array))
    if page_header.total is not None:
        return page_header.total
    if page_header.last is None:
        return None
    if page_header.last.number <= 1:
        return len(_records(response, sub_array))

    last_url = set_query_param(first_url, "page", page_header.last.number)
    last_response = send_request(runner, last_url, headers, operation=operation)
    return (page_header.last.number - 1) * per_page + len(
        _records(last_response, sub_array)
    )


def _records(response: Response, sub_array: Optional[str]) -> list:
    body = response.json()
    if sub_array is not None and isinstance(body, dict):
        body = body.get(sub_array)
    return body if isinstance(body, list) else []
