"""
Utility modules for connectors.
"""

from .dates import (as_utc, parse_end_timestamp, parse_timestamp,
                    sort_filter_by_date)
from .pagination import Paginator
from .rest import (ApiOperation, HttpRunner, Method, Page, PageHeader,
                   RateLimitHeader, Request, Response, RESTClient,
                   set_query_param)
from .retry import BackoffRunner, backoff_delay, is_throttled

__all__ = [
    "ApiOperation",
    "HttpRunner",
    "Method",
    "Page",
    "PageHeader",
    "RateLimitHeader",
    "Request",
    "Response",
    "RESTClient",
    "set_query_param",
    "BackoffRunner",
    "backoff_delay",
    "is_throttled",
    "Paginator",
    "as_utc",
    "parse_end_timestamp",
    "parse_timestamp",
    "sort_filter_by_date",
]
