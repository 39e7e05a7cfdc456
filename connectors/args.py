"""
Caller-supplied arguments for resource operations.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from connectors.exceptions import PreconditionException
from connectors.models import Member
from connectors.utils.dates import as_utc


class MergeRequestState(str, Enum):
    OPENED = "opened"
    CLOSED = "closed"
    MERGED = "merged"


class RunnerStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    STALE = "stale"
    NEVER_CONTACTED = "never_contacted"
    ALL = "all"


class BrowseOption(str, Enum):
    REPO = "repo"
    MERGE_REQUESTS = "merge_requests"
    MERGE_REQUEST_ID = "merge_request_id"
    PIPELINES = "pipelines"


@dataclass(frozen=True)
class ListBodyArgs:
    """
    Listing parameters shared by every paged resource.

    Built once per invocation and read-only afterwards. Retry settings left as
    None are filled in from the connector configuration.

    :param page: First page of an explicit page range.
    :param max_pages: Number of pages to fetch. Defaults to 1 when ``page``
        is set; caps link-following otherwise.
    :param throttle: Seconds to wait between two page fetches.
    :param created_after: Drop entities created before this instant.
    :param created_before: Drop entities created after this instant.
    :param backoff_max_retries: Retries allowed on throttling responses.
    :param backoff_retry_after: Base wait in seconds for exponential backoff.
    :param backoff_max_wait: Cap for the exponential backoff schedule.
    :param refresh: Bypass any cache between the caller and the remote.
    :param flush: Hand each page to ``sink`` instead of aggregating.
    :param sink: Callback receiving the entities of each page in flush mode.
    """

    page: Optional[int] = None
    max_pages: Optional[int] = None
    throttle: Optional[float] = None
    created_after: Optional[datetime] = None
    created_before: Optional[datetime] = None
    backoff_max_retries: Optional[int] = None
    backoff_retry_after: Optional[float] = None
    backoff_max_wait: Optional[float] = None
    refresh: bool = False
    flush: bool = False
    sink: Optional[Callable[[List], None]] = field(default=None, compare=False)

    def __post_init__(self):
        if self.page is not None:
            if self.page < 1:
                raise PreconditionException(f"Page must be >= 1, got {self.page}")
            if self.max_pages is None:
                object.__setattr__(self, "max_pages", 1)
        if self.max_pages is not None and self.max_pages < 1:
            raise PreconditionException(
                f"Number of pages must be >= 1, got {self.max_pages}"
            )
        if self.throttle is not None and self.throttle < 0:
            raise PreconditionException("Throttle time cannot be negative")
        if self.flush and self.sink is None:
            raise PreconditionException("Flush mode requires an output sink")
        for name in ("created_after", "created_before"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, as_utc(value))
        if (
            self.created_after is not None
            and self.created_before is not None
            and self.created_after > self.created_before
        ):
            raise PreconditionException(
                "created_after must not be later than created_before"
            )

    def with_backoff_defaults(
        self, max_retries: int, retry_after: float, max_wait: float
    ) -> "ListBodyArgs":
        return replace(
            self,
            backoff_max_retries=(
                max_retries
                if self.backoff_max_retries is None
                else self.backoff_max_retries
            ),
            backoff_retry_after=(
                retry_after
                if self.backoff_retry_after is None
                else self.backoff_retry_after
            ),
            backoff_max_wait=(
                max_wait if self.backoff_max_wait is None else self.backoff_max_wait
            ),
        )


@dataclass(frozen=True)
class MergeRequestArgs:
    title: str = ""
    description: str = ""
    source_branch: str = ""
    target_branch: str = ""
    assignee_id: Optional[int] = None
    remove_source_branch: bool = False
    draft: bool = False


@dataclass(frozen=True)
class MergeRequestListBodyArgs:
    state: MergeRequestState = MergeRequestState.OPENED
    list_args: Optional[ListBodyArgs] = None


@dataclass(frozen=True)
class CommentListBodyArgs:
    id: int
    list_args: Optional[ListBodyArgs] = None


@dataclass(frozen=True)
class CommentBodyArgs:
    id: int
    body: str


@dataclass(frozen=True)
class PipelineBodyArgs:
    list_args: Optional[ListBodyArgs] = None


@dataclass(frozen=True)
class RunnerListBodyArgs:
    status: RunnerStatus = RunnerStatus.ALL
    tags: Optional[str] = None
    list_args: Optional[ListBodyArgs] = None


@dataclass(frozen=True)
class ReleaseBodyArgs:
    list_args: Optional[ListBodyArgs] = None


@dataclass(frozen=True)
class ReleaseAssetListBodyArgs:
    """Assets of one release: its tag on GitLab, its numeric id on GitHub."""

    id: str
    list_args: Optional[ListBodyArgs] = None


@dataclass(frozen=True)
class RegistryListBodyArgs:
    """List registry repositories, or the tags of ``repository_id``."""

    repository_id: Optional[int] = None
    tags: bool = False
    list_args: Optional[ListBodyArgs] = None

    def __post_init__(self):
        if self.tags and self.repository_id is None:
            raise PreconditionException("Listing tags requires a repository id")


@dataclass(frozen=True)
class ProjectListBodyArgs:
    user: Optional[Member] = None
    stars: bool = False
    list_args: Optional[ListBodyArgs] = None


@dataclass(frozen=True)
class GistListBodyArgs:
    """Gists of ``username``, or of the authenticated user when unset."""

    username: Optional[str] = None
    list_args: Optional[ListBodyArgs] = None
