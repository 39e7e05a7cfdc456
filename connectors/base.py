"""
Capability contracts shared by the GitHub and GitLab connectors.

Each resource family has one abstract API class; a connector exposes one
implementation of each as an attribute (``connector.merge_requests``,
``connector.pipelines``, ...). Operations a backend cannot serve raise
OperationNotSupportedException.
"""

from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Dict, List, Optional

from connectors.args import (BrowseOption, CommentBodyArgs,
                             CommentListBodyArgs, GistListBodyArgs,
                             ListBodyArgs, MergeRequestArgs,
                             MergeRequestListBodyArgs, PipelineBodyArgs,
                             ProjectListBodyArgs, RegistryListBodyArgs,
                             ReleaseAssetListBodyArgs, ReleaseBodyArgs,
                             RunnerListBodyArgs)
from connectors.config import ConnectorConfig
from connectors.exceptions import OperationNotSupportedException
from connectors.models import (Comment, Gist, ImageMetadata, Member,
                               MergeRequest, Pipeline, Project, ProjectTag,
                               RegistryRepository, Release, ReleaseAsset,
                               RepositoryTag, Runner, RunnerMetadata)
from connectors.query import (list_paged, num_pages, num_resources, send,
                              with_refresh)
from connectors.utils.rest import (ApiOperation, HttpRunner, Method,
                                   RESTClient, set_query_param)
from connectors.utils.retry import BackoffRunner


class MergeRequestApi(ABC):
    @abstractmethod
    def open(self, args: MergeRequestArgs) -> MergeRequest:
        pass

    @abstractmethod
    def list(self, args: MergeRequestListBodyArgs) -> List[MergeRequest]:
        pass

    @abstractmethod
    def get(self, id: int, refresh: bool = False) -> MergeRequest:
        pass

    @abstractmethod
    def merge(self, id: int) -> MergeRequest:
        pass

    @abstractmethod
    def close(self, id: int) -> MergeRequest:
        pass

    @abstractmethod
    def num_pages(self, args: MergeRequestListBodyArgs) -> Optional[int]:
        pass

    @abstractmethod
    def num_resources(self, args: MergeRequestListBodyArgs) -> Optional[int]:
        pass


class CommentApi(ABC):
    @abstractmethod
    def list(self, args: CommentListBodyArgs) -> List[Comment]:
        pass

    @abstractmethod
    def create(self, args: CommentBodyArgs) -> Comment:
        pass

    @abstractmethod
    def num_pages(self, args: CommentListBodyArgs) -> Optional[int]:
        pass

    def num_resources(self, args: CommentListBodyArgs) -> Optional[int]:
        """
        Reports the number of pages, not comments.

        Kept this way for parity with the page count the command has always
        printed for comments.
        """
        return self.num_pages(args)


class PipelineApi(ABC):
    @abstractmethod
    def list(self, args: PipelineBodyArgs) -> List[Pipeline]:
        pass

    @abstractmethod
    def get(self, id: int, refresh: bool = False) -> Pipeline:
        pass

    @abstractmethod
    def num_pages(self, args: PipelineBodyArgs) -> Optional[int]:
        pass

    @abstractmethod
    def num_resources(self, args: PipelineBodyArgs) -> Optional[int]:
        pass


class RunnerApi(ABC):
    @abstractmethod
    def list(self, args: RunnerListBodyArgs) -> List[Runner]:
        pass

    @abstractmethod
    def get(self, id: int, refresh: bool = False) -> RunnerMetadata:
        pass

    @abstractmethod
    def num_pages(self, args: RunnerListBodyArgs) -> Optional[int]:
        pass

    @abstractmethod
    def num_resources(self, args: RunnerListBodyArgs) -> Optional[int]:
        pass


class ReleaseApi(ABC):
    @abstractmethod
    def list(self, args: ReleaseBodyArgs) -> List[Release]:
        pass

    @abstractmethod
    def list_assets(self, args: ReleaseAssetListBodyArgs) -> List[ReleaseAsset]:
        pass

    @abstractmethod
    def num_asset_pages(self, args: ReleaseAssetListBodyArgs) -> Optional[int]:
        pass

    @abstractmethod
    def num_asset_resources(self, args: ReleaseAssetListBodyArgs) -> Optional[int]:
        pass

    @abstractmethod
    def num_pages(self, args: ReleaseBodyArgs) -> Optional[int]:
        pass

    @abstractmethod
    def num_resources(self, args: ReleaseBodyArgs) -> Optional[int]:
        pass


class RegistryApi(ABC):
    @abstractmethod
    def list_repositories(self, args: RegistryListBodyArgs) -> List[RegistryRepository]:
        pass

    @abstractmethod
    def list_repository_tags(self, args: RegistryListBodyArgs) -> List[RepositoryTag]:
        pass

    @abstractmethod
    def get_image_metadata(
        self, repository_id: int, tag: str, refresh: bool = False
    ) -> ImageMetadata:
        pass

    @abstractmethod
    def num_pages(self, args: RegistryListBodyArgs) -> Optional[int]:
        pass

    @abstractmethod
    def num_resources(self, args: RegistryListBodyArgs) -> Optional[int]:
        pass


class ProjectApi(ABC):
    @abstractmethod
    def get(
        self,
        id: Optional[int] = None,
        path: Optional[str] = None,
        refresh: bool = False,
    ) -> Project:
        pass

    @abstractmethod
    def members(self, list_args: Optional[ListBodyArgs] = None) -> List[Member]:
        pass

    @abstractmethod
    def tags(self, list_args: Optional[ListBodyArgs] = None) -> List[ProjectTag]:
        pass

    @abstractmethod
    def num_tag_pages(self, list_args: Optional[ListBodyArgs] = None) -> Optional[int]:
        pass

    @abstractmethod
    def num_tag_resources(
        self, list_args: Optional[ListBodyArgs] = None
    ) -> Optional[int]:
        pass

    @abstractmethod
    def get_url(self, option: BrowseOption, id: Optional[int] = None) -> str:
        """Web page of the project, its merge requests or its pipelines."""
        pass

    @abstractmethod
    def list(self, args: ProjectListBodyArgs) -> List[Project]:
        pass

    @abstractmethod
    def num_pages(self, args: ProjectListBodyArgs) -> Optional[int]:
        pass

    @abstractmethod
    def num_resources(self, args: ProjectListBodyArgs) -> Optional[int]:
        pass


class GistApi(ABC):
    @abstractmethod
    def list(self, args: GistListBodyArgs) -> List[Gist]:
        pass

    @abstractmethod
    def num_pages(self, args: GistListBodyArgs) -> Optional[int]:
        pass

    @abstractmethod
    def num_resources(self, args: GistListBodyArgs) -> Optional[int]:
        pass


class UserApi(ABC):
    @abstractmethod
    def get_auth_user(self, refresh: bool = False) -> Member:
        pass

    @abstractmethod
    def get(self, username: str, refresh: bool = False) -> Member:
        pass


class Resource:
    """
    Base of the per-backend resource APIs.

    Single requests go through the connector's backoff client; listings build
    their own backoff from the list arguments.
    """

    def __init__(self, connector: "GitConnector"):
        self.connector = connector

    def _list(
        self,
        url: str,
        fields,
        list_args: Optional[ListBodyArgs],
        operation: ApiOperation,
        sub_array: Optional[str] = None,
    ) -> List:
        connector = self.connector
        return list_paged(
            connector.runner,
            connector.list_url(url),
            fields,
            connector.request_headers(),
            connector.list_args(list_args),
            operation=operation,
            sub_array=sub_array,
        )

    def _send(
        self,
        url: str,
        fields,
        operation: ApiOperation,
        refresh: bool = False,
        method: Method = Method.GET,
        body=None,
    ):
        return send(
            self.connector.client,
            url,
            fields,
            self.connector.headers(refresh),
            method=method,
            body=body,
            operation=operation,
        )

    def _num_pages(
        self, url: str, list_args: Optional[ListBodyArgs], operation: ApiOperation
    ) -> Optional[int]:
        refresh = list_args.refresh if list_args else False
        return num_pages(
            self.connector.client,
            self.connector.list_url(url),
            self.connector.headers(refresh),
            operation=operation,
        )

    def _num_resources(
        self,
        url: str,
        list_args: Optional[ListBodyArgs],
        operation: ApiOperation,
        sub_array: Optional[str] = None,
    ) -> Optional[int]:
        refresh = list_args.refresh if list_args else False
        return num_resources(
            self.connector.client,
            url,
            self.connector.headers(refresh),
            self.connector.config.per_page,
            operation=operation,
            sub_array=sub_array,
        )


class Unsupported:
    """Resource placeholder for a backend that lacks the resource entirely."""

    def __init__(self, backend: str, resource: str):
        self.backend = backend
        self.resource = resource

    def __getattr__(self, name: str):
        if name.startswith("__"):
            raise AttributeError(name)

        def unsupported(*args, **kwargs):
            raise OperationNotSupportedException(
                f"{self.resource}.{name} is not supported by {self.backend}"
            )

        return unsupported


class GitConnector(ABC):
    """
    Abstract base class for backend connectors.

    Holds the remote identity, the configuration and the runners shared by
    every resource API. Nothing here changes after construction, so a
    connector can be reused across operations.
    """

    backend: str = ""

    def __init__(
        self,
        domain: str,
        path: str,
        config: ConnectorConfig,
        runner: Optional[HttpRunner] = None,
    ):
        """
        :param domain: Remote host, e.g. ``gitlab.com``.
        :param path: Repository path in the format ``OWNER/PROJECT_NAME``.
        :param config: Token and tuning settings.
        :param runner: Runner performing HTTP calls; a RESTClient by default.
        """
        self.domain = domain
        self.path = path
        self.config = config
        self.runner = runner or RESTClient(timeout=config.timeout)
        self.client = BackoffRunner(
            self.runner,
            max_retries=config.backoff_max_retries,
            base_wait=config.backoff_retry_after,
            max_wait=config.backoff_max_wait,
        )

    @abstractmethod
    def request_headers(self) -> Dict[str, str]:
        """Headers carrying the access token, attached to every request."""
        pass

    def list_args(self, list_args: Optional[ListBodyArgs]) -> ListBodyArgs:
        """Fill unset throttle and backoff settings from the configuration."""
        list_args = list_args or ListBodyArgs()
        if list_args.throttle is None and self.config.throttle is not None:
            list_args = replace(list_args, throttle=self.config.throttle)
        return list_args.with_backoff_defaults(
            self.config.backoff_max_retries,
            self.config.backoff_retry_after,
            self.config.backoff_max_wait,
        )

    def headers(self, refresh: bool = False) -> Dict[str, str]:
        return with_refresh(self.request_headers(), refresh)

    def list_url(self, url: str) -> str:
        """Add the configured page size to a list endpoint."""
        return set_query_param(url, "per_page", self.config.per_page)

    def close(self) -> None:
        """Close the connector and cleanup resources."""
        self.runner.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
