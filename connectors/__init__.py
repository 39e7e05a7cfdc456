"""
GitHub and GitLab connectors for code hosting remotes.

This package provides one resource API per concept (merge requests,
pipelines, releases, ...) on top of both REST APIs, with pagination,
throttling backoff and date filtering handled uniformly.
"""

from .args import (BrowseOption, CommentBodyArgs, CommentListBodyArgs,
                   GistListBodyArgs, ListBodyArgs, MergeRequestArgs,
                   MergeRequestListBodyArgs, MergeRequestState,
                   PipelineBodyArgs, ProjectListBodyArgs, RegistryListBodyArgs,
                   ReleaseAssetListBodyArgs, ReleaseBodyArgs,
                   RunnerListBodyArgs, RunnerStatus)
from .base import GitConnector
from .config import ConnectorConfig
from .exceptions import (APIException, BackoffMaxRetriesException,
                         ConfigurationException, ConnectorException,
                         DomainOrRepoExpectedException,
                         OperationNotSupportedException, PreconditionException,
                         RateLimitException, RemoteUrlNotFoundException,
                         TransportException,
                         UnexpectedResponseContractException)
from .github import GitHubConnector
from .gitlab import GitLabConnector
from .models import (Comment, Gist, ImageMetadata, Member, MergeRequest,
                     Pipeline, Project, ProjectTag, RegistryRepository,
                     Release, ReleaseAsset, RepositoryTag, Runner,
                     RunnerMetadata)
from .remote import (RemoteInfo, create_connector, detect_backend,
                     parse_remote_url, resolve_remote)

__all__ = [
    # Connectors
    "GitConnector",
    "GitHubConnector",
    "GitLabConnector",
    "ConnectorConfig",
    "RemoteInfo",
    "create_connector",
    "detect_backend",
    "parse_remote_url",
    "resolve_remote",
    # Arguments
    "ListBodyArgs",
    "MergeRequestArgs",
    "MergeRequestListBodyArgs",
    "MergeRequestState",
    "CommentListBodyArgs",
    "CommentBodyArgs",
    "PipelineBodyArgs",
    "RunnerListBodyArgs",
    "RunnerStatus",
    "ReleaseBodyArgs",
    "ReleaseAssetListBodyArgs",
    "BrowseOption",
    "RegistryListBodyArgs",
    "ProjectListBodyArgs",
    "GistListBodyArgs",
    # Models
    "Member",
    "Project",
    "MergeRequest",
    "Comment",
    "Pipeline",
    "Runner",
    "RunnerMetadata",
    "Release",
    "ReleaseAsset",
    "ProjectTag",
    "RegistryRepository",
    "RepositoryTag",
    "ImageMetadata",
    "Gist",
    # Exceptions
    "ConnectorException",
    "PreconditionException",
    "RemoteUrlNotFoundException",
    "DomainOrRepoExpectedException",
    "ConfigurationException",
    "OperationNotSupportedException",
    "RateLimitException",
    "BackoffMaxRetriesException",
    "APIException",
    "TransportException",
    "UnexpectedResponseContractException",
]
