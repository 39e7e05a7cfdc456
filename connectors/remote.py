"""
Resolution of the remote repository a command operates on.

The remote is either given explicitly (domain plus ``OWNER/REPO`` path) or
read from the ``origin`` remote of the working tree with GitPython.
"""

import logging
import os
import re
from dataclasses import dataclass
from typing import Optional

from git import Repo as GitRepo
from git.exc import GitError

from connectors.base import GitConnector
from connectors.config import ConnectorConfig
from connectors.exceptions import (ConfigurationException,
                                   DomainOrRepoExpectedException,
                                   RemoteUrlNotFoundException)
from connectors.github import GitHubConnector
from connectors.gitlab import GitLabConnector
from connectors.utils.rest import HttpRunner

logger = logging.getLogger(__name__)

CONNECTORS = {
    "github": GitHubConnector,
    "gitlab": GitLabConnector,
}

# git@host:owner/repo.git
SCP_LIKE_URL = re.compile(r"^(?:[\w.-]+@)?(?P<host>[\w.-]+):(?P<path>[^/].*)$")
# https://host/owner/repo(.git), ssh://git@host[:port]/owner/repo.git
SCHEME_URL = re.compile(
    r"^(?:https?|ssh|git)://(?:[^@/]+@)?(?P<host>[\w.-]+)(?::\d+)?/(?P<path>.+)$"
)


@dataclass(frozen=True)
class RemoteInfo:
    domain: str
    path: str


def parse_remote_url(url: str) -> RemoteInfo:
    """
    Split a git remote URL into domain and ``OWNER/REPO`` path.

    :param url: Remote URL in SSH, scp-like or HTTPS form.
    :return: Remote domain and path.
    :raises RemoteUrlNotFoundException: If the URL has no recognizable shape.
    """
    url = url.strip()
    match = SCHEME_URL.match(url) or SCP_LIKE_URL.match(url)
    if match is None:
        raise RemoteUrlNotFoundException(f"Cannot parse remote URL: {url}")

    path = match.group("path").strip("/")
    if path.endswith(".git"):
        path = path[: -len(".git")]
    if "/" not in path:
        raise RemoteUrlNotFoundException(
            f"Remote URL {url} does not name an OWNER/REPO path"
        )
    return RemoteInfo(domain=match.group("host"), path=path)


def get_remote_url(repo_path: str = ".") -> str:
    """
    URL of the ``origin`` remote, or of the first remote when there is none.

    :param repo_path: Path inside the git working tree.
    :return: Remote URL.
    :raises RemoteUrlNotFoundException: If no remote URL can be read.
    """
    try:
        git_repo = GitRepo(repo_path, search_parent_directories=True)
        if not git_repo.remotes:
            raise RemoteUrlNotFoundException(f"No git remote configured in {repo_path}")
        if "origin" in [r.name for r in git_repo.remotes]:
            remote = git_repo.remote("origin")
        else:
            remote = git_repo.remotes[0]
        urls = list(remote.urls)
    except GitError as e:
        raise RemoteUrlNotFoundException(
            f"Could not read git remote from {repo_path}: {e}"
        ) from e
    if not urls:
        raise RemoteUrlNotFoundException(f"Remote {remote.name} has no URL")
    logger.debug(f"Using remote {remote.name}: {urls[0]}")
    return urls[0]


def resolve_remote(
    domain: Optional[str] = None,
    repo: Optional[str] = None,
    repo_path: str = ".",
) -> RemoteInfo:
    """
    Remote given on the command line, else the one of the working tree.

    :param domain: Explicit remote host.
    :param repo: Explicit ``OWNER/REPO`` path.
    :param repo_path: Working tree to inspect when nothing is explicit.
    :return: Remote domain and path.
    :raises DomainOrRepoExpectedException: If only one of domain and repo is
        given.
    """
    if domain and repo:
        return RemoteInfo(domain=domain, path=repo.strip("/"))
    if domain or repo:
        raise DomainOrRepoExpectedException(
            "Both --domain and --repo are required when overriding the git remote"
        )
    return parse_remote_url(get_remote_url(repo_path))


def detect_backend(domain: str, backend: Optional[str] = None) -> str:
    """
    Backend serving ``domain``.

    :param domain: Remote host.
    :param backend: Explicit choice, overrides detection.
    :return: ``github`` or ``gitlab``.
    :raises ConfigurationException: If the backend cannot be determined.
    """
    backend = backend or os.getenv("FORGE_BACKEND")
    if backend:
        backend = backend.strip().lower()
        if backend not in CONNECTORS:
            raise ConfigurationException(f"Unknown backend: {backend}")
        return backend
    for name in CONNECTORS:
        if name in domain.lower():
            return name
    raise ConfigurationException(
        f"Cannot tell whether {domain} is GitHub or GitLab; set FORGE_BACKEND"
    )


def create_connector(
    remote: RemoteInfo,
    backend: Optional[str] = None,
    config: Optional[ConnectorConfig] = None,
    runner: Optional[HttpRunner] = None,
) -> GitConnector:
    """
    Build the connector for ``remote``.

    :param remote: Remote domain and path.
    :param backend: Explicit backend, detected from the domain otherwise.
    :param config: Configuration, read from the environment otherwise.
    :param runner: HTTP runner, a RESTClient otherwise.
    :return: GitHub or GitLab connector.
    """
    backend = detect_backend(remote.domain, backend)
    config = config or ConnectorConfig.from_env(remote.domain, backend)
    logger.info(f"Using {backend} backend for {remote.domain}/{remote.path}")
    return CONNECTORS[backend](remote.domain, remote.path, config, runner)
