"""
Backend-agnostic domain entities.

Entities are built by the field mapping layer (``connectors.fields``) and
never mutated afterwards; the ``with_*`` helpers return modified copies.
"""

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class Member:
    id: int
    username: str
    name: str = ""
    created_at: str = ""

    def with_name(self, name: str) -> "Member":
        return replace(self, name=name)


@dataclass(frozen=True)
class Project:
    id: int
    default_branch: str
    html_url: str = ""
    created_at: str = ""
    full_name: str = ""
    description: str = ""
    stars: int = 0

    def with_html_url(self, html_url: str) -> "Project":
        return replace(self, html_url=html_url)

    def with_created_at(self, created_at: str) -> "Project":
        return replace(self, created_at=created_at)


@dataclass(frozen=True)
class MergeRequest:
    """A GitLab merge request or a GitHub pull request."""

    id: int
    web_url: str
    author: str = ""
    updated_at: str = ""
    source_branch: str = ""
    target_branch: str = ""
    title: str = ""
    state: str = ""
    created_at: str = ""
    merged_at: str = ""
    description: str = ""


@dataclass(frozen=True)
class Comment:
    id: int
    body: str
    author: str
    created_at: str
    url: str = ""


@dataclass(frozen=True)
class Pipeline:
    """A GitLab pipeline or a GitHub Actions workflow run."""

    id: int
    status: str
    web_url: str
    branch: str
    sha: str
    created_at: str
    updated_at: str = ""


@dataclass(frozen=True)
class Runner:
    id: int
    description: str
    status: str
    active: bool = True
    online: bool = False
    is_shared: bool = False
    runner_type: str = ""
    ip_address: str = ""
    name: str = ""
    created_at: str = ""


@dataclass(frozen=True)
class RunnerMetadata:
    id: int
    run_untagged: bool
    tag_list: tuple = ()
    version: str = ""
    architecture: str = ""
    platform: str = ""
    contacted_at: str = ""
    revision: str = ""
    created_at: str = ""


@dataclass(frozen=True)
class Release:
    id: str
    url: str
    tag: str
    title: str
    description: str
    created_at: str
    updated_at: str = ""


@dataclass(frozen=True)
class RegistryRepository:
    id: int
    location: str
    tags_count: int
    created_at: str


@dataclass(frozen=True)
class RepositoryTag:
    name: str
    path: str
    location: str
    created_at: str = ""


@dataclass(frozen=True)
class ImageMetadata:
    name: str
    location: str
    short_sha: str
    size: int
    created_at: str


@dataclass(frozen=True)
class Gist:
    url: str
    description: str
    files: str
    created_at: str


@dataclass(frozen=True)
class ReleaseAsset:
    """A file attached to a release (a GitLab asset link on GitLab)."""

    id: int
    name: str
    url: str
    size: int = 0
    created_at: str = ""
    updated_at: str = ""


@dataclass(frozen=True)
class ProjectTag:
    """A git tag of the project repository."""

    name: str
    sha: str
    created_at: str = ""
