"""
GitLab JSON shapes mapped onto the shared domain entities.

Reference: https://docs.gitlab.com/ee/api/rest/
"""

from dataclasses import dataclass
from typing import Any, List

from connectors.fields.common import optional, require
from connectors.models import (Comment, ImageMetadata, Member, MergeRequest,
                               Pipeline, Project, ProjectTag,
                               RegistryRepository, Release, ReleaseAsset,
                               RepositoryTag, Runner, RunnerMetadata)


@dataclass
class GitlabProjectFields:
    id: int
    default_branch: str
    web_url: str
    created_at: str
    path_with_namespace: str = ""
    description: str = ""
    star_count: int = 0

    @classmethod
    def from_json(cls, data: Any) -> "GitlabProjectFields":
        return cls(
            id=require(data, "id", int),
            default_branch=require(data, "default_branch"),
            web_url=require(data, "web_url"),
            created_at=require(data, "created_at"),
            path_with_namespace=optional(data, "path_with_namespace"),
            description=optional(data, "description"),
            star_count=optional(data, "star_count", 0),
        )

    def to_entity(self) -> Project:
        return Project(
            id=self.id,
            default_branch=self.default_branch,
            full_name=self.path_with_namespace,
            description=self.description,
            stars=self.star_count,
        ).with_html_url(self.web_url).with_created_at(self.created_at)


@dataclass
class GitlabMemberFields:
    id: int
    username: str
    name: str
    created_at: str = ""

    @classmethod
    def from_json(cls, data: Any) -> "GitlabMemberFields":
        return cls(
            id=require(data, "id", int),
            username=require(data, "username"),
            name=require(data, "name"),
            created_at=optional(data, "created_at"),
        )

    def to_entity(self) -> Member:
        return Member(
            id=self.id,
            username=self.username,
            name=self.name,
            created_at=self.created_at,
        )


# The current user endpoint has the same shape as a project member.
GitlabUserFields = GitlabMemberFields


@dataclass
class GitlabMergeRequestFields:
    iid: int
    web_url: str
    author: str
    updated_at: str
    source_branch: str
    target_branch: str
    title: str
    state: str
    created_at: str
    merged_at: str = ""
    description: str = ""

    @classmethod
    def from_json(cls, data: Any) -> "GitlabMergeRequestFields":
        return cls(
            iid=require(data, "iid", int),
            web_url=require(data, "web_url"),
            author=require(data, "author.username"),
            updated_at=require(data, "updated_at"),
            source_branch=require(data, "source_branch"),
            target_branch=require(data, "target_branch"),
            title=require(data, "title"),
            state=require(data, "state"),
            created_at=require(data, "created_at"),
            merged_at=optional(data, "merged_at"),
            description=optional(data, "description"),
        )

    def to_entity(self) -> MergeRequest:
        return MergeRequest(
            id=self.iid,
            web_url=self.web_url,
            author=self.author,
            updated_at=self.updated_at,
            source_branch=self.source_branch,
            target_branch=self.target_branch,
            title=self.title,
            state=self.state,
            created_at=self.created_at,
            merged_at=self.merged_at,
            description=self.description,
        )


@dataclass
class GitlabMergeRequestCommentFields:
    id: int
    body: str
    author: str
    created_at: str

    @classmethod
    def from_json(cls, data: Any) -> "GitlabMergeRequestCommentFields":
        return cls(
            id=require(data, "id", int),
            body=require(data, "body"),
            author=require(data, "author.username"),
            created_at=require(data, "created_at"),
        )

    def to_entity(self) -> Comment:
        return Comment(
            id=self.id,
            body=self.body,
            author=self.author,
            created_at=self.created_at,
        )


@dataclass
class GitlabPipelineFields:
    id: int
    status: str
    ref: str
    sha: str
    web_url: str
    created_at: str
    updated_at: str = ""

    @classmethod
    def from_json(cls, data: Any) -> "GitlabPipelineFields":
        return cls(
            id=require(data, "id", int),
            status=require(data, "status"),
            ref=require(data, "ref"),
            sha=require(data, "sha"),
            web_url=require(data, "web_url"),
            created_at=require(data, "created_at"),
            updated_at=optional(data, "updated_at"),
        )

    def to_entity(self) -> Pipeline:
        return Pipeline(
            id=self.id,
            status=self.status,
            web_url=self.web_url,
            branch=self.ref,
            sha=self.sha,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


@dataclass
class GitlabRunnerFields:
    id: int
    description: str
    status: str
    active: bool
    online: bool
    is_shared: bool
    runner_type: str = ""
    ip_address: str = ""
    name: str = ""
    created_at: str = ""

    @classmethod
    def from_json(cls, data: Any) -> "GitlabRunnerFields":
        return cls(
            id=require(data, "id", int),
            description=optional(data, "description"),
            status=require(data, "status"),
            active=optional(data, "active", True),
            online=optional(data, "online", False),
            is_shared=optional(data, "is_shared", False),
            runner_type=optional(data, "runner_type"),
            ip_address=optional(data, "ip_address"),
            name=optional(data, "name"),
            created_at=optional(data, "created_at"),
        )

    def to_entity(self) -> Runner:
        return Runner(
            id=self.id,
            description=self.description,
            status=self.status,
            active=self.active,
            online=self.online,
            is_shared=self.is_shared,
            runner_type=self.runner_type,
            ip_address=self.ip_address,
            name=self.name,
            created_at=self.created_at,
        )


@dataclass
class GitlabRunnerMetadataFields:
    id: int
    run_untagged: bool
    tag_list: List[str]
    version: str = ""
    architecture: str = ""
    platform: str = ""
    contacted_at: str = ""
    revision: str = ""
    created_at: str = ""

    @classmethod
    def from_json(cls, data: Any) -> "GitlabRunnerMetadataFields":
        return cls(
            id=require(data, "id", int),
            run_untagged=require(data, "run_untagged", bool),
            tag_list=require(data, "tag_list", list),
            version=optional(data, "version"),
            architecture=optional(data, "architecture"),
            platform=optional(data, "platform"),
            contacted_at=optional(data, "contacted_at"),
            revision=optional(data, "revision"),
            created_at=optional(data, "created_at"),
        )

    def to_entity(self) -> RunnerMetadata:
        return RunnerMetadata(
            id=self.id,
            run_untagged=self.run_untagged,
            tag_list=tuple(self.tag_list),
            version=self.version,
            architecture=self.architecture,
            platform=self.platform,
            contacted_at=self.contacted_at,
            revision=self.revision,
            created_at=self.created_at,
        )


@dataclass
class GitlabReleaseFields:
    tag_name: str
    name: str
    description: str
    url: str
    created_at: str
    released_at: str = ""

    @classmethod
    def from_json(cls, data: Any) -> "GitlabReleaseFields":
        return cls(
            tag_name=require(data, "tag_name"),
            name=optional(data, "name"),
            description=optional(data, "description"),
            url=require(data, "_links.self"),
            created_at=require(data, "created_at"),
            released_at=optional(data, "released_at"),
        )

    def to_entity(self) -> Release:
        # GitLab releases are identified by their tag.
        return Release(
            id=self.tag_name,
            url=self.url,
            tag=self.tag_name,
            title=self.name,
            description=self.description,
            created_at=self.created_at,
            updated_at=self.released_at,
        )


@dataclass
class GitlabReleaseAssetFields:
    """A release asset link. GitLab keeps no size or dates for links."""

    id: int
    name: str
    url: str
    direct_asset_url: str = ""

    @classmethod
    def from_json(cls, data: Any) -> "GitlabReleaseAssetFields":
        return cls(
            id=require(data, "id", int),
            name=require(data, "name"),
            url=require(data, "url"),
            direct_asset_url=optional(data, "direct_asset_url"),
        )

    def to_entity(self) -> ReleaseAsset:
        return ReleaseAsset(
            id=self.id,
            name=self.name,
            url=self.direct_asset_url or self.url,
        )


@dataclass
class GitlabProjectTagFields:
    name: str
    sha: str
    created_at: str = ""

    @classmethod
    def from_json(cls, data: Any) -> "GitlabProjectTagFields":
        return cls(
            name=require(data, "name"),
            sha=require(data, "commit.id"),
            created_at=optional(data, "commit.created_at"),
        )

    def to_entity(self) -> ProjectTag:
        return ProjectTag(name=self.name, sha=self.sha, created_at=self.created_at)

@dataclass
class GitlabRegistryRepositoryFields:
    id: int
    location: str
    tags_count: int
    created_at: str

    @classmethod
    def from_json(cls, data: Any) -> "GitlabRegistryRepositoryFields":
        return cls(
            id=require(data, "id", int),
            location=require(data, "location"),
            tags_count=optional(data, "tags_count", 0),
            created_at=require(data, "created_at"),
        )

    def to_entity(self) -> RegistryRepository:
        return RegistryRepository(
            id=self.id,
            location=self.location,
            tags_count=self.tags_count,
            created_at=self.created_at,
        )


@dataclass
class GitlabRepositoryTagFields:
    name: str
    path: str
    location: str
    created_at: str = ""

    @classmethod
    def from_json(cls, data: Any) -> "GitlabRepositoryTagFields":
        return cls(
            name=require(data, "name"),
            path=require(data, "path"),
            location=require(data, "location"),
            created_at=optional(data, "created_at"),
        )

    def to_entity(self) -> RepositoryTag:
        return RepositoryTag(
            name=self.name,
            path=self.path,
            location=self.location,
            created_at=self.created_at,
        )


@dataclass
class GitlabImageMetadataFields:
    name: str
    location: str
    short_revision: str
    total_size: int
    created_at: str

    @classmethod
    def from_json(cls, data: Any) -> "GitlabImageMetadataFields":
        return cls(
            name=require(data, "name"),
            location=require(data, "location"),
            short_revision=require(data, "short_revision"),
            total_size=optional(data, "total_size", 0),
            created_at=require(data, "created_at"),
        )

    def to_entity(self) -> ImageMetadata:
        return ImageMetadata(
            name=self.name,
            location=self.location,
            short_sha=self.short_revision,
            size=self.total_size,
            created_at=self.created_at,
        )
