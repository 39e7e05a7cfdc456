"""
GitHub JSON shapes mapped onto the shared domain entities.

Reference: https://docs.github.com/en/rest
"""

from dataclasses import dataclass
from typing import Any

from connectors.fields.common import optional, require
from connectors.models import (Comment, Gist, Member, MergeRequest, Pipeline,
                               Project, ProjectTag, Release, ReleaseAsset)


@dataclass
class GithubProjectFields:
    id: int
    default_branch: str
    html_url: str
    created_at: str
    full_name: str = ""
    description: str = ""
    stargazers_count: int = 0

    @classmethod
    def from_json(cls, data: Any) -> "GithubProjectFields":
        return cls(
            id=require(data, "id", int),
            default_branch=require(data, "default_branch"),
            html_url=require(data, "html_url"),
            created_at=require(data, "created_at"),
            full_name=optional(data, "full_name"),
            description=optional(data, "description"),
            stargazers_count=optional(data, "stargazers_count", 0),
        )

    def to_entity(self) -> Project:
        return Project(
            id=self.id,
            default_branch=self.default_branch,
            full_name=self.full_name,
            description=self.description,
            stars=self.stargazers_count,
        ).with_html_url(self.html_url).with_created_at(self.created_at)


@dataclass
class GithubMemberFields:
    """A repository contributor. GitHub does not include the display name."""

    id: int
    login: str

    @classmethod
    def from_json(cls, data: Any) -> "GithubMemberFields":
        return cls(id=require(data, "id", int), login=require(data, "login"))

    def to_entity(self) -> Member:
        return Member(id=self.id, username=self.login)


@dataclass
class GithubUserFields:
    id: int
    login: str
    name: str = ""
    created_at: str = ""

    @classmethod
    def from_json(cls, data: Any) -> "GithubUserFields":
        return cls(
            id=require(data, "id", int),
            login=require(data, "login"),
            name=optional(data, "name"),
            created_at=optional(data, "created_at"),
        )

    def to_entity(self) -> Member:
        return Member(
            id=self.id,
            username=self.login,
            created_at=self.created_at,
        ).with_name(self.name)


@dataclass
class GithubMergeRequestFields:
    number: int
    html_url: str
    author: str
    updated_at: str
    source_branch: str
    target_branch: str
    title: str
    state: str
    created_at: str
    merged_at: str = ""
    body: str = ""

    @classmethod
    def from_json(cls, data: Any) -> "GithubMergeRequestFields":
        return cls(
            number=require(data, "number", int),
            html_url=require(data, "html_url"),
            author=require(data, "user.login"),
            updated_at=require(data, "updated_at"),
            source_branch=require(data, "head.ref"),
            target_branch=require(data, "base.ref"),
            title=require(data, "title"),
            state=require(data, "state"),
            created_at=require(data, "created_at"),
            merged_at=optional(data, "merged_at"),
            body=optional(data, "body"),
        )

    def to_entity(self) -> MergeRequest:
        state = self.state
        if state == "open":
            state = "opened"
        elif self.merged_at:
            state = "merged"
        return MergeRequest(
            id=self.number,
            web_url=self.html_url,
            author=self.author,
            updated_at=self.updated_at,
            source_branch=self.source_branch,
            target_branch=self.target_branch,
            title=self.title,
            state=state,
            created_at=self.created_at,
            merged_at=self.merged_at,
            description=self.body,
        )


@dataclass
class GithubCommentFields:
    id: int
    body: str
    login: str
    created_at: str
    html_url: str = ""

    @classmethod
    def from_json(cls, data: Any) -> "GithubCommentFields":
        return cls(
            id=require(data, "id", int),
            body=require(data, "body"),
            login=require(data, "user.login"),
            created_at=require(data, "created_at"),
            html_url=optional(data, "html_url"),
        )

    def to_entity(self) -> Comment:
        return Comment(
            id=self.id,
            body=self.body,
            author=self.login,
            created_at=self.created_at,
            url=self.html_url,
        )


@dataclass
class GithubPipelineFields:
    """A GitHub Actions workflow run."""

    id: int
    status: str
    conclusion: str
    html_url: str
    head_branch: str
    head_sha: str
    created_at: str
    updated_at: str = ""

    @classmethod
    def from_json(cls, data: Any) -> "GithubPipelineFields":
        return cls(
            id=require(data, "id", int),
            status=require(data, "status"),
            conclusion=optional(data, "conclusion"),
            html_url=require(data, "html_url"),
            head_branch=require(data, "head_branch"),
            head_sha=require(data, "head_sha"),
            created_at=require(data, "created_at"),
            updated_at=optional(data, "updated_at"),
        )

    def to_entity(self) -> Pipeline:
        # A completed run reports its outcome in ``conclusion``.
        return Pipeline(
            id=self.id,
            status=self.conclusion or self.status,
            web_url=self.html_url,
            branch=self.head_branch,
            sha=self.head_sha,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


@dataclass
class GithubReleaseFields:
    id: int
    html_url: str
    tag_name: str
    name: str
    body: str
    created_at: str
    published_at: str = ""

    @classmethod
    def from_json(cls, data: Any) -> "GithubReleaseFields":
        return cls(
            id=require(data, "id", int),
            html_url=require(data, "html_url"),
            tag_name=require(data, "tag_name"),
            name=optional(data, "name"),
            body=optional(data, "body"),
            created_at=require(data, "created_at"),
            published_at=optional(data, "published_at"),
        )

    def to_entity(self) -> Release:
        return Release(
            id=str(self.id),
            url=self.html_url,
            tag=self.tag_name,
            title=self.name,
            description=self.body,
            created_at=self.created_at,
            updated_at=self.published_at,
        )


@dataclass
class GithubReleaseAssetFields:
    id: int
    name: str
    browser_download_url: str
    size: int
    created_at: str
    updated_at: str = ""

    @classmethod
    def from_json(cls, data: Any) -> "GithubReleaseAssetFields":
        return cls(
            id=require(data, "id", int),
            name=require(data, "name"),
            browser_download_url=require(data, "browser_download_url"),
            size=optional(data, "size", 0),
            created_at=require(data, "created_at"),
            updated_at=optional(data, "updated_at"),
        )

    def to_entity(self) -> ReleaseAsset:
        return ReleaseAsset(
            id=self.id,
            name=self.name,
            url=self.browser_download_url,
            size=self.size,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


@dataclass
class GithubProjectTagFields:
    """A repository tag. The list endpoint carries no commit date."""

    name: str
    sha: str

    @classmethod
    def from_json(cls, data: Any) -> "GithubProjectTagFields":
        return cls(name=require(data, "name"), sha=require(data, "commit.sha"))

    def to_entity(self) -> ProjectTag:
        return ProjectTag(name=self.name, sha=self.sha)

@dataclass
class GithubGistFields:
    html_url: str
    description: str
    files: str
    created_at: str

    @classmethod
    def from_json(cls, data: Any) -> "GithubGistFields":
        return cls(
            html_url=require(data, "html_url"),
            description=optional(data, "description"),
            files=",".join(require(data, "files", dict).keys()),
            created_at=require(data, "created_at"),
        )

    def to_entity(self) -> Gist:
        return Gist(
            url=self.html_url,
            description=self.description,
            files=self.files,
            created_at=self.created_at,
        )
