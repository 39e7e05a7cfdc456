"""
GitLab connector using the REST API v4.

This connector provides merge requests, comments, pipelines, runners,
releases, container registry, projects and users of a GitLab project.
Gists are a GitHub concept and are not supported here.
"""

import logging
import re
from typing import Dict, List, Optional
from urllib.parse import quote

from connectors.args import (BrowseOption, CommentBodyArgs,
                             CommentListBodyArgs, ListBodyArgs,
                             MergeRequestArgs, MergeRequestListBodyArgs,
                             PipelineBodyArgs, ProjectListBodyArgs,
                             RegistryListBodyArgs, ReleaseAssetListBodyArgs,
                             ReleaseBodyArgs, RunnerListBodyArgs,
                             RunnerStatus)
from connectors.base import (CommentApi, GitConnector, MergeRequestApi,
                             PipelineApi, ProjectApi, RegistryApi, ReleaseApi,
                             Resource, RunnerApi, Unsupported, UserApi)
from connectors.config import ConnectorConfig
from connectors.exceptions import APIException, PreconditionException
from connectors.fields.gitlab import (GitlabImageMetadataFields,
                                      GitlabMemberFields,
                                      GitlabMergeRequestCommentFields,
                                      GitlabMergeRequestFields,
                                      GitlabPipelineFields,
                                      GitlabProjectFields,
                                      GitlabProjectTagFields,
                                      GitlabRegistryRepositoryFields,
                                      GitlabReleaseAssetFields,
                                      GitlabReleaseFields,
                                      GitlabRepositoryTagFields,
                                      GitlabRunnerFields,
                                      GitlabRunnerMetadataFields,
                                      GitlabUserFields)
from connectors.models import (Comment, ImageMetadata, Member, MergeRequest,
                               Pipeline, Project, ProjectTag,
                               RegistryRepository, Release, ReleaseAsset,
                               RepositoryTag, Runner, RunnerMetadata)
from connectors.query import query_error, send_json
from connectors.utils.rest import (ApiOperation, HttpRunner, Method,
                                   Request, set_query_param)

logger = logging.getLogger(__name__)

# Body of a 409 when the source branch already has an open merge request:
# {"message":["Another open merge request already exists for this source branch: !60"]}
EXISTING_MERGE_REQUEST = re.compile(r"!(\d+)")


class GitLabConnector(GitConnector):
    """
    GitLab backend for one project.

    Every request carries the ``PRIVATE-TOKEN`` header. Project scoped
    endpoints hang off ``https://{domain}/api/v4/projects/{OWNER%2FREPO}``.
    """

    backend = "gitlab"

    def __init__(
        self,
        domain: str,
        path: str,
        config: ConnectorConfig,
        runner: Optional[HttpRunner] = None,
    ):
        """
        Initialize GitLab connector.

        :param domain: GitLab host, e.g. ``gitlab.com``.
        :param path: Project path in the format ``OWNER/PROJECT_NAME``.
        :param config: Token and tuning settings.
        :param runner: Runner performing HTTP calls.
        """
        super().__init__(domain, path, config, runner)
        self.api_url = f"https://{domain}/api/v4"
        self.base_url = f"{self.api_url}/projects/{encode_path(path)}"

        self.merge_requests = GitlabMergeRequests(self)
        self.comments = GitlabComments(self)
        self.pipelines = GitlabPipelines(self)
        self.runners = GitlabRunners(self)
        self.releases = GitlabReleases(self)
        self.registry = GitlabRegistry(self)
        self.projects = GitlabProjects(self)
        self.users = GitlabUsers(self)
        self.gists = Unsupported("GitLab", "gists")

    def request_headers(self) -> Dict[str, str]:
        return {"PRIVATE-TOKEN": self.config.token}


def encode_path(path: str) -> str:
    """GitLab identifies a project by its URL-encoded ``OWNER/REPO`` path."""
    return quote(path, safe="")


class GitlabMergeRequests(Resource, MergeRequestApi):
    def open(self, args: MergeRequestArgs) -> MergeRequest:
        """
        Open a merge request, or return the one already open for the branch.

        :param args: Title, description, branches and options.
        :return: The new or the existing merge request.
        """
        url = f"{self.connector.base_url}/merge_requests"
        title = f"Draft: {args.title}" if args.draft else args.title
        body = {
            "source_branch": args.source_branch,
            "target_branch": args.target_branch,
            "title": title,
            "description": args.description,
            "remove_source_branch": args.remove_source_branch,
        }
        if args.assignee_id is not None:
            body["assignee_id"] = args.assignee_id

        request = Request(
            url=url,
            method=Method.POST,
            headers=self.connector.headers(),
            body=body,
            api_operation=ApiOperation.MERGE_REQUEST,
        )
        response = self.connector.client.run(request)
        if response.status == 201:
            return GitlabMergeRequestFields.from_json(response.json()).to_entity()
        if response.status == 409:
            match = EXISTING_MERGE_REQUEST.search(response.body)
            if match is not None:
                iid = int(match.group(1))
                logger.info(
                    f"Merge request !{iid} already exists for branch "
                    f"{args.source_branch}"
                )
                return MergeRequest(
                    id=iid,
                    web_url=(
                        f"https://{self.connector.domain}/{self.connector.path}"
                        f"/-/merge_requests/{iid}"
                    ),
                    source_branch=args.source_branch,
                    target_branch=args.target_branch,
                    title=title,
                    state="opened",
                )
        raise query_error(url, response)

    def list(self, args: MergeRequestListBodyArgs) -> List[MergeRequest]:
        return self._list(
            self._url(args),
            GitlabMergeRequestFields,
            args.list_args,
            ApiOperation.MERGE_REQUEST,
        )

    def get(self, id: int, refresh: bool = False) -> MergeRequest:
        return self._send(
            f"{self.connector.base_url}/merge_requests/{id}",
            GitlabMergeRequestFields,
            ApiOperation.MERGE_REQUEST,
            refresh=refresh,
        )

    def merge(self, id: int) -> MergeRequest:
        return self._send(
            f"{self.connector.base_url}/merge_requests/{id}/merge",
            GitlabMergeRequestFields,
            ApiOperation.MERGE_REQUEST,
            method=Method.PUT,
        )

    def close(self, id: int) -> MergeRequest:
        return self._send(
            f"{self.connector.base_url}/merge_requests/{id}",
            GitlabMergeRequestFields,
            ApiOperation.MERGE_REQUEST,
            method=Method.PUT,
            body={"state_event": "close"},
        )

    def num_pages(self, args: MergeRequestListBodyArgs) -> Optional[int]:
        return self._num_pages(
            self._url(args), args.list_args, ApiOperation.MERGE_REQUEST
        )

    def num_resources(self, args: MergeRequestListBodyArgs) -> Optional[int]:
        return self._num_resources(
            self._url(args), args.list_args, ApiOperation.MERGE_REQUEST
        )

    def _url(self, args: MergeRequestListBodyArgs) -> str:
        return set_query_param(
            f"{self.connector.base_url}/merge_requests", "state", args.state.value
        )


class GitlabComments(Resource, CommentApi):
    def list(self, args: CommentListBodyArgs) -> List[Comment]:
        return self._list(
            self._url(args.id),
            GitlabMergeRequestCommentFields,
            args.list_args,
            ApiOperation.MERGE_REQUEST,
        )

    def create(self, args: CommentBodyArgs) -> Comment:
        return self._send(
            self._url(args.id),
            GitlabMergeRequestCommentFields,
            ApiOperation.MERGE_REQUEST,
            method=Method.POST,
            body={"body": args.body},
        )

    def num_pages(self, args: CommentListBodyArgs) -> Optional[int]:
        return self._num_pages(
            self._url(args.id), args.list_args, ApiOperation.MERGE_REQUEST
        )

    def _url(self, id: int) -> str:
        return f"{self.connector.base_url}/merge_requests/{id}/notes"


class GitlabPipelines(Resource, PipelineApi):
    def list(self, args: PipelineBodyArgs) -> List[Pipeline]:
        return self._list(
            self._url(), GitlabPipelineFields, args.list_args, ApiOperation.PIPELINE
        )

    def get(self, id: int, refresh: bool = False) -> Pipeline:
        return self._send(
            f"{self._url()}/{id}",
            GitlabPipelineFields,
            ApiOperation.PIPELINE,
            refresh=refresh,
        )

    def num_pages(self, args: PipelineBodyArgs) -> Optional[int]:
        return self._num_pages(self._url(), args.list_args, ApiOperation.PIPELINE)

    def num_resources(self, args: PipelineBodyArgs) -> Optional[int]:
        return self._num_resources(self._url(), args.list_args, ApiOperation.PIPELINE)

    def _url(self) -> str:
        return f"{self.connector.base_url}/pipelines"


class GitlabRunners(Resource, RunnerApi):
    def list(self, args: RunnerListBodyArgs) -> List[Runner]:
        return self._list(
            self._url(args), GitlabRunnerFields, args.list_args, ApiOperation.PIPELINE
        )

    def get(self, id: int, refresh: bool = False) -> RunnerMetadata:
        # Runner details live outside the project namespace.
        return self._send(
            f"{self.connector.api_url}/runners/{id}",
            GitlabRunnerMetadataFields,
            ApiOperation.PIPELINE,
            refresh=refresh,
        )

    def num_pages(self, args: RunnerListBodyArgs) -> Optional[int]:
        return self._num_pages(self._url(args), args.list_args, ApiOperation.PIPELINE)

    def num_resources(self, args: RunnerListBodyArgs) -> Optional[int]:
        return self._num_resources(
            self._url(args), args.list_args, ApiOperation.PIPELINE
        )

    def _url(self, args: RunnerListBodyArgs) -> str:
        url = f"{self.connector.base_url}/runners"
        if args.status != RunnerStatus.ALL:
            url = set_query_param(url, "status", args.status.value)
        if args.tags:
            url = set_query_param(url, "tag_list", args.tags)
        return url


class GitlabReleases(Resource, ReleaseApi):
    def list(self, args: ReleaseBodyArgs) -> List[Release]:
        return self._list(
            self._url(), GitlabReleaseFields, args.list_args, ApiOperation.RELEASE
        )

    def num_pages(self, args: ReleaseBodyArgs) -> Optional[int]:
        return self._num_pages(self._url(), args.list_args, ApiOperation.RELEASE)

    def num_resources(self, args: ReleaseBodyArgs) -> Optional[int]:
        return self._num_resources(self._url(), args.list_args, ApiOperation.RELEASE)

    def list_assets(self, args: ReleaseAssetListBodyArgs) -> List[ReleaseAsset]:
        return self._list(
            self._assets_url(args.id),
            GitlabReleaseAssetFields,
            args.list_args,
            ApiOperation.RELEASE,
        )

    def num_asset_pages(self, args: ReleaseAssetListBodyArgs) -> Optional[int]:
        return self._num_pages(
            self._assets_url(args.id), args.list_args, ApiOperation.RELEASE
        )

    def num_asset_resources(self, args: ReleaseAssetListBodyArgs) -> Optional[int]:
        return self._num_resources(
            self._assets_url(args.id), args.list_args, ApiOperation.RELEASE
        )

    def _url(self) -> str:
        return f"{self.connector.base_url}/releases"

    def _assets_url(self, tag: str) -> str:
        return f"{self._url()}/{quote(str(tag), safe='')}/assets/links"


class GitlabRegistry(Resource, RegistryApi):
    def list_repositories(self, args: RegistryListBodyArgs) -> List[RegistryRepository]:
        return self._list(
            self._url(),
            GitlabRegistryRepositoryFields,
            args.list_args,
            ApiOperation.CONTAINER_REGISTRY,
        )

    def list_repository_tags(self, args: RegistryListBodyArgs) -> List[RepositoryTag]:
        if args.repository_id is None:
            raise PreconditionException("Listing tags requires a repository id")
        return self._list(
            self._tags_url(args.repository_id),
            GitlabRepositoryTagFields,
            args.list_args,
            ApiOperation.REPOSITORY_TAG,
        )

    def get_image_metadata(
        self, repository_id: int, tag: str, refresh: bool = False
    ) -> ImageMetadata:
        return self._send(
            f"{self._tags_url(repository_id)}/{quote(tag, safe='')}",
            GitlabImageMetadataFields,
            ApiOperation.REPOSITORY_TAG,
            refresh=refresh,
        )

    def num_pages(self, args: RegistryListBodyArgs) -> Optional[int]:
        return self._num_pages(
            self._count_url(args), args.list_args, self._operation(args)
        )

    def num_resources(self, args: RegistryListBodyArgs) -> Optional[int]:
        return self._num_resources(
            self._count_url(args), args.list_args, self._operation(args)
        )

    def _url(self) -> str:
        return set_query_param(
            f"{self.connector.base_url}/registry/repositories", "tags_count", "true"
        )

    def _tags_url(self, repository_id: int) -> str:
        return f"{self.connector.base_url}/registry/repositories/{repository_id}/tags"

    def _count_url(self, args: RegistryListBodyArgs) -> str:
        if args.tags:
            return self._tags_url(args.repository_id)
        return self._url()

    @staticmethod
    def _operation(args: RegistryListBodyArgs) -> ApiOperation:
        if args.tags:
            return ApiOperation.REPOSITORY_TAG
        return ApiOperation.CONTAINER_REGISTRY


class GitlabProjects(Resource, ProjectApi):
    def get(
        self,
        id: Optional[int] = None,
        path: Optional[str] = None,
        refresh: bool = False,
    ) -> Project:
        """
        Get a project by id, by ``OWNER/REPO`` path, or the current project.

        :param id: Numeric project id.
        :param path: Project path.
        :param refresh: Bypass caches.
        :return: Project.
        :raises PreconditionException: If both id and path are given.
        """
        if id is not None and path is not None:
            raise PreconditionException(
                "Invalid arguments, can only get project data by id or by "
                "owner/repo path"
            )
        if id is not None:
            url = f"{self.connector.api_url}/projects/{id}"
        elif path is not None:
            url = f"{self.connector.api_url}/projects/{encode_path(path)}"
        else:
            url = self.connector.base_url
        return self._send(url, GitlabProjectFields, ApiOperation.PROJECT, refresh=refresh)

    def members(self, list_args: Optional[ListBodyArgs] = None) -> List[Member]:
        return self._list(
            f"{self.connector.base_url}/members/all",
            GitlabMemberFields,
            list_args,
            ApiOperation.PROJECT,
        )

    def tags(self, list_args: Optional[ListBodyArgs] = None) -> List[ProjectTag]:
        return self._list(
            self._tags_url(), GitlabProjectTagFields, list_args, ApiOperation.PROJECT
        )

    def num_tag_pages(self, list_args: Optional[ListBodyArgs] = None) -> Optional[int]:
        return self._num_pages(self._tags_url(), list_args, ApiOperation.PROJECT)

    def num_tag_resources(
        self, list_args: Optional[ListBodyArgs] = None
    ) -> Optional[int]:
        return self._num_resources(self._tags_url(), list_args, ApiOperation.PROJECT)

    def get_url(self, option: BrowseOption, id: Optional[int] = None) -> str:
        base_url = f"https://{self.connector.domain}/{self.connector.path}"
        if option == BrowseOption.MERGE_REQUESTS:
            return f"{base_url}/merge_requests"
        if option == BrowseOption.MERGE_REQUEST_ID:
            if id is None:
                raise PreconditionException("A merge request id is required")
            return f"{base_url}/-/merge_requests/{id}"
        if option == BrowseOption.PIPELINES:
            return f"{base_url}/pipelines"
        return base_url

    def list(self, args: ProjectListBodyArgs) -> List[Project]:
        return self._list(
            self._url(args), GitlabProjectFields, args.list_args, ApiOperation.PROJECT
        )

    def num_pages(self, args: ProjectListBodyArgs) -> Optional[int]:
        return self._num_pages(self._url(args), args.list_args, ApiOperation.PROJECT)

    def num_resources(self, args: ProjectListBodyArgs) -> Optional[int]:
        return self._num_resources(
            self._url(args), args.list_args, ApiOperation.PROJECT
        )

    def _tags_url(self) -> str:
        return f"{self.connector.base_url}/repository/tags"

    def _url(self, args: ProjectListBodyArgs) -> str:
        user = args.user or self.connector.users.get_auth_user()
        kind = "starred_projects" if args.stars else "projects"
        return f"{self.connector.api_url}/users/{user.id}/{kind}"


class GitlabUsers(Resource, UserApi):
    def get_auth_user(self, refresh: bool = False) -> Member:
        return self._send(
            f"{self.connector.api_url}/user",
            GitlabUserFields,
            ApiOperation.USER,
            refresh=refresh,
        )

    def get(self, username: str, refresh: bool = False) -> Member:
        """
        Look up a user by username.

        :raises APIException: If no user has that username.
        """
        url = set_query_param(f"{self.connector.api_url}/users", "username", username)
        users = send_json(
            self.connector.client,
            url,
            self.connector.headers(refresh),
            operation=ApiOperation.USER,
        )
        if not isinstance(users, list) or not users:
            raise APIException(f"User {username} not found", status=404)
        return GitlabUserFields.from_json(users[0]).to_entity()

