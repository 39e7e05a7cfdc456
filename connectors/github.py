"""
GitHub connector using the REST API.

This connector provides pull requests, comments, workflow runs, releases,
repositories, gists and users. GitHub has no runner or container registry
API matching the GitLab ones, so those resources are not supported.
"""

import logging
from dataclasses import replace
from typing import Dict, List, Optional

from connectors.args import (BrowseOption, CommentBodyArgs,
                             CommentListBodyArgs, GistListBodyArgs,
                             ListBodyArgs, MergeRequestArgs,
                             MergeRequestListBodyArgs, MergeRequestState,
                             PipelineBodyArgs, ProjectListBodyArgs,
                             ReleaseAssetListBodyArgs, ReleaseBodyArgs)
from connectors.base import (CommentApi, GistApi, GitConnector,
                             MergeRequestApi, PipelineApi, ProjectApi,
                             ReleaseApi, Resource, Unsupported, UserApi)
from connectors.config import ConnectorConfig
from connectors.exceptions import APIException, PreconditionException
from connectors.fields import map_page
from connectors.fields.github import (GithubCommentFields, GithubGistFields,
                                      GithubMemberFields,
                                      GithubMergeRequestFields,
                                      GithubPipelineFields,
                                      GithubProjectFields,
                                      GithubProjectTagFields,
                                      GithubReleaseAssetFields,
                                      GithubReleaseFields, GithubUserFields)
from connectors.models import (Comment, Gist, Member, MergeRequest, Pipeline,
                               Project, ProjectTag, Release, ReleaseAsset)
from connectors.query import query_error, send_json, send_request
from connectors.utils.rest import (ApiOperation, HttpRunner, Method, Request,
                                   set_query_param)

logger = logging.getLogger(__name__)

GITHUB_DOMAIN = "github.com"
GITHUB_API_URL = "https://api.github.com"


def api_url_for(domain: str) -> str:
    """
    REST root for ``domain``; GitHub Enterprise serves it under ``/api/v3``.

    :param domain: Remote host.
    :return: API root URL without trailing slash.
    """
    if domain == GITHUB_DOMAIN:
        return GITHUB_API_URL
    return f"https://{domain}/api/v3"


class GitHubConnector(GitConnector):
    """
    GitHub backend for one repository.

    Every request carries a bearer token. Repository scoped endpoints hang
    off ``{api}/repos/{owner}/{repo}``.
    """

    backend = "github"

    def __init__(
        self,
        domain: str,
        path: str,
        config: ConnectorConfig,
        runner: Optional[HttpRunner] = None,
    ):
        """
        Initialize GitHub connector.

        :param domain: GitHub host, ``github.com`` or an Enterprise host.
        :param path: Repository path in the format ``OWNER/REPO``.
        :param config: Token and tuning settings.
        :param runner: Runner performing HTTP calls.
        """
        super().__init__(domain, path, config, runner)
        self.api_url = api_url_for(domain)
        self.base_url = f"{self.api_url}/repos/{path}"
        self.owner = path.split("/", 1)[0]

        self.merge_requests = GithubMergeRequests(self)
        self.comments = GithubComments(self)
        self.pipelines = GithubPipelines(self)
        self.releases = GithubReleases(self)
        self.projects = GithubProjects(self)
        self.gists = GithubGists(self)
        self.users = GithubUsers(self)
        self.runners = Unsupported("GitHub", "runners")
        self.registry = Unsupported("GitHub", "registry")

    def request_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"bearer {self.config.token}",
            "Accept": "application/vnd.github+json",
        }


class GithubMergeRequests(Resource, MergeRequestApi):
    """Pull requests, exposed through the shared merge request contract."""

    def open(self, args: MergeRequestArgs) -> MergeRequest:
        """
        Open a pull request, or return the one already open for the branch.

        GitHub answers 422 when the head branch already has an open pull
        request; that pull request is looked up and returned instead.

        :param args: Title, description, branches and options.
        :return: The new or the existing pull request.
        """
        url = f"{self.connector.base_url}/pulls"
        body = {
            "title": args.title,
            "body": args.description,
            "head": args.source_branch,
            "base": args.target_branch,
            "draft": args.draft,
        }
        request = Request(
            url=url,
            method=Method.POST,
            headers=self.connector.headers(),
            body=body,
            api_operation=ApiOperation.MERGE_REQUEST,
        )
        response = self.connector.client.run(request)
        if response.status == 201:
            return GithubMergeRequestFields.from_json(response.json()).to_entity()
        if response.status == 422 and "already exists" in response.body:
            existing = self._find_open(args.source_branch)
            if existing is not None:
                logger.info(
                    f"Pull request #{existing.id} already exists for branch "
                    f"{args.source_branch}"
                )
                return existing
        raise query_error(url, response)

    def list(self, args: MergeRequestListBodyArgs) -> List[MergeRequest]:
        list_args = args.list_args
        if args.state == MergeRequestState.MERGED:
            # Merged pull requests are the closed ones with a merge date.
            list_args = list_args or ListBodyArgs()
            if list_args.flush:
                sink = list_args.sink
                list_args = replace(
                    list_args, sink=lambda page: sink(_merged_only(page))
                )
            return _merged_only(
                self._list(
                    self._url(args),
                    GithubMergeRequestFields,
                    list_args,
                    ApiOperation.MERGE_REQUEST,
                )
            )
        return self._list(
            self._url(args),
            GithubMergeRequestFields,
            list_args,
            ApiOperation.MERGE_REQUEST,
        )

    def get(self, id: int, refresh: bool = False) -> MergeRequest:
        return self._send(
            f"{self.connector.base_url}/pulls/{id}",
            GithubMergeRequestFields,
            ApiOperation.MERGE_REQUEST,
            refresh=refresh,
        )

    def merge(self, id: int) -> MergeRequest:
        # The merge endpoint only answers with the merge commit sha.
        send_request(
            self.connector.client,
            f"{self.connector.base_url}/pulls/{id}/merge",
            self.connector.headers(),
            method=Method.PUT,
            operation=ApiOperation.MERGE_REQUEST,
        )
        return MergeRequest(
            id=id,
            web_url=f"https://{self.connector.domain}/{self.connector.path}/pull/{id}",
            state=MergeRequestState.MERGED.value,
        )

    def close(self, id: int) -> MergeRequest:
        return self._send(
            f"{self.connector.base_url}/pulls/{id}",
            GithubMergeRequestFields,
            ApiOperation.MERGE_REQUEST,
            method=Method.PATCH,
            body={"state": "closed"},
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
        state = "open" if args.state == MergeRequestState.OPENED else "closed"
        return set_query_param(f"{self.connector.base_url}/pulls", "state", state)

    def _find_open(self, branch: str) -> Optional[MergeRequest]:
        url = set_query_param(
            set_query_param(
                f"{self.connector.base_url}/pulls",
                "head",
                f"{self.connector.owner}:{branch}",
            ),
            "state",
            "open",
        )
        body = send_json(
            self.connector.client,
            url,
            self.connector.headers(),
            operation=ApiOperation.MERGE_REQUEST,
        )
        pulls = map_page(body, GithubMergeRequestFields)
        return pulls[0] if pulls else None


def _merged_only(merge_requests: List[MergeRequest]) -> List[MergeRequest]:
    return [mr for mr in merge_requests if mr.state == MergeRequestState.MERGED.value]


class GithubComments(Resource, CommentApi):
    """Pull request conversation comments (the issue comments endpoint)."""

    def list(self, args: CommentListBodyArgs) -> List[Comment]:
        return self._list(
            self._url(args.id),
            GithubCommentFields,
            args.list_args,
            ApiOperation.MERGE_REQUEST,
        )

    def create(self, args: CommentBodyArgs) -> Comment:
        return self._send(
            self._url(args.id),
            GithubCommentFields,
            ApiOperation.MERGE_REQUEST,
            method=Method.POST,
            body={"body": args.body},
        )

    def num_pages(self, args: CommentListBodyArgs) -> Optional[int]:
        return self._num_pages(
            self._url(args.id), args.list_args, ApiOperation.MERGE_REQUEST
        )

    def _url(self, id: int) -> str:
        return f"{self.connector.base_url}/issues/{id}/comments"


class GithubPipelines(Resource, PipelineApi):
    """GitHub Actions workflow runs."""

    SUB_ARRAY = "workflow_runs"

    def list(self, args: PipelineBodyArgs) -> List[Pipeline]:
        return self._list(
            self._url(),
            GithubPipelineFields,
            args.list_args,
            ApiOperation.PIPELINE,
            sub_array=self.SUB_ARRAY,
        )

    def get(self, id: int, refresh: bool = False) -> Pipeline:
        return self._send(
            f"{self._url()}/{id}",
            GithubPipelineFields,
            ApiOperation.PIPELINE,
            refresh=refresh,
        )

    def num_pages(self, args: PipelineBodyArgs) -> Optional[int]:
        return self._num_pages(self._url(), args.list_args, ApiOperation.PIPELINE)

    def num_resources(self, args: PipelineBodyArgs) -> Optional[int]:
        return self._num_resources(
            self._url(), args.list_args, ApiOperation.PIPELINE, sub_array=self.SUB_ARRAY
        )

    def _url(self) -> str:
        return f"{self.connector.base_url}/actions/runs"


class GithubReleases(Resource, ReleaseApi):
    def list(self, args: ReleaseBodyArgs) -> List[Release]:
        return self._list(
            self._url(), GithubReleaseFields, args.list_args, ApiOperation.RELEASE
        )

    def num_pages(self, args: ReleaseBodyArgs) -> Optional[int]:
        return self._num_pages(self._url(), args.list_args, ApiOperation.RELEASE)

    def num_resources(self, args: ReleaseBodyArgs) -> Optional[int]:
        return self._num_resources(self._url(), args.list_args, ApiOperation.RELEASE)

    def list_assets(self, args: ReleaseAssetListBodyArgs) -> List[ReleaseAsset]:
        return self._list(
            self._assets_url(args.id),
            GithubReleaseAssetFields,
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

    def _assets_url(self, id: str) -> str:
        return f"{self._url()}/{id}/assets"


class GithubProjects(Resource, ProjectApi):
    def get(
        self,
        id: Optional[int] = None,
        path: Optional[str] = None,
        refresh: bool = False,
    ) -> Project:
        """
        Get a repository by id, by ``OWNER/REPO`` path, or the current one.

        :raises PreconditionException: If both id and path are given.
        """
        if id is not None and path is not None:
            raise PreconditionException(
                "Invalid arguments, can only get project data by id or by "
                "owner/repo path"
            )
        if id is not None:
            url = f"{self.connector.api_url}/repositories/{id}"
        elif path is not None:
            url = f"{self.connector.api_url}/repos/{path}"
        else:
            url = self.connector.base_url
        return self._send(url, GithubProjectFields, ApiOperation.PROJECT, refresh=refresh)

    def members(self, list_args: Optional[ListBodyArgs] = None) -> List[Member]:
        return self._list(
            f"{self.connector.base_url}/contributors",
            GithubMemberFields,
            list_args,
            ApiOperation.PROJECT,
        )

    def tags(self, list_args: Optional[ListBodyArgs] = None) -> List[ProjectTag]:
        return self._list(
            self._tags_url(), GithubProjectTagFields, list_args, ApiOperation.PROJECT
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
            return f"{base_url}/pulls"
        if option == BrowseOption.MERGE_REQUEST_ID:
            if id is None:
                raise PreconditionException("A pull request id is required")
            return f"{base_url}/pull/{id}"
        if option == BrowseOption.PIPELINES:
            return f"{base_url}/actions"
        return base_url

    def list(self, args: ProjectListBodyArgs) -> List[Project]:
        return self._list(
            self._url(args), GithubProjectFields, args.list_args, ApiOperation.PROJECT
        )

    def num_pages(self, args: ProjectListBodyArgs) -> Optional[int]:
        return self._num_pages(self._url(args), args.list_args, ApiOperation.PROJECT)

    def num_resources(self, args: ProjectListBodyArgs) -> Optional[int]:
        return self._num_resources(
            self._url(args), args.list_args, ApiOperation.PROJECT
        )

    def _tags_url(self) -> str:
        return f"{self.connector.base_url}/tags"

    def _url(self, args: ProjectListBodyArgs) -> str:
        kind = "starred" if args.stars else "repos"
        if args.user is None:
            return f"{self.connector.api_url}/user/{kind}"
        return f"{self.connector.api_url}/users/{args.user.username}/{kind}"


class GithubGists(Resource, GistApi):
    def list(self, args: GistListBodyArgs) -> List[Gist]:
        return self._list(
            self._url(args), GithubGistFields, args.list_args, ApiOperation.GIST
        )

    def num_pages(self, args: GistListBodyArgs) -> Optional[int]:
        return self._num_pages(self._url(args), args.list_args, ApiOperation.GIST)

    def num_resources(self, args: GistListBodyArgs) -> Optional[int]:
        return self._num_resources(self._url(args), args.list_args, ApiOperation.GIST)

    def _url(self, args: GistListBodyArgs) -> str:
        if args.username:
            return f"{self.connector.api_url}/users/{args.username}/gists"
        return f"{self.connector.api_url}/gists"


class GithubUsers(Resource, UserApi):
    def get_auth_user(self, refresh: bool = False) -> Member:
        return self._send(
            f"{self.connector.api_url}/user",
            GithubUserFields,
            ApiOperation.USER,
            refresh=refresh,
        )

    def get(self, username: str, refresh: bool = False) -> Member:
        try:
            return self._send(
                f"{self.connector.api_url}/users/{username}",
                GithubUserFields,
                ApiOperation.USER,
                refresh=refresh,
            )
        except APIException as e:
            if e.status == 404:
                raise APIException(
                    f"User {username} not found", status=404, body=e.body
                ) from e
            raise
