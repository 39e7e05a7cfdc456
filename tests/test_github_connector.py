"""
Tests for the GitHub connector resources.
"""

import pytest

from conftest import MockRunner, link_header, load_contract, response
from connectors.args import (BrowseOption, CommentBodyArgs,
                             CommentListBodyArgs, GistListBodyArgs,
                             ListBodyArgs, MergeRequestArgs,
                             MergeRequestListBodyArgs, MergeRequestState,
                             PipelineBodyArgs, ProjectListBodyArgs,
                             RegistryListBodyArgs, ReleaseAssetListBodyArgs,
                             ReleaseBodyArgs, RunnerListBodyArgs)
from connectors.config import ConnectorConfig
from connectors.exceptions import (APIException,
                                   OperationNotSupportedException,
                                   PreconditionException)
from connectors.github import GitHubConnector, api_url_for
from connectors.models import Member
from connectors.utils.rest import ApiOperation, Method

BASE = "https://api.github.com/repos/jordilin/githapi"


class TestGitHubConnector:
    """Tests for connector construction."""

    def test_headers(self, github_factory):
        """Test that the bearer token and API media type are attached."""
        connector = github_factory()
        assert connector.request_headers() == {
            "Authorization": "bearer test-token",
            "Accept": "application/vnd.github+json",
        }
        assert connector.base_url == BASE

    def test_enterprise_api_url(self):
        """Test that GitHub Enterprise hosts use the /api/v3 root."""
        assert api_url_for("github.com") == "https://api.github.com"
        assert api_url_for("github.example.com") == "https://github.example.com/api/v3"

        connector = GitHubConnector(
            "github.example.com", "team/app", ConnectorConfig(token="t"), MockRunner([])
        )
        assert connector.base_url == "https://github.example.com/api/v3/repos/team/app"

    def test_runners_not_supported(self, github_factory):
        """Test that runners are a GitLab only resource."""
        connector = github_factory()
        with pytest.raises(OperationNotSupportedException, match="runners"):
            connector.runners.list(RunnerListBodyArgs())
        with pytest.raises(OperationNotSupportedException):
            connector.runners.num_pages(RunnerListBodyArgs())
        assert connector.runner.calls == 0

    def test_registry_not_supported(self, github_factory):
        """Test that the container registry is a GitLab only resource."""
        connector = github_factory()
        with pytest.raises(OperationNotSupportedException, match="registry"):
            connector.registry.list_repositories(RegistryListBodyArgs())


class TestGithubMergeRequests:
    """Tests for GitHub pull requests."""

    def test_open(self, github_factory):
        """Test opening a pull request."""
        connector = github_factory(response(201, load_contract("github", "pull_request.json")))
        mr = connector.merge_requests.open(
            MergeRequestArgs(
                title="New feature",
                description="Implements the new feature",
                source_branch="feature",
                target_branch="main",
            )
        )

        request = connector.runner.last_request
        assert request.method == Method.POST
        assert request.url == f"{BASE}/pulls"
        assert request.body["head"] == "feature"
        assert request.body["base"] == "main"
        assert mr.id == 23
        assert mr.state == "opened"

    def test_open_already_exists(self, github_factory):
        """Test that the open pull request of the branch is returned on 422."""
        connector = github_factory(
            response(422, load_contract("github", "pull_request_conflict.json")),
            response(200, "[" + load_contract("github", "pull_request.json") + "]"),
        )
        mr = connector.merge_requests.open(
            MergeRequestArgs(title="t", source_branch="feature", target_branch="main")
        )

        lookup = connector.runner.last_request
        assert lookup.method == Method.GET
        assert "head=jordilin:feature" in lookup.url
        assert "state=open" in lookup.url
        assert mr.id == 23

    def test_open_validation_error(self, github_factory):
        """Test that other validation errors are raised."""
        connector = github_factory(response(422, '{"message":"Validation Failed"}'))
        with pytest.raises(APIException) as exc_info:
            connector.merge_requests.open(
                MergeRequestArgs(title="t", source_branch="f", target_branch="main")
            )
        assert exc_info.value.status == 422

    def test_list_open(self, github_factory):
        """Test listing open pull requests."""
        connector = github_factory(response(200, load_contract("github", "pull_requests.json")))
        mrs = connector.merge_requests.list(MergeRequestListBodyArgs())

        assert "state=open" in connector.runner.last_request.url
        assert [mr.id for mr in mrs] == [24, 23]

    def test_list_merged(self, github_factory):
        """Test that merged pull requests are the closed ones with a merge date."""
        connector = github_factory(
            response(200, load_contract("github", "pull_requests_closed.json"))
        )
        mrs = connector.merge_requests.list(
            MergeRequestListBodyArgs(state=MergeRequestState.MERGED)
        )

        assert "state=closed" in connector.runner.last_request.url
        assert [mr.id for mr in mrs] == [20]

    def test_list_merged_flush(self, github_factory):
        """Test that flushed pages of merged pull requests are filtered too."""
        pages = []
        connector = github_factory(
            response(200, load_contract("github", "pull_requests_closed.json"))
        )
        result = connector.merge_requests.list(
            MergeRequestListBodyArgs(
                state=MergeRequestState.MERGED,
                list_args=ListBodyArgs(flush=True, sink=pages.append),
            )
        )

        assert result == []
        assert [[mr.id for mr in page] for page in pages] == [[20]]

    def test_follows_link_pages(self, github_factory):
        """Test that Link next pages are concatenated."""
        url = f"{BASE}/pulls"
        connector = github_factory(
            response(200, load_contract("github", "pull_requests.json"), {"link": link_header(url, 2, 2)}),
            response(200, load_contract("github", "pull_requests_closed.json"), {"link": link_header(url, None, 2)}),
        )
        mrs = connector.merge_requests.list(MergeRequestListBodyArgs())

        assert connector.runner.calls == 2
        assert len(mrs) == 4

    def test_merge(self, github_factory):
        """Test merging a pull request."""
        connector = github_factory(response(200, '{"merged": true, "sha": "abc"}'))
        mr = connector.merge_requests.merge(23)

        request = connector.runner.last_request
        assert request.method == Method.PUT
        assert request.url == f"{BASE}/pulls/23/merge"
        assert mr.id == 23
        assert mr.web_url == "https://github.com/jordilin/githapi/pull/23"

    def test_close(self, github_factory):
        """Test closing a pull request."""
        connector = github_factory(response(200, load_contract("github", "pull_request_closed.json")))
        mr = connector.merge_requests.close(23)

        request = connector.runner.last_request
        assert request.method == Method.PATCH
        assert request.body == {"state": "closed"}
        assert mr.state == "closed"

    def test_num_pages_single_page(self, github_factory):
        """Test that GitHub omitting page headers means one page."""
        connector = github_factory(response(200))
        assert connector.merge_requests.num_pages(MergeRequestListBodyArgs()) == 1

    def test_num_resources(self, github_factory):
        """Test counting pull requests through the last page."""
        url = f"{BASE}/pulls"
        connector = github_factory(
            response(200, "[]", {"link": link_header(url, 2, 3)}),
            response(200, load_contract("github", "pull_requests.json"), {"link": link_header(url, None, 3)}),
        )
        assert connector.merge_requests.num_resources(MergeRequestListBodyArgs()) == 42


class TestGithubComments:
    """Tests for pull request comments."""

    def test_list(self, github_factory):
        """Test listing pull request comments."""
        connector = github_factory(response(200, load_contract("github", "comments.json")))
        comments = connector.comments.list(CommentListBodyArgs(id=23))

        assert connector.runner.last_request.url.startswith(f"{BASE}/issues/23/comments")
        assert [c.author for c in comments] == ["jordilin", "reviewer"]

    def test_create(self, github_factory):
        """Test commenting on a pull request."""
        connector = github_factory(response(201, load_contract("github", "comment.json")))
        comment = connector.comments.create(CommentBodyArgs(id=23, body="Please rebase"))

        assert connector.runner.last_request.method == Method.POST
        assert comment.body == "Please rebase"


class TestGithubPipelines:
    """Tests for GitHub Actions workflow runs."""

    def test_list(self, github_factory):
        """Test listing workflow runs from the nested array."""
        connector = github_factory(response(200, load_contract("github", "workflow_runs.json")))
        pipelines = connector.pipelines.list(PipelineBodyArgs())

        assert connector.runner.last_request.url.startswith(f"{BASE}/actions/runs")
        assert [p.id for p in pipelines] == [7569285632, 7569285631]

    def test_get(self, github_factory):
        """Test getting one workflow run."""
        connector = github_factory(response(200, load_contract("github", "workflow_run.json")))
        pipeline = connector.pipelines.get(7569285631)

        assert connector.runner.last_request.api_operation == ApiOperation.PIPELINE
        assert pipeline.sha == "8ad4e0e35c2ad1fcd5e2e1e7b5a8bc2b0b4eaf40"


class TestGithubReleases:
    """Tests for GitHub releases."""

    def test_list(self, github_factory):
        """Test listing releases."""
        connector = github_factory(response(200, load_contract("github", "releases.json")))
        releases = connector.releases.list(ReleaseBodyArgs())

        assert [r.tag for r in releases] == ["v0.1.19", "v0.1.18"]
    def test_list_assets(self, github_factory):
        """Test listing the assets of a release by id."""
        connector = github_factory(response(200, load_contract("github", "release_assets.json")))
        assets = connector.releases.list_assets(ReleaseAssetListBodyArgs(id="12345"))

        assert connector.runner.last_request.url.startswith(f"{BASE}/releases/12345/assets?")
        assert assets[0].name == "example.zip"
        assert assets[0].size == 1024
        assert assets[0].url.endswith("/download/v1.0.0/example.zip")

    def test_num_asset_pages_single_page(self, github_factory):
        """Test that a response without page headers is one page."""
        connector = github_factory(response(200))
        assert connector.releases.num_asset_pages(ReleaseAssetListBodyArgs(id="1")) == 1



class TestGithubProjects:
    """Tests for GitHub repositories."""

    def test_get_current(self, github_factory):
        """Test getting the current repository."""
        connector = github_factory(response(200, load_contract("github", "project.json")))
        project = connector.projects.get()

        assert connector.runner.last_request.url == BASE
        assert project.default_branch == "main"

    def test_get_by_id(self, github_factory):
        """Test getting a repository by id."""
        connector = github_factory(response(200, load_contract("github", "project.json")))
        connector.projects.get(id=789012)
        assert connector.runner.last_request.url == "https://api.github.com/repositories/789012"

    def test_get_by_id_and_path_rejected(self, github_factory):
        """Test that id and path are mutually exclusive."""
        with pytest.raises(PreconditionException):
            github_factory().projects.get(id=1, path="a/b")

    def test_members(self, github_factory):
        """Test that members are the repository contributors."""
        connector = github_factory(response(200, load_contract("github", "contributors.json")))
        members = connector.projects.members()

        assert connector.runner.last_request.url.startswith(f"{BASE}/contributors")
        assert [m.username for m in members] == ["jordilin", "reviewer"]

    def test_list_user_starred(self, github_factory):
        """Test listing starred repositories of a user."""
        connector = github_factory(response(200, load_contract("github", "projects.json")))
        projects = connector.projects.list(
            ProjectListBodyArgs(user=Member(id=1234, username="jordilin"), stars=True)
        )

        assert connector.runner.last_request.url.startswith(
            "https://api.github.com/users/jordilin/starred"
        )
        assert [p.full_name for p in projects] == ["jordilin/notes", "jordilin/githapi"]

    def test_list_auth_user_repos(self, github_factory):
        """Test listing repositories of the authenticated user."""
        connector = github_factory(response(200, load_contract("github", "projects.json")))
        connector.projects.list(ProjectListBodyArgs())
        assert connector.runner.last_request.url.startswith("https://api.github.com/user/repos")
    def test_tags(self, github_factory):
        """Test listing repository tags in arrival order."""
        connector = github_factory(response(200, load_contract("github", "tags.json")))
        tags = connector.projects.tags()

        assert connector.runner.last_request.url.startswith(f"{BASE}/tags?")
        assert [t.name for t in tags] == ["v0.1.1", "v0.1.0"]
        assert tags[0].sha == "c5b97d5ae6c19d5c5df71a34c7fbeeda2479ccbc"

    def test_num_tag_resources(self, github_factory):
        """Test counting tags from the last page."""
        connector = github_factory(
            response(200, "[]", headers={"link": link_header(f"{BASE}/tags", 2, 3)}),
            response(200, load_contract("github", "tags.json")),
        )
        assert connector.projects.num_tag_resources() == 2 * 20 + 2

    @pytest.mark.parametrize(
        "option,id,expected",
        [
            (BrowseOption.REPO, None, "https://github.com/jordilin/githapi"),
            (BrowseOption.MERGE_REQUESTS, None, "https://github.com/jordilin/githapi/pulls"),
            (BrowseOption.MERGE_REQUEST_ID, 7, "https://github.com/jordilin/githapi/pull/7"),
            (BrowseOption.PIPELINES, None, "https://github.com/jordilin/githapi/actions"),
        ],
    )
    def test_get_url(self, github_factory, option, id, expected):
        """Test the web URLs of the repository pages."""
        assert github_factory().projects.get_url(option, id) == expected

    def test_get_url_requires_id(self, github_factory):
        """Test that a single pull request page needs its number."""
        with pytest.raises(PreconditionException):
            github_factory().projects.get_url(BrowseOption.MERGE_REQUEST_ID)



class TestGithubGists:
    """Tests for GitHub gists."""

    def test_list_of_user(self, github_factory):
        """Test listing gists of a user."""
        connector = github_factory(response(200, load_contract("github", "gists.json")))
        gists = connector.gists.list(GistListBodyArgs(username="jordilin"))

        assert connector.runner.last_request.url.startswith("https://api.github.com/users/jordilin/gists")
        assert connector.runner.last_request.api_operation == ApiOperation.GIST
        assert gists[0].description == "Retry helpers"

    def test_list_of_auth_user(self, github_factory):
        """Test listing gists of the authenticated user."""
        connector = github_factory(response(200, "[]"))
        assert connector.gists.list(GistListBodyArgs()) == []
        assert connector.runner.last_request.url.startswith("https://api.github.com/gists")


class TestGithubUsers:
    """Tests for GitHub users."""

    def test_auth_user(self, github_factory):
        """Test getting the authenticated user."""
        connector = github_factory(response(200, load_contract("github", "user.json")))
        user = connector.users.get_auth_user()

        assert connector.runner.last_request.url == "https://api.github.com/user"
        assert user.username == "jordilin"

    def test_get_by_username(self, github_factory):
        """Test looking a user up by username."""
        connector = github_factory(response(200, load_contract("github", "user.json")))
        connector.users.get("jordilin")
        assert connector.runner.last_request.url == "https://api.github.com/users/jordilin"

    def test_unknown_username(self, github_factory):
        """Test that a missing user is reported as not found."""
        connector = github_factory(response(404, '{"message":"Not Found"}'))
        with pytest.raises(APIException, match="ghost not found"):
            connector.users.get("ghost")
