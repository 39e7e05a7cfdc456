"""
Tests for the JSON to entity field mappings of both backends.
"""

import json

import pytest

from conftest import load_contract
from connectors.exceptions import UnexpectedResponseContractException
from connectors.fields import map_page, require
from connectors.fields.github import (GithubGistFields,
                                      GithubMergeRequestFields,
                                      GithubPipelineFields,
                                      GithubProjectFields, GithubReleaseFields,
                                      GithubUserFields)
from connectors.fields.gitlab import (GitlabImageMetadataFields,
                                      GitlabMergeRequestFields,
                                      GitlabProjectFields, GitlabReleaseFields,
                                      GitlabRunnerMetadataFields)


def _contract(backend, name):
    return json.loads(load_contract(backend, name))


class TestRequire:
    """Tests for mandatory field access."""

    def test_nested_path(self):
        """Test dotted paths into nested objects."""
        assert require({"author": {"username": "jordilin"}}, "author.username") == "jordilin"

    def test_missing_field(self):
        """Test that a missing field raises a contract exception."""
        with pytest.raises(UnexpectedResponseContractException, match="web_url"):
            require({"id": 1}, "web_url")

    def test_null_field(self):
        """Test that a null mandatory field raises."""
        with pytest.raises(UnexpectedResponseContractException):
            require({"id": None}, "id", int)

    def test_bool_is_not_int(self):
        """Test that booleans are rejected where integers are expected."""
        with pytest.raises(UnexpectedResponseContractException):
            require({"id": True}, "id", int)


class TestMapPage:
    """Tests for page level mapping."""

    def test_empty_array(self):
        """Test that an empty array maps to an empty list."""
        assert map_page([], GitlabProjectFields) == []

    def test_object_body_rejected(self):
        """Test that a non-array body is a contract violation."""
        with pytest.raises(UnexpectedResponseContractException):
            map_page({"message": "not found"}, GitlabProjectFields)

    def test_sub_array(self):
        """Test records nested under a key of an object body."""
        body = _contract("github", "workflow_runs.json")
        pipelines = map_page(body, GithubPipelineFields, sub_array="workflow_runs")
        assert [p.id for p in pipelines] == [7569285631, 7569285632]

    def test_missing_sub_array(self):
        """Test that a missing sub array is a contract violation."""
        with pytest.raises(UnexpectedResponseContractException):
            map_page({"total_count": 0}, GithubPipelineFields, sub_array="workflow_runs")


class TestGitlabFields:
    """Tests for GitLab mappings against recorded responses."""

    def test_project(self):
        """Test the project mapping."""
        project = GitlabProjectFields.from_json(_contract("gitlab", "project.json")).to_entity()
        assert project.id == 34567
        assert project.default_branch == "main"
        assert project.html_url == "https://gitlab.com/jordilin/gitlapi"
        assert project.created_at == "2023-01-19T20:38:08.422Z"
        assert project.full_name == "jordilin/gitlapi"

    def test_merge_request(self):
        """Test that the merge request id is the project scoped iid."""
        mr = GitlabMergeRequestFields.from_json(
            _contract("gitlab", "merge_request.json")
        ).to_entity()
        assert mr.id == 33
        assert mr.author == "jordilin"
        assert mr.source_branch == "feature"
        assert mr.target_branch == "main"
        assert mr.state == "opened"
        assert mr.merged_at == ""

    def test_release_is_identified_by_tag(self):
        """Test that a release id is its tag."""
        release = GitlabReleaseFields.from_json(
            _contract("gitlab", "releases.json")[0]
        ).to_entity()
        assert release.id == "v0.1.18"
        assert release.url == "https://gitlab.com/jordilin/gitlapi/-/releases/v0.1.18"

    def test_runner_metadata(self):
        """Test runner metadata with tags."""
        metadata = GitlabRunnerMetadataFields.from_json(
            _contract("gitlab", "runner.json")
        ).to_entity()
        assert metadata.run_untagged is True
        assert metadata.tag_list == ("docker", "linux")
        assert metadata.architecture == "amd64"

    def test_image_metadata(self):
        """Test registry image metadata."""
        image = GitlabImageMetadataFields.from_json(
            _contract("gitlab", "registry_tag.json")
        ).to_entity()
        assert image.short_sha == "3cbce0ca3"
        assert image.size == 2705473


class TestGithubFields:
    """Tests for GitHub mappings against recorded responses."""

    def test_project(self):
        """Test the repository mapping."""
        project = GithubProjectFields.from_json(_contract("github", "project.json")).to_entity()
        assert project.id == 789012
        assert project.html_url == "https://github.com/jordilin/githapi"
        assert project.stars == 12

    def test_open_pull_request_state(self):
        """Test that an open pull request reads as opened."""
        mr = GithubMergeRequestFields.from_json(
            _contract("github", "pull_request.json")
        ).to_entity()
        assert mr.id == 23
        assert mr.state == "opened"
        assert mr.source_branch == "feature"
        assert mr.author == "jordilin"

    def test_merged_pull_request_state(self):
        """Test that a closed pull request with a merge date reads as merged."""
        mrs = map_page(_contract("github", "pull_requests_closed.json"), GithubMergeRequestFields)
        assert [m.state for m in mrs] == ["merged", "closed"]

    def test_pipeline_uses_conclusion(self):
        """Test that a completed run reports its conclusion."""
        runs = _contract("github", "workflow_runs.json")["workflow_runs"]
        statuses = [GithubPipelineFields.from_json(r).to_entity().status for r in runs]
        assert statuses == ["success", "in_progress"]

    def test_release(self):
        """Test the release mapping."""
        release = GithubReleaseFields.from_json(
            _contract("github", "releases.json")[0]
        ).to_entity()
        assert release.id == "140261111"
        assert release.tag == "v0.1.19"

    def test_gist_files(self):
        """Test that gist file names are joined."""
        gist = GithubGistFields.from_json(_contract("github", "gists.json")[0]).to_entity()
        assert gist.files == "retry.py,README.md"

    def test_user(self):
        """Test the user mapping."""
        user = GithubUserFields.from_json(_contract("github", "user.json")).to_entity()
        assert user.id == 1234
        assert user.username == "jordilin"
        assert user.name == "Jordi Carrillo"
