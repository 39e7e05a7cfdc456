"""
Tests for the command line interface and output rendering.
"""

import io
import json
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

import cli
from conftest import MockRunner, load_contract, response
from connectors.config import ConnectorConfig
from connectors.gitlab import GitLabConnector
from connectors.models import Member, Release
from display import NO_PAGES, NO_RESOURCES, Display, print_count, print_entity


def _release(tag, created_at):
    return Release(
        id=tag,
        url=f"https://gitlab.com/a/b/-/releases/{tag}",
        tag=tag,
        title=tag,
        description="",
        created_at=created_at,
    )


class TestDisplay:
    """Tests for entity rendering."""

    def test_pipe_format_with_headers(self):
        """Test the default pipe separated output."""
        out = io.StringIO()
        Display(out).write([Member(id=1, username="jordilin", name="Jordi")])

        lines = out.getvalue().splitlines()
        assert lines[0] == "ID | USERNAME | NAME | CREATED_AT"
        assert lines[1] == "1 | jordilin | Jordi | "

    def test_headers_written_once_across_pages(self):
        """Test that flushed pages share one header row."""
        out = io.StringIO()
        display = Display(out)
        display([_release("v1", "2024-01-01")])
        display([_release("v2", "2024-01-02")])

        assert out.getvalue().count("TAG") == 1
        assert display.rows_written == 2

    def test_no_headers(self):
        """Test suppressing the header row."""
        out = io.StringIO()
        Display(out, no_headers=True).write([Member(id=1, username="a")])
        assert out.getvalue() == "1 | a |  | \n"

    def test_csv_format(self):
        """Test CSV output."""
        out = io.StringIO()
        Display(out, format="csv").write([Member(id=1, username="a", name="x, y")])
        assert out.getvalue().splitlines() == ["id,username,name,created_at", '1,a,"x, y",']

    def test_json_format(self):
        """Test JSON lines output."""
        out = io.StringIO()
        Display(out, format="json").write([Member(id=1, username="a")])
        assert json.loads(out.getvalue()) == {
            "id": 1,
            "username": "a",
            "name": "",
            "created_at": "",
        }

    def test_empty_result(self):
        """Test the message for empty listings."""
        out = io.StringIO()
        display = Display(out)
        display.write([])
        display.finish()
        assert out.getvalue() == NO_RESOURCES + "\n"

    def test_unknown_format(self):
        """Test that unsupported formats are rejected."""
        with pytest.raises(ValueError):
            Display(io.StringIO(), format="xml")

    def test_unknown_count(self):
        """Test the message for unknown page counts."""
        out = io.StringIO()
        print_count(out, None)
        print_count(out, 4)
        assert out.getvalue() == f"{NO_PAGES}\n4\n"

    def test_print_entity(self):
        """Test printing a single entity as key value lines."""
        out = io.StringIO()
        print_entity(out, Member(id=7, username="u"))
        assert out.getvalue().splitlines()[:2] == ["id: 7", "username: u"]


class TestParser:
    """Tests for argument parsing."""

    def test_list_flags(self):
        """Test that list commands accept the shared list flags."""
        ns = cli.build_parser().parse_args([
            "--domain", "gitlab.com", "--repo", "a/b",
            "mr", "list", "--state", "merged",
            "--from-page", "2", "--num-pages", "3", "--throttle", "0.5",
            "--created-after", "2024-01-01", "--format", "csv", "--flush",
        ])
        assert ns.state == "merged"
        assert ns.from_page == 2
        assert ns.num_pages == 3
        assert ns.throttle == 0.5
        assert ns.created_after.year == 2024
        assert ns.flush is True
        assert ns.func is cli._cmd_mr_list

    def test_invalid_date(self):
        """Test that invalid dates are rejected by the parser."""
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["rl", "list", "--created-after", "soon"])

    def test_count_flags_are_exclusive(self):
        """Test that page and resource counts cannot be combined."""
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["pp", "list", "--num-pages-only", "--num-resources"])
    def test_created_before_date_covers_the_day(self):
        """Test that a bare end date includes the whole day."""
        ns = cli.build_parser().parse_args(
            ["rl", "list", "--created-after", "2024-01-01", "--created-before", "2024-01-31"]
        )
        assert ns.created_after == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert ns.created_before == datetime(
            2024, 1, 31, 23, 59, 59, 999999, tzinfo=timezone.utc
        )



class TestMain:
    """Tests for command execution."""

    def _connector(self, *responses):
        return GitLabConnector(
            "gitlab.com", "a/b", ConnectorConfig(token="t"), MockRunner(list(responses))
        )

    @patch("cli.create_connector")
    def test_list_releases(self, mock_create, capsys, monkeypatch):
        """Test listing releases end to end."""
        monkeypatch.setenv("DISABLE_DOTENV", "1")
        mock_create.return_value = self._connector(
            response(200, load_contract("gitlab", "releases.json"))
        )

        assert cli.main(["--domain", "gitlab.com", "--repo", "a/b", "rl", "list"]) == 0

        lines = capsys.readouterr().out.splitlines()
        assert lines[0].startswith("ID | URL | TAG")
        assert lines[1].startswith("v0.1.19 | ")
        assert mock_create.return_value.runner.closed is True

    @patch("cli.create_connector")
    def test_flush_streams_pages(self, mock_create, capsys, monkeypatch):
        """Test that flush mode prints pages as they arrive."""
        monkeypatch.setenv("DISABLE_DOTENV", "1")
        mock_create.return_value = self._connector(
            response(200, load_contract("gitlab", "pipelines.json"))
        )

        assert cli.main(
            ["--domain", "gitlab.com", "--repo", "a/b", "pp", "list", "--flush", "--no-headers"]
        ) == 0

        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 2
        assert lines[0].startswith("1081300 | ")

    @patch("cli.create_connector")
    def test_empty_listing(self, mock_create, capsys, monkeypatch):
        """Test the empty listing message."""
        monkeypatch.setenv("DISABLE_DOTENV", "1")
        mock_create.return_value = self._connector(response(200, "[]"))

        assert cli.main(["--domain", "gitlab.com", "--repo", "a/b", "rl", "list"]) == 0
        assert capsys.readouterr().out == "No resources found.\n"

    @patch("cli.create_connector")
    def test_num_pages_only(self, mock_create, capsys, monkeypatch):
        """Test printing the number of pages."""
        monkeypatch.setenv("DISABLE_DOTENV", "1")
        mock_create.return_value = self._connector(
            response(200, headers={"link": '<https://x/y?page=2>; rel="next"'})
        )

        assert cli.main(
            ["--domain", "gitlab.com", "--repo", "a/b", "mr", "list", "--num-pages-only"]
        ) == 0
        assert capsys.readouterr().out == "Number of pages not available.\n"

    @patch("cli.create_connector")
    def test_connector_error_exits_1(self, mock_create, capsys, monkeypatch):
        """Test that connector errors are reported with exit status 1."""
        monkeypatch.setenv("DISABLE_DOTENV", "1")
        mock_create.return_value = self._connector(response(500, "boom"))

        assert cli.main(["--domain", "gitlab.com", "--repo", "a/b", "mr", "get", "1"]) == 1

    def test_domain_without_repo_exits_1(self, monkeypatch):
        """Test that a partial remote override is reported."""
        monkeypatch.setenv("DISABLE_DOTENV", "1")
        assert cli.main(["--domain", "gitlab.com", "rl", "list"]) == 1

    @patch("cli.create_connector")
    def test_unsupported_operation_exits_1(self, mock_create, monkeypatch):
        """Test that unsupported resources are reported as errors."""
        monkeypatch.setenv("DISABLE_DOTENV", "1")
        mock_create.return_value = self._connector()

        assert cli.main(["--domain", "gitlab.com", "--repo", "a/b", "gs", "list"]) == 1

    @patch("cli.create_connector")
    def test_invalid_page_arguments_exit_1(self, mock_create, monkeypatch):
        """Test that invalid page arguments are reported as errors."""
        monkeypatch.setenv("DISABLE_DOTENV", "1")
        mock_create.return_value = self._connector()

        assert cli.main(
            ["--domain", "gitlab.com", "--repo", "a/b", "pp", "list", "--from-page", "0"]
        ) == 1

    @patch("cli.create_connector")
    def test_release_assets(self, mock_create, capsys, monkeypatch):
        """Test listing the assets of a release."""
        monkeypatch.setenv("DISABLE_DOTENV", "1")
        mock_create.return_value = self._connector(
            response(200, load_contract("gitlab", "release_asset_links.json"))
        )

        assert cli.main(
            ["--domain", "gitlab.com", "--repo", "a/b", "rl", "assets", "v0.1.19", "--no-headers"]
        ) == 0
        lines = capsys.readouterr().out.splitlines()
        assert lines[0].startswith("2 | awesome-v0.2.msi | ")
        assert mock_create.return_value.runner.last_request.url.startswith(
            "https://gitlab.com/api/v4/projects/a%2Fb/releases/v0.1.19/assets/links"
        )

    @patch("cli.create_connector")
    def test_project_tags_num_resources(self, mock_create, capsys, monkeypatch):
        """Test counting project tags."""
        monkeypatch.setenv("DISABLE_DOTENV", "1")
        mock_create.return_value = self._connector(response(200, "[]", {"x-total": "12"}))

        assert cli.main(
            ["--domain", "gitlab.com", "--repo", "a/b", "pj", "tags", "--num-resources"]
        ) == 0
        assert capsys.readouterr().out == "12\n"

    @patch("cli.create_connector")
    def test_browse_merge_request(self, mock_create, capsys, monkeypatch):
        """Test printing the web URL of a merge request."""
        monkeypatch.setenv("DISABLE_DOTENV", "1")
        mock_create.return_value = self._connector()

        assert cli.main(
            ["--domain", "gitlab.com", "--repo", "a/b", "pj", "browse", "--mr-id", "60"]
        ) == 0
        assert capsys.readouterr().out == "https://gitlab.com/a/b/-/merge_requests/60\n"
        assert mock_create.return_value.runner.calls == 0
