"""Shared test fixtures for the test suite."""
import json
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from connectors.config import ConnectorConfig
from connectors.github import GitHubConnector
from connectors.gitlab import GitLabConnector
from connectors.utils.rest import HttpRunner, Request, Response

CONTRACTS_DIR = Path(__file__).parent / "contracts"


def load_contract(backend: str, name: str) -> str:
    """Return the raw JSON body of a recorded response."""
    return (CONTRACTS_DIR / backend / name).read_text(encoding="utf-8")


def link_header(base_url: str, next_page: Optional[int] = None, last_page: Optional[int] = None) -> str:
    links = []
    if next_page is not None:
        links.append(f'<{base_url}?page={next_page}>; rel="next"')
    if last_page is not None:
        links.append(f'<{base_url}?page={last_page}>; rel="last"')
    return ", ".join(links)


class MockRunner(HttpRunner):
    """
    Runner replaying scripted responses in order.

    The last response is repeated once the script is exhausted. Every request
    is recorded.
    """

    def __init__(self, responses: List[Response]):
        self.responses = list(responses)
        self.requests: List[Request] = []
        self.closed = False

    def run(self, request: Request) -> Response:
        self.requests.append(request)
        index = min(len(self.requests), len(self.responses)) - 1
        return self.responses[index]

    def close(self) -> None:
        self.closed = True

    @property
    def calls(self) -> int:
        return len(self.requests)

    @property
    def last_request(self) -> Request:
        return self.requests[-1]

    @property
    def urls(self) -> List[str]:
        return [r.url for r in self.requests]


def response(status: int = 200, body="", headers: Optional[Dict[str, str]] = None) -> Response:
    if not isinstance(body, str):
        body = json.dumps(body)
    return Response(status=status, body=body, headers=headers or {})


@pytest.fixture
def config():
    """Configuration with a token and no retries."""
    return ConnectorConfig(token="test-token", per_page=20)


@pytest.fixture
def gitlab_factory(config):
    """Build a GitLab connector over scripted responses."""

    def _factory(*responses: Response) -> GitLabConnector:
        return GitLabConnector(
            "gitlab.com", "jordilin/gitlapi", config, MockRunner(list(responses))
        )

    return _factory


@pytest.fixture
def github_factory(config):
    """Build a GitHub connector over scripted responses."""

    def _factory(*responses: Response) -> GitHubConnector:
        return GitHubConnector(
            "github.com", "jordilin/githapi", config, MockRunner(list(responses))
        )

    return _factory
