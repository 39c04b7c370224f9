"""Shared fixtures: a scripted GitHub CLI and a test client wired to it."""
import json

import pytest
from fastapi.testclient import TestClient

from relay.gh_cli import GhClient
from relay.service import RelayService

VERSION_OUTPUT = "gh version 2.40.1 (2023-12-13)\nhttps://github.com/cli/cli/releases/tag/v2.40.1\n"

AUTH_STATUS_OUTPUT = """github.com
  ✓ Logged in to github.com account octocat (keyring)
  - Active account: true
  - Git operations protocol: https
  - Token: gho_************************************
  - Token scopes: 'gist', 'read:org', 'repo', 'workflow'
"""

NOT_LOGGED_IN_OUTPUT = "You are not logged into any GitHub hosts. To log in, run: gh auth login\n"

API_USER = {
    "login": "octocat",
    "id": 583231,
    "name": "The Octocat",
    "avatar_url": "https://avatars.githubusercontent.com/u/583231?v=4",
}

PR_URL = "https://github.com/acme/rocket/pull/42"


def pr_view(state="OPEN", is_draft=False):
    return {
        "title": "Add launch sequence",
        "state": state,
        "author": {"login": "hubot"},
        "createdAt": "2024-03-01T12:00:00Z",
        "body": "Implements the countdown.",
        "url": PR_URL,
        "reviewDecision": "REVIEW_REQUIRED",
        "isDraft": is_draft,
    }


class FakeGhClient(GhClient):
    """
    GhClient whose subprocess is replaced by canned results.

    `responses` maps a tuple of leading arguments to (returncode, stdout,
    stderr); the longest matching prefix wins. Every argv is recorded.
    """

    def __init__(self, responses=None, missing=False):
        super().__init__("gh")
        self.responses = responses or {}
        self.missing = missing
        self.calls = []

    async def _exec(self, argv):
        self.calls.append(list(argv))
        if self.missing:
            raise FileNotFoundError(2, "No such file or directory", argv[0])

        args = tuple(argv[1:])
        for prefix in sorted(self.responses, key=len, reverse=True):
            if args[:len(prefix)] == prefix:
                return self.responses[prefix]
        return (1, "", f"unexpected command: {' '.join(args)}")

    def commands(self, *prefix):
        return [call for call in self.calls if tuple(call[1:1 + len(prefix)]) == prefix]


def authenticated_responses(state="OPEN", is_draft=False):
    return {
        ("--version",): (0, VERSION_OUTPUT, ""),
        ("auth", "status"): (0, "", AUTH_STATUS_OUTPUT),
        ("api", "user"): (0, json.dumps(API_USER), ""),
        ("pr", "view"): (0, json.dumps(pr_view(state, is_draft)), ""),
        ("pr", "review"): (0, "", ""),
        ("pr", "merge"): (0, "✓ Squashed and merged pull request #42\n", ""),
    }


@pytest.fixture
def fake_gh():
    return FakeGhClient(authenticated_responses())


@pytest.fixture
def service(fake_gh):
    return RelayService(fake_gh)


@pytest.fixture
def make_client():
    """Build a TestClient whose relay runs against the given fake gh"""
    from relay.main import app
    from relay.routes import get_relay_service

    def _make(gh):
        app.dependency_overrides[get_relay_service] = lambda: RelayService(gh)
        return TestClient(app, raise_server_exceptions=False)

    yield _make
    app.dependency_overrides.clear()
