import pytest

from relay.models import PullRequestSnapshot, ReviewAction, ReviewerIdentity, ToolStatus
from review_ui.controller import (
    DEBOUNCE_SECONDS,
    PR_DETAILS_NOT_LOADED,
    REFRESH_DELAY_SECONDS,
    FormState,
    InvalidTransition,
    ReviewFormController,
    diagnostic_recommendations,
)

PR_URL = "https://github.com/acme/rocket/pull/42"


def snapshot(state="OPEN", is_draft=False):
    return PullRequestSnapshot.model_validate({
        "title": "Add launch sequence",
        "state": state,
        "author": {"login": "hubot"},
        "createdAt": "2024-03-01T12:00:00Z",
        "body": "",
        "url": PR_URL,
        "reviewDecision": "",
        "isDraft": is_draft,
    })


def ready_controller():
    controller = ReviewFormController()
    controller.on_tool_status(ToolStatus(installed=True, version="gh version 2.40.1"))
    controller.on_reviewers([ReviewerIdentity.for_username("octocat")])
    return controller


def test_timing_constants():
    assert DEBOUNCE_SECONDS == 0.5
    assert REFRESH_DELAY_SECONDS == 1.0


def test_tool_unavailable():
    controller = ReviewFormController()
    assert controller.state is FormState.CHECKING_TOOL

    controller.on_tool_status(ToolStatus(installed=False, error="GitHub CLI is not installed or not in PATH"))

    assert controller.state is FormState.TOOL_UNAVAILABLE
    assert controller.submit_disabled


def test_unauthenticated():
    controller = ReviewFormController()
    controller.on_tool_status(ToolStatus(installed=True, version="gh version 2.40.1"))
    assert controller.state is FormState.CHECKING_AUTH

    controller.on_reviewers([])
    assert controller.state is FormState.UNAUTHENTICATED


def test_ready():
    controller = ready_controller()
    assert controller.state is FormState.READY
    assert controller.reviewer.username == "octocat"


def test_transitions_only_follow_relay_responses():
    controller = ReviewFormController()
    with pytest.raises(InvalidTransition):
        controller.begin_submit()
    with pytest.raises(InvalidTransition):
        controller.on_reviewers([ReviewerIdentity.for_username("octocat")])


def test_submit_disabled_without_url():
    controller = ready_controller()
    assert controller.disabled_reason == "Enter a pull request URL"


def test_submit_enabled_for_approve():
    controller = ready_controller()
    controller.set_url(PR_URL)
    controller.on_details(snapshot())
    assert not controller.submit_disabled


def test_submit_disabled_until_details_load():
    controller = ready_controller()
    controller.set_url(PR_URL)
    assert controller.disabled_reason == PR_DETAILS_NOT_LOADED


def test_submit_disabled_when_lookup_failed():
    controller = ready_controller()
    controller.set_url(PR_URL)
    controller.on_details(error="Command failed: gh pr view: GraphQL: Could not resolve to a PullRequest")
    assert controller.submit_disabled
    assert controller.disabled_reason == PR_DETAILS_NOT_LOADED


@pytest.mark.parametrize("action", ["comment", "request-changes"])
def test_submit_disabled_when_comment_blank(action):
    controller = ready_controller()
    controller.set_url(PR_URL)
    controller.set_action(action)
    controller.set_comment("   ")
    controller.on_details(snapshot())
    assert controller.submit_disabled

    controller.set_comment("Looks good")
    assert not controller.submit_disabled


@pytest.mark.parametrize("state", ["MERGED", "CLOSED"])
def test_submit_disabled_when_pr_not_open(state):
    controller = ready_controller()
    controller.set_url(PR_URL)
    controller.set_action("comment")
    controller.set_comment("Nice")
    controller.on_details(snapshot(state))

    assert controller.submit_disabled
    assert state.lower() in controller.disabled_reason


def test_submit_disabled_for_draft():
    controller = ready_controller()
    controller.set_url(PR_URL)
    controller.on_details(snapshot(is_draft=True))
    assert "draft" in controller.disabled_reason


def test_submit_disabled_while_submitting():
    controller = ready_controller()
    controller.set_url(PR_URL)
    controller.begin_submit()
    assert controller.state is FormState.SUBMITTING
    assert controller.submit_disabled


def test_successful_comment_clears_comment():
    controller = ready_controller()
    controller.set_url(PR_URL)
    controller.set_action("comment")
    controller.set_comment("Nice")
    controller.begin_submit()

    controller.on_submit_result(True, "PR reviewed successfully", {"pr": "acme/rocket#42"})

    assert controller.state is FormState.RESULT
    assert controller.comment == ""
    assert controller.refresh_after_submit


def test_successful_approve_keeps_comment():
    controller = ready_controller()
    controller.set_url(PR_URL)
    controller.set_comment("LGTM")
    controller.begin_submit()
    controller.on_submit_result(True, "PR approved successfully")
    assert controller.comment == "LGTM"


def test_failed_submit_keeps_comment_and_allows_retry():
    controller = ready_controller()
    controller.set_url(PR_URL)
    controller.set_action("comment")
    controller.set_comment("Nice")
    controller.begin_submit()
    controller.on_submit_result(False, "Failed to review PR")

    assert controller.comment == "Nice"
    assert not controller.refresh_after_submit
    controller.begin_submit()
    assert controller.state is FormState.SUBMITTING


def test_should_lookup_only_matching_urls():
    controller = ready_controller()
    assert controller.should_lookup(PR_URL)
    assert not controller.should_lookup("https://github.com/acme/rocket/pull/")
    assert not controller.should_lookup("")


def test_clearing_url_clears_details():
    controller = ready_controller()
    controller.set_url(PR_URL)
    controller.on_details(snapshot())
    controller.set_url("")
    assert controller.pr_details is None


def test_unknown_action_falls_back_to_approve():
    controller = ready_controller()
    controller.set_action("merge")
    assert controller.action is ReviewAction.APPROVE


def test_recommendation_for_missing_repo_scope():
    report = {"tests": {
        "cli_installed": {"success": True},
        "auth_status": {"success": True, "authenticated": True},
        "api_access": {"success": True},
        "auth_scopes": {"success": True, "scopes": ["gist", "read:org"]},
    }}
    recommendations = diagnostic_recommendations(report)
    assert len(recommendations) == 1
    assert "gh auth refresh -s repo" in recommendations[0]


def test_no_scope_recommendation_when_repo_present_or_check_failed():
    with_repo = {"tests": {
        "cli_installed": {"success": True},
        "auth_status": {"success": True, "authenticated": True},
        "api_access": {"success": True},
        "auth_scopes": {"success": True, "scopes": ["repo"]},
    }}
    assert diagnostic_recommendations(with_repo) == []

    failed = {"tests": {
        "cli_installed": {"success": True},
        "auth_status": {"success": True, "authenticated": True},
        "api_access": {"success": True},
        "auth_scopes": {"success": False, "error": "boom"},
    }}
    assert diagnostic_recommendations(failed) == []


def test_recommendations_for_install_login_and_refresh():
    not_installed = diagnostic_recommendations({"tests": {"cli_installed": {"success": False}}})
    assert len(not_installed) == 1
    assert "https://cli.github.com/" in not_installed[0]

    not_logged_in = diagnostic_recommendations({"tests": {
        "cli_installed": {"success": True},
        "auth_status": {"success": False, "authenticated": False},
    }})
    assert any("gh auth login" in r for r in not_logged_in)

    stale_token = diagnostic_recommendations({"tests": {
        "cli_installed": {"success": True},
        "auth_status": {"success": True, "authenticated": True},
        "api_access": {"success": False},
    }})
    assert any("gh auth refresh`" in r for r in stale_token)
