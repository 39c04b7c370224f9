"""
Review form state.

The page moves through a fixed set of states and only relay responses move
it along. Everything the template needs (which screen, whether submit is
allowed, what to show after a review) is derived from here.
"""
import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from relay.models import PullRequestSnapshot, ReviewAction, ReviewerIdentity, ToolStatus
from relay.parsing import looks_like_pr_url, pr_url_pattern

logger = logging.getLogger(__name__)

DEBOUNCE_SECONDS = 0.5
REFRESH_DELAY_SECONDS = 1.0
PR_DETAILS_NOT_LOADED = "PR details not loaded"


class FormState(str, Enum):
    CHECKING_TOOL = "CheckingTool"
    TOOL_UNAVAILABLE = "ToolUnavailable"
    CHECKING_AUTH = "CheckingAuth"
    UNAUTHENTICATED = "Unauthenticated"
    READY = "Ready"
    SUBMITTING = "Submitting"
    RESULT = "Result"


TRANSITIONS = {
    FormState.CHECKING_TOOL: {FormState.TOOL_UNAVAILABLE, FormState.CHECKING_AUTH},
    FormState.TOOL_UNAVAILABLE: set(),
    FormState.CHECKING_AUTH: {FormState.UNAUTHENTICATED, FormState.READY},
    FormState.UNAUTHENTICATED: set(),
    FormState.READY: {FormState.SUBMITTING},
    FormState.SUBMITTING: {FormState.RESULT},
    FormState.RESULT: {FormState.READY, FormState.SUBMITTING},
}


class InvalidTransition(RuntimeError):
    pass


class ReviewFormController:
    def __init__(self, host: str = "github.com"):
        self.host = host
        self.state = FormState.CHECKING_TOOL
        self.tool_status: Optional[ToolStatus] = None
        self.reviewer: Optional[ReviewerIdentity] = None

        self.pr_url = ""
        self.action = ReviewAction.APPROVE
        self.comment = ""
        self.pr_details: Optional[PullRequestSnapshot] = None
        self.pr_error: Optional[str] = None
        self.result: Optional[Dict[str, Any]] = None

    def _move(self, new_state: FormState) -> None:
        if new_state not in TRANSITIONS[self.state]:
            raise InvalidTransition(f"{self.state.value} -> {new_state.value}")
        logger.debug(f"Form state {self.state.value} -> {new_state.value}")
        self.state = new_state

    # relay responses
    def on_tool_status(self, status: ToolStatus) -> None:
        self.tool_status = status
        self._move(FormState.CHECKING_AUTH if status.installed else FormState.TOOL_UNAVAILABLE)

    def on_reviewers(self, reviewers: List[ReviewerIdentity]) -> None:
        self.reviewer = reviewers[0] if reviewers else None
        self._move(FormState.READY if self.reviewer else FormState.UNAUTHENTICATED)

    def on_details(self, details: Optional[PullRequestSnapshot] = None, error: Optional[str] = None) -> None:
        self.pr_details = details
        self.pr_error = error

    def on_submit_result(self, success: bool, message: str, data: Optional[Dict[str, Any]] = None) -> None:
        self._move(FormState.RESULT)
        self.result = {"success": success, "message": message, "data": data}
        if success and self.action.requires_comment:
            self.comment = ""

    # user input
    def set_url(self, url: str | None) -> None:
        self.pr_url = (url or "").strip()
        if not self.pr_url:
            self.on_details(None, None)

    def set_action(self, action: str | None) -> None:
        try:
            self.action = ReviewAction(action or ReviewAction.APPROVE.value)
        except ValueError:
            self.action = ReviewAction.APPROVE

    def set_comment(self, comment: str | None) -> None:
        self.comment = comment or ""

    def should_lookup(self, url: str | None = None) -> bool:
        """Details are only fetched for URLs that parse as a PR reference"""
        return looks_like_pr_url(self.pr_url if url is None else url, self.host)

    @property
    def url_pattern(self) -> str:
        return pr_url_pattern(self.host)

    @property
    def comment_required(self) -> bool:
        return self.action.requires_comment

    @property
    def disabled_reason(self) -> Optional[str]:
        if self.state not in (FormState.READY, FormState.RESULT, FormState.SUBMITTING):
            return "The GitHub CLI is not ready"
        if not self.pr_url:
            return "Enter a pull request URL"
        if self.state is FormState.SUBMITTING:
            return "A review is already being submitted"
        if self.comment_required and not self.comment.strip():
            return f"A comment is required when using the '{self.action.value}' action"
        if self.pr_details is None:
            return PR_DETAILS_NOT_LOADED
        if not self.pr_details.is_reviewable:
            if self.pr_details.is_draft:
                return "This PR is in draft state and cannot be reviewed yet."
            return f"This PR is {self.pr_details.state.lower()} and cannot be reviewed."
        return None

    @property
    def submit_disabled(self) -> bool:
        return self.disabled_reason is not None

    def begin_submit(self) -> None:
        self._move(FormState.SUBMITTING)
        self.result = None

    @property
    def refresh_after_submit(self) -> bool:
        return bool(self.result and self.result["success"])


def diagnostic_recommendations(report: Dict[str, Any]) -> List[str]:
    """Turn a diagnostics report into the fixes a human should try"""
    tests = report.get("tests") or {}
    installed = (tests.get("cli_installed") or {}).get("success", False)
    auth_status = tests.get("auth_status") or {}
    api_access = tests.get("api_access") or {}
    auth_scopes = tests.get("auth_scopes") or {}

    recommendations = []
    if not installed:
        recommendations.append("Install GitHub CLI following the instructions at https://cli.github.com/")
    if installed and not auth_status.get("authenticated"):
        recommendations.append("Authenticate with GitHub CLI by running `gh auth login` and following the prompts")
    if installed and auth_status.get("authenticated") and not api_access.get("success"):
        recommendations.append("Your authentication seems incomplete. Try running `gh auth refresh` to refresh your token")
    if auth_scopes.get("success") and "repo" not in (auth_scopes.get("scopes") or []):
        recommendations.append(
            "Your authentication is missing the 'repo' scope needed for PR reviews. Run `gh auth refresh -s repo`"
        )
    return recommendations
