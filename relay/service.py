"""
Relay operations: each one validates its input, runs gh and turns the
output into a response model. Nothing is kept between calls.
"""
import logging
import platform
from datetime import datetime, timezone
from typing import List, Optional

from .errors import (
    AuthenticationError,
    InvalidStrategyError,
    RelayError,
    ToolExecutionError,
    ToolUnavailableError,
    ValidationError,
)
from .gh_cli import GhClient
from .models import (
    ApiAccessCheck,
    AuthScopesCheck,
    AuthStatusCheck,
    CliInstalledCheck,
    DiagnosticReport,
    DiagnosticTests,
    MergeRequest,
    MergeResult,
    MergeStrategy,
    PullRequestSnapshot,
    ReviewAction,
    ReviewerIdentity,
    ReviewRequest,
    ReviewResult,
    ToolStatus,
)
from .parsing import extract_status_username, extract_token_scopes, first_line, parse_pr_url

logger = logging.getLogger(__name__)

UNKNOWN_REVIEWER = "unknown"
NOT_AUTHENTICATED_MESSAGE = 'Not authenticated with GitHub CLI. Run "gh auth login" on the server.'


class RelayService:
    def __init__(self, gh: GhClient, environment: str = "development", default_merge_strategy: str = "squash"):
        self.gh = gh
        self.environment = environment
        self.default_merge_strategy = default_merge_strategy

    @property
    def host(self) -> str:
        return self.gh.host

    # Request building, in validation order
    def build_review_request(self, pr_url: str | None, action: str | None, comment: str | None = None) -> ReviewRequest:
        if not pr_url:
            raise ValidationError("Missing PR URL")
        reference = parse_pr_url(pr_url, self.host)

        try:
            review_action = ReviewAction(action)
        except ValueError:
            raise ValidationError(
                "Invalid action. Must be one of: approve, comment, request-changes"
            )

        comment = (comment or "").strip() or None
        if review_action.requires_comment and not comment:
            raise ValidationError(f"A comment is required when using the '{review_action.value}' action")

        return ReviewRequest(reference=reference, action=review_action, comment=comment)

    def build_merge_request(self, pr_url: str | None, strategy: str | None = None, delete_branch: bool = False) -> MergeRequest:
        if not pr_url:
            raise ValidationError("Missing PR URL")

        try:
            merge_strategy = MergeStrategy(strategy or self.default_merge_strategy)
        except ValueError:
            raise InvalidStrategyError("Invalid merge strategy. Must be one of: merge, squash, rebase")

        reference = parse_pr_url(pr_url, self.host)
        return MergeRequest(reference=reference, strategy=merge_strategy, delete_branch=delete_branch)

    # Operations
    async def check_tool_availability(self) -> ToolStatus:
        try:
            output = await self.gh.version()
        except RelayError as e:
            logger.error(f"GitHub CLI check failed: {e.message}")
            return ToolStatus(installed=False, error="GitHub CLI is not installed or not in PATH")

        version = first_line(output.stdout)
        logger.info(f"GitHub CLI version: {version}")
        return ToolStatus(installed=True, version=version)

    async def resolve_identity(self) -> Optional[ReviewerIdentity]:
        """
        Find who the CLI is logged in as.

        `gh api user` is authoritative. When it fails the human-readable
        `gh auth status` report is scraped instead.
        """
        try:
            user = await self.gh.api_user()
            login = user.get("login")
            if login:
                logger.info(f"Got GitHub username from API: {login}")
                return ReviewerIdentity.for_username(login, user.get("name"), user.get("avatar_url"))
        except RelayError as e:
            logger.warning(f"gh api user failed, falling back to auth status: {e.message}")

        try:
            status = await self.gh.auth_status()
        except ToolExecutionError as e:
            logger.warning(f"gh auth status failed: {e.message}")
            return None

        username = extract_status_username(status.combined, self.host)
        if username:
            logger.info(f"Extracted GitHub username: {username}")
            return ReviewerIdentity.for_username(username)
        return None

    async def list_reviewers(self) -> List[ReviewerIdentity]:
        """displayName and photo come from `gh api user` when it answers, otherwise they default to the username"""
        try:
            await self.gh.version()
        except ToolExecutionError as e:
            raise ToolUnavailableError("GitHub CLI is not installed or not in PATH") from e

        identity = await self.resolve_identity()
        if identity is None:
            raise AuthenticationError(NOT_AUTHENTICATED_MESSAGE)
        return [identity]

    async def get_pull_request_details(self, pr_url: str | None) -> PullRequestSnapshot:
        if not pr_url:
            raise ValidationError("Missing PR URL")
        reference = parse_pr_url(pr_url, self.host)

        data = await self.gh.pr_view(reference)
        try:
            return PullRequestSnapshot.model_validate(data)
        except ValueError as e:
            raise ToolExecutionError(f"Unexpected PR details from GitHub CLI: {e}") from e

    async def _current_username(self) -> str:
        try:
            identity = await self.resolve_identity()
        except RelayError as e:
            logger.warning(f"Could not resolve reviewer identity: {e.message}")
            return UNKNOWN_REVIEWER
        return identity.username if identity else UNKNOWN_REVIEWER

    async def submit_review(self, request: ReviewRequest) -> ReviewResult:
        if request.action.requires_comment and not (request.comment or "").strip():
            raise ValidationError(f"A comment is required when using the '{request.action.value}' action")

        output = await self.gh.pr_review(request.reference, request.action, request.comment)
        logger.info(f"Review result for {request.reference}: {output.stdout.strip()}")

        reviewer = await self._current_username()
        return ReviewResult(
            success=True,
            message=f"PR {request.action.past_tense} successfully",
            reference=request.reference,
            reviewer=reviewer,
            action=request.action,
        )

    async def merge_pull_request(self, request: MergeRequest) -> MergeResult:
        output = await self.gh.pr_merge(request.reference, request.strategy, request.delete_branch)
        logger.info(f"Merge result for {request.reference}: {output.stdout.strip()}")

        user = await self._current_username()
        return MergeResult(
            success=True,
            message=f"PR {request.strategy.past_tense} successfully",
            reference=request.reference,
            user=user,
            strategy=request.strategy,
            branch_deleted=request.delete_branch,
        )

    async def run_diagnostics(self) -> DiagnosticReport:
        tests = DiagnosticTests(cli_installed=await self._check_cli_installed())

        # auth checks only make sense with a working binary
        if tests.cli_installed.success:
            tests.auth_status = await self._check_auth_status()
            tests.api_access = await self._check_api_access()
            tests.auth_scopes = await self._check_auth_scopes()

        return DiagnosticReport(
            timestamp=datetime.now(timezone.utc),
            environment=self.environment,
            python_version=platform.python_version(),
            tests=tests,
        )

    async def _check_cli_installed(self) -> CliInstalledCheck:
        try:
            output = await self.gh.version()
        except RelayError as e:
            return CliInstalledCheck(success=False, error=e.message)
        return CliInstalledCheck(success=True, version=output.stdout.strip())

    async def _check_auth_status(self) -> AuthStatusCheck:
        try:
            output = await self.gh.auth_status()
        except RelayError as e:
            return AuthStatusCheck(success=False, authenticated=False, error=e.message)

        raw = output.combined.strip()
        return AuthStatusCheck(success=True, authenticated="Logged in" in raw, raw_output=raw)

    async def _check_api_access(self) -> ApiAccessCheck:
        try:
            user = await self.gh.api_user()
        except RelayError as e:
            return ApiAccessCheck(success=False, error=e.message)

        return ApiAccessCheck(
            success=True,
            username=user.get("login"),
            user_data={"name": user.get("name"), "id": user.get("id")},
        )

    async def _check_auth_scopes(self) -> AuthScopesCheck:
        try:
            output = await self.gh.auth_status()
        except RelayError as e:
            return AuthScopesCheck(success=False, error=e.message)

        scopes = extract_token_scopes(output.combined)
        if scopes is None:
            return AuthScopesCheck(success=False, error="GitHub CLI did not report token scopes")
        return AuthScopesCheck(success=True, scopes=scopes)
