from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ReviewAction(str, Enum):
    APPROVE = "approve"
    COMMENT = "comment"
    REQUEST_CHANGES = "request-changes"

    @property
    def requires_comment(self) -> bool:
        return self is not ReviewAction.APPROVE

    @property
    def flag(self) -> str:
        return f"--{self.value}"

    @property
    def past_tense(self) -> str:
        return {
            ReviewAction.APPROVE: "approved",
            ReviewAction.COMMENT: "reviewed",
            ReviewAction.REQUEST_CHANGES: "requested changes on",
        }[self]


class MergeStrategy(str, Enum):
    MERGE = "merge"
    SQUASH = "squash"
    REBASE = "rebase"

    @property
    def flag(self) -> str:
        return f"--{self.value}"

    @property
    def past_tense(self) -> str:
        return {
            MergeStrategy.MERGE: "merged",
            MergeStrategy.SQUASH: "squash merged",
            MergeStrategy.REBASE: "rebased and merged",
        }[self]


class PullRequestReference(BaseModel):
    owner: str = Field(..., min_length=1)
    repo: str = Field(..., min_length=1)
    number: int = Field(..., gt=0)

    @property
    def repo_slug(self) -> str:
        """owner/repo, as accepted by gh --repo"""
        return f"{self.owner}/{self.repo}"

    def __str__(self) -> str:
        return f"{self.owner}/{self.repo}#{self.number}"


class ReviewRequest(BaseModel):
    reference: PullRequestReference
    action: ReviewAction
    comment: Optional[str] = None


class ReviewResult(BaseModel):
    success: bool
    message: str
    reference: PullRequestReference
    reviewer: str
    action: ReviewAction


class MergeRequest(BaseModel):
    reference: PullRequestReference
    strategy: MergeStrategy = MergeStrategy.SQUASH
    delete_branch: bool = False


class MergeResult(BaseModel):
    success: bool
    message: str
    reference: PullRequestReference
    user: str
    strategy: MergeStrategy
    branch_deleted: bool


class PullRequestAuthor(BaseModel):
    model_config = ConfigDict(extra="allow")

    login: str


class PullRequestSnapshot(BaseModel):
    """Fields returned by `gh pr view --json`."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    state: str
    author: PullRequestAuthor
    created_at: str = Field(..., alias="createdAt")
    body: str = ""
    url: str
    review_decision: str = Field("", alias="reviewDecision")
    is_draft: bool = Field(False, alias="isDraft")

    @property
    def is_reviewable(self) -> bool:
        return self.state.upper() == "OPEN" and not self.is_draft


class ReviewerIdentity(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = "current-user"
    username: str
    display_name: str = Field(..., alias="displayName")
    photo: str

    @classmethod
    def for_username(cls, username: str, display_name: str | None = None, photo: str | None = None) -> "ReviewerIdentity":
        return cls(
            username=username,
            display_name=display_name or username,
            photo=photo or f"https://github.com/{username}.png",
        )


class ToolStatus(BaseModel):
    installed: bool
    version: Optional[str] = None
    error: Optional[str] = None


# Request bodies. Fields stay loose so the relay can report its own
# validation messages in a fixed order.
class ReviewPrBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pr_url: Optional[str] = Field(None, alias="prUrl")
    action: Optional[str] = None
    comment: Optional[str] = None


class MergePrBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pr_url: Optional[str] = Field(None, alias="prUrl")
    strategy: Optional[str] = None
    delete_branch: bool = Field(False, alias="deleteBranch")


# Diagnostics
class CliInstalledCheck(BaseModel):
    success: bool
    version: Optional[str] = None
    error: Optional[str] = None


class AuthStatusCheck(BaseModel):
    success: bool
    authenticated: bool = False
    raw_output: Optional[str] = None
    error: Optional[str] = None


class ApiAccessCheck(BaseModel):
    success: bool
    username: Optional[str] = None
    user_data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class AuthScopesCheck(BaseModel):
    success: bool
    scopes: List[str] = Field(default_factory=list)
    error: Optional[str] = None


class DiagnosticTests(BaseModel):
    cli_installed: CliInstalledCheck
    auth_status: Optional[AuthStatusCheck] = None
    api_access: Optional[ApiAccessCheck] = None
    auth_scopes: Optional[AuthScopesCheck] = None


class DiagnosticReport(BaseModel):
    timestamp: datetime
    environment: str
    python_version: str
    tests: DiagnosticTests
