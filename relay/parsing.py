"""Parsers for PR URLs and for the text gh prints."""
import logging
import re
from typing import Callable, List, Optional, Sequence

from .errors import InvalidReferenceError
from .models import PullRequestReference

logger = logging.getLogger(__name__)

EXPECTED_URL_FORMAT = "https://github.com/owner/repo/pull/123"
INVALID_URL_MESSAGE = f"Invalid PR URL format. Expected format: {EXPECTED_URL_FORMAT}"


def pr_url_pattern(host: str = "github.com") -> str:
    """
    Regex source for a PR URL on `host`.

    Only unnamed groups and escapes that JavaScript's RegExp also accepts,
    so the UI can reuse the same source for its lookup check.
    """
    return (
        r"^(?:https?://)?(?:www\.)?"
        + re.escape(host)
        + r"/([^/\s]+)/([^/\s]+)/pull/(\d+)(?:[/?#]\S*)?$"
    )


def parse_pr_url(url: str | None, host: str = "github.com") -> PullRequestReference:
    """Extract owner, repo and number from a PR URL"""
    match = re.match(pr_url_pattern(host), (url or "").strip())
    if not match:
        raise InvalidReferenceError(INVALID_URL_MESSAGE)

    owner, repo, number = match.groups()
    if int(number) <= 0:
        raise InvalidReferenceError(INVALID_URL_MESSAGE)

    return PullRequestReference(owner=owner, repo=repo, number=int(number))


def looks_like_pr_url(url: str | None, host: str = "github.com") -> bool:
    try:
        parse_pr_url(url, host)
    except InvalidReferenceError:
        return False
    return True


# Username extraction from `gh auth status`. Strategies run in order and the
# first non-empty match wins.
UsernameStrategy = Callable[[str, str], Optional[str]]


def _logged_in_as(text: str, host: str) -> Optional[str]:
    match = re.search(rf"Logged in to {re.escape(host)} as (\S+)", text)
    return match.group(1) if match else None


def _logged_in_account(text: str, host: str) -> Optional[str]:
    # gh >= 2.40 prints "Logged in to github.com account octocat (keyring)"
    match = re.search(rf"Logged in to {re.escape(host)} account (\S+)", text)
    return match.group(1) if match else None


def _scan_at_lines(text: str, host: str) -> Optional[str]:
    for line in text.splitlines():
        if "as" in line and "@" in line:
            parts = line.split("@", 1)[1].split()
            if parts:
                return parts[0]
    return None


STATUS_STRATEGIES: Sequence[UsernameStrategy] = (
    _logged_in_as,
    _logged_in_account,
    _scan_at_lines,
)


def extract_status_username(
    text: str,
    host: str = "github.com",
    strategies: Sequence[UsernameStrategy] = STATUS_STRATEGIES,
) -> Optional[str]:
    """Run the text strategies against `gh auth status` output"""
    for strategy in strategies:
        username = strategy(text, host)
        if username:
            logger.debug(f"Username found by {strategy.__name__}: {username}")
            return username
    return None


def extract_token_scopes(text: str) -> Optional[List[str]]:
    """
    Parse the `Token scopes:` line of `gh auth status`.

    Returns None when no such line is present, an empty list when gh
    reports none.
    """
    match = re.search(r"Token scopes:\s*(.*)", text)
    if not match:
        return None

    raw = match.group(1).strip()
    if not raw or raw.lower() == "none":
        return []
    scopes = [scope.strip().strip("'\"") for scope in raw.split(",")]
    return [scope for scope in scopes if scope]


def first_line(text: str) -> str:
    stripped = text.strip()
    return stripped.splitlines()[0] if stripped else ""
