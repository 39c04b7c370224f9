import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Sequence

import orjson

from .errors import ToolExecutionError, ToolUnavailableError
from .models import MergeStrategy, PullRequestReference, ReviewAction

log = logging.getLogger(__name__)

PR_VIEW_FIELDS = "title,state,author,createdAt,body,url,reviewDecision,isDraft"


@dataclass
class CommandOutput:
    stdout: str
    stderr: str

    @property
    def combined(self) -> str:
        """gh writes some reports (auth status) to stderr, so check both"""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


class GhClient:
    """Runs the GitHub CLI as a subprocess, one argument vector per call."""

    def __init__(self, binary: str = "gh", host: str = "github.com"):
        self.binary = binary
        self.host = host

    def _repo_arg(self, ref: PullRequestReference) -> str:
        if self.host == "github.com":
            return ref.repo_slug
        return f"{self.host}/{ref.repo_slug}"

    async def _exec(self, argv: Sequence[str]) -> tuple[int, str, str]:
        """Launch argv without a shell and wait for it to exit"""
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await process.communicate()
        return (
            process.returncode or 0,
            (stdout or b"").decode("utf-8", errors="replace"),
            (stderr or b"").decode("utf-8", errors="replace"),
        )

    async def run(self, *args: str) -> CommandOutput:
        argv = [self.binary, *args]
        log.info(f"Running {self.binary} {' '.join(args[:2])}")
        log.debug(f"argv: {argv}")

        try:
            returncode, stdout, stderr = await self._exec(argv)
        except OSError as e:
            log.error(f"Cannot execute {self.binary}: {e}")
            raise ToolUnavailableError("GitHub CLI is not installed or not in PATH") from e

        if returncode != 0:
            detail = stderr.strip() or stdout.strip() or f"exit code {returncode}"
            log.error(f"{self.binary} {' '.join(args[:2])} failed ({returncode}): {detail}")
            raise ToolExecutionError(
                f"Command failed: {self.binary} {' '.join(args[:2])}: {detail}",
                returncode=returncode,
                stderr=stderr,
            )

        if stderr.strip():
            log.warning(f"{self.binary} {' '.join(args[:2])} stderr: {stderr.strip()}")
        return CommandOutput(stdout=stdout, stderr=stderr)

    async def run_json(self, *args: str) -> Dict[str, Any]:
        output = await self.run(*args)
        try:
            data = orjson.loads(output.stdout)
        except orjson.JSONDecodeError as e:
            raise ToolExecutionError(f"Could not parse {self.binary} output as JSON: {e}") from e
        if not isinstance(data, dict):
            raise ToolExecutionError(f"Expected a JSON object from {self.binary}, got {type(data).__name__}")
        return data

    async def version(self) -> CommandOutput:
        return await self.run("--version")

    async def auth_status(self) -> CommandOutput:
        return await self.run("auth", "status")

    async def api_user(self) -> Dict[str, Any]:
        return await self.run_json("api", "user")

    async def pr_view(self, ref: PullRequestReference) -> Dict[str, Any]:
        return await self.run_json(
            "pr", "view", str(ref.number),
            "--repo", self._repo_arg(ref),
            "--json", PR_VIEW_FIELDS,
        )

    async def pr_review(self, ref: PullRequestReference, action: ReviewAction, body: str | None = None) -> CommandOutput:
        args = ["pr", "review", str(ref.number), "--repo", self._repo_arg(ref), action.flag]
        if body:
            args += ["--body", body]
        return await self.run(*args)

    async def pr_merge(self, ref: PullRequestReference, strategy: MergeStrategy, delete_branch: bool = False) -> CommandOutput:
        args = ["pr", "merge", str(ref.number), "--repo", self._repo_arg(ref), strategy.flag]
        if delete_branch:
            args.append("--delete-branch")
        return await self.run(*args)
