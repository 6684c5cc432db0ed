"""Async client for the git commands a session issues.

Wraps ``git`` invocations using :class:`~retrace.runners.command.CommandRunner`
and classifies failures:

- "ambiguous argument" and friends mean the ref does not exist yet (unborn
  history); the query returns ``None``.
- "nothing to commit" raises :class:`NothingToCommitError`.
- every other non-zero exit raises :class:`ProcessError` carrying stdout
  and stderr.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING

from git import InvalidGitRepositoryError, NoSuchPathError, Repo

from retrace.exceptions import NothingToCommitError, ParseError, ProcessError
from retrace.git.diff import extract_patch
from retrace.git.models import Annotation, Snapshot
from retrace.git.parsing import parse_commit_log, parse_hash_list, parse_tag_record
from retrace.logging import get_logger
from retrace.runners.command import CommandRunner

if TYPE_CHECKING:
    from collections.abc import Sequence

    from retrace.runners.models import CommandResult

__all__ = ["GitClient", "is_recoverable_failure"]

logger = get_logger(__name__)

#: Failure text meaning "that ref has no commits yet".
RECOVERABLE_PATTERNS: tuple[str, ...] = (
    "ambiguous argument",
    "unknown revision",
    "does not have any commits yet",
)

NOTHING_TO_COMMIT_PATTERN = "nothing to commit"

#: Environment for every git process: stable English messages, no prompts.
GIT_ENV: dict[str, str] = {
    "LC_ALL": "C",
    "GIT_TERMINAL_PROMPT": "0",
}

#: ``git tag --format`` producing: object id, blank line, annotation body.
TAG_RECORD_FORMAT = "%(object)%0a%0a%(contents)"


def is_recoverable_failure(output: str) -> bool:
    """Check if failed git output describes an empty or unborn history."""
    output_lower = output.lower()
    return any(pattern in output_lower for pattern in RECOVERABLE_PATTERNS)


class GitClient:
    """Async wrapper around the ``git`` CLI for one working directory.

    Args:
        cwd: Session root; every command runs there.
        runner: Optional pre-configured CommandRunner. Created if not provided.
        executable: Name or path of the git binary.

    Example:
        ```python
        client = GitClient(cwd=Path("/project"))
        head = await client.resolve_ref("HEAD")
        snapshots = await client.log("demo")
        ```
    """

    def __init__(
        self,
        cwd: Path,
        runner: CommandRunner | None = None,
        *,
        executable: str = "git",
    ) -> None:
        self._cwd = cwd
        self._runner = runner or CommandRunner(cwd=cwd, env=GIT_ENV)
        self._executable = executable

    @property
    def cwd(self) -> Path:
        """Working directory for git commands."""
        return self._cwd

    # =====================================================================
    # Internal helpers
    # =====================================================================

    async def _run_git(
        self,
        args: Sequence[str],
        *,
        error_msg: str = "git command failed",
    ) -> CommandResult:
        """Run ``git <args>`` and return the successful result.

        Raises:
            NothingToCommitError: If git reports nothing to commit.
            ProcessError: For any other failure.
        """
        cmd = [self._executable, *args]
        result = await self._runner.run(cmd, cwd=self._cwd)
        if result.success:
            return result

        output = result.output
        if NOTHING_TO_COMMIT_PATTERN in output.lower():
            raise NothingToCommitError()

        logger.debug(
            "git_command_failed",
            command=cmd,
            returncode=result.returncode,
            stderr=result.stderr.strip(),
        )
        raise ProcessError(
            f"{error_msg}: {result.stderr.strip() or result.stdout.strip()}",
            argv=cmd,
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )

    async def _run_git_optional(
        self,
        args: Sequence[str],
        *,
        error_msg: str = "git command failed",
    ) -> str | None:
        """Run a query whose failure on an unborn ref means "no value"."""
        try:
            result = await self._run_git(args, error_msg=error_msg)
        except ProcessError as e:
            if is_recoverable_failure(e.output):
                return None
            raise
        return result.stdout

    # =====================================================================
    # Repository lifecycle
    # =====================================================================

    async def is_initialized(self) -> bool:
        """Check if the working directory itself holds a git repository."""

        def _has_repo() -> bool:
            try:
                Repo(self._cwd)
            except (InvalidGitRepositoryError, NoSuchPathError):
                return False
            return True

        return await asyncio.to_thread(_has_repo)

    async def init(self) -> None:
        """Create an empty repository in the working directory."""
        await asyncio.to_thread(Repo.init, self._cwd)
        logger.info("git_repository_initialized", path=str(self._cwd))

    # =====================================================================
    # Queries
    # =====================================================================

    async def status(self) -> str:
        """Plain ``git status`` text."""
        result = await self._run_git(["status"], error_msg="git status failed")
        return result.stdout

    async def is_modified(self) -> bool:
        """True if ``git status`` reports modified tracked files."""
        return "modified:" in await self.status()

    async def resolve_ref(self, ref: str) -> str | None:
        """Resolve a ref to a commit id, or None if it has no commits yet."""
        output = await self._run_git_optional(
            ["rev-parse", ref], error_msg=f"git rev-parse {ref} failed"
        )
        if output is None:
            return None
        return output.strip() or None

    async def log(self, branch: str) -> list[Snapshot]:
        """Full compact-summary log of a branch, oldest first."""
        output = await self._run_git_optional(
            ["log", "--compact-summary", "--no-color", branch],
            error_msg=f"git log {branch} failed",
        )
        if output is None:
            return []
        return parse_commit_log(output)

    async def show(self, snapshot_id: str) -> Snapshot:
        """Compact-summary record of a single snapshot."""
        result = await self._run_git(
            ["show", "--compact-summary", "--no-color", snapshot_id],
            error_msg=f"git show {snapshot_id} failed",
        )
        snapshots = parse_commit_log(result.stdout)
        if len(snapshots) != 1:
            raise ParseError(
                f"Expected one commit record for {snapshot_id}, "
                f"found {len(snapshots)}"
            )
        return snapshots[0]

    async def hash_list(self, branch: str) -> list[str]:
        """Commit ids reachable from a branch, oldest first."""
        output = await self._run_git_optional(
            ["log", "--format=%H", branch],
            error_msg=f"git log {branch} failed",
        )
        if output is None:
            return []
        return parse_hash_list(output)

    async def show_patch(self, snapshot_id: str) -> str:
        """Unified diff of one snapshot against its parent, from ``---`` on."""
        result = await self._run_git(
            ["show", "--no-color", snapshot_id],
            error_msg=f"git show {snapshot_id} failed",
        )
        return extract_patch(result.stdout)

    async def branches(self) -> list[str]:
        """Local branch names."""
        result = await self._run_git(
            ["branch", "--format=%(refname:short)"],
            error_msg="git branch failed",
        )
        return [line.strip() for line in result.stdout.split("\n") if line.strip()]

    async def list_tags(self) -> list[str]:
        result = await self._run_git(["tag", "--list"], error_msg="git tag failed")
        return [line.strip() for line in result.stdout.split("\n") if line.strip()]

    async def show_tag(self, name: str) -> Annotation | None:
        """Annotation stored in tag ``name``; None for a lightweight tag."""
        result = await self._run_git(
            ["tag", "--list", f"--format={TAG_RECORD_FORMAT}", name],
            error_msg=f"git tag {name} failed",
        )
        return parse_tag_record(name, result.stdout)

    # =====================================================================
    # Mutations
    # =====================================================================

    async def create_branch(self, name: str, start_point: str | None = None) -> None:
        """Create ``name`` and switch to it.

        Args:
            name: New branch name.
            start_point: Commit to start from, discarding uncommitted edits.
                None keeps the current position and working directory.
        """
        args = ["checkout", "-b", name]
        if start_point is not None:
            args = ["checkout", "-f", "-b", name, start_point]
        await self._run_git(args, error_msg=f"git checkout -b {name} failed")
        logger.info("branch_created", branch=name, start_point=start_point)

    async def checkout(self, ref: str) -> None:
        """Force-checkout a branch, discarding uncommitted edits."""
        await self._run_git(
            ["checkout", "-f", ref], error_msg=f"git checkout {ref} failed"
        )

    async def checkout_detached(self, snapshot_id: str) -> None:
        """Force-checkout one snapshot with a detached HEAD."""
        await self._run_git(
            ["checkout", "-f", "--detach", snapshot_id],
            error_msg=f"git checkout {snapshot_id} failed",
        )

    async def reset_hard(self, snapshot_id: str) -> None:
        """Move the current branch tip to ``snapshot_id``."""
        await self._run_git(
            ["reset", "--hard", snapshot_id],
            error_msg=f"git reset --hard {snapshot_id} failed",
        )

    async def commit_all(self, message: str) -> None:
        """Stage every working-directory change and commit it.

        Raises:
            NothingToCommitError: If the working directory is clean.
        """
        await self._run_git(["add", "-A"], error_msg="git add failed")
        await self._run_git(["commit", "-m", message], error_msg="git commit failed")

    async def create_tag(self, name: str, target: str, label: str) -> None:
        """Create annotated tag ``name`` on ``target`` with ``label`` as body."""
        await self._run_git(
            ["tag", "-a", name, target, "-m", label],
            error_msg=f"git tag {name} failed",
        )
        logger.info("tag_created", tag=name, target=target)
