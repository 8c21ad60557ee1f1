"""Git and process helpers for Git Diff Sidebar."""

import asyncio
import shutil
from pathlib import Path
from typing import Sequence

from error_handler import CommandFailedError, NotARepositoryError, ToolUnavailableError, handle_git_error
from logging_config import get_logger
from models import CommandResult

logger = get_logger(__name__)

DEFAULT_TRUNK = "main"
COMMAND_TIMEOUT = 30.0
BRANCH_FORMAT = "--format=%(refname:short)"
# paths verbatim, not C-escaped
UNQUOTED_PATHS = ["-c", "core.quotePath=false"]

_QUOTES = ('"', "'")


def which(cmd: str) -> str | None:
    """Find command in PATH."""
    return shutil.which(cmd)


def split_lines(text: str) -> list[str]:
    """Split text into trimmed, non-empty lines."""
    return [line.strip() for line in text.splitlines() if line.strip()]


def strip_quotes(line: str) -> str:
    """Remove one pair of surrounding quote characters."""
    if len(line) >= 2 and line[0] == line[-1] and line[0] in _QUOTES:
        return line[1:-1]
    return line


def normalize_lines(text: str) -> list[str]:
    """Split text into lines and strip surrounding quotes from each.

    For branch listings. Path listings use split_nul.
    """
    return [line for line in (strip_quotes(l).strip() for l in split_lines(text)) if line]


def split_nul(text: str) -> list[str]:
    """Split NUL-terminated output (git's -z option) into its entries."""
    return [entry for entry in text.split("\0") if entry]


async def _terminate(process: asyncio.subprocess.Process):
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
    await process.wait()


async def run_command(
    args: Sequence[str],
    cwd: Path | None = None,
    check: bool = True,
    timeout: float = COMMAND_TIMEOUT,
) -> CommandResult:
    """Run an executable and capture its output.

    Raises ToolUnavailableError when the executable cannot be found and, with
    check=True, CommandFailedError when it exits non-zero or times out.
    """
    args = [str(a) for a in args]
    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            stdin=asyncio.subprocess.DEVNULL,
            cwd=str(cwd) if cwd else None,
        )
    except FileNotFoundError as e:
        raise ToolUnavailableError(args[0]) from e
    except PermissionError as e:
        raise CommandFailedError(args, None, str(e)) from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        await _terminate(process)
        raise CommandFailedError(args, None, f"timed out after {timeout:.0f}s")
    except asyncio.CancelledError:
        await _terminate(process)
        raise

    result = CommandResult(
        args=tuple(args),
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
        returncode=process.returncode,
    )
    if check and result.returncode != 0:
        raise CommandFailedError(args, result.returncode, result.stderr)
    return result


async def run_git(args: Sequence[str], cwd: Path | None = None, check: bool = True) -> CommandResult:
    """Run a git command with safe argument passing."""
    return await run_command(["git", *args], cwd=cwd, check=check)


async def ensure_repo_root(path: Path) -> Path:
    """Return the repo root for any path inside a Git repo."""
    if not path.is_dir():
        raise NotARepositoryError(path)
    try:
        cp = await run_git(["rev-parse", "--show-toplevel"], cwd=path)
    except CommandFailedError as e:
        raise NotARepositoryError(path) from e
    return Path(cp.stdout.strip())


async def git_version_ok(min_major: int = 2, min_minor: int = 13) -> bool:
    """Check if Git version meets minimum requirements."""
    try:
        v = (await run_git(["--version"], check=False)).stdout.strip()
        parts = v.split()
        if len(parts) >= 3:
            nums = parts[2].split(".")
            major = int(nums[0])
            minor = int(nums[1])
            return (major > min_major) or (major == min_major and minor >= min_minor)
    except (ToolUnavailableError, CommandFailedError, ValueError, IndexError) as e:
        logger.warning(f"Failed to determine git version: {e}")
    return False


async def get_current_branch(repo_root: Path) -> str:
    """Get the checked out branch name, or the trunk name if it cannot be read."""
    try:
        cp = await run_git(["rev-parse", "--abbrev-ref", "HEAD"], cwd=repo_root)
    except (ToolUnavailableError, CommandFailedError) as e:
        handle_git_error(e, "current branch", repo_root)
        return DEFAULT_TRUNK
    return cp.stdout.strip() or DEFAULT_TRUNK


async def list_local_branches(repo_root: Path) -> list[str]:
    """List local branch names. Errors propagate to the caller."""
    cp = await run_git(["branch", BRANCH_FORMAT], cwd=repo_root)
    return list(dict.fromkeys(normalize_lines(cp.stdout)))


async def list_recent_branches(repo_root: Path, limit: int) -> list[str]:
    """List local branches, most recently committed first."""
    try:
        cp = await run_git(["branch", "--sort=-committerdate", BRANCH_FORMAT], cwd=repo_root)
    except (ToolUnavailableError, CommandFailedError) as e:
        handle_git_error(e, "recent branches", repo_root)
        return [DEFAULT_TRUNK]
    return normalize_lines(cp.stdout)[:limit]


async def filter_branches(repo_root: Path, query: str, limit: int) -> list[str]:
    """List local branches whose name contains query, most recent first."""
    try:
        cp = await run_git(
            ["branch", "--list", f"*{query}*", "--sort=-committerdate", BRANCH_FORMAT],
            cwd=repo_root,
        )
    except (ToolUnavailableError, CommandFailedError) as e:
        handle_git_error(e, "filter branches", repo_root)
        return []
    return normalize_lines(cp.stdout)[:limit]


async def list_tracked_files(repo_root: Path) -> list[str]:
    """Repository-relative paths of all tracked files. Errors propagate."""
    cp = await run_git([*UNQUOTED_PATHS, "ls-files", "-z"], cwd=repo_root)
    return split_nul(cp.stdout)
