"""Collection of changed files relative to a base reference."""

import asyncio
import time
from pathlib import Path

from error_handler import CommandFailedError, ToolUnavailableError, handle_git_error
from git_utils import UNQUOTED_PATHS, run_git, split_nul
from logging_config import get_logger, log_performance
from models import ChangeKind, ChangeSet, ChangeSets

logger = get_logger(__name__)

UNCOMMITTED_REF = "HEAD"


def committed_diff_args(base_ref: str) -> list[str]:
    """Files changed between the base and the HEAD commit, ignoring the work tree."""
    return [*UNQUOTED_PATHS, "diff", "--name-only", "-z", f"{base_ref}...HEAD", "--"]


STAGED_ARGS = [*UNQUOTED_PATHS, "diff", "--name-only", "-z", "--cached"]
UNSTAGED_ARGS = [*UNQUOTED_PATHS, "diff", "--name-only", "-z"]
UNTRACKED_ARGS = [*UNQUOTED_PATHS, "ls-files", "-z", "--others", "--exclude-standard"]


async def query_paths(repo_root: Path, args: list[str], label: str) -> list[str]:
    """Run one NUL-separated file query. A failure yields no paths."""
    try:
        cp = await run_git(args, cwd=repo_root)
    except (ToolUnavailableError, CommandFailedError) as e:
        handle_git_error(e, label, repo_root)
        return []
    return split_nul(cp.stdout)


async def aggregate_changes(repo_root: Path, base_ref: str) -> ChangeSets:
    """Build the committed, uncommitted and combined change sets.

    The four queries run concurrently; their results are combined in a fixed
    order so the outcome does not depend on which finishes first.
    """
    start = time.perf_counter()
    committed, staged, unstaged, untracked = await asyncio.gather(
        query_paths(repo_root, committed_diff_args(base_ref), "committed changes"),
        query_paths(repo_root, STAGED_ARGS, "staged changes"),
        query_paths(repo_root, UNSTAGED_ARGS, "unstaged changes"),
        query_paths(repo_root, UNTRACKED_ARGS, "untracked files"),
    )

    committed_set = ChangeSet.from_paths(ChangeKind.COMMITTED, committed)
    uncommitted_set = ChangeSet.from_paths(ChangeKind.UNCOMMITTED, staged, unstaged, untracked)
    all_set = ChangeSet.from_paths(ChangeKind.ALL, committed_set, uncommitted_set)

    log_performance(
        logger, "aggregate_changes", time.perf_counter() - start,
        base_ref=base_ref, committed=len(committed_set), uncommitted=len(uncommitted_set),
    )
    return ChangeSets(committed=committed_set, uncommitted=uncommitted_set, all=all_set)


def diff_reference_for(kind: ChangeKind, base_ref: str) -> str:
    """Reference a file in the given group should be diffed against."""
    if kind is ChangeKind.UNCOMMITTED:
        return UNCOMMITTED_REF
    return base_ref
