"""Candidate base branches for the branch picker."""

from pathlib import Path
from typing import Awaitable, Callable, Sequence

from error_handler import (
    CommandFailedError,
    StackParseError,
    ToolUnavailableError,
    handle_git_error,
    handle_stack_tool_error,
)
from git_utils import DEFAULT_TRUNK, filter_branches, list_local_branches, list_recent_branches
from gitspice_utils import get_stack_ancestors
from logging_config import get_logger

logger = get_logger(__name__)

STACK_MARKER = "⬇ "
DEFAULT_LIMIT = 20


def branch_from_display(display: str) -> str:
    """Turn a picker entry back into a branch name."""
    if display.startswith(STACK_MARKER):
        return display[len(STACK_MARKER):]
    return display


async def fallback_branches(repo_root: Path) -> list[str]:
    """Flat list of local branches, or the trunk name if none can be listed."""
    try:
        branches = await list_local_branches(repo_root)
    except (ToolUnavailableError, CommandFailedError) as e:
        handle_git_error(e, "list branches", repo_root)
        return [DEFAULT_TRUNK]
    return branches or [DEFAULT_TRUNK]


async def _stack_candidates(repo_root: Path, executable: str, limit: int) -> list[str]:
    ancestors = await get_stack_ancestors(repo_root, executable)
    recent = await list_recent_branches(repo_root, limit + len(ancestors) + 1)
    candidates = [f"{STACK_MARKER}{name}" for name in ancestors]
    candidates += [name for name in recent if name not in ancestors]
    return candidates


async def first_available(
    repo_root: Path,
    executable: str,
    attempts: Sequence[tuple[str, Callable[[], Awaitable[list[str]]]]],
) -> list[str]:
    """Return the result of the first attempt that does not fail."""
    for label, attempt in attempts:
        try:
            return await attempt()
        except (ToolUnavailableError, CommandFailedError, StackParseError) as e:
            handle_stack_tool_error(e, executable, repo_root)
            logger.info(f"Branch source '{label}' unavailable, trying next")
    return [DEFAULT_TRUNK]


async def list_candidate_branches(
    repo_root: Path,
    executable: str,
    filter_query: str | None = None,
    limit: int = DEFAULT_LIMIT,
    exclude: str | None = None,
) -> list[str]:
    """Branches to offer as the base reference.

    Without a filter, stack ancestors come first with a marker, followed by
    recently committed branches; when git-spice is unusable the plain branch
    list is returned instead. The excluded name (the current base) never
    appears.
    """
    query = (filter_query or "").strip()
    if query:
        candidates = await filter_branches(repo_root, query, limit + 1)
    else:
        candidates = await first_available(repo_root, executable, [
            ("git-spice", lambda: _stack_candidates(repo_root, executable, limit)),
            ("local branches", lambda: fallback_branches(repo_root)),
        ])

    if exclude:
        candidates = [c for c in candidates if branch_from_display(c) != exclude]
    return candidates[:limit]
