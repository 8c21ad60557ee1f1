"""git-spice integration utilities."""

import os
from pathlib import Path
from typing import List

from error_handler import CommandFailedError, StackParseError, ToolUnavailableError
from git_utils import run_command, which
from logging_config import get_logger
from models import StackSnapshot
from stack import parse_stack_output, walk_ancestors

logger = get_logger(__name__)

GIT_SPICE_TIMEOUT = 10.0


def find_git_spice_cli(executable: str) -> str | None:
    """Resolve the configured git-spice executable to a path."""
    expanded = os.path.expanduser(executable)
    if os.sep in expanded or (os.altsep and os.altsep in expanded):
        path = Path(expanded)
        return str(path) if path.is_file() else None
    return which(expanded)


async def run_git_spice(repo_root: Path, args: List[str], executable: str) -> str:
    """Run a git-spice command and return stdout and stderr together.

    git-spice writes its listings to stderr, so both streams are returned.
    """
    gs_cmd = find_git_spice_cli(executable)
    if not gs_cmd:
        raise ToolUnavailableError(executable)
    result = await run_command([gs_cmd, *args], cwd=repo_root, timeout=GIT_SPICE_TIMEOUT)
    return result.stdout + result.stderr


async def load_stack(repo_root: Path, executable: str) -> StackSnapshot:
    """Query git-spice for the stack of the checked out branch.

    Prefers the JSON listing and retries with the plain tree listing when the
    installed git-spice does not know ``--json``.
    """
    try:
        output = await run_git_spice(repo_root, ["ls", "--json"], executable)
    except CommandFailedError as e:
        if "unknown flag" not in e.stderr.lower():
            raise
        logger.debug("git-spice has no --json listing, using tree output")
        output = await run_git_spice(repo_root, ["ls"], executable)
    return parse_stack_output(output)


async def get_stack_ancestors(repo_root: Path, executable: str) -> list[str]:
    """Branches below the current one in its stack, nearest first."""
    snapshot = await load_stack(repo_root, executable)
    ancestors = walk_ancestors(snapshot)
    logger.info(f"Stack ancestors: {', '.join(ancestors) or '(none)'}")
    return ancestors


async def is_in_stack(repo_root: Path, executable: str) -> bool:
    """Check whether git-spice tracks the checked out branch."""
    try:
        snapshot = await load_stack(repo_root, executable)
    except (ToolUnavailableError, CommandFailedError, StackParseError):
        return False
    return snapshot.current is not None
