"""Data provider behind the diff sidebar."""

from pathlib import Path, PurePosixPath
from typing import Callable

from branches import branch_from_display, list_candidate_branches
from changes import aggregate_changes, diff_reference_for
from config import get_branch_picker_limit, get_git_spice_executable, save_config
from debounce import RequestSequencer
from error_handler import (
    CommandFailedError,
    NoWorkspaceError,
    NotARepositoryError,
    ToolUnavailableError,
    handle_git_error,
)
from git_utils import ensure_repo_root, get_current_branch, list_tracked_files
from gitspice_utils import is_in_stack
from logging_config import get_logger
from models import ChangeKind, ChangeSets, FileItem, GroupItem, MessageItem
from session import DiffSession

logger = get_logger(__name__)

NO_WORKSPACE_TEXT = "No workspace folder open"
NOT_A_REPOSITORY_TEXT = "Not a git repository"
GIT_MISSING_TEXT = "Git was not found on PATH"

MAX_REFRESH_ATTEMPTS = 3
# tracked files watched individually; directories are always watched
MAX_WATCHED_FILES = 2000


class GitDiffProvider:
    """Supplies groups, changed files and branch candidates for one workspace."""

    def __init__(self, workspace_root: Path | None, cfg: dict, persist: Callable[[dict], None] = save_config):
        self.workspace_root = workspace_root
        self.cfg = cfg
        self._persist = persist
        self.repo_root: Path | None = None
        self.session: DiffSession | None = None

        self._change_sets: ChangeSets | None = None
        self._change_sets_base: str | None = None
        self._refreshes = RequestSequencer()
        self._searches = RequestSequencer()

    async def _ensure_session(self) -> DiffSession:
        if self.session is not None:
            return self.session
        if self.workspace_root is None:
            raise NoWorkspaceError(NO_WORKSPACE_TEXT)
        self.repo_root = await ensure_repo_root(self.workspace_root)
        self.session = DiffSession(self.repo_root, self.cfg, self._persist)
        self.session.on_base_changed(lambda _name: self.invalidate())
        logger.info(f"Opened {self.repo_root} with base {self.session.base_ref}")
        return self.session

    @property
    def base_reference(self) -> str | None:
        return self.session.base_ref if self.session else None

    async def get_root_items(self) -> list[GroupItem | MessageItem]:
        """Top level of the tree: the three groups, or one explanatory item."""
        try:
            session = await self._ensure_session()
        except NoWorkspaceError:
            return [MessageItem(NO_WORKSPACE_TEXT, is_error=False)]
        except NotARepositoryError:
            return [MessageItem(NOT_A_REPOSITORY_TEXT)]
        except ToolUnavailableError as e:
            handle_git_error(e, "open repository", self.workspace_root)
            return [MessageItem(GIT_MISSING_TEXT)]

        base = session.base_ref
        return [
            GroupItem(ChangeKind.ALL, f"from {base}", expanded=True),
            GroupItem(ChangeKind.COMMITTED, f"from {base}"),
            GroupItem(ChangeKind.UNCOMMITTED),
        ]

    def invalidate(self):
        """Drop computed change sets and any refresh still in flight."""
        self._change_sets = None
        self._change_sets_base = None
        self._refreshes.next_token()

    async def refresh(self) -> ChangeSets | None:
        """Recompute the change sets.

        Returns None when a newer refresh or a base change superseded this one
        while it was running.
        """
        session = await self._ensure_session()
        token = self._refreshes.next_token()
        base = session.base_ref
        change_sets = await aggregate_changes(self.repo_root, base)
        if not self._refreshes.is_current(token):
            logger.debug(f"Discarding superseded refresh #{token}")
            return None
        self._change_sets = change_sets
        self._change_sets_base = base
        return change_sets

    async def get_change_sets(self) -> ChangeSets:
        """Current change sets, computing them if needed."""
        for _ in range(MAX_REFRESH_ATTEMPTS):
            if self._change_sets is not None:
                return self._change_sets
            result = await self.refresh()
            if result is not None:
                return result
        session = await self._ensure_session()
        return await aggregate_changes(self.repo_root, session.base_ref)

    async def list_changes(self, kind: ChangeKind) -> list[str]:
        """Relative paths in one change group. Empty when there is no repository."""
        try:
            change_sets = await self.get_change_sets()
        except (NoWorkspaceError, NotARepositoryError, ToolUnavailableError):
            return []
        return list(change_sets.get(kind))

    async def get_file_items(self, kind: ChangeKind) -> list[FileItem]:
        """Tree items for one change group."""
        paths = await self.list_changes(kind)
        base = self._change_sets_base or self.base_reference or ""
        diff_ref = diff_reference_for(kind, base)
        return [FileItem(path=path, kind=kind, diff_ref=diff_ref) for path in paths]

    async def list_candidate_branches(self, filter_query: str | None = None, limit: int | None = None) -> list[str]:
        """Branch picker entries, excluding the current base reference."""
        try:
            session = await self._ensure_session()
        except (NoWorkspaceError, NotARepositoryError, ToolUnavailableError):
            return []
        return await list_candidate_branches(
            self.repo_root,
            get_git_spice_executable(self.cfg),
            filter_query=filter_query,
            limit=limit or get_branch_picker_limit(self.cfg),
            exclude=session.base_ref,
        )

    async def search_branches(self, filter_query: str) -> list[str] | None:
        """Like list_candidate_branches, but None if a newer search started meanwhile."""
        token = self._searches.next_token()
        candidates = await self.list_candidate_branches(filter_query)
        if not self._searches.is_current(token):
            return None
        return candidates

    def set_base_reference(self, name: str) -> bool:
        """Use another base reference. Accepts picker entries with stack markers."""
        if self.session is None:
            raise NoWorkspaceError("No repository is open")
        return self.session.set_base_ref(branch_from_display(name))

    async def is_stacked(self) -> bool:
        """Whether git-spice tracks the checked out branch."""
        if self.repo_root is None:
            return False
        return await is_in_stack(self.repo_root, get_git_spice_executable(self.cfg))

    async def current_branch(self) -> str | None:
        """Checked out branch, or None when no repository is open."""
        if self.repo_root is None:
            return None
        return await get_current_branch(self.repo_root)

    async def watch_paths(self) -> list[Path]:
        """Existing paths whose changes should trigger a refresh.

        File-system watchers only see direct children of a directory, so this
        lists the work tree root, every directory holding tracked files, the
        tracked files themselves (up to MAX_WATCHED_FILES) and the git
        metadata that changes on commits, checkouts and staging.
        """
        root = self.repo_root
        if root is None:
            return []
        git_dir = root / ".git"
        paths = [root, git_dir, git_dir / "HEAD", git_dir / "index", git_dir / "refs" / "heads"]

        try:
            tracked = await list_tracked_files(root)
        except (ToolUnavailableError, CommandFailedError) as e:
            handle_git_error(e, "tracked files", root)
            tracked = []

        directories = set()
        for path in tracked:
            directories.update(str(parent) for parent in PurePosixPath(path).parents if str(parent) != ".")
        paths += [root / directory for directory in sorted(directories)]
        paths += [root / path for path in tracked[:MAX_WATCHED_FILES]]
        return [path for path in dict.fromkeys(paths) if path.exists()]
