"""Data models for Git Diff Sidebar."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import Iterable, Iterator


@dataclass(frozen=True)
class CommandResult:
    """Captured output of an external command."""

    args: tuple[str, ...]
    stdout: str
    stderr: str
    returncode: int


@dataclass(frozen=True)
class BranchRecord:
    """One branch in a git-spice stack."""

    name: str
    is_current: bool = False
    parent_name: str | None = None  # None for the trunk
    depth: int = 0  # column of the name in tree output, 0 for JSON records


class StackFormat(Enum):
    """Shape of the git-spice listing a snapshot was parsed from."""

    STRUCTURED = "structured"
    TREE = "tree"


@dataclass(frozen=True)
class StackSnapshot:
    """One parse of the git-spice stack listing."""

    records: tuple[BranchRecord, ...]
    format: StackFormat

    @property
    def by_name(self) -> dict[str, BranchRecord]:
        # later duplicates overwrite earlier ones
        return {record.name: record for record in self.records}

    @property
    def current(self) -> BranchRecord | None:
        for record in self.records:
            if record.is_current:
                return record
        return None

    @property
    def current_index(self) -> int | None:
        for i, record in enumerate(self.records):
            if record.is_current:
                return i
        return None


class ChangeKind(Enum):
    """The three change groups shown in the sidebar."""

    COMMITTED = "committed"
    UNCOMMITTED = "uncommitted"
    ALL = "all"


@dataclass(frozen=True)
class ChangeSet:
    """Deduplicated repository-relative paths sharing a classification."""

    kind: ChangeKind
    paths: tuple[str, ...] = ()

    @classmethod
    def from_paths(cls, kind: ChangeKind, *groups: Iterable[str]) -> "ChangeSet":
        """Union the groups, keeping the first-seen order."""
        merged: dict[str, None] = {}
        for group in groups:
            merged.update(dict.fromkeys(group))
        return cls(kind=kind, paths=tuple(merged))

    def __contains__(self, path: object) -> bool:
        return path in self.paths

    def __iter__(self) -> Iterator[str]:
        return iter(self.paths)

    def __len__(self) -> int:
        return len(self.paths)


@dataclass(frozen=True)
class ChangeSets:
    """The committed, uncommitted and combined change sets of one refresh."""

    committed: ChangeSet
    uncommitted: ChangeSet
    all: ChangeSet

    def get(self, kind: ChangeKind) -> ChangeSet:
        if kind is ChangeKind.COMMITTED:
            return self.committed
        if kind is ChangeKind.UNCOMMITTED:
            return self.uncommitted
        return self.all


GROUP_LABELS = {
    ChangeKind.ALL: "All Changes",
    ChangeKind.COMMITTED: "Committed Changes",
    ChangeKind.UNCOMMITTED: "Uncommitted Changes",
}


@dataclass(frozen=True)
class GroupItem:
    """A group header in the sidebar tree."""

    kind: ChangeKind
    description: str = ""
    expanded: bool = False

    @property
    def label(self) -> str:
        return GROUP_LABELS[self.kind]


@dataclass(frozen=True)
class FileItem:
    """A changed file in the sidebar tree."""

    path: str  # relative to the repository root, forward slashes
    kind: ChangeKind
    diff_ref: str  # reference the file is compared against

    @property
    def name(self) -> str:
        return PurePosixPath(self.path).name

    @property
    def directory(self) -> str:
        parent = str(PurePosixPath(self.path).parent)
        return "" if parent == "." else parent


@dataclass(frozen=True)
class MessageItem:
    """A single explanatory entry shown instead of results."""

    text: str
    is_error: bool = field(default=True)
