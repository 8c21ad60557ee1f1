"""Parsing of git-spice stack listings into branch graphs.

git-spice has printed its stack in two shapes over time:

* one JSON object per line (``gs ls --json``)::

    {"name": "main"}
    {"name": "feat-a", "current": true, "down": {"name": "main"}}

* a decorated tree, trunk rendered last::

        ┏━□ feat-b
      ┏━┻■ feat-a (#12) ◀
      main

Both are turned into a StackSnapshot; ``walk_ancestors`` then yields the
branches between the current branch and the trunk, nearest first.
"""

import json
import re
from dataclasses import dataclass
from typing import Union

from error_handler import StackParseError
from git_utils import split_lines
from models import BranchRecord, StackFormat, StackSnapshot

CURRENT_MARKER = "◀"

_BANNER_RE = re.compile(r"^(INF|WRN|ERR|DBG|FTL)\b")
_TREE_GLYPHS_RE = re.compile(r"^[\s│├└┌┐┘┤┬┴┼┏┓┗┛┣┫┳┻╋━┃─■□●○◯◉]+")
_CURRENT_MARKER_RE = re.compile(rf"\s*{CURRENT_MARKER}\s*$")
_PR_REF_RE = re.compile(r"\s*\(#\d+\)")
_ANNOTATION_RE = re.compile(r"\s*\([^)]*\)")


@dataclass(frozen=True)
class RecordLine:
    """A structured branch record."""

    record: BranchRecord


@dataclass(frozen=True)
class BareNameLine:
    """A branch name extracted from tree output."""

    name: str
    is_current: bool
    depth: int


@dataclass(frozen=True)
class NoiseLine:
    """Banner or decoration with no branch in it."""

    text: str


ParsedStackLine = Union[RecordLine, BareNameLine, NoiseLine]


def is_log_banner(line: str) -> bool:
    """Check for git-spice log prefixes such as ``INF``."""
    return bool(_BANNER_RE.match(line.lstrip()))


def parse_stack_record(line: str) -> BranchRecord:
    """Decode one JSON line of ``gs ls --json`` output."""
    try:
        data = json.loads(line)
    except ValueError as e:
        raise StackParseError(f"Invalid stack record: {line!r}") from e
    if not isinstance(data, dict):
        raise StackParseError(f"Stack record is not an object: {line!r}")

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise StackParseError(f"Stack record has no branch name: {line!r}")

    parent_name = None
    down = data.get("down")
    if isinstance(down, dict) and isinstance(down.get("name"), str) and down["name"].strip():
        parent_name = down["name"].strip()

    return BranchRecord(
        name=name.strip(),
        is_current=data.get("current") is True,
        parent_name=parent_name,
    )


def extract_branch_name(line: str) -> str | None:
    """Strip tree glyphs, the current marker, PR refs and annotations from a line."""
    cleaned = _TREE_GLYPHS_RE.sub("", line)
    cleaned = _CURRENT_MARKER_RE.sub("", cleaned)
    cleaned = _PR_REF_RE.sub("", cleaned)
    cleaned = _ANNOTATION_RE.sub("", cleaned)
    # marker may precede an annotation: "feat ◀ (needs restack)"
    cleaned = _CURRENT_MARKER_RE.sub("", cleaned).strip()
    return cleaned or None


def parse_tree_line(line: str) -> ParsedStackLine:
    """Classify one line of decorated tree output."""
    if not line.strip() or is_log_banner(line):
        return NoiseLine(line)
    name = extract_branch_name(line)
    if name is None:
        return NoiseLine(line)
    depth = len(line) - len(_TREE_GLYPHS_RE.sub("", line))
    return BareNameLine(name=name, is_current=CURRENT_MARKER in line, depth=depth)


def detect_format(lines: list[str]) -> StackFormat:
    """Decide the listing format from its first meaningful line."""
    for line in lines:
        if not line.strip() or is_log_banner(line):
            continue
        return StackFormat.STRUCTURED if line.lstrip().startswith("{") else StackFormat.TREE
    return StackFormat.TREE


def parse_stack_lines(lines: list[str], stack_format: StackFormat) -> list[ParsedStackLine]:
    """Parse every line of a listing in the given format."""
    if stack_format is StackFormat.TREE:
        return [parse_tree_line(line) for line in lines]
    parsed: list[ParsedStackLine] = []
    for line in split_lines("\n".join(lines)):
        if is_log_banner(line):
            parsed.append(NoiseLine(line))
        else:
            parsed.append(RecordLine(parse_stack_record(line)))
    return parsed


def build_snapshot(parsed: list[ParsedStackLine], stack_format: StackFormat) -> StackSnapshot:
    """Assemble parsed lines into a snapshot, keeping emission order."""
    records = []
    for item in parsed:
        if isinstance(item, RecordLine):
            records.append(item.record)
        elif isinstance(item, BareNameLine):
            records.append(BranchRecord(name=item.name, is_current=item.is_current, depth=item.depth))
    return StackSnapshot(records=tuple(records), format=stack_format)


def parse_stack_output(text: str) -> StackSnapshot:
    """Parse a complete git-spice listing.

    Raises StackParseError when a structured listing contains a line that is
    not a valid record.
    """
    lines = [line.rstrip() for line in text.splitlines()]
    stack_format = detect_format(lines)
    return build_snapshot(parse_stack_lines(lines, stack_format), stack_format)


def walk_ancestors(snapshot: StackSnapshot) -> list[str]:
    """Branches from just below the current one down to the trunk."""
    if snapshot.format is StackFormat.STRUCTURED:
        return _walk_records(snapshot)
    return _walk_tree(snapshot)


def _walk_records(snapshot: StackSnapshot) -> list[str]:
    current = snapshot.current
    if current is None:
        return []

    by_name = snapshot.by_name
    ancestors: list[str] = []
    visited = {current.name}
    name = current.parent_name
    while name and name not in visited:
        visited.add(name)
        ancestors.append(name)
        record = by_name.get(name)
        if record is None:
            break
        name = record.parent_name
    return ancestors


def _walk_tree(snapshot: StackSnapshot) -> list[str]:
    index = snapshot.current_index
    if index is None:
        return []

    records = snapshot.records
    if _renders_trunk_first(records):
        ancestors = []
        depth = records[index].depth
        for record in reversed(records[:index]):
            if record.depth < depth:
                ancestors.append(record.name)
                depth = record.depth
        return ancestors

    return list(dict.fromkeys(r.name for r in records[index + 1:] if r.name != records[index].name))


def _renders_trunk_first(records: tuple[BranchRecord, ...]) -> bool:
    # git-spice prints the trunk unindented on the last line
    if len(records) < 2:
        return False
    return records[0].depth == 0 and records[-1].depth > 0
