"""Tests for git-spice stack parsing."""

import pytest

from error_handler import StackParseError
from models import BranchRecord, StackFormat, StackSnapshot
from stack import (
    BareNameLine,
    NoiseLine,
    RecordLine,
    detect_format,
    extract_branch_name,
    is_log_banner,
    parse_stack_output,
    parse_stack_record,
    parse_tree_line,
    walk_ancestors,
)


JSON_LISTING = "\n".join([
    '{"name": "main"}',
    '{"name": "feat-a", "down": {"name": "main"}}',
    '{"name": "feat-b", "current": true, "down": {"name": "feat-a"}}',
    '{"name": "feat-c", "down": {"name": "feat-b"}}',
])

TREE_LISTING = "\n".join([
    "    ┏━□ feat-c",
    "  ┏━┻■ feat-b (#14) ◀",
    "┏━┻□ feat-a (#12)",
    "main",
])


class TestParseStackRecord:
    """Tests for decoding one JSON record."""

    def test_record_with_parent(self):
        record = parse_stack_record('{"name": "feat-a", "current": true, "down": {"name": "main"}}')

        assert record == BranchRecord(name="feat-a", is_current=True, parent_name="main")

    def test_trunk_record(self):
        record = parse_stack_record('{"name": "main"}')

        assert record.parent_name is None
        assert record.is_current is False

    def test_current_must_be_true(self):
        record = parse_stack_record('{"name": "feat-a", "current": "yes"}')

        assert record.is_current is False

    @pytest.mark.parametrize("line", [
        "not json",
        "[1, 2]",
        '{"current": true}',
        '{"name": "   "}',
        '{"name": 42}',
    ])
    def test_invalid_records(self, line):
        with pytest.raises(StackParseError):
            parse_stack_record(line)

    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_stack_record("{")


class TestExtractBranchName:
    """Tests for cleaning decorated tree lines."""

    @pytest.mark.parametrize("line, expected", [
        ("main", "main"),
        ("  ┏━┻■ feat-a (#12) ◀", "feat-a"),
        ("┣━□ feat-b", "feat-b"),
        ("  feat-a ◀", "feat-a"),
        ("└── fix/login (needs restack)", "fix/login"),
        ("feat ◀ (needs restack)", "feat"),
        ("│ ├─● user/topic (#7) (draft)", "user/topic"),
    ])
    def test_decorations_removed(self, line, expected):
        assert extract_branch_name(line) == expected

    def test_pure_decoration_has_no_name(self):
        assert extract_branch_name("  ┃") is None
        assert extract_branch_name("") is None

    def test_idempotent(self):
        once = extract_branch_name("  ┏━┻■ feat-a (#12) ◀")
        assert extract_branch_name(once) == once


class TestParseTreeLine:
    """Tests for classifying tree lines."""

    def test_banner_is_noise(self):
        assert isinstance(parse_tree_line("INF Using main as trunk"), NoiseLine)
        assert is_log_banner("  WRN branch needs restack")
        assert not is_log_banner("information")

    def test_current_and_depth(self):
        parsed = parse_tree_line("  feat-a ◀")

        assert parsed == BareNameLine(name="feat-a", is_current=True, depth=2)

    def test_blank_line_is_noise(self):
        assert isinstance(parse_tree_line("   "), NoiseLine)


class TestDetectFormat:
    """Tests for picking the listing format."""

    def test_structured(self):
        assert detect_format(["", "INF hello", '{"name": "main"}']) is StackFormat.STRUCTURED

    def test_tree(self):
        assert detect_format(["INF hello", "main"]) is StackFormat.TREE

    def test_empty_defaults_to_tree(self):
        assert detect_format([]) is StackFormat.TREE


class TestParseStackOutput:
    """Tests for whole listings."""

    def test_structured_listing(self):
        snapshot = parse_stack_output(JSON_LISTING)

        assert snapshot.format is StackFormat.STRUCTURED
        assert [record.name for record in snapshot.records] == ["main", "feat-a", "feat-b", "feat-c"]
        assert snapshot.current.name == "feat-b"

    def test_structured_listing_skips_banners(self):
        snapshot = parse_stack_output("INF loading\n" + JSON_LISTING + "\n\n")

        assert len(snapshot.records) == 4

    def test_structured_listing_with_bad_line(self):
        with pytest.raises(StackParseError):
            parse_stack_output('{"name": "main"}\ngarbage')

    def test_tree_listing(self):
        snapshot = parse_stack_output(TREE_LISTING)

        assert snapshot.format is StackFormat.TREE
        assert [record.name for record in snapshot.records] == ["feat-c", "feat-b", "feat-a", "main"]
        assert snapshot.current.name == "feat-b"

    def test_parsing_is_deterministic(self):
        assert parse_stack_output(TREE_LISTING) == parse_stack_output(TREE_LISTING)
        assert parse_stack_output(JSON_LISTING) == parse_stack_output(JSON_LISTING)

    def test_empty_output(self):
        snapshot = parse_stack_output("")

        assert snapshot.records == ()
        assert walk_ancestors(snapshot) == []


class TestWalkAncestors:
    """Tests for the current-to-trunk walk."""

    def test_two_branch_structured_stack(self):
        snapshot = parse_stack_output(
            '{"name": "main"}\n{"name": "feat-a", "current": true, "down": {"name": "main"}}'
        )

        assert walk_ancestors(snapshot) == ["main"]

    def test_structured_stack_nearest_first(self):
        assert walk_ancestors(parse_stack_output(JSON_LISTING)) == ["feat-a", "main"]

    def test_trunk_first_tree_excludes_descendants(self):
        snapshot = parse_stack_output("main\n  feat-a ◀\n    feat-b\n")

        assert [r.name for r in snapshot.records] == ["main", "feat-a", "feat-b"]
        assert walk_ancestors(snapshot) == ["main"]

    def test_trunk_last_tree(self):
        assert walk_ancestors(parse_stack_output(TREE_LISTING)) == ["feat-a", "main"]

    def test_no_current_branch(self):
        assert walk_ancestors(parse_stack_output('{"name": "main"}')) == []
        assert walk_ancestors(parse_stack_output("feat-a\nmain")) == []

    def test_current_is_trunk(self):
        assert walk_ancestors(parse_stack_output('{"name": "main", "current": true}')) == []

    def test_first_current_record_wins(self):
        listing = "\n".join([
            '{"name": "main"}',
            '{"name": "feat-a", "down": {"name": "main"}}',
            '{"name": "feat-b", "current": true, "down": {"name": "feat-a"}}',
            '{"name": "feat-c", "current": true, "down": {"name": "feat-b"}}',
        ])
        snapshot = parse_stack_output(listing)

        assert snapshot.current.name == "feat-b"
        assert walk_ancestors(snapshot) == ["feat-a", "main"]

    def test_cycle_terminates(self):
        snapshot = StackSnapshot(
            records=(
                BranchRecord("a", is_current=True, parent_name="b"),
                BranchRecord("b", parent_name="c"),
                BranchRecord("c", parent_name="a"),
            ),
            format=StackFormat.STRUCTURED,
        )

        assert walk_ancestors(snapshot) == ["b", "c"]

    def test_self_parent_terminates(self):
        snapshot = StackSnapshot(
            records=(BranchRecord("a", is_current=True, parent_name="a"),),
            format=StackFormat.STRUCTURED,
        )

        assert walk_ancestors(snapshot) == []

    def test_unknown_parent_ends_walk(self):
        snapshot = parse_stack_output('{"name": "feat", "current": true, "down": {"name": "origin-main"}}')

        assert walk_ancestors(snapshot) == ["origin-main"]


class TestParsedLineVariants:
    """The parsed-line variants carry only their own data."""

    def test_record_line(self):
        record = BranchRecord("main")
        assert RecordLine(record).record is record

    def test_noise_line(self):
        assert NoiseLine("INF x").text == "INF x"
