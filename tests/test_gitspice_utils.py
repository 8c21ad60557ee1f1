"""Tests for git-spice integration."""

import os
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from error_handler import CommandFailedError, ToolUnavailableError
from gitspice_utils import find_git_spice_cli, get_stack_ancestors, is_in_stack, load_stack, run_git_spice
from models import CommandResult, StackFormat

STRUCTURED = '{"name": "main"}\n{"name": "feat-a", "current": true, "down": {"name": "main"}}\n'
TREE = "┏━■ feat-a ◀\nmain\n"


def result(stdout: str = "", stderr: str = "") -> CommandResult:
    return CommandResult(args=("gs", "ls"), stdout=stdout, stderr=stderr, returncode=0)


class TestFindGitSpiceCli:
    """Tests for resolving the configured executable."""

    def test_explicit_path(self, temp_dir: Path):
        gs = temp_dir / "gs"
        gs.write_text("#!/bin/sh\n")

        assert find_git_spice_cli(str(gs)) == str(gs)

    def test_explicit_path_missing(self, temp_dir: Path):
        assert find_git_spice_cli(str(temp_dir / "gs")) is None

    def test_home_relative_path(self, temp_dir: Path):
        gs = temp_dir / "gs"
        gs.write_text("#!/bin/sh\n")

        with patch.dict(os.environ, {"HOME": str(temp_dir)}):
            assert find_git_spice_cli("~/gs") == str(gs)

    def test_bare_name_uses_path_lookup(self):
        with patch("gitspice_utils.which", return_value="/usr/local/bin/gs") as which:
            assert find_git_spice_cli("gs") == "/usr/local/bin/gs"
        which.assert_called_once_with("gs")


class TestLoadStack:
    """Tests for querying git-spice."""

    @pytest.mark.asyncio
    async def test_missing_executable(self, temp_dir: Path):
        with pytest.raises(ToolUnavailableError):
            await run_git_spice(temp_dir, ["ls"], str(temp_dir / "gs"))

    @pytest.mark.asyncio
    async def test_listing_read_from_stderr(self):
        with patch("gitspice_utils.find_git_spice_cli", return_value="/bin/gs"), \
                patch("gitspice_utils.run_command", new=AsyncMock(return_value=result(stderr=STRUCTURED))):
            snapshot = await load_stack(Path("/repo"), "gs")

        assert snapshot.format is StackFormat.STRUCTURED
        assert snapshot.current.name == "feat-a"

    @pytest.mark.asyncio
    async def test_retries_without_json_flag(self):
        runner = AsyncMock(side_effect=[
            CommandFailedError(["gs", "ls", "--json"], 1, "ERR unknown flag: --json"),
            result(stderr=TREE),
        ])
        with patch("gitspice_utils.find_git_spice_cli", return_value="/bin/gs"), \
                patch("gitspice_utils.run_command", new=runner):
            ancestors = await get_stack_ancestors(Path("/repo"), "gs")

        assert ancestors == ["main"]
        assert runner.await_args_list[1].args[0] == ["/bin/gs", "ls"]

    @pytest.mark.asyncio
    async def test_other_failures_propagate(self):
        runner = AsyncMock(side_effect=CommandFailedError(["gs", "ls", "--json"], 1, "ERR repository not initialized"))
        with patch("gitspice_utils.find_git_spice_cli", return_value="/bin/gs"), \
                patch("gitspice_utils.run_command", new=runner):
            with pytest.raises(CommandFailedError):
                await load_stack(Path("/repo"), "gs")

        assert runner.await_count == 1


class TestIsInStack:
    """Tests for the stacked-branch indicator."""

    @pytest.mark.asyncio
    async def test_tracked_branch(self):
        with patch("gitspice_utils.find_git_spice_cli", return_value="/bin/gs"), \
                patch("gitspice_utils.run_command", new=AsyncMock(return_value=result(stdout=STRUCTURED))):
            assert await is_in_stack(Path("/repo"), "gs") is True

    @pytest.mark.asyncio
    async def test_missing_tool(self, temp_dir: Path):
        assert await is_in_stack(temp_dir, "/nonexistent/gs") is False

    @pytest.mark.asyncio
    async def test_garbage_output(self):
        with patch("gitspice_utils.find_git_spice_cli", return_value="/bin/gs"), \
                patch("gitspice_utils.run_command", new=AsyncMock(return_value=result(stdout="{broken"))):
            assert await is_in_stack(Path("/repo"), "gs") is False
