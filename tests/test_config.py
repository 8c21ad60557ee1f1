"""Tests for configuration management functionality."""

import json
import os
from pathlib import Path
from unittest.mock import patch

from config import (
    DEFAULT_BASE_BRANCH,
    RECENTS_MAX,
    default_config,
    get_base_branch,
    get_branch_picker_limit,
    get_debounce_ms,
    get_git_spice_executable,
    load_config,
    push_recent_repo,
    save_config,
    set_base_branch,
)


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_config_existing_file(self, config_file: Path, sample_config: dict):
        """Test loading configuration from existing file."""
        config = load_config(config_file)
        assert config == sample_config

    def test_load_config_nonexistent_file(self, temp_dir: Path):
        """Test loading configuration when file doesn't exist."""
        config = load_config(temp_dir / "nonexistent.json")

        assert config == default_config()
        assert config["recent_repos"] == []
        assert config["base_branches"] == {}

    def test_load_config_invalid_json(self, temp_dir: Path):
        """Test loading configuration with invalid JSON."""
        invalid_config = temp_dir / "invalid.json"
        invalid_config.write_text("{ invalid json }")

        assert load_config(invalid_config) == default_config()

    def test_load_config_not_an_object(self, temp_dir: Path):
        path = temp_dir / "list.json"
        path.write_text("[1, 2, 3]")

        assert load_config(path) == default_config()

    def test_load_config_fills_missing_keys(self, temp_dir: Path):
        path = temp_dir / "partial.json"
        path.write_text(json.dumps({"debounce_ms": 50}))

        config = load_config(path)

        assert config["debounce_ms"] == 50
        assert config["git_spice_executable"] == "gs"

    def test_defaults_are_independent_copies(self):
        first = default_config()
        first["base_branches"]["/x"] = "dev"

        assert default_config()["base_branches"] == {}


class TestSaveConfig:
    """Tests for save_config function."""

    def test_save_and_reload(self, temp_dir: Path, sample_config: dict):
        path = temp_dir / "nested" / "settings.json"

        save_config(sample_config, path)

        assert load_config(path) == sample_config
        assert not (path.parent / ".settings.json.tmp").exists()


class TestRecentRepos:
    """Tests for the recent repositories list."""

    def test_push_recent_repo(self):
        cfg = default_config()
        push_recent_repo(cfg, Path("/a"))
        push_recent_repo(cfg, Path("/b"))
        push_recent_repo(cfg, Path("/a"))

        assert cfg["recent_repos"] == ["/a", "/b"]
        assert cfg["last_repo"] == "/a"

    def test_push_recent_repo_limit(self):
        cfg = default_config()
        for i in range(RECENTS_MAX + 5):
            push_recent_repo(cfg, Path(f"/repo{i}"))

        assert len(cfg["recent_repos"]) == RECENTS_MAX


class TestSettings:
    """Tests for typed setting accessors."""

    def test_base_branch_per_repository(self, sample_config: dict):
        assert get_base_branch(sample_config, Path("/work/project")) == "develop"
        assert get_base_branch(sample_config, Path("/work/other")) == DEFAULT_BASE_BRANCH

        set_base_branch(sample_config, Path("/work/other"), "release")
        assert get_base_branch(sample_config, Path("/work/other")) == "release"

    def test_git_spice_executable_expands_home(self):
        cfg = default_config()
        cfg["git_spice_executable"] = "~/bin/gs"

        with patch.dict(os.environ, {"HOME": "/home/tester"}):
            assert get_git_spice_executable(cfg) == "/home/tester/bin/gs"

    def test_git_spice_executable_default(self):
        cfg = default_config()
        cfg["git_spice_executable"] = ""

        assert get_git_spice_executable(cfg) == "gs"

    def test_branch_picker_limit(self):
        assert get_branch_picker_limit({"branch_picker_limit": 5}) == 5
        assert get_branch_picker_limit({"branch_picker_limit": 0}) == 1
        assert get_branch_picker_limit({"branch_picker_limit": "many"}) == 20
        assert get_branch_picker_limit({}) == 20

    def test_debounce_ms(self):
        assert get_debounce_ms({"debounce_ms": 50}) == 50
        assert get_debounce_ms({"debounce_ms": -10}) == 0
        assert get_debounce_ms({"debounce_ms": None}) == 200
