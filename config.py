"""Configuration management for Git Diff Sidebar."""

import json
import os
import sys
from pathlib import Path

APP_NAME = "GitDiffSidebar"
RECENTS_MAX = 15
DEFAULT_BASE_BRANCH = "main"
DEFAULT_GIT_SPICE_EXECUTABLE = "gs"

DEFAULT_CONFIG = {
    "recent_repos": [],  # list[str]
    "last_repo": None,  # str | None
    "auto_reopen_last": True,  # bool
    "window_geometry": None,  # str | None
    "git_spice_executable": DEFAULT_GIT_SPICE_EXECUTABLE,  # may start with ~
    "branch_picker_limit": 20,  # int
    "debounce_ms": 200,  # int
    "log_level": "INFO",  # DEBUG | INFO | WARNING | ERROR
    "base_branches": {},  # dict[str, str] - repo_path -> base reference
}


def _config_dir() -> Path:
    """Get the platform-specific configuration directory."""
    if sys.platform.startswith("win"):
        base = os.environ.get("APPDATA") or str(Path.home() / "AppData" / "Roaming")
        return Path(base) / APP_NAME
    elif sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_NAME
    else:
        base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
        return Path(base) / APP_NAME


def _config_path() -> Path:
    """Get the configuration file path."""
    return _config_dir() / "settings.json"


def default_config() -> dict:
    """Return a fresh copy of the default configuration."""
    return json.loads(json.dumps(DEFAULT_CONFIG))


def load_config(path: Path | None = None) -> dict:
    """Load configuration from file, falling back to defaults."""
    p = path or _config_path()
    try:
        with p.open("r", encoding="utf-8") as f:
            cfg = json.load(f)
    except (OSError, ValueError):
        return default_config()
    if not isinstance(cfg, dict):
        return default_config()
    for k, v in default_config().items():
        cfg.setdefault(k, v)
    return cfg


def save_config(cfg: dict, path: Path | None = None):
    """Save configuration to file."""
    target = path or _config_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp = target.parent / f".{target.name}.tmp"
    with tmp.open("w", encoding="utf-8") as f:
        json.dump(cfg, f, indent=2)
    tmp.replace(target)


def push_recent_repo(cfg: dict, repo_root: Path):
    """Add a repository to the recent repositories list."""
    path = str(repo_root)
    others = [r for r in cfg.get("recent_repos", []) if r != path]
    cfg["recent_repos"] = [path, *others][:RECENTS_MAX]
    cfg["last_repo"] = path


def get_base_branch(cfg: dict, repo_root: Path) -> str:
    """Get the stored base reference for a repository."""
    return cfg.get("base_branches", {}).get(str(repo_root)) or DEFAULT_BASE_BRANCH


def set_base_branch(cfg: dict, repo_root: Path, branch: str):
    """Store the base reference for a repository."""
    base_branches = cfg.setdefault("base_branches", {})
    base_branches[str(repo_root)] = branch


def get_git_spice_executable(cfg: dict) -> str:
    """Get the git-spice executable with ~ expanded to the home directory."""
    path = cfg.get("git_spice_executable") or DEFAULT_GIT_SPICE_EXECUTABLE
    if path.startswith("~"):
        path = os.path.expanduser(path)
    return path


def get_branch_picker_limit(cfg: dict) -> int:
    """Get the maximum number of entries shown in the branch picker."""
    try:
        limit = int(cfg.get("branch_picker_limit", DEFAULT_CONFIG["branch_picker_limit"]))
    except (TypeError, ValueError):
        return DEFAULT_CONFIG["branch_picker_limit"]
    return max(limit, 1)


def get_debounce_ms(cfg: dict) -> int:
    """Get the debounce window for refreshes and picker filtering."""
    try:
        return max(int(cfg.get("debounce_ms", DEFAULT_CONFIG["debounce_ms"])), 0)
    except (TypeError, ValueError):
        return DEFAULT_CONFIG["debounce_ms"]
