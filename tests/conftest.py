"""Pytest configuration and fixtures for git diff sidebar tests."""

import shutil
import subprocess
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

from config import default_config


def _git(repo: Path, *args: str):
    subprocess.run(["git", *args], cwd=repo, check=True, capture_output=True)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp()).resolve()
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def temp_git_repo(temp_dir: Path) -> Path:
    """Create a temporary git repository whose trunk is main."""
    _git(temp_dir, "init", "-q")
    _git(temp_dir, "symbolic-ref", "HEAD", "refs/heads/main")
    _git(temp_dir, "config", "user.name", "Test User")
    _git(temp_dir, "config", "user.email", "test@example.com")
    _git(temp_dir, "config", "commit.gpgsign", "false")

    # Create initial commit
    readme_file = temp_dir / "README.md"
    readme_file.write_text("# Test Repository\n")
    _git(temp_dir, "add", "README.md")
    _git(temp_dir, "commit", "-q", "-m", "Initial commit")

    return temp_dir


@pytest.fixture
def feature_repo(temp_git_repo: Path) -> Path:
    """Repository on branch feat with one committed, one staged and one untracked file."""
    _git(temp_git_repo, "checkout", "-q", "-b", "feat")
    (temp_git_repo / "src").mkdir()
    (temp_git_repo / "src" / "a.ts").write_text("export const a = 1;\n")
    _git(temp_git_repo, "add", "src/a.ts")
    _git(temp_git_repo, "commit", "-q", "-m", "Add a")

    (temp_git_repo / "b.ts").write_text("export const b = 2;\n")
    _git(temp_git_repo, "add", "b.ts")
    (temp_git_repo / "c.ts").write_text("export const c = 3;\n")
    return temp_git_repo


@pytest.fixture
def sample_config() -> dict:
    """Provide a sample configuration for testing."""
    cfg = default_config()
    cfg["recent_repos"] = ["/work/project"]
    cfg["base_branches"] = {"/work/project": "develop"}
    cfg["git_spice_executable"] = "/nonexistent/gs"
    return cfg


@pytest.fixture
def config_file(temp_dir: Path, sample_config: dict) -> Path:
    """Create a temporary config file for testing."""
    import json

    config_path = temp_dir / "config.json"
    config_path.write_text(json.dumps(sample_config, indent=2))
    return config_path
