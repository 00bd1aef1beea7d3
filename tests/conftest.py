"""Shared test fixtures for git-sync."""

from __future__ import annotations

from pathlib import Path

import pytest
from git import Actor, Repo

from git_sync.config import RepositoryConfig

AUTHOR = Actor("Test Author", "author@example.com")


class Upstream:
    """A bare repository plus a seed clone used to push new commits."""

    def __init__(self, root: Path) -> None:
        self.path = root / "upstream.git"
        self.bare = Repo.init(self.path, bare=True, initial_branch="main")
        self.seed = Repo.init(root / "seed", initial_branch="main")
        self.seed.create_remote("origin", str(self.path))

    @property
    def address(self) -> str:
        return str(self.path)

    def commit(self, filename: str, content: str, message: str | None = None) -> str:
        """Commit a file on main and push it upstream. Returns the commit SHA."""
        target = Path(self.seed.working_tree_dir) / filename
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
        self.seed.index.add([filename])
        commit = self.seed.index.commit(message or f"update {filename}", author=AUTHOR, committer=AUTHOR)
        self.seed.git.push("origin", "main")
        return commit.hexsha


@pytest.fixture
def upstream(tmp_path: Path) -> Upstream:
    """Bare upstream repository with one commit on main."""
    up = Upstream(tmp_path / "remote")
    up.commit("README.md", "# hello\n", "initial commit")
    return up


@pytest.fixture
def base_dir(tmp_path: Path) -> Path:
    """Directory that holds working copies (not created yet)."""
    return tmp_path / "checkouts"


@pytest.fixture
def repo_config(upstream: Upstream, base_dir: Path) -> RepositoryConfig:
    """Config for a repository tracking the upstream fixture."""
    return RepositoryConfig(name="site", address=upstream.address, base_dir=str(base_dir))
