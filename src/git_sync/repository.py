"""Managed working copy and its clone-or-pull update."""

from __future__ import annotations

import asyncio
import logging
import re
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from git import Repo

from git_sync.auth import git_environment, resolve_auth
from git_sync.config import expand_home
from git_sync.hooks import run_post_update_actions

if TYPE_CHECKING:
    from git_sync.config import RepositoryConfig

logger = logging.getLogger(__name__)

DEFAULT_REMOTE = "origin"

_USERINFO_PASSWORD_RE = re.compile(r"(://[^/@:]+):[^/]*@")


def redact_address(address: str) -> str:
    """Mask a password embedded in an address's userinfo."""
    return _USERINFO_PASSWORD_RE.sub(r"\1:***@", address)


class Repository:
    """One managed working copy.

    ``update`` is the only entry point that touches the working copy. A
    non-blocking lock is the sole gate: a caller that finds an update in
    flight returns immediately without doing any I/O.
    """

    def __init__(self, config: RepositoryConfig) -> None:
        self.config = config
        self.last_updated: datetime | None = None
        self.last_commit: str | None = None
        self._guard = threading.Lock()

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def updating(self) -> bool:
        """Whether an update is currently in flight."""
        return self._guard.locked()

    @property
    def path(self) -> Path:
        """Absolute location of the working copy."""
        return self.config.repo_dir

    async def update(self) -> bool:
        """Bring the working copy in sync with upstream.

        Returns True when a synchronization was performed and False when it was
        skipped because another update was already running. Clone, pull and
        filesystem errors propagate; post-update action failures do not.
        """
        if not self._guard.acquire(blocking=False):
            logger.debug("Update of %s already in progress, skipping", self.name)
            return False

        try:
            work = asyncio.ensure_future(self._run())
        except BaseException:
            self._guard.release()
            raise
        # The worker thread cannot be interrupted, so the guard is held until
        # the work itself finishes, even when the caller is cancelled.
        work.add_done_callback(self._release)
        await asyncio.shield(work)
        return True

    async def _run(self) -> None:
        await asyncio.to_thread(self._sync)
        if self.config.post_update_actions:
            await run_post_update_actions(self.name, self.config.post_update_actions)

    def _release(self, work: asyncio.Future[None]) -> None:
        self._guard.release()
        if not work.cancelled() and work.exception() is not None:
            logger.debug("Update of %s finished with %r", self.name, work.exception())

    def _clone_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {}
        if self.config.depth > 0:
            options["depth"] = self.config.depth
        if self.config.branch:
            options["branch"] = self.config.branch
            options["single_branch"] = True
        return options

    def _pull_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {"ff_only": True}
        if self.config.depth > 0:
            options["depth"] = self.config.depth
        return options

    def clone(self, repo_dir: Path, env: dict[str, str]) -> None:
        logger.info("Cloning %s into %s", redact_address(self.config.address), repo_dir)
        Repo.clone_from(self.config.address, repo_dir, env=env, **self._clone_options())

    def pull(self, repo: Repo, env: dict[str, str]) -> None:
        remote = repo.remote(DEFAULT_REMOTE)
        with repo.git.custom_environment(**env):
            remote.pull(self.config.branch or None, **self._pull_options())

    def _sync(self) -> None:
        base_dir = Path(expand_home(self.config.base_dir))
        if not base_dir.exists():
            base_dir.mkdir(mode=0o700, parents=True, exist_ok=True)

        repo_dir = base_dir / self.config.name
        credentials = resolve_auth(self.config)

        with git_environment(credentials) as env:
            if not repo_dir.exists():
                self.clone(repo_dir, env)

            repo = Repo(repo_dir.resolve())
            try:
                before = repo.head.commit.hexsha
                self.pull(repo, env)
                commit = repo.head.commit.hexsha
            finally:
                repo.close()

        if commit == before:
            logger.debug("Repository %s is already up to date", self.name)
        logger.info("Repository %s at commit %s", self.name, commit)

        self.last_commit = commit
        self.last_updated = datetime.now(tz=UTC)
