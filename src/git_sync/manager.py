"""Repository manager: provisioning, scheduling and lookup."""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

from git_sync.errors import RepositoryConfigExistsError, RepositoryConfigNameEmptyError, RepositoryNotFoundError
from git_sync.repository import Repository
from git_sync.scheduler import RepoScheduler

if TYPE_CHECKING:
    from git_sync.config import Config, RepositoryConfig

logger = logging.getLogger(__name__)

# Configure logging to stderr
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


class RepoManager:
    """Owns the Repository instances of one process.

    Orchestrates:
    - Validation and registration of every configured repository
    - One synchronous initial update per repository
    - A scheduler for each repository with a positive update interval

    The registry is only written during provisioning and is read-only
    afterwards.
    """

    def __init__(self, config: Config) -> None:
        """Initialize an empty manager.

        Args:
            config: Validated configuration to provision from.
        """
        self._config = config
        self._repos: dict[str, Repository] = {}
        self._schedulers: dict[str, RepoScheduler] = {}

    @classmethod
    async def create(cls, config: Config) -> RepoManager:
        """Build a manager and provision every configured repository."""
        manager = cls(config)
        await manager.provision()
        return manager

    def register(self, rc: RepositoryConfig) -> Repository:
        """Validate a repository config and add it to the registry."""
        if not rc.name:
            raise RepositoryConfigNameEmptyError
        if rc.name in self._repos:
            raise RepositoryConfigExistsError(rc.name)
        rc.validate_config()

        repo = Repository(rc)
        self._repos[rc.name] = repo
        return repo

    async def provision(self) -> None:
        """Register, sync and schedule repositories in declared order.

        Any validation or initial sync failure aborts provisioning as a whole
        and stops the schedulers started so far.
        """
        try:
            for rc in self._config.repositories:
                repo = self.register(rc)
                try:
                    await repo.update()
                except Exception:
                    logger.exception("Failed managing repo %s", rc.name)
                    raise
                logger.info("Registered and synced repo %s", rc.name)

                if rc.update_interval > 0:
                    scheduler = RepoScheduler(repo)
                    await scheduler.start()
                    self._schedulers[rc.name] = scheduler
        except Exception:
            await self.stop()
            raise

    def lookup(self, name: str) -> Repository:
        """Return the named repository or raise RepositoryNotFoundError."""
        repo = self._repos.get(name)
        if repo is None:
            raise RepositoryNotFoundError(name)
        return repo

    def names(self) -> list[str]:
        return list(self._repos)

    def scheduled(self) -> list[str]:
        """Names of repositories with a running auto-update timer."""
        return [name for name, s in self._schedulers.items() if s.running]

    def status(self) -> list[dict[str, Any]]:
        """Per-repository sync state."""
        return [
            {
                "name": repo.name,
                "path": str(repo.path),
                "last_updated": repo.last_updated.isoformat() if repo.last_updated else None,
                "last_commit": repo.last_commit,
                "updating": repo.updating,
                "auto_update": repo.name in self._schedulers,
            }
            for repo in self._repos.values()
        ]

    async def start(self) -> None:
        """Provisioning already performed the initial sync and started the timers."""
        logger.debug("Repo manager started with %d repos", len(self._repos))

    async def stop(self) -> None:
        """Stop every auto-update timer."""
        for scheduler in self._schedulers.values():
            await scheduler.stop()
        self._schedulers.clear()
        logger.debug("Repo manager stopped")
