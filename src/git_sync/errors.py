"""Error taxonomy for repository synchronization."""

from __future__ import annotations


class GitSyncError(Exception):
    """Base class for all git-sync errors."""


class ConfigError(GitSyncError, ValueError):
    """Configuration rejected before any I/O takes place."""


class RepositoryConfigNameEmptyError(ConfigError):
    def __init__(self) -> None:
        super().__init__("repository config name is empty")


class RepositoryConfigExistsError(ConfigError):
    def __init__(self, name: str) -> None:
        super().__init__(f"repository config {name!r} name already exists")
        self.name = name


class RepositoryConfigAddressEmptyError(ConfigError):
    def __init__(self) -> None:
        super().__init__("repository config address is empty")


class RepositoryConfigAddressUnsupportedError(ConfigError):
    def __init__(self, address: str) -> None:
        super().__init__(f"repository config address {address!r} is unsupported")
        self.address = address


class SyncError(GitSyncError):
    """A single update attempt failed."""


class CredentialError(SyncError):
    """Transport credentials could not be loaded."""


class RepositoryNotFoundError(GitSyncError, KeyError):
    """Lookup of an unmanaged repository name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"repository {name!r} not found")
        self.name = name

    def __str__(self) -> str:
        return str(self.args[0])
