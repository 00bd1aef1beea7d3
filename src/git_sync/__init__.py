"""Keep local working copies of remote git repositories in sync with upstream."""

from git_sync.config import AuthConfig, Config, ExecConfig, RepositoryConfig, ServerConfig, WebhookConfig
from git_sync.endpoint import TriggerEndpoint, TriggerResponse, TriggerServer
from git_sync.manager import RepoManager
from git_sync.repository import Repository
from git_sync.scheduler import RepoScheduler

__version__ = "0.1.0"

__all__ = [
    "AuthConfig",
    "Config",
    "ExecConfig",
    "RepoManager",
    "RepoScheduler",
    "Repository",
    "RepositoryConfig",
    "ServerConfig",
    "TriggerEndpoint",
    "TriggerResponse",
    "TriggerServer",
    "WebhookConfig",
    "__version__",
]
