"""Configuration model for managed repositories."""

from __future__ import annotations

import json
import logging
import re
from enum import StrEnum
from functools import cached_property
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

from git_sync.errors import (
    RepositoryConfigAddressEmptyError,
    RepositoryConfigAddressUnsupportedError,
    RepositoryConfigExistsError,
    RepositoryConfigNameEmptyError,
)

logger = logging.getLogger(__name__)

REPOSITORY_SUFFIX = ".git"
SIGNATURE_HEADER = "X-Hub-Signature-256"

_SCHEME_RE = re.compile(r"^(?P<scheme>[A-Za-z][A-Za-z0-9+.-]*)://")
_HTTP_SCHEMES = {"http", "https"}
_SSH_SCHEMES = {"ssh", "git+ssh", "ssh+git"}


class Transport(StrEnum):
    """Transport family a repository address resolves to."""

    HTTP = "http"
    SSH = "ssh"


class WebhookKind(StrEnum):
    """How a webhook proves the authenticity of a trigger."""

    SIGNATURE = "signature"
    SHARED_SECRET = "shared_secret"


def expand_home(path: str) -> str:
    """Expand a leading ``~`` to the current user's home directory."""
    if not path or not path.startswith("~"):
        return path
    return str(Path(path).expanduser())


def transport_for(address: str) -> Transport | None:
    """Derive the transport from an address, or None when the scheme is unsupported.

    Addresses without a scheme (``git@host:org/repo.git`` or a local path) are
    handed to git's ssh-capable transport.
    """
    match = _SCHEME_RE.match(address)
    if match is None:
        return Transport.SSH
    scheme = match.group("scheme").lower()
    if scheme in _HTTP_SCHEMES:
        return Transport.HTTP
    if scheme in _SSH_SCHEMES:
        return Transport.SSH
    return None


class AuthConfig(BaseModel):
    """Transport credentials for one repository."""

    model_config = ConfigDict(frozen=True)

    username: str = Field(default="", description="Basic auth or SSH password user")
    password: SecretStr = Field(default=SecretStr(""), description="Password for username")
    key_path: str = Field(default="", description="Path to an SSH private key")
    key_passphrase: SecretStr = Field(default=SecretStr(""), description="Passphrase protecting the key")
    strict_host_key_checking_disabled: bool = Field(
        default=False, description="Accept any SSH host key (insecure)"
    )


class WebhookConfig(BaseModel):
    """A header that carries proof of authenticity for inbound triggers."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(default="", description="Webhook alias")
    header: str = Field(description="HTTP header carrying the proof")
    secret: SecretStr = Field(description="Shared secret or HMAC key")
    kind: WebhookKind = Field(description="Signature check or literal secret comparison")

    @model_validator(mode="before")
    @classmethod
    def _derive_kind(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("kind"):
            header = str(data.get("header", ""))
            kind = WebhookKind.SIGNATURE if header.lower() == SIGNATURE_HEADER.lower() else WebhookKind.SHARED_SECRET
            data = {**data, "kind": kind}
        return data


class ExecConfig(BaseModel):
    """An external command run after a successful update."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(default="", description="Action alias")
    command: str = Field(description="Path to the executable")
    args: list[str] = Field(default_factory=list, description="Ordered argument list")


class RepositoryConfig(BaseModel):
    """Identity and policy for one managed repository."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Unique repository alias")
    address: str = Field(default="", description="Remote URL ending in .git")
    base_dir: str = Field(default="~/.git-sync", description="Local root directory")
    branch: str = Field(default="", description="Branch to track, empty for the remote default")
    depth: int = Field(default=0, ge=0, description="Shallow clone depth, 0 for full history")
    update_interval: int = Field(default=0, ge=0, description="Auto-update interval in seconds, 0 disables")
    auth: AuthConfig | None = Field(default=None, description="Transport credentials")
    webhooks: list[WebhookConfig] = Field(default_factory=list, description="Trigger authentication")
    post_update_actions: list[ExecConfig] = Field(
        default_factory=list,
        validation_alias=AliasChoices("post_update_actions", "post_pull_exec"),
        description="Commands run after each successful update",
    )

    @field_validator("name", mode="before")
    @classmethod
    def _trim_name(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    def validate_config(self) -> None:
        """Check the name and address, raising a ConfigError subclass on failure."""
        if not self.name:
            raise RepositoryConfigNameEmptyError
        if not self.address:
            raise RepositoryConfigAddressEmptyError
        if not self.address.endswith(REPOSITORY_SUFFIX) or transport_for(self.address) is None:
            raise RepositoryConfigAddressUnsupportedError(self.address)

    @cached_property
    def transport(self) -> Transport:
        """Transport derived once from the address."""
        transport = transport_for(self.address)
        if transport is None:
            raise RepositoryConfigAddressUnsupportedError(self.address)
        return transport

    @property
    def repo_dir(self) -> Path:
        """Absolute location of the working copy."""
        return Path(expand_home(self.base_dir)).absolute() / self.name


class ServerConfig(BaseModel):
    """Listener for the inbound trigger endpoint."""

    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=9847, description="Port for the trigger server")
    path_prefix: str = Field(default="/update", description="Route prefix, followed by /{name}")

    @field_validator("path_prefix")
    @classmethod
    def _prefix_not_root(cls, value: str) -> str:
        # /health and /status would otherwise shadow repositories of the same name
        prefix = "/" + value.strip().strip("/")
        if prefix == "/":
            raise ValueError("path_prefix must not be empty or '/'")
        return prefix


class Config(BaseModel):
    """The full set of managed repositories."""

    repositories: list[RepositoryConfig] = Field(default_factory=list)
    server: ServerConfig = Field(default_factory=ServerConfig)

    def add_repository(self, rc: RepositoryConfig) -> None:
        """Validate and append a repository, rejecting duplicate names."""
        if not rc.name:
            raise RepositoryConfigNameEmptyError
        if any(existing.name == rc.name for existing in self.repositories):
            raise RepositoryConfigExistsError(rc.name)
        rc.validate_config()
        self.repositories.append(rc)

    def get(self, name: str) -> RepositoryConfig | None:
        for rc in self.repositories:
            if rc.name == name:
                return rc
        return None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        """Build a Config, registering each repository through add_repository."""
        cfg = cls(server=ServerConfig(**data.get("server", {})))
        for entry in data.get("repositories", []):
            cfg.add_repository(RepositoryConfig.model_validate(entry))
        return cfg

    @classmethod
    def from_file(cls, path: Path) -> Config:
        """Load configuration from a JSON document."""
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
        cfg = cls.from_dict(data)
        logger.info("Loaded %d repositories from %s", len(cfg.repositories), path)
        return cfg
