"""Authentication resolution for git transports.

Credentials are selected once from a repository's configuration into one of
four variants, then rendered into environment variables for the ``git``
child process. Nothing is written to ``.git/config`` or embedded in the
remote URL.
"""

from __future__ import annotations

import base64
import logging
import os
import shlex
import stat
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from git_sync.config import Transport, expand_home
from git_sync.errors import CredentialError

if TYPE_CHECKING:
    from git_sync.config import RepositoryConfig

logger = logging.getLogger(__name__)

DEFAULT_SSH_USER = "git"
ASKPASS_SECRET_ENV = "GIT_SYNC_ASKPASS_SECRET"

_PRIVATE_KEY_MARKER = b"PRIVATE KEY-----"
_ASKPASS_SCRIPT = f'#!/bin/sh\nprintf \'%s\\n\' "${ASKPASS_SECRET_ENV}"\n'


@dataclass(frozen=True)
class NoAuth:
    """Anonymous access."""


@dataclass(frozen=True)
class BasicAuth:
    """HTTP(S) basic authentication."""

    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class KeyAuth:
    """SSH public key authentication."""

    user: str
    key_path: Path
    passphrase: str = field(default="", repr=False)
    insecure_host_check: bool = False


@dataclass(frozen=True)
class PasswordAuth:
    """SSH password authentication."""

    username: str
    password: str = field(repr=False)
    insecure_host_check: bool = False


Credentials = NoAuth | BasicAuth | KeyAuth | PasswordAuth


def ssh_user_from_address(address: str) -> str:
    """Return the user portion of an ssh address, or an empty string."""
    rest = address.split("://", 1)[1] if "://" in address else address
    authority = rest.split("/", 1)[0] if "://" in address else rest
    if "@" not in authority:
        return ""
    userinfo = authority.split("@", 1)[0]
    return userinfo.split(":", 1)[0]


def load_private_key(path: Path) -> bytes:
    """Read a private key file, failing on unreadable or malformed keys."""
    try:
        data = path.read_bytes()
    except OSError as e:
        raise CredentialError(f"failed reading private key {path}: {e.strerror or e}") from e
    if _PRIVATE_KEY_MARKER not in data:
        raise CredentialError(f"malformed private key {path}")
    return data


def resolve_auth(config: RepositoryConfig) -> Credentials:
    """Select the credential variant for a repository's transport."""
    auth = config.auth
    if auth is None:
        return NoAuth()

    username = auth.username
    password = auth.password.get_secret_value()

    if config.transport is Transport.HTTP:
        if username:
            return BasicAuth(username=username, password=password)
        return NoAuth()

    if config.transport is Transport.SSH:
        key_path = expand_home(auth.key_path)
        if key_path:
            user = ssh_user_from_address(config.address) or username or DEFAULT_SSH_USER
            path = Path(key_path)
            load_private_key(path)
            return KeyAuth(
                user=user,
                key_path=path,
                passphrase=auth.key_passphrase.get_secret_value(),
                insecure_host_check=auth.strict_host_key_checking_disabled,
            )
        if username:
            return PasswordAuth(
                username=username,
                password=password,
                insecure_host_check=auth.strict_host_key_checking_disabled,
            )

    return NoAuth()


def _ssh_command(options: list[str], insecure_host_check: bool) -> str:
    cmd = ["ssh", *options]
    if insecure_host_check:
        cmd += ["-o", "StrictHostKeyChecking=no", "-o", "UserKnownHostsFile=/dev/null"]
    return shlex.join(cmd)


@contextmanager
def _askpass(secret: str) -> Iterator[dict[str, str]]:
    """Provide an SSH_ASKPASS helper that answers prompts with ``secret``."""
    with tempfile.TemporaryDirectory(prefix="git-sync-") as tmpdir:
        script = Path(tmpdir) / "askpass.sh"
        script.write_text(_ASKPASS_SCRIPT, encoding="utf-8")
        script.chmod(stat.S_IRWXU)
        yield {
            "SSH_ASKPASS": str(script),
            "SSH_ASKPASS_REQUIRE": "force",
            "DISPLAY": os.environ.get("DISPLAY", ":0"),
            ASKPASS_SECRET_ENV: secret,
        }


@contextmanager
def git_environment(credentials: Credentials) -> Iterator[dict[str, str]]:
    """Yield the environment overrides for one git invocation."""
    env = {"GIT_TERMINAL_PROMPT": "0"}

    match credentials:
        case BasicAuth(username=username, password=password):
            token = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
            env.update(
                {
                    "GIT_CONFIG_COUNT": "1",
                    "GIT_CONFIG_KEY_0": "http.extraHeader",
                    "GIT_CONFIG_VALUE_0": f"Authorization: Basic {token}",
                }
            )
            yield env
        case KeyAuth():
            options = ["-i", str(credentials.key_path), "-o", "IdentitiesOnly=yes", "-l", credentials.user]
            env["GIT_SSH_COMMAND"] = _ssh_command(options, credentials.insecure_host_check)
            if credentials.passphrase:
                with _askpass(credentials.passphrase) as extra:
                    yield {**env, **extra}
            else:
                yield env
        case PasswordAuth():
            options = [
                "-o",
                "PreferredAuthentications=password,keyboard-interactive",
                "-o",
                "PubkeyAuthentication=no",
                "-l",
                credentials.username,
            ]
            env["GIT_SSH_COMMAND"] = _ssh_command(options, credentials.insecure_host_check)
            with _askpass(credentials.password) as extra:
                yield {**env, **extra}
        case _:
            yield env
