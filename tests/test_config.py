"""Tests for the configuration model."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from git_sync.config import (
    AuthConfig,
    Config,
    RepositoryConfig,
    ServerConfig,
    Transport,
    WebhookConfig,
    WebhookKind,
    expand_home,
    transport_for,
)
from git_sync.errors import (
    ConfigError,
    RepositoryConfigAddressEmptyError,
    RepositoryConfigAddressUnsupportedError,
    RepositoryConfigExistsError,
    RepositoryConfigNameEmptyError,
)


class TestAddRepository:
    """Test Config.add_repository validation."""

    def test_adds_valid_repository(self) -> None:
        """A valid repository is appended."""
        cfg = Config()
        cfg.add_repository(RepositoryConfig(name="site", address="https://example.com/org/site.git"))
        assert [rc.name for rc in cfg.repositories] == ["site"]

    def test_name_is_trimmed(self) -> None:
        """Surrounding whitespace is removed from names."""
        rc = RepositoryConfig(name="  site \t", address="https://example.com/org/site.git")
        assert rc.name == "site"

    def test_empty_name_rejected(self) -> None:
        """Blank names fail with a name-empty error."""
        cfg = Config()
        with pytest.raises(RepositoryConfigNameEmptyError, match="name is empty"):
            cfg.add_repository(RepositoryConfig(name="   ", address="https://example.com/a.git"))
        assert cfg.repositories == []

    def test_duplicate_name_rejected(self) -> None:
        """A second entry with the same name fails and leaves the set unchanged."""
        cfg = Config()
        first = RepositoryConfig(name="site", address="https://example.com/org/site.git")
        cfg.add_repository(first)

        with pytest.raises(RepositoryConfigExistsError, match="'site' name already exists"):
            cfg.add_repository(RepositoryConfig(name="site", address="git@example.com:org/other.git"))
        assert cfg.repositories == [first]

    def test_empty_address_rejected(self) -> None:
        """Missing address fails validation."""
        with pytest.raises(RepositoryConfigAddressEmptyError):
            Config().add_repository(RepositoryConfig(name="site"))

    @pytest.mark.parametrize(
        "address",
        ["https://example.com/org/site", "ftp://example.com/org/site.git", "git@example.com:org/site.tar"],
    )
    def test_unsupported_address_rejected(self, address: str) -> None:
        """Addresses without the .git suffix or with an unknown scheme fail."""
        with pytest.raises(RepositoryConfigAddressUnsupportedError):
            Config().add_repository(RepositoryConfig(name="site", address=address))

    def test_config_errors_are_value_errors(self) -> None:
        """Config errors can be caught as ValueError."""
        assert issubclass(RepositoryConfigExistsError, ConfigError)
        assert issubclass(ConfigError, ValueError)


class TestTransport:
    """Test transport derivation from addresses."""

    @pytest.mark.parametrize(
        ("address", "expected"),
        [
            ("https://github.com/org/repo.git", Transport.HTTP),
            ("http://git.local/org/repo.git", Transport.HTTP),
            ("ssh://git@github.com/org/repo.git", Transport.SSH),
            ("git@github.com:org/repo.git", Transport.SSH),
            ("/srv/git/repo.git", Transport.SSH),
        ],
    )
    def test_transport_for(self, address: str, expected: Transport) -> None:
        """Known schemes map to their transport family."""
        assert transport_for(address) is expected

    def test_unknown_scheme(self) -> None:
        """Unknown schemes have no transport."""
        assert transport_for("ftp://example.com/repo.git") is None

    def test_transport_cached_on_config(self) -> None:
        """The transport is derived once and stored on the config."""
        rc = RepositoryConfig(name="site", address="https://github.com/org/repo.git")
        assert rc.transport is Transport.HTTP
        assert rc.__dict__["transport"] is Transport.HTTP


class TestModels:
    """Test configuration model details."""

    def test_expand_home(self) -> None:
        """A leading tilde expands to the home directory."""
        assert expand_home("~/repos") == str(Path.home() / "repos")
        assert expand_home("/srv/repos") == "/srv/repos"
        assert expand_home("") == ""

    def test_repo_dir_joins_base_dir_and_name(self, tmp_path: Path) -> None:
        """The working copy lives at base_dir/name."""
        rc = RepositoryConfig(name="site", address="/x/site.git", base_dir=str(tmp_path))
        assert rc.repo_dir == tmp_path / "site"

    def test_signature_webhook_kind_derived_from_header(self) -> None:
        """The GitHub signature header selects the signature check."""
        webhook = WebhookConfig(header="x-hub-signature-256", secret="s3cret")
        assert webhook.kind is WebhookKind.SIGNATURE

    def test_other_header_is_shared_secret(self) -> None:
        """Any other header compares the secret verbatim."""
        webhook = WebhookConfig(header="X-Gitlab-Token", secret="s3cret")
        assert webhook.kind is WebhookKind.SHARED_SECRET

    def test_explicit_kind_wins(self) -> None:
        """An explicit kind is not re-derived from the header."""
        webhook = WebhookConfig(header="X-Signature", secret="s3cret", kind="signature")
        assert webhook.kind is WebhookKind.SIGNATURE

    def test_secrets_hidden_in_repr(self) -> None:
        """Passwords, passphrases and webhook secrets never show in repr."""
        auth = AuthConfig(username="bot", password="hunter2", key_passphrase="open sesame")
        webhook = WebhookConfig(header="X-Token", secret="t0ken")
        assert "hunter2" not in repr(auth)
        assert "open sesame" not in repr(auth)
        assert "t0ken" not in repr(webhook)

    def test_post_pull_exec_alias(self) -> None:
        """post_pull_exec is accepted as an alias of post_update_actions."""
        rc = RepositoryConfig.model_validate(
            {
                "name": "site",
                "address": "/x/site.git",
                "post_pull_exec": [{"name": "notify", "command": "/bin/true", "args": ["a"]}],
            }
        )
        assert rc.post_update_actions[0].command == "/bin/true"
        assert rc.post_update_actions[0].args == ["a"]

    def test_negative_interval_rejected(self) -> None:
        """Intervals and depths cannot be negative."""
        with pytest.raises(ValueError):
            RepositoryConfig(name="site", address="/x/site.git", update_interval=-1)

    @pytest.mark.parametrize("prefix", ["", "/", "  ", "//"])
    def test_root_path_prefix_rejected(self, prefix: str) -> None:
        """A root prefix would put triggers beside /health and /status."""
        with pytest.raises(ValueError):
            ServerConfig(path_prefix=prefix)

    def test_path_prefix_normalized(self) -> None:
        """The prefix gains a leading slash and loses trailing ones."""
        assert ServerConfig(path_prefix="hooks/").path_prefix == "/hooks"
        assert ServerConfig().path_prefix == "/update"


class TestLoading:
    """Test loading configuration documents."""

    def test_from_dict(self) -> None:
        """Repositories and server settings load from a dict."""
        cfg = Config.from_dict(
            {
                "server": {"port": 8080},
                "repositories": [
                    {
                        "name": "site",
                        "address": "https://github.com/org/site.git",
                        "branch": "main",
                        "depth": 1,
                        "update_interval": 60,
                        "auth": {"username": "bot", "password": "pw"},
                        "webhooks": [{"name": "github", "header": "X-Hub-Signature-256", "secret": "s"}],
                    }
                ],
            }
        )
        assert cfg.server.port == 8080
        rc = cfg.get("site")
        assert rc is not None
        assert rc.branch == "main"
        assert rc.depth == 1
        assert rc.auth is not None and rc.auth.username == "bot"
        assert rc.webhooks[0].kind is WebhookKind.SIGNATURE

    def test_from_dict_rejects_duplicates(self) -> None:
        """Loading goes through add_repository."""
        entry = {"name": "site", "address": "https://github.com/org/site.git"}
        with pytest.raises(RepositoryConfigExistsError):
            Config.from_dict({"repositories": [entry, entry]})

    def test_from_file(self, tmp_path: Path) -> None:
        """A JSON document loads into a Config."""
        path = tmp_path / "git-sync.json"
        path.write_text(json.dumps({"repositories": [{"name": "a", "address": "git@h:o/a.git"}]}))
        cfg = Config.from_file(path)
        assert [rc.name for rc in cfg.repositories] == ["a"]
        assert cfg.server.path_prefix == "/update"

    def test_get_unknown(self) -> None:
        """Unknown names return None."""
        assert Config().get("nope") is None
