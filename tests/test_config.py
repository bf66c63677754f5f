"""Tests for oauthdesk.config -- XDG paths, atomic writes, precedence, credentials."""

from __future__ import annotations

import json
import os
import stat
from pathlib import Path
from unittest.mock import patch

import pytest

from oauthdesk.config import (
    _atomic_write,
    get_config_dir,
    get_data_dir,
    global_config_path,
    load_global_config,
    resolve_config,
    resolve_credential,
    save_global_config,
    set_config_value,
)
from oauthdesk.exceptions import ConfigurationError
from oauthdesk.models import ClientConfig, GlobalConfig, LoginConfig


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestPaths:
    def test_config_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("oauthdesk.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_config_dir()
        assert result == tmp_path / ".config" / "oauthdesk"
        assert result.is_dir()

    def test_data_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("oauthdesk.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
        assert get_data_dir() == tmp_path / "data" / "oauthdesk"

    def test_fallback_dirs(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("oauthdesk.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_config_dir() == tmp_path / ".oauthdesk"
        assert get_data_dir() == tmp_path / ".oauthdesk" / "logs"

    def test_global_config_path(self, isolated_config: Path) -> None:
        assert global_config_path() == isolated_config / "config" / "oauthdesk" / "config.json"


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_writes_content_with_owner_only_mode(self, tmp_path: Path) -> None:
        target = tmp_path / "nested" / "file.json"
        _atomic_write(target, '{"a": 1}')

        assert target.read_text() == '{"a": 1}'
        assert stat.S_IMODE(os.stat(target).st_mode) == 0o600

    def test_failure_leaves_original_and_no_temp_file(self, tmp_path: Path) -> None:
        target = tmp_path / "file.json"
        target.write_text("original")

        with patch("oauthdesk.config.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                _atomic_write(target, "new")

        assert target.read_text() == "original"
        assert [p.name for p in tmp_path.iterdir()] == ["file.json"]


# ---------------------------------------------------------------------------
# Global config
# ---------------------------------------------------------------------------


class TestGlobalConfig:
    def test_missing_file_gives_defaults(self, isolated_config: Path) -> None:
        config = load_global_config()
        assert config == GlobalConfig()
        assert config.request.timeout == 30.0
        assert config.login.redirect_timeout is None
        assert config.login.max_workers == 4

    def test_round_trip(self, isolated_config: Path) -> None:
        config = GlobalConfig(
            login=LoginConfig(redirect_timeout=60),
            clients={"github": ClientConfig(client_id_source="env:GH_ID")},
        )
        save_global_config(config)
        assert load_global_config() == config

    def test_invalid_json(self, isolated_config: Path) -> None:
        path = global_config_path()
        path.write_text("{not json")
        with pytest.raises(ConfigurationError, match="Invalid global config"):
            load_global_config()

    def test_invalid_values(self, isolated_config: Path) -> None:
        global_config_path().write_text(json.dumps({"login": {"max_workers": 0}}))
        with pytest.raises(ConfigurationError):
            load_global_config()


class TestSetConfigValue:
    def test_sets_typed_value(self) -> None:
        updated = set_config_value(GlobalConfig(), "login.redirect_timeout", "120")
        assert updated.login.redirect_timeout == 120.0

    def test_null_clears_value(self) -> None:
        config = GlobalConfig(login=LoginConfig(redirect_timeout=5))
        assert set_config_value(config, "login.redirect_timeout", "null").login.redirect_timeout is None

    def test_creates_client_section(self) -> None:
        updated = set_config_value(GlobalConfig(), "clients.github.client_id_source", "env:GH_ID")
        assert updated.clients["github"].client_id_source == "env:GH_ID"

    def test_plain_string_value(self) -> None:
        updated = set_config_value(
            GlobalConfig(), "clients.pingcode.redirect_uri", "http://127.0.0.1:9/cb"
        )
        assert updated.clients["pingcode"].redirect_uri == "http://127.0.0.1:9/cb"

    def test_invalid_value_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="login.max_workers"):
            set_config_value(GlobalConfig(), "login.max_workers", "0")

    def test_non_section_parent_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="not a section"):
            set_config_value(GlobalConfig(), "request.timeout.seconds", "3")

    def test_empty_key_raises(self) -> None:
        with pytest.raises(ConfigurationError):
            set_config_value(GlobalConfig(), "", "1")

    def test_original_is_unchanged(self) -> None:
        config = GlobalConfig()
        set_config_value(config, "request.timeout", "5")
        assert config.request.timeout == 30.0


# ---------------------------------------------------------------------------
# Precedence resolution
# ---------------------------------------------------------------------------


class TestResolveConfig:
    def test_defaults(self, isolated_config: Path) -> None:
        assert resolve_config() == GlobalConfig()

    def test_file_then_env_then_cli(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        save_global_config(GlobalConfig(login=LoginConfig(redirect_timeout=10, max_workers=2)))
        assert resolve_config().login.redirect_timeout == 10

        monkeypatch.setenv("OAUTHDESK_REDIRECT_TIMEOUT", "20")
        monkeypatch.setenv("OAUTHDESK_MAX_WORKERS", "6")
        monkeypatch.setenv("OAUTHDESK_TIMEOUT", "7.5")
        config = resolve_config()
        assert config.login.redirect_timeout == 20
        assert config.login.max_workers == 6
        assert config.request.timeout == 7.5

        config = resolve_config(cli_redirect_timeout=30, cli_max_workers=1, cli_timeout=2)
        assert config.login.redirect_timeout == 30
        assert config.login.max_workers == 1
        assert config.request.timeout == 2

    def test_bad_env_number(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OAUTHDESK_MAX_WORKERS", "many")
        with pytest.raises(ConfigurationError, match="OAUTHDESK_MAX_WORKERS"):
            resolve_config()

    def test_out_of_range_override(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigurationError):
            resolve_config(cli_redirect_timeout=-1)


# ---------------------------------------------------------------------------
# Credential sources
# ---------------------------------------------------------------------------


class TestResolveCredential:
    def test_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GH_CLIENT_ID", "Iv1.abc")
        assert resolve_credential("env:GH_CLIENT_ID") == "Iv1.abc"

    def test_env_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NOPE_NOT_SET", raising=False)
        with pytest.raises(ConfigurationError, match="NOPE_NOT_SET"):
            resolve_credential("env:NOPE_NOT_SET")

    def test_file(self, tmp_path: Path) -> None:
        secret = tmp_path / "secret.txt"
        secret.write_text("  s3cret\n")
        assert resolve_credential(f"file:{secret}") == "s3cret"

    def test_file_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            resolve_credential(f"file:{tmp_path / 'absent'}")

    def test_value(self) -> None:
        assert resolve_credential("value:plain-id") == "plain-id"

    def test_prompt_requires_tty(self) -> None:
        with patch("oauthdesk.config.sys.stdin") as mock_stdin:
            mock_stdin.isatty.return_value = False
            with pytest.raises(ConfigurationError, match="not a TTY"):
                resolve_credential("prompt")

    def test_prompt_reads_hidden_input(self) -> None:
        with patch("oauthdesk.config.sys.stdin") as mock_stdin, patch(
            "oauthdesk.config.getpass.getpass", return_value="typed"
        ):
            mock_stdin.isatty.return_value = True
            assert resolve_credential("prompt") == "typed"

    def test_unknown_format(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown credential source"):
            resolve_credential("Iv1.abc")
