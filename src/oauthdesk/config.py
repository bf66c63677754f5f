"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for oauthdesk:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.oauthdesk/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Global config** -- A single :class:`~oauthdesk.models.GlobalConfig`
  JSON file storing HTTP settings, login settings, custom provider profiles
  and client registrations.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables and the global config into the effective
  configuration.
* **Credential resolution** -- :func:`resolve_credential` reads client ids
  and secrets from env vars, files, interactive prompts, or literals.

Tokens are never written here; persisting them is the host's business.
All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import getpass
import json
import logging
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from oauthdesk.exceptions import ConfigurationError
from oauthdesk.models import GlobalConfig

logger = logging.getLogger(__name__)

_APP_NAME = "oauthdesk"
_CONFIG_FILENAME = "config.json"

ENV_TIMEOUT = "OAUTHDESK_TIMEOUT"
ENV_REDIRECT_TIMEOUT = "OAUTHDESK_REDIRECT_TIMEOUT"
ENV_MAX_WORKERS = "OAUTHDESK_MAX_WORKERS"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform follows the XDG Base Directory layout (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/oauthdesk/`` (default ``~/.config/oauthdesk/``).
    On macOS/Windows: ``~/.oauthdesk/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_CONFIG_HOME", (".config",))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/oauthdesk/`` (default ``~/.local/share/oauthdesk/``).
    On macOS/Windows: ``~/.oauthdesk/logs/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_DATA_HOME", (".local", "share"))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. The file may hold
    client registrations, so it is created with owner-only permissions.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.chmod(tmp_path, 0o600)
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the config directory.

    Returns:
        The deserialised :class:`~oauthdesk.models.GlobalConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigurationError: If the file exists but contains invalid JSON or
            fails Pydantic validation.
    """
    path = global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk.

    Args:
        config: The configuration to save.
    """
    data = config.model_dump(mode="json")
    _atomic_write(global_config_path(), json.dumps(data, indent=2) + "\n")
    logger.debug("Saved global config to %s", global_config_path())


def set_config_value(config: GlobalConfig, key: str, value: str) -> GlobalConfig:
    """Return a copy of *config* with the dotted *key* set to *value*.

    ``value`` is parsed as JSON when possible (so ``30``, ``true`` and
    ``null`` keep their types) and used as a plain string otherwise. The
    result is re-validated, so type errors surface here rather than at the
    next load.

    Args:
        config: The configuration to update.
        key: Dotted path such as ``login.redirect_timeout`` or
            ``clients.github.redirect_uri``.
        value: The new value as typed on the command line.

    Raises:
        ConfigurationError: If the key is empty or the updated config fails
            validation.
    """
    parts = [p for p in key.split(".") if p]
    if not parts:
        raise ConfigurationError("Config key must not be empty")

    try:
        parsed: Any = json.loads(value)
    except json.JSONDecodeError:
        parsed = value

    data = config.model_dump(mode="json")
    node = data
    for part in parts[:-1]:
        child = node.get(part)
        if child is None:
            child = {}
            node[part] = child
        if not isinstance(child, dict):
            raise ConfigurationError(f"Config key '{key}': '{part}' is not a section")
        node = child
    node[parts[-1]] = parsed

    try:
        return GlobalConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid value for '{key}': {exc}") from exc


# --- Precedence resolution ---


def _env_number(name: str, cast: type) -> Any:
    raw = os.environ.get(name)
    if not raw:
        return None
    try:
        return cast(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Environment variable {name} must be a number, got {raw!r}") from exc


def resolve_config(
    cli_timeout: Optional[float] = None,
    cli_redirect_timeout: Optional[float] = None,
    cli_max_workers: Optional[int] = None,
) -> GlobalConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_timeout``, ``cli_redirect_timeout``, ``cli_max_workers``)
        2. Environment variables (``OAUTHDESK_TIMEOUT``,
           ``OAUTHDESK_REDIRECT_TIMEOUT``, ``OAUTHDESK_MAX_WORKERS``)
        3. User config (``~/.config/oauthdesk/config.json``)
        4. Defaults

    Returns:
        The effective :class:`~oauthdesk.models.GlobalConfig`.

    Raises:
        ConfigurationError: If the config file or an environment override
            is invalid.
    """
    # 4 + 3. Load base global config (fills in defaults automatically)
    config = load_global_config()
    data = config.model_dump(mode="json")

    # 2. Environment variables
    env_timeout = _env_number(ENV_TIMEOUT, float)
    env_redirect_timeout = _env_number(ENV_REDIRECT_TIMEOUT, float)
    env_max_workers = _env_number(ENV_MAX_WORKERS, int)

    # 1. CLI flags win over the environment
    timeout = cli_timeout if cli_timeout is not None else env_timeout
    redirect_timeout = (
        cli_redirect_timeout if cli_redirect_timeout is not None else env_redirect_timeout
    )
    max_workers = cli_max_workers if cli_max_workers is not None else env_max_workers

    if timeout is not None:
        data["request"]["timeout"] = timeout
    if redirect_timeout is not None:
        data["login"]["redirect_timeout"] = redirect_timeout
    if max_workers is not None:
        data["login"]["max_workers"] = max_workers

    try:
        return GlobalConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration override: {exc}") from exc


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a client id or secret from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"prompt"`` -- prompts user interactively (requires a TTY)
        - ``"value:LITERAL"`` -- the literal text after the prefix

    Args:
        source: The source descriptor string.

    Returns:
        The resolved credential string.

    Raises:
        ConfigurationError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigurationError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        file_path = source[5:]
        path = Path(file_path).expanduser()
        if not path.is_file():
            raise ConfigurationError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigurationError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigurationError(
                "Cannot prompt for credentials: stdin is not a TTY (source: prompt)"
            )
        return getpass.getpass("Enter credential: ")

    if source.startswith("value:"):
        return source[6:]

    raise ConfigurationError(f"Unknown credential source format: {source}")
