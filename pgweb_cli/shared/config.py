"""Configuration loading utilities for the pgweb client."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, MutableMapping

import yaml

from . import paths
from .exceptions import ConfigurationError

DEFAULT_SERVER_URL = "http://localhost:8081"
DEFAULT_API_PREFIX = "/api"
DEFAULT_TIMEOUT_SECONDS = 300.0
DEFAULT_ROWS_LIMIT = 100
DEFAULT_TAB = "rows"


@dataclass(frozen=True, slots=True)
class ServerSettings:
    """Location of the pgweb backend and per-call timeout."""

    url: str
    api_prefix: str
    timeout_seconds: float

    @property
    def base_url(self) -> str:
        """Backend URL joined with the API prefix, without a trailing slash."""
        root = self.url.rstrip("/")
        prefix = self.api_prefix.strip("/")
        return f"{root}/{prefix}" if prefix else root


@dataclass(frozen=True, slots=True)
class BrowseSettings:
    """Defaults applied when browsing table rows."""

    rows_limit: int
    default_tab: str


@dataclass(frozen=True, slots=True)
class StateSettings:
    """Durable client state location."""

    path: Path


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Top-level application configuration."""

    source_path: Path
    server: ServerSettings
    browse: BrowseSettings
    state: StateSettings

    def with_server_url(self, url: str) -> AppConfig:
        """Return a copy pointing at a different backend."""
        return replace(self, server=replace(self.server, url=url))

    def with_timeout(self, timeout_seconds: float) -> AppConfig:
        """Return a copy with a different per-call timeout."""
        if timeout_seconds <= 0:
            raise ConfigurationError("Timeout must be a positive number of seconds.")
        return replace(self, server=replace(self.server, timeout_seconds=float(timeout_seconds)))


def _default_config(env: Mapping[str, str]) -> dict[str, Any]:
    return {
        "server": {
            "url": DEFAULT_SERVER_URL,
            "api_prefix": DEFAULT_API_PREFIX,
            "timeout_seconds": DEFAULT_TIMEOUT_SECONDS,
        },
        "browse": {
            "rows_limit": DEFAULT_ROWS_LIMIT,
            "default_tab": DEFAULT_TAB,
        },
        "state": {"path": str(paths.default_state_path(env=env))},
    }


ENV_OVERRIDE_SPEC: dict[str, tuple[str, type]] = {
    "server.url": ("PGWEB_CLI_URL", str),
    "server.api_prefix": ("PGWEB_CLI_API_PREFIX", str),
    "server.timeout_seconds": ("PGWEB_CLI_TIMEOUT", float),
    "browse.rows_limit": ("PGWEB_CLI_ROWS_LIMIT", int),
    "browse.default_tab": ("PGWEB_CLI_DEFAULT_TAB", str),
    "state.path": (paths.STATE_PATH_ENV, str),
}


def load_config(
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load configuration from defaults, YAML file, and env overrides."""
    env = dict(os.environ if env is None else env)
    resolved_config_path = _resolve_config_path(config_path, env)
    file_data = _load_yaml(resolved_config_path)
    defaults = _default_config(env)
    merged: dict[str, Any] = _deep_merge(defaults, file_data)
    merged = _apply_env_overrides(merged, env)
    return _build_config(merged, resolved_config_path)


def _resolve_config_path(
    config_path: str | Path | None, env: Mapping[str, str]
) -> Path:
    if config_path:
        return paths.resolve_path(config_path)
    return paths.default_config_path(env=env)


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Config file at {path} is not valid YAML: {exc}") from exc
    if not isinstance(data, MutableMapping):
        raise ConfigurationError(f"Config file at {path} must define a mapping root object.")
    return dict(data)


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], Mapping) and isinstance(value, Mapping):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _apply_env_overrides(config: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    config_copy = _deep_merge(config, {})
    for dotted_key, (env_key, expected_type) in ENV_OVERRIDE_SPEC.items():
        if env_key not in env:
            continue
        raw_value = env[env_key]
        try:
            value = _coerce_env_value(raw_value, expected_type)
        except ValueError as exc:
            raise ConfigurationError(
                f"Environment override {env_key} has invalid value '{raw_value}': {exc}"
            ) from exc
        _assign_nested(config_copy, dotted_key.split("."), value)
    return config_copy


def _coerce_env_value(raw: str, expected_type: type) -> Any:
    cleaned = raw.strip()
    if expected_type is int:
        return int(cleaned)
    if expected_type is float:
        return float(cleaned)
    return cleaned


def _assign_nested(target: MutableMapping[str, Any], keys: list[str], value: Any) -> None:
    current = target
    for key in keys[:-1]:
        if key not in current or not isinstance(current[key], MutableMapping):
            current[key] = {}
        current = current[key]  # type: ignore[assignment]
    current[keys[-1]] = value


def _build_config(data: Mapping[str, Any], source_path: Path) -> AppConfig:
    try:
        server_cfg = data["server"]
        server = ServerSettings(
            url=str(server_cfg["url"]),
            api_prefix=str(server_cfg["api_prefix"] or ""),
            timeout_seconds=float(server_cfg["timeout_seconds"]),
        )
        browse_cfg = data["browse"]
        browse = BrowseSettings(
            rows_limit=int(browse_cfg["rows_limit"]),
            default_tab=str(browse_cfg["default_tab"]),
        )
        state = StateSettings(path=paths.resolve_path(data["state"]["path"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid configuration structure: {exc}") from exc

    if server.timeout_seconds <= 0:
        raise ConfigurationError("server.timeout_seconds must be greater than zero.")
    if browse.rows_limit < 1:
        raise ConfigurationError("browse.rows_limit must be at least 1.")

    return AppConfig(
        source_path=source_path,
        server=server,
        browse=browse,
        state=state,
    )
