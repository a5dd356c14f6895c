"""
Configuration file loading.

Loads config.yaml (plus an optional config.<env>.yaml overlay) and turns the
``connections`` list into validated Connection values.
"""

import re
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import yaml

from ftransfer.config.resolver import resolve_config
from ftransfer.core.types import Connection, Protocol
from ftransfer.exceptions import ConfigurationError

DEFAULTS: dict[str, Any] = {
    "download": {"path": "download"},
    "ledger": {"path": "downloads.duckdb", "retention_days": 7},
    "scheduler": {
        "groups": 5,
        "cycle_interval_s": 10,
        "shutdown_grace_s": 30,
        "probe_timeout_s": 2,
    },
    "service": {"host": "0.0.0.0", "port": 8080, "web_dir": "web"},
    "logging": {"level": "INFO", "file": "logs/ftransfer.log"},
}

# Per-connection values used when a connection omits them
CONNECTION_DEFAULTS: dict[str, Any] = {"depth": 1, "delay": 0}


class Config:
    """ftransfer configuration container with dict-like access."""

    def __init__(self, data: dict[str, Any]):
        self.data = data

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation."""
        value: Any = self.data
        for k in key.split("."):
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default
        return value

    def __getitem__(self, key: str) -> Any:
        """Dict-like access: config['key'] or config['nested.key']."""
        if "." in key:
            value = self.get(key)
            if value is None:
                raise KeyError(f"Config key '{key}' not found")
            return value
        if key in self.data:
            return self.data[key]
        raise KeyError(f"Config key '{key}' not found")

    def __contains__(self, key: str) -> bool:
        """Check if key exists in config (dot notation supported)."""
        value: Any = self.data
        for k in key.split("."):
            if not isinstance(value, dict) or k not in value:
                return False
            value = value[k]
        return True

    def __iter__(self) -> "Iterator[str]":
        return iter(self.data)

    @property
    def connections(self) -> list[Connection]:
        """Validated connections, in configuration order."""
        return parse_connections(self.data.get("connections"))

    def validate(self) -> None:
        """Validate configuration structure and every connection entry."""
        if not isinstance(self.data, dict):
            raise ConfigurationError(f"Configuration must be a mapping, got {type(self.data).__name__}")
        groups = self.get("scheduler.groups")
        if not isinstance(groups, int) or isinstance(groups, bool) or groups < 1:
            raise ConfigurationError(f"scheduler.groups must be a positive integer, got {groups!r}")
        parse_connections(self.data.get("connections"))


def load_config(project_path: Path | None = None, env: str | None = None, config_file: Path | None = None) -> Config:
    """
    Load ftransfer configuration.

    Args:
        project_path: Path to project root (default: current directory)
        env: Optional environment name; config.<env>.yaml is merged over the base file
        config_file: Explicit config file, overrides project_path/config.yaml

    Returns:
        Config instance with defaults, file contents and env vars merged
    """
    if project_path is None:
        project_path = Path.cwd()

    base_config_path = Path(config_file) if config_file else project_path / "config.yaml"
    if not base_config_path.is_file():
        raise ConfigurationError(
            f"Configuration file not found: {base_config_path}\n"
            f"  Suggestion: Create a config.yaml file in your project root"
        )

    config_data = _read_yaml(base_config_path)

    if env:
        env_config_path = base_config_path.with_name(f"{base_config_path.stem}.{env}.yaml")
        if env_config_path.is_file():
            _merge_dict(config_data, _read_yaml(env_config_path))

    data = _deep_copy_defaults()
    _merge_dict(data, config_data)
    return Config(resolve_config(data))


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        location = f" at line {mark.line + 1}, column {mark.column + 1}" if mark else ""
        raise ConfigurationError(
            f"Error parsing {path.name}{location}:\n"
            f"  {e}\n"
            f"  Suggestion: Check YAML syntax, ensure proper indentation and quotes"
        ) from e
    except PermissionError as e:
        raise ConfigurationError(f"Permission denied reading {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path.name} must contain a mapping at the top level")
    return data


def _deep_copy_defaults() -> dict[str, Any]:
    return {section: dict(values) for section, values in DEFAULTS.items()}


def _merge_dict(base: dict, override: dict) -> None:
    """Recursively merge override into base."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _merge_dict(base[key], value)
        else:
            base[key] = value


def parse_connections(raw: Any) -> list[Connection]:
    """
    Validate the ``connections`` list and build Connection values.

    Raises:
        ConfigurationError: listing every invalid field, by connection
    """
    if raw is None:
        raise ConfigurationError("No connections configured")
    if not isinstance(raw, list):
        raise ConfigurationError(f"'connections' must be a list, got {type(raw).__name__}")

    errors: list[str] = []
    connections: list[Connection] = []
    seen: set[str] = set()

    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            errors.append(f"connection #{index + 1} must be a mapping")
            continue
        label = item.get("name") or f"#{index + 1}"
        problems = _validate_connection(item)
        if item.get("name") in seen:
            problems.append("duplicate connection name")
        if problems:
            errors.extend(f"{label}: {p}" for p in problems)
            continue
        seen.add(item["name"])
        connections.append(_build_connection(item))

    if errors:
        raise ConfigurationError("Invalid connection configuration:\n  " + "\n  ".join(errors))
    return connections


def _validate_connection(item: dict[str, Any]) -> list[str]:
    problems: list[str] = []
    for key in ("name", "host", "username", "password", "path"):
        if not isinstance(item.get(key), str) or not item[key].strip():
            problems.append(f"{key} is missing")

    port = item.get("port")
    if not _is_int(port) or not 1 <= port <= 65535:
        problems.append(f"invalid port number: {port!r}")

    protocol = item.get("protocol")
    if protocol not in {p.value for p in Protocol}:
        problems.append(f"unsupported protocol: {protocol!r}")

    for key in ("delay", "depth"):
        value = item.get(key, CONNECTION_DEFAULTS[key])
        if not _is_number(value) or value < 0:
            problems.append(f"invalid {key}: {value!r}")

    if "tunnel_ftp_port" in item:
        tunnel_port = item["tunnel_ftp_port"]
        if not _is_int(tunnel_port) or not 1 <= tunnel_port <= 65535:
            problems.append(f"invalid tunnel_ftp_port: {tunnel_port!r}")

    regex = item.get("regex") or ""
    try:
        re.compile(regex)
    except (re.error, TypeError) as e:
        problems.append(f"invalid regex {regex!r}: {e}")

    return problems


def _build_connection(item: dict[str, Any]) -> Connection:
    return Connection(
        name=item["name"],
        host=item["host"],
        port=int(item["port"]),
        protocol=Protocol(item["protocol"]),
        username=item["username"],
        password=item["password"],
        remote_path=item["path"],
        max_depth=int(item.get("depth", CONNECTION_DEFAULTS["depth"])),
        file_name_regex=item.get("regex") or "",
        poll_delay_s=float(item.get("delay", CONNECTION_DEFAULTS["delay"])),
        private_key_path=item.get("ssh_key_path") or None,
        tunnel_ftp_host=item.get("tunnel_ftp_host", "127.0.0.1"),
        tunnel_ftp_port=int(item.get("tunnel_ftp_port", 21)),
    )


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
