"""Loading, validation and merging of ``mcp-hub.toml`` configuration files."""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import platformdirs

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "mcp-hub.toml"
DEFAULT_WEB_PORT = 3456
DEFAULT_TRANSPORT = "stdio"
VALID_TRANSPORTS = ("stdio", "http")

KNOWN_SERVER_FIELDS = frozenset(
    {
        "command",
        "args",
        "env",
        "env_file",
        "transport",
        "cwd",
        "health_check_interval",
        "max_retries",
        "restart_delay",
    }
)

_U16_MAX = 2**16 - 1
_U32_MAX = 2**32 - 1
_U64_MAX = 2**64 - 1


class ConfigError(Exception):
    """Raised when a configuration file cannot be read, parsed or validated."""


class _SchemaError(Exception):
    pass


@dataclass
class HubGlobalConfig:
    """Global hub settings from the optional ``[hub]`` section."""

    web_port: int = DEFAULT_WEB_PORT


@dataclass
class ServerConfig:
    """Configuration of one managed server."""

    command: str
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    env_file: str | None = None
    transport: str = DEFAULT_TRANSPORT
    cwd: str | None = None
    health_check_interval: int | None = None
    max_retries: int | None = None
    restart_delay: int | None = None


@dataclass
class HubConfig:
    """Top-level configuration: hub settings and servers by name."""

    hub: HubGlobalConfig = field(default_factory=HubGlobalConfig)
    servers: dict[str, ServerConfig] = field(default_factory=dict)


def _table(value: Any, where: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise _SchemaError(f"{where}: expected a table")
    return value


def _string(value: Any, where: str) -> str:
    if not isinstance(value, str):
        raise _SchemaError(f"{where}: expected a string")
    return value


def _unsigned(value: Any, where: str, maximum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise _SchemaError(f"{where}: expected an integer")
    if not 0 <= value <= maximum:
        raise _SchemaError(f"{where}: {value} is out of range 0..={maximum}")
    return value


def _optional(table: dict[str, Any], key: str, convert, where: str, *extra):
    if key not in table:
        return None
    return convert(table[key], f"{where}.{key}", *extra)


def _hub_from_table(raw: Any) -> HubGlobalConfig:
    table = _table(raw, "hub")
    if "web_port" not in table:
        return HubGlobalConfig()
    return HubGlobalConfig(web_port=_unsigned(table["web_port"], "hub.web_port", _U16_MAX))


def _server_from_table(name: str, raw: Any) -> ServerConfig:
    where = f"servers.{name}"
    table = _table(raw, where)
    if "command" not in table:
        raise _SchemaError(f"{where}: missing field 'command'")

    args_raw = table.get("args", [])
    if not isinstance(args_raw, list):
        raise _SchemaError(f"{where}.args: expected an array")
    args = [_string(arg, f"{where}.args") for arg in args_raw]

    env_raw = _table(table.get("env", {}), f"{where}.env")
    env = {key: _string(value, f"{where}.env.{key}") for key, value in env_raw.items()}

    return ServerConfig(
        command=_string(table["command"], f"{where}.command"),
        args=args,
        env=env,
        env_file=_optional(table, "env_file", _string, where),
        transport=_string(table.get("transport", DEFAULT_TRANSPORT), f"{where}.transport"),
        cwd=_optional(table, "cwd", _string, where),
        health_check_interval=_optional(
            table, "health_check_interval", _unsigned, where, _U64_MAX
        ),
        max_retries=_optional(table, "max_retries", _unsigned, where, _U32_MAX),
        restart_delay=_optional(table, "restart_delay", _unsigned, where, _U64_MAX),
    )


def _warn_unknown_fields(raw: dict[str, Any]) -> None:
    servers = raw.get("servers")
    if not isinstance(servers, dict):
        return
    for server_name, fields in servers.items():
        if not isinstance(fields, dict):
            continue
        for key in fields:
            if key not in KNOWN_SERVER_FIELDS:
                logger.warning(
                    "Unknown config field (ignored - may be from a newer mcp-hub version): "
                    "server=%s field=%s",
                    server_name,
                    key,
                )


def parse_config(content: str, source: str = "<string>") -> HubConfig:
    """Parse and validate configuration text; ``source`` labels error messages."""
    try:
        raw = tomllib.loads(content)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {source}: {exc}") from exc

    _warn_unknown_fields(raw)

    try:
        hub = _hub_from_table(raw["hub"]) if "hub" in raw else HubGlobalConfig()
        servers_raw = _table(raw.get("servers", {}), "servers")
        servers = {
            name: _server_from_table(name, value) for name, value in servers_raw.items()
        }
    except _SchemaError as exc:
        raise ConfigError(f"Config schema error in {source}: {exc}") from exc

    config = HubConfig(hub=hub, servers=servers)
    validate_config(config)
    return config


def load_config(path: str | os.PathLike[str]) -> HubConfig:
    """Read, parse and validate the config file at ``path``."""
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Failed to read config: {path}: {exc}") from exc
    return parse_config(content, str(path))


def validate_config(config: HubConfig) -> None:
    """Check every server entry, reporting all problems in one ``ConfigError``."""
    errors: list[str] = []
    for name, server in config.servers.items():
        if not server.command:
            errors.append(f"Server '{name}': 'command' must not be empty")
        if server.transport not in VALID_TRANSPORTS:
            errors.append(
                f"Server '{name}': unknown transport '{server.transport}' "
                "(expected 'stdio' or 'http')"
            )
    if errors:
        raise ConfigError("\n".join(errors))


def resolve_env(server: ServerConfig) -> dict[str, str]:
    """Return the server's environment with ``env_file`` values overriding ``env``."""
    resolved = dict(server.env)
    if server.env_file is None:
        return resolved

    try:
        content = Path(server.env_file).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Cannot read env_file: {server.env_file}: {exc}") from exc

    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if sep:
            resolved[key.strip()] = value.strip()
    return resolved


def _global_config_path() -> Path:
    return Path(platformdirs.user_config_dir()) / "mcp-hub" / CONFIG_FILE_NAME


def find_and_load_config(explicit_path: str | os.PathLike[str] | None = None) -> HubConfig:
    """Load ``explicit_path``, or merge the global and local config files.

    When both exist, servers from the local file replace global ones of the
    same name.
    """
    if explicit_path is not None:
        return load_config(explicit_path)

    global_path = _global_config_path()
    local_path = Path.cwd() / CONFIG_FILE_NAME

    global_config = load_config(global_path) if global_path.exists() else None
    local_config = load_config(local_path) if local_path.exists() else None

    if global_config is None and local_config is None:
        raise ConfigError("No mcp-hub.toml found. Create one or run `mcp-hub init`.")
    if global_config is None:
        return local_config
    if local_config is None:
        return global_config
    global_config.servers.update(local_config.servers)
    return global_config