"""Render Claude Code and Cursor ``mcpServers`` config snippets from a hub config."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Sequence

from mcphub.cli import PROG, VERSION
from mcphub.config import ConfigError, HubConfig, resolve_env
from mcphub.control import ControlError, DaemonResponse

CLAUDE_HINT = "// Paste into mcpServers in ~/.claude.json or .mcp.json"
CURSOR_HINT = "// Paste into ~/.cursor/mcp.json or .cursor/mcp.json"


@dataclass
class ServerLiveInfo:
    """Live state of one server, taken from a daemon status response."""

    name: str
    state: str
    tool_names: list[str] = field(default_factory=list)
    resource_count: int = 0
    prompt_count: int = 0


def render_claude_config(
    config: HubConfig, live_info: Sequence[ServerLiveInfo] | None = None
) -> str:
    """Render a Claude Code ``mcpServers`` block, optionally annotated with live info."""
    return _render(config, live_info, CLAUDE_HINT)


def render_cursor_config(
    config: HubConfig, live_info: Sequence[ServerLiveInfo] | None = None
) -> str:
    """Render a Cursor ``mcpServers`` block, optionally annotated with live info."""
    return _render(config, live_info, CURSOR_HINT)


def _count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return 0
    return value


def parse_live_info(response: DaemonResponse) -> list[ServerLiveInfo]:
    """Turn a daemon ``status`` response into a list of ``ServerLiveInfo``."""
    if not response.ok:
        raise ControlError(f"Daemon status query failed: {response.error}")
    if response.data is None:
        raise ControlError("Empty status response from daemon")
    if not isinstance(response.data, list):
        raise ControlError("Expected array from status response")

    infos: list[ServerLiveInfo] = []
    for entry in response.data:
        entry = entry if isinstance(entry, dict) else {}
        name = entry.get("name")
        if not isinstance(name, str) or not name:
            raise ControlError("Server entry missing 'name' field in status response")
        state = entry.get("state")
        tools = entry.get("tool_names")
        infos.append(
            ServerLiveInfo(
                name=name,
                state=state if isinstance(state, str) else "unknown",
                tool_names=[t for t in tools if isinstance(t, str)]
                if isinstance(tools, list)
                else [],
                resource_count=_count(entry.get("resources")),
                prompt_count=_count(entry.get("prompts")),
            )
        )
    return infos


def _iso_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _build_warnings(config: HubConfig) -> list[str]:
    return [
        f"// WARNING: '{name}' uses http transport -- manual URL config required"
        for name in sorted(config.servers)
        if config.servers[name].transport == "http"
    ]


def _render(
    config: HubConfig, live_info: Sequence[ServerLiveInfo] | None, destination_hint: str
) -> str:
    header_lines = [
        f"// Generated by {PROG} v{VERSION} at {_iso_timestamp()}",
        destination_hint,
        *_build_warnings(config),
    ]

    mcp_servers: dict[str, Any] = {}
    for name in sorted(config.servers):
        server = config.servers[name]
        if server.transport == "http":
            continue
        try:
            env = resolve_env(server)
        except ConfigError as exc:
            raise ConfigError(f"Failed to resolve env for server '{name}': {exc}") from exc
        mcp_servers[name] = {"command": server.command, "args": list(server.args), "env": env}

    json_str = json.dumps(
        {"mcpServers": mcp_servers}, indent=2, sort_keys=True, ensure_ascii=False
    )
    if live_info is not None:
        json_str = _inject_live_comments(json_str, live_info)

    header = "\n".join(header_lines)
    return f"{header}\n{json_str}\n"


def _inject_live_comments(json_str: str, live_info: Sequence[ServerLiveInfo]) -> str:
    if not live_info:
        return json_str

    by_name = {}
    for info in live_info:
        by_name.setdefault(info.name, info)

    out: list[str] = []
    for line in json_str.splitlines():
        out.append(line + "\n")
        trimmed = line.strip()
        if not (trimmed.endswith('": {') or trimmed.endswith('": {}')):
            continue
        if not trimmed.startswith('"'):
            continue
        key = trimmed[1:].split('"', 1)[0]
        info = by_name.get(key)
        if info is None:
            continue
        if info.state != "running":
            out.append(f"    // WARNING: {key} is not running (state: {info.state})\n")
        if info.tool_names:
            out.append(f"    // {key}: tools=[{', '.join(info.tool_names)}]\n")
    return "".join(out)