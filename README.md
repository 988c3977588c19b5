# mcphub

Building blocks for managing MCP servers that are described in a single
`mcp-hub.toml` file: loading and validating the configuration, adding server
entries, buffering server logs, talking to a hub daemon over its control
socket, and generating `mcpServers` snippets for Claude Code and Cursor.

Python 3.11 or later is required. The only runtime dependency is
`platformdirs`.

## Configuration (`mcphub.config`)

```toml
[hub]
web_port = 3456

[servers.github]
command = "npx"
args = ["@anthropic/mcp-github"]
env = { LOG_LEVEL = "info" }
env_file = ".env.github"

[servers.api]
command = "python"
args = ["server.py", "--port=8080"]
transport = "http"
```

- `[hub].web_port` defaults to 3456.
- Each server needs a non-empty `command`; `transport` is `stdio` (the
  default) or `http`. Optional fields are `args`, `env`, `env_file`, `cwd`,
  `health_check_interval`, `max_retries` and `restart_delay`.
- Unknown fields inside a server block are logged as warnings through the
  `logging` module and otherwise ignored.

```python
from mcphub.config import find_and_load_config, load_config, parse_config, resolve_env

config = load_config("mcp-hub.toml")          # HubConfig
server = config.servers["github"]             # ServerConfig
env = resolve_env(server)                     # env_file values override inline env

config = parse_config(text, "inline")         # parse a string instead of a file
config = find_and_load_config(None)
```

`find_and_load_config(None)` reads `mcp-hub/mcp-hub.toml` in the user config
directory and `./mcp-hub.toml`; when both exist, local servers replace global
ones of the same name. Passing a path loads only that file.

Unreadable files, invalid TOML, wrong value types and failed validation all
raise `ConfigError`; validation lists every invalid server in one message.
`validate_config(config)` runs the validation on its own.

In an `env_file`, blank lines and lines starting with `#` are skipped and
each `KEY=value` line is trimmed on both sides.

## Adding servers (`mcphub.init`)

```python
from mcphub.init import existing_server_names_from, format_toml_block, write_server_entry_to

block = format_toml_block("github", "npx", ["@anthropic/mcp-github"], "stdio")
write_server_entry_to("mcp-hub.toml", block)   # creates the file or appends to it
existing_server_names_from("mcp-hub.toml")     # ['github']
```

`format_toml_block` escapes backslashes and double quotes, leaves out `args`
when empty and `transport` when it is `stdio`. `is_valid_server_name` accepts
only ASCII letters, digits, `-` and `_`.

`run_init_wizard()` asks on the terminal for a name, command, comma-separated
arguments and transport, checks the name against those already in
`./mcp-hub.toml`, and appends the new entry there. `existing_server_names()`
and `write_server_entry(block)` work on `./mcp-hub.toml` directly.

## Editor config snippets (`mcphub.gen_config`)

```python
from mcphub.config import load_config
from mcphub.gen_config import render_claude_config, render_cursor_config

config = load_config("mcp-hub.toml")
print(render_claude_config(config, None))
print(render_cursor_config(config, None))
```

The output starts with `//` comment lines giving the version, a UTC timestamp
and where to paste the block, followed by a pretty-printed JSON object whose
`mcpServers` entries are sorted by name and carry `command`, `args` and the
resolved `env`. Servers with the `http` transport are left out and named in a
`// WARNING:` line instead.

`parse_live_info(response)` turns a daemon status `DaemonResponse` into
`ServerLiveInfo` objects; passing them as `live_info` adds comments under each
server noting a state other than `running` and listing its tool names.

## Logs (`mcphub.logs`)

```python
from mcphub.logs import LogAggregator, format_log_line

logs = LogAggregator(["github", "api"], capacity_per_server=1000)
with logs.subscribe() as sub:
    logs.push("github", "started")
    line = sub.get(timeout=1)
print(format_log_line(line, color=False))   # github | 2026-04-02T10:15:30Z started
```

Each server has a `LogBuffer` ring buffer that drops its oldest line when
full (`snapshot`, `snapshot_last(n)`, `len()`). `snapshot_all()` merges all
buffers by timestamp. A subscription keeps up to 1024 undelivered lines and
counts dropped ones in `lagged`. With `color=True` the server name gets a
fixed ANSI colour chosen from its name.

## Daemon control (`mcphub.control`, `mcphub.daemon`)

```python
from mcphub.control import DaemonRequest, send_daemon_command
from mcphub.daemon import socket_path

response = send_daemon_command(socket_path(), DaemonRequest.status(), 5)
if response.ok:
    print(response.data)
```

Requests are one line of JSON over a Unix domain socket, such as
`{"cmd":"status"}` or `{"cmd":"restart","name":"github"}`; the reply is one
line such as `{"ok":true,"data":...}` or `{"ok":false,"error":"..."}`.
Request kinds are `status`, `stop`, `restart(name)`, `logs(server, lines)`
and `reload`. Failures raise `ControlError`.

`mcphub.daemon` provides the socket and PID file paths (under
`mcp-hub/` in the user config directory, overridable with `MCP_HUB_SOCKET`
and `MCP_HUB_PID`), `write_pid_file`, `remove_pid_file`,
`check_existing_daemon` (raises `DaemonError` if a daemon answers on the
socket, otherwise removes stale files) and `daemonize_process` (double fork,
standard streams redirected to the null device).

## Command-line parsing (`mcphub.cli`)

`build_parser()` and `parse_args(argv)` define the `mcp-hub` command line:
subcommands `start [--daemon]`, `stop`, `restart NAME`, `status`,
`logs [-f] [-s NAME] [-n LINES]`, `reload`, `gen-config -f FORMAT [--live]`
and `init`, with global `--no-color` (also set by a truthy `NO_COLOR`),
`-v` and `-c/--config PATH` accepted before or after the subcommand.

## What this package does not do

- It installs no command. `mcphub.cli` only parses arguments; nothing
  dispatches the parsed subcommands.
- It does not start, supervise, health-check or restart server processes,
  and does not talk MCP to them.
- It has no daemon side of the control socket: it can send requests and
  read replies, but nothing here listens on the socket or answers them.
- It has no web interface, even though `web_port` is read from the
  configuration.