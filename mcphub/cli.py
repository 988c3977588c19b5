"""Command-line argument parsing for ``mcp-hub``."""

from __future__ import annotations

import argparse
import os
from pathlib import Path
from typing import Sequence

PROG = "mcp-hub"
VERSION = "0.1.0"
ABOUT = "PM2 for MCP servers \u2014 manage, monitor, and configure your MCP servers"

_FALSEY = frozenset({"", "0", "n", "no", "f", "false", "off"})
_SUB_PREFIX = "_sub_"


def _non_negative_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid digit found in string: '{text}'") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"invalid value '{text}': must not be negative")
    return value


def _add_global_options(parser: argparse.ArgumentParser, prefix: str, suppress: bool) -> None:
    default = {"default": argparse.SUPPRESS} if suppress else {}
    parser.add_argument(
        "--no-color",
        dest=f"{prefix}no_color",
        action="store_true",
        help="Disable colored output. [env: NO_COLOR=]",
        **(default or {"default": False}),
    )
    parser.add_argument(
        "-v",
        dest=f"{prefix}verbose",
        action="count",
        help="Increase verbosity (-v for verbose, -vv for debug).",
        **(default or {"default": 0}),
    )
    parser.add_argument(
        "-c",
        "--config",
        dest=f"{prefix}config",
        type=Path,
        metavar="PATH",
        help="Path to a config file (overrides default search).",
        **(default or {"default": None}),
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all subcommands and global options."""
    parser = argparse.ArgumentParser(prog=PROG, description=ABOUT)
    parser.add_argument("-V", "--version", action="version", version=f"{PROG} {VERSION}")
    _add_global_options(parser, "", suppress=False)

    globals_parent = argparse.ArgumentParser(add_help=False)
    _add_global_options(globals_parent, _SUB_PREFIX, suppress=True)

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND", required=True)

    def add(name: str, text: str, description: str | None = None) -> argparse.ArgumentParser:
        return subparsers.add_parser(
            name, help=text, description=description or text, parents=[globals_parent]
        )

    start = add("start", "Start all configured MCP servers.")
    start.add_argument("--daemon", action="store_true", help="Run as a background daemon.")

    add("stop", "Stop all running servers.")

    restart = add("restart", "Restart a specific server by name.")
    restart.add_argument("name", help="Name of the server to restart.")

    add(
        "status",
        "Show status of all servers (name, state, health, PID, uptime, restarts).",
    )

    logs = add("logs", "Show server logs.")
    logs.add_argument(
        "-f",
        "--follow",
        action="store_true",
        help="Follow log output (streams new lines). Requires daemon mode.",
    )
    logs.add_argument(
        "-s", "--server", metavar="NAME", default=None, help="Filter to a specific server by name."
    )
    logs.add_argument(
        "-n",
        "--lines",
        type=_non_negative_int,
        default=100,
        help="Number of recent lines to show (default: 100).",
    )

    add(
        "reload",
        "Reload configuration from disk without restarting the daemon.",
        "Reload configuration from disk without restarting the daemon. "
        "Equivalent to sending SIGHUP to the daemon process.",
    )

    gen_config = add(
        "gen-config",
        "Generate a Claude Code or Cursor config snippet from the hub's server list.",
    )
    gen_config.add_argument(
        "-f",
        "--format",
        required=True,
        metavar="FORMAT",
        help="Output format: 'claude' or 'cursor'.",
    )
    gen_config.add_argument(
        "--live",
        action="store_true",
        help="Connect to the running daemon and include introspected "
        "tool/resource/prompt info as comments.",
    )

    add("init", "Interactively add a new MCP server to ./mcp-hub.toml.")

    return parser


def _env_flag(name: str) -> bool:
    value = os.environ.get(name)
    return value is not None and value.strip().lower() not in _FALSEY


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse ``argv`` (default: ``sys.argv[1:]``).

    Global options may appear before or after the subcommand. ``--no-color``
    is also enabled by a truthy ``NO_COLOR`` environment variable.
    """
    namespace = build_parser().parse_args(argv)
    values = vars(namespace)

    no_color = values.pop("no_color") or values.pop(f"{_SUB_PREFIX}no_color", False)
    values.pop(f"{_SUB_PREFIX}no_color", None)
    verbose = values.pop("verbose") + values.pop(f"{_SUB_PREFIX}verbose", 0)
    config = values.pop("config")
    sub_config = values.pop(f"{_SUB_PREFIX}config", None)

    namespace.no_color = no_color or _env_flag("NO_COLOR")
    namespace.verbose = verbose
    namespace.config = sub_config if sub_config is not None else config
    return namespace