"""Building blocks and interactive wizard for adding servers to ``mcp-hub.toml``."""

from __future__ import annotations

import logging
import os
import re
import sys
import tomllib
from pathlib import Path
from typing import Callable, Sequence

logger = logging.getLogger(__name__)

LOCAL_CONFIG_PATH = Path("./mcp-hub.toml")
TRANSPORTS = ("stdio", "http")

_SERVER_NAME_RE = re.compile(r"[A-Za-z0-9_-]+")


def toml_escape(s: str) -> str:
    """Escape ``s`` for use inside a TOML double-quoted basic string."""
    return s.replace("\\", "\\\\").replace('"', '\\"')


def is_valid_server_name(name: str) -> bool:
    """True if ``name`` is usable as a TOML bare key (ASCII letters, digits, ``-``, ``_``)."""
    return _SERVER_NAME_RE.fullmatch(name) is not None


def existing_server_names() -> list[str]:
    """Server names defined in ``./mcp-hub.toml``, or an empty list."""
    return existing_server_names_from(LOCAL_CONFIG_PATH)


def existing_server_names_from(path: str | os.PathLike[str]) -> list[str]:
    """Server names defined in the TOML file at ``path``.

    A missing, unreadable or unparsable file yields an empty list; the latter
    two are logged as warnings.
    """
    path = Path(path)
    if not path.exists():
        return []

    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return []

    try:
        value = tomllib.loads(content)
    except tomllib.TOMLDecodeError as exc:
        logger.warning("Could not parse %s as TOML (ignored): %s", path, exc)
        return []

    servers = value.get("servers")
    if not isinstance(servers, dict):
        return []
    return list(servers)


def format_toml_block(name: str, command: str, args: Sequence[str], transport: str) -> str:
    """Build a ``[servers.<name>]`` block.

    ``args`` is omitted when empty and ``transport`` when it is the default
    ``"stdio"``. The block starts with a newline to separate it from content
    it is appended to.
    """
    block = f'\n[servers.{name}]\ncommand = "{toml_escape(command)}"\n'
    if args:
        quoted = ", ".join(f'"{toml_escape(arg)}"' for arg in args)
        block += f"args = [{quoted}]\n"
    if transport != "stdio":
        block += f'transport = "{toml_escape(transport)}"\n'
    return block


def write_server_entry(toml_block: str) -> None:
    """Append ``toml_block`` to ``./mcp-hub.toml``, creating it if needed."""
    write_server_entry_to(LOCAL_CONFIG_PATH, toml_block)


def write_server_entry_to(path: str | os.PathLike[str], toml_block: str) -> None:
    """Append ``toml_block`` to ``path``, or create the file without a leading blank line."""
    path = Path(path)
    if path.exists():
        existing = path.read_text(encoding="utf-8")
        with path.open("a", encoding="utf-8", newline="") as handle:
            if not existing.endswith("\n"):
                handle.write("\n")
            handle.write(toml_block)
    else:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(toml_block.lstrip("\n"), encoding="utf-8", newline="")


def _ask(prompt: str, what: str) -> str:
    try:
        return input(prompt)
    except EOFError as exc:
        raise RuntimeError(f"Failed to read {what}") from exc


def _prompt_text(
    prompt: str, what: str, validate: Callable[[str], str | None] | None = None
) -> str:
    while True:
        answer = _ask(f"{prompt}: ", what).strip()
        problem = validate(answer) if validate is not None else None
        if problem is None:
            return answer
        print(problem, file=sys.stderr)


def _select(prompt: str, items: Sequence[str], default: int, what: str) -> str:
    options = ", ".join(f"[{number}] {item}" for number, item in enumerate(items, 1))
    while True:
        answer = _ask(f"{prompt} {options} (default: {items[default]}): ", what).strip()
        if not answer:
            return items[default]
        if answer in items:
            return answer
        if answer.isdigit() and 1 <= int(answer) <= len(items):
            return items[int(answer) - 1]
        print(f"Choose one of: {', '.join(items)}", file=sys.stderr)


def run_init_wizard() -> None:
    """Interactively collect a server definition and add it to ``./mcp-hub.toml``."""
    existing_names = existing_server_names()

    def check_name(value: str) -> str | None:
        if not value:
            return "Server name must not be empty"
        if not is_valid_server_name(value):
            return "Server name may only contain letters, digits, hyphens, and underscores"
        if value in existing_names:
            listing = ", ".join(existing_names)
            return f"Name '{value}' already exists. Existing servers: {listing}"
        return None

    def check_command(value: str) -> str | None:
        return "Command must not be empty" if not value else None

    name = _prompt_text("Server name", "server name", check_name)
    command = _prompt_text("Command", "command", check_command)
    args_raw = _prompt_text("Arguments (comma-separated, Enter to skip)", "arguments")
    args = [part.strip() for part in args_raw.split(",") if part.strip()]
    transport = _select("Transport", TRANSPORTS, 0, "transport selection")

    block = format_toml_block(name, command, args, transport)
    try:
        write_server_entry(block)
    except OSError as exc:
        exc.add_note(f"Failed to write server '{name}' to ./mcp-hub.toml")
        raise

    print(f"Added '{name}' to ./mcp-hub.toml")