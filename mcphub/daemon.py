"""Daemon helpers: socket and PID file paths, stale file cleanup and forking."""

from __future__ import annotations

import logging
import os
import socket
import sys
from pathlib import Path

import platformdirs

logger = logging.getLogger(__name__)

SOCKET_ENV = "MCP_HUB_SOCKET"
PID_ENV = "MCP_HUB_PID"
SOCKET_FILE_NAME = "mcp-hub.sock"
PID_FILE_NAME = "mcp-hub.pid"


class DaemonError(Exception):
    """Raised when a daemon housekeeping operation fails."""


def _config_dir() -> Path:
    directory = platformdirs.user_config_dir()
    if not directory:
        raise DaemonError("Cannot determine config directory")
    return Path(directory) / "mcp-hub"


def _make_dirs(directory: Path) -> None:
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise DaemonError(f"Failed to create {directory}: {exc}") from exc


def socket_path() -> Path:
    """Path of the daemon control socket, creating its directory if needed.

    ``MCP_HUB_SOCKET`` overrides the default ``<config dir>/mcp-hub/mcp-hub.sock``.
    """
    override = os.environ.get(SOCKET_ENV)
    if override is not None:
        path = Path(override)
        _make_dirs(path.parent)
        return path
    directory = _config_dir()
    _make_dirs(directory)
    return directory / SOCKET_FILE_NAME


def pid_path() -> Path:
    """Path of the daemon PID file; ``MCP_HUB_PID`` overrides the default."""
    override = os.environ.get(PID_ENV)
    if override is not None:
        return Path(override)
    return _config_dir() / PID_FILE_NAME


def write_pid_file(path: str | os.PathLike[str]) -> None:
    """Write the current process ID to ``path``."""
    path = Path(path)
    try:
        path.write_text(str(os.getpid()), encoding="utf-8")
    except OSError as exc:
        raise DaemonError(f"Failed to write PID file {path}: {exc}") from exc


def remove_pid_file(path: str | os.PathLike[str]) -> None:
    """Remove the PID file at ``path``, ignoring any error."""
    try:
        Path(path).unlink()
    except OSError:
        pass


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink()
    except OSError:
        pass


def check_existing_daemon(
    sock_path: str | os.PathLike[str], pid_path: str | os.PathLike[str]
) -> None:
    """Raise ``DaemonError`` if a daemon answers on ``sock_path``.

    Otherwise stale socket and PID files left by a dead daemon are removed.
    """
    sock_path = Path(sock_path)
    pid_file = Path(pid_path)
    if not hasattr(socket, "AF_UNIX"):
        raise DaemonError(
            "Unix domain socket IPC is not supported on this platform. Use foreground mode."
        )

    with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as probe:
        try:
            probe.connect(os.fspath(sock_path))
        except OSError:
            live = False
        else:
            live = True

    if live:
        raise DaemonError(
            f"A daemon is already running (socket: {sock_path}). "
            "Use `mcp-hub stop` to stop it."
        )
    _cleanup_stale_files(sock_path, pid_file)


def _read_pid(pid_file: Path) -> int | None:
    try:
        text = pid_file.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError):
        return None
    try:
        pid = int(text)
    except ValueError:
        return None
    if not -(2**31) <= pid < 2**31:
        return None
    return pid


def _cleanup_stale_files(sock_path: Path, pid_file: Path) -> None:
    pid = _read_pid(pid_file)
    if pid is None:
        if sock_path.exists():
            _remove_quietly(sock_path)
        return

    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        logger.info("Cleaning up stale daemon files (PID %d is dead)", pid)
        _remove_quietly(sock_path)
        _remove_quietly(pid_file)
    except OSError:
        _remove_quietly(sock_path)
        _remove_quietly(pid_file)
    else:
        logger.warning(
            "PID %d is alive but socket is not connectable - removing stale socket", pid
        )
        _remove_quietly(sock_path)


def _fork_and_exit_parent(which: str) -> None:
    sys.stdout.flush()
    sys.stderr.flush()
    try:
        child = os.fork()
    except OSError as exc:
        raise DaemonError(f"{which} fork failed: {exc}") from exc
    if child != 0:
        os._exit(0)


def _redirect_to_dev_null() -> None:
    try:
        fd = os.open(os.devnull, os.O_RDWR)
    except OSError as exc:
        raise DaemonError(f"Failed to open {os.devnull}: {exc}") from exc
    for target in (0, 1, 2):
        try:
            os.dup2(fd, target)
        except OSError as exc:
            raise DaemonError(f"dup2({os.devnull}, {target}) failed: {exc}") from exc
    if fd > 2:
        os.close(fd)


def daemonize_process() -> None:
    """Detach into a background daemon with the classic double fork.

    Must be called before any threads are started.
    """
    if not hasattr(os, "fork") or not hasattr(os, "setsid"):
        raise DaemonError(
            "Daemon mode is not supported on Windows. Use foreground mode instead."
        )
    _fork_and_exit_parent("First")
    try:
        os.setsid()
    except OSError as exc:
        raise DaemonError(f"setsid failed: {exc}") from exc
    _fork_and_exit_parent("Second")
    _redirect_to_dev_null()