"""Control-socket wire protocol and client for talking to a running daemon.

Requests and responses are single lines of JSON over a Unix domain socket.
"""

from __future__ import annotations

import json
import os
import socket
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ControlError(Exception):
    """Raised for malformed messages or failed communication with the daemon."""


class RequestKind(str, Enum):
    STATUS = "status"
    STOP = "stop"
    RESTART = "restart"
    LOGS = "logs"
    RELOAD = "reload"


@dataclass(frozen=True)
class DaemonRequest:
    """A request sent to the daemon, encoded as ``{"cmd": "<kind>", ...}``."""

    kind: RequestKind
    name: str | None = None
    server: str | None = None
    lines: int | None = None

    @staticmethod
    def status() -> DaemonRequest:
        return DaemonRequest(RequestKind.STATUS)

    @staticmethod
    def stop() -> DaemonRequest:
        return DaemonRequest(RequestKind.STOP)

    @staticmethod
    def restart(name: str) -> DaemonRequest:
        return DaemonRequest(RequestKind.RESTART, name=name)

    @staticmethod
    def logs(server: str | None, lines: int) -> DaemonRequest:
        return DaemonRequest(RequestKind.LOGS, server=server, lines=lines)

    @staticmethod
    def reload() -> DaemonRequest:
        return DaemonRequest(RequestKind.RELOAD)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"cmd": self.kind.value}
        if self.kind is RequestKind.RESTART:
            payload["name"] = self.name
        elif self.kind is RequestKind.LOGS:
            payload["server"] = self.server
            payload["lines"] = self.lines
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @staticmethod
    def from_json(text: str) -> DaemonRequest:
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ControlError(f"Invalid request JSON: {exc}") from exc
        if not isinstance(raw, dict):
            raise ControlError("Invalid request JSON: expected an object")

        cmd = raw.get("cmd")
        if not isinstance(cmd, str):
            raise ControlError("Invalid request JSON: missing field 'cmd'")
        try:
            kind = RequestKind(cmd)
        except ValueError:
            raise ControlError(f"Invalid request JSON: unknown command '{cmd}'") from None

        if kind is RequestKind.RESTART:
            name = raw.get("name")
            if not isinstance(name, str):
                raise ControlError("Invalid request JSON: 'name' must be a string")
            return DaemonRequest.restart(name)
        if kind is RequestKind.LOGS:
            server = raw.get("server")
            if server is not None and not isinstance(server, str):
                raise ControlError("Invalid request JSON: 'server' must be a string or null")
            lines = raw.get("lines")
            if isinstance(lines, bool) or not isinstance(lines, int) or lines < 0:
                raise ControlError(
                    "Invalid request JSON: 'lines' must be a non-negative integer"
                )
            return DaemonRequest.logs(server, lines)
        return DaemonRequest(kind)


@dataclass(frozen=True)
class DaemonResponse:
    """The daemon's reply to one request."""

    ok: bool
    data: Any = None
    error: str | None = None

    @staticmethod
    def success(data: Any) -> DaemonResponse:
        return DaemonResponse(ok=True, data=data)

    @staticmethod
    def ok_empty() -> DaemonResponse:
        return DaemonResponse(ok=True)

    @staticmethod
    def err(message: str) -> DaemonResponse:
        return DaemonResponse(ok=False, error=message)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"ok": self.ok}
        if self.data is not None:
            payload["data"] = self.data
        if self.error is not None:
            payload["error"] = self.error
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @staticmethod
    def from_json(text: str) -> DaemonResponse:
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ControlError(f"Invalid daemon response JSON: {exc}") from exc
        if not isinstance(raw, dict):
            raise ControlError("Invalid daemon response JSON: expected an object")
        ok = raw.get("ok")
        if not isinstance(ok, bool):
            raise ControlError("Invalid daemon response JSON: 'ok' must be a boolean")
        error = raw.get("error")
        if error is not None and not isinstance(error, str):
            raise ControlError("Invalid daemon response JSON: 'error' must be a string")
        return DaemonResponse(ok=ok, data=raw.get("data"), error=error)


def send_daemon_command(
    sock_path: str | os.PathLike[str], request: DaemonRequest, timeout_secs: float
) -> DaemonResponse:
    """Send one request to the daemon at ``sock_path`` and return its response.

    Connecting and reading the response are each bounded by ``timeout_secs``.
    """
    if not hasattr(socket, "AF_UNIX"):
        raise ControlError(
            "Unix domain socket IPC is not supported on this platform. Use foreground mode."
        )

    with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as conn:
        conn.settimeout(timeout_secs)
        try:
            conn.connect(os.fspath(sock_path))
        except socket.timeout as exc:
            raise ControlError(
                f"Connection to daemon timed out after {timeout_secs}s"
            ) from exc
        except OSError as exc:
            raise ControlError(
                f"Cannot connect to daemon socket ({os.fspath(sock_path)}): {exc}\n"
                "Is the daemon running? Start with: mcp-hub start --daemon"
            ) from exc

        conn.sendall((request.to_json() + "\n").encode("utf-8"))

        with conn.makefile("rb") as reader:
            try:
                line = reader.readline()
            except socket.timeout as exc:
                raise ControlError(
                    f"Daemon response timed out after {timeout_secs}s"
                ) from exc
            except OSError as exc:
                raise ControlError(f"Error reading daemon response: {exc}") from exc

    if not line:
        raise ControlError("Daemon closed connection without responding")
    try:
        text = line.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ControlError(f"Error reading daemon response: {exc}") from exc
    return DaemonResponse.from_json(text)