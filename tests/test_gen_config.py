import json

import pytest

from mcphub.config import ConfigError, HubConfig, ServerConfig
from mcphub.control import ControlError, DaemonResponse
from mcphub.gen_config import (
    ServerLiveInfo,
    parse_live_info,
    render_claude_config,
    render_cursor_config,
)


def make_server(command, args=(), transport="stdio", **extra):
    return ServerConfig(command=command, args=list(args), transport=transport, **extra)


def make_config(servers):
    return HubConfig(servers=dict(servers))


def json_part(output):
    body = "\n".join(line for line in output.splitlines() if not line.strip().startswith("//"))
    return json.loads(body)


def test_claude_format_two_servers():
    config = make_config(
        [("alpha", make_server("npx", ["server-a"])), ("beta", make_server("node", ["server-b"]))]
    )
    output = render_claude_config(config, None)
    assert '"mcpServers"' in output
    assert '"alpha"' in output
    assert '"beta"' in output
    assert '"command": "npx"' in output
    assert '"command": "node"' in output


def test_cursor_format_header():
    config = make_config(
        [("alpha", make_server("npx", ["server-a"])), ("beta", make_server("node", ["server-b"]))]
    )
    output = render_cursor_config(config, None)
    assert "cursor" in output
    assert "~/.cursor/mcp.json" in output


def test_claude_header_hint():
    output = render_claude_config(make_config([]), None)
    assert output.splitlines()[1] == "// Paste into mcpServers in ~/.claude.json or .mcp.json"


def test_version_comment():
    output = render_claude_config(make_config([("s", make_server("cmd"))]), None)
    assert output.startswith("// Generated by mcp-hub v0.1.0 at ")


def test_timestamp_format():
    output = render_claude_config(make_config([("s", make_server("cmd"))]), None)
    first_line = output.splitlines()[0]
    assert "T" in first_line
    assert first_line.endswith("Z")


def test_zero_servers():
    output = render_claude_config(make_config([]), None)
    assert '"mcpServers": {}' in output


def test_alphabetical_ordering():
    config = make_config([("zulu", make_server("cmd-z")), ("alpha", make_server("cmd-a"))])
    output = render_claude_config(config, None)
    assert output.index('"alpha"') < output.index('"zulu"')


def test_http_transport_warning():
    config = make_config([("remote", make_server("http://localhost:8080", transport="http"))])
    output = render_claude_config(config, None)
    assert "// WARNING:" in output
    assert "remote" in output
    json_section = output[output.index("{"):]
    assert '"remote"' not in json_section


def test_env_passthrough():
    server = make_server("npx", env={"API_KEY": "secret"})
    output = render_claude_config(make_config([("myserver", server)]), None)
    assert '"API_KEY": "secret"' in output


def test_json_body_round_trip():
    config = make_config([("fs", make_server("npx", ["-y", "pkg"], env={"A": "1"}))])
    parsed = json_part(render_claude_config(config, None))
    assert parsed == {"mcpServers": {"fs": {"args": ["-y", "pkg"], "command": "npx", "env": {"A": "1"}}}}


def test_env_file_overrides_inline(tmp_path):
    env_file = tmp_path / "vars.env"
    env_file.write_text("# comment\nKEY1=file-value\n\nKEY3 = new-key\n", encoding="utf-8")
    server = make_server(
        "npx", env={"KEY1": "inline", "KEY2": "keep-this"}, env_file=str(env_file)
    )
    parsed = json_part(render_claude_config(make_config([("envy", server)]), None))
    assert parsed["mcpServers"]["envy"]["env"] == {
        "KEY1": "file-value",
        "KEY2": "keep-this",
        "KEY3": "new-key",
    }


def test_missing_env_file_raises(tmp_path):
    server = make_server("npx", env_file=str(tmp_path / "missing.env"))
    with pytest.raises(ConfigError, match="Failed to resolve env for server 'broken'"):
        render_claude_config(make_config([("broken", server)]), None)


def test_parse_live_info_success():
    response = DaemonResponse.success(
        [
            {
                "name": "fs",
                "state": "running",
                "tool_names": ["read", "write"],
                "tools": 2,
                "resources": 0,
                "prompts": 0,
                "resource_names": [],
                "prompt_names": [],
            }
        ]
    )
    result = parse_live_info(response)
    assert len(result) == 1
    assert result[0].name == "fs"
    assert result[0].state == "running"
    assert result[0].tool_names == ["read", "write"]


def test_parse_live_info_defaults():
    response = DaemonResponse.success([{"name": "x", "resources": 3, "prompts": 2}])
    (info,) = parse_live_info(response)
    assert info.state == "unknown"
    assert info.tool_names == []
    assert (info.resource_count, info.prompt_count) == (3, 2)


def test_parse_live_info_failure():
    with pytest.raises(ControlError, match="test error"):
        parse_live_info(DaemonResponse.err("test error"))


def test_parse_live_info_empty_array():
    assert parse_live_info(DaemonResponse.success([])) == []


def test_parse_live_info_missing_name():
    with pytest.raises(ControlError, match="missing 'name'"):
        parse_live_info(DaemonResponse.success([{"state": "running"}]))


def test_parse_live_info_empty_data():
    with pytest.raises(ControlError, match="Empty status response"):
        parse_live_info(DaemonResponse.ok_empty())


def test_parse_live_info_not_array():
    with pytest.raises(ControlError, match="Expected array"):
        parse_live_info(DaemonResponse.success({"servers": []}))


def test_live_comments_running_with_tools():
    config = make_config([("filesystem", make_server("npx"))])
    live = [ServerLiveInfo("filesystem", "running", ["read", "write"])]
    output = render_claude_config(config, live)
    assert "// filesystem: tools=[read, write]" in output
    assert "not running" not in output


def test_live_comments_stopped_server():
    config = make_config([("filesystem", make_server("npx"))])
    live = [ServerLiveInfo("filesystem", "stopped", [])]
    output = render_claude_config(config, live)
    assert "// WARNING: filesystem is not running (state: stopped)" in output
    assert "tools=[" not in output


def test_live_comments_stopped_with_cached_tools():
    config = make_config([("filesystem", make_server("npx"))])
    live = [ServerLiveInfo("filesystem", "stopped", ["read"])]
    output = render_claude_config(config, live)
    assert "// WARNING: filesystem is not running (state: stopped)" in output
    assert "// filesystem: tools=[read]" in output


def test_live_comment_follows_server_line():
    config = make_config([("filesystem", make_server("npx"))])
    live = [ServerLiveInfo("filesystem", "running", ["read"])]
    lines = render_cursor_config(config, live).splitlines()
    index = lines.index('    "filesystem": {')
    assert lines[index + 1] == "    // filesystem: tools=[read]"


def test_empty_live_info_leaves_output_unchanged():
    config = make_config([("a", make_server("npx"))])
    with_live = render_claude_config(config, [])
    without = render_claude_config(config, None)
    assert with_live.splitlines()[1:] == without.splitlines()[1:]