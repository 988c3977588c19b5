"""Configuration, logs, daemon control and editor config snippets for MCP servers."""

__version__ = "0.1.0"

__all__ = ["cli", "config", "control", "daemon", "gen_config", "init", "logs"]