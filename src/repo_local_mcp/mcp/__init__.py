"""MCP stdio server exposing ``repo_ensure_local``."""
