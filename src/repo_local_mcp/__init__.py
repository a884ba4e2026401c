"""repo-local-mcp: clone or update remote repositories into a local working copy.

Exposes the ``repo_ensure_local`` MCP tool so agents can investigate any
remote repository with their built-in file tools.
"""

__version__ = "0.3.0"
