from .mcp_provider import McpToolProvider, resolve_server_command

__all__ = ["McpToolProvider", "resolve_server_command"]
