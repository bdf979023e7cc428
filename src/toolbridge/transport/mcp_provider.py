"""MCP tool provider over stdio or SSE.

The MCP client session is held open by a dedicated runner task. The SDK's
transports are anyio task-group based and must be exited from the task that
entered them; keeping them in one task lets `connect` and `aclose` be called
from anywhere (a request handler, an application lifespan, a CLI loop).
"""
import asyncio
import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Sequence, Tuple

from mcp import ClientSession, StdioServerParameters, types
from mcp.client.sse import sse_client
from mcp.client.stdio import stdio_client

from ..common.types import ConfigurationError
from ..core.settings import Settings
from ..tools.tool_types import ContentBlock, RawTool, ToolCallResult

logger = logging.getLogger(__name__)


def is_url(target: str) -> bool:
    return target.lower().startswith(("http://", "https://"))


def resolve_server_command(
    target: Optional[str],
    command: Optional[str] = None,
    extra_args: Sequence[str] = (),
) -> Tuple[str, List[str]]:
    """Work out how to spawn a tool server from a path.

    Raises:
        ConfigurationError: if neither a target nor a command is given, or the
            target is not a supported kind of server.
    """
    target = (target or "").strip().strip("\"'")
    extra = list(extra_args)

    if command:
        return command, ([target] if target else []) + extra
    if not target:
        raise ConfigurationError(
            "No server provided. Pass a .py, .js, .csproj, .dll, directory or executable path.",
            missing=["MCP_SERVER"],
        )

    lower = target.lower()
    if lower.endswith(".csproj") or os.path.isdir(target):
        return "dotnet", ["run", "--project", target, "--no-build"] + extra
    if lower.endswith(".py"):
        return sys.executable, [target] + extra
    if lower.endswith(".js"):
        return "node", [target] + extra
    if lower.endswith(".dll"):
        return "dotnet", [target] + extra
    if lower.endswith(".exe"):
        return target, extra

    full_path = os.path.abspath(target)
    if os.path.isfile(full_path) and os.access(full_path, os.X_OK):
        return full_path, extra

    raise ConfigurationError(
        f"Unsupported server argument: '{target}'. "
        "Use a .py, .js, .csproj, .dll, directory or executable path."
    )


def mcp_field(obj: Any, name: str, default: Any = None) -> Any:
    """Read an MCP model field by its snake_case name or its camelCase wire name."""
    value = getattr(obj, name, None)
    if value is None:
        head, *rest = name.split("_")
        value = getattr(obj, head + "".join(part.title() for part in rest), None)
    return default if value is None else value


def to_content_block(block: Any) -> ContentBlock:
    """Convert one MCP content item."""
    kind = getattr(block, "type", None) or "unknown"
    if kind == "resource":
        resource = getattr(block, "resource", None)
        return ContentBlock(
            type=kind,
            data=getattr(resource, "text", None) or getattr(resource, "blob", None),
            mime_type=mcp_field(resource, "mime_type"),
        )
    return ContentBlock(
        type=kind,
        text=getattr(block, "text", None),
        data=getattr(block, "data", None),
        mime_type=mcp_field(block, "mime_type"),
    )


def to_call_result(result: types.CallToolResult) -> ToolCallResult:
    return ToolCallResult(
        content=[to_content_block(block) for block in result.content or []],
        is_error=bool(mcp_field(result, "is_error", False)),
    )


class McpToolProvider:
    """Connection to one MCP tool server."""

    def __init__(
        self,
        command: Optional[str] = None,
        args: Sequence[str] = (),
        url: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        cwd: Optional[str] = None,
    ):
        if not command and not url:
            raise ConfigurationError("Either a server command or a server URL is required")
        self.command = command
        self.args = list(args)
        self.url = url
        self.env = env
        self.cwd = cwd
        self.server_info: Optional[Any] = None
        self._session: Optional[ClientSession] = None
        self._runner: Optional[asyncio.Task] = None
        self._ready: Optional[asyncio.Future] = None
        self._stop: Optional[asyncio.Event] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "McpToolProvider":
        target = settings.MCP_SERVER
        if target and is_url(target) and not settings.MCP_SERVER_COMMAND:
            return cls(url=target)
        command, args = resolve_server_command(
            target, settings.MCP_SERVER_COMMAND, settings.MCP_SERVER_ARGS
        )
        return cls(command=command, args=args)

    @property
    def name(self) -> str:
        if self.url:
            return self.url
        return " ".join([self.command or ""] + self.args)

    @property
    def connected(self) -> bool:
        return self._session is not None

    @asynccontextmanager
    async def _open_transport(self) -> AsyncIterator[Tuple[Any, Any]]:
        if self.url:
            async with sse_client(self.url) as streams:
                yield streams[0], streams[1]
        else:
            params = StdioServerParameters(
                command=self.command, args=self.args, env=self.env, cwd=self.cwd
            )
            async with stdio_client(params) as streams:
                yield streams[0], streams[1]

    async def _run(self) -> None:
        try:
            async with self._open_transport() as (read_stream, write_stream):
                async with ClientSession(read_stream, write_stream) as session:
                    init = await session.initialize()
                    self.server_info = mcp_field(init, "server_info")
                    self._session = session
                    logger.info(f"Connected to MCP server: {self.name}")
                    self._ready.set_result(None)
                    await self._stop.wait()
        except Exception as e:
            if not self._ready.done():
                self._ready.set_exception(e)
            else:
                logger.error(f"MCP connection to {self.name} ended with error: {e}")
        finally:
            self._session = None
            if not self._ready.done():
                self._ready.set_exception(ConnectionError("MCP connection closed during startup"))

    async def connect(self) -> None:
        """Start the server (or open the SSE stream) and initialize the session."""
        if self._runner is not None:
            return
        logger.info(f"Connecting to MCP server: {self.name}")
        self._ready = asyncio.get_running_loop().create_future()
        self._stop = asyncio.Event()
        self._runner = asyncio.create_task(self._run(), name=f"mcp:{self.name}")
        try:
            await self._ready
        except BaseException:
            await self.aclose()
            raise

    def _require_session(self) -> ClientSession:
        if self._session is None:
            raise ConnectionError(f"MCP server {self.name} is not connected")
        return self._session

    async def list_tools(self) -> List[RawTool]:
        result = await self._require_session().list_tools()
        return [
            RawTool(
                name=tool.name,
                description=tool.description,
                input_schema=mcp_field(tool, "input_schema"),
            )
            for tool in result.tools
        ]

    async def call_tool(self, name: str, arguments: Mapping[str, Any]) -> ToolCallResult:
        result = await self._require_session().call_tool(name, arguments=dict(arguments))
        return to_call_result(result)

    async def aclose(self) -> None:
        """Close the session and stop the server process; safe to call twice."""
        runner, self._runner = self._runner, None
        if runner is None:
            return
        self._stop.set()
        if not self._ready.done():
            runner.cancel()
        try:
            await runner
        except asyncio.CancelledError:
            pass
        logger.info(f"Disconnected from MCP server: {self.name}")
