"""Command line client using Typer."""
import asyncio
import json
import logging
import signal
from typing import Optional

import typer

from ..agents.manager import SessionManager
from ..common.types import ConfigurationError, DiscoveryError
from ..core.settings import Settings, settings as default_settings
from .logging_config import setup_logging
from .output import (
    console,
    print_error,
    print_info,
    print_reply,
    print_success,
    print_threads,
    print_tools,
    print_warning,
)

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="toolbridge",
    help="Chat with an agent over the tools of an MCP server",
    add_completion=False,
)

HELP_TEXT = """Commands:
  /new [id]        start a new thread (named when an id is given)
  /switch <id>     switch to a named thread
  /reset           clear the current thread
  /threads         list named threads
  /tools           list the discovered tools
  tool <name> [json]  call a tool directly
  exit             quit
Press Ctrl+C during a reply to cancel it."""


def _settings(server: Optional[str], log_level: Optional[str]) -> Settings:
    update = {}
    if server:
        update["MCP_SERVER"] = server
    if log_level:
        update["LOG_LEVEL"] = log_level
    resolved = default_settings.model_copy(update=update)
    setup_logging(log_level or "WARNING")
    return resolved


async def _send(manager: SessionManager, message: str) -> None:
    """Send one message; Ctrl+C cancels the reply instead of the client."""
    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
        handler_installed = True
    except (NotImplementedError, RuntimeError):
        handler_installed = False
    try:
        with console.status("[dim]Thinking...[/dim]"):
            reply = await manager.send(message, cancel_event=cancel_event)
    finally:
        if handler_installed:
            loop.remove_signal_handler(signal.SIGINT)
    print_reply(reply)


async def _call_tool(manager: SessionManager, name: str, raw_arguments: Optional[str]) -> None:
    runtime = await manager.initialize()
    if name not in runtime.catalogue:
        print_error(f"Tool '{name}' not found. Use /tools to list available tools.")
        return
    output = await manager.call_tool(name, raw_arguments or None)
    console.print(output, markup=False)


async def handle_line(manager: SessionManager, line: str) -> bool:
    """Handle one line of input; False ends the session."""
    line = line.strip()
    if not line:
        return True

    lowered = line.lower()
    if lowered in ("exit", "quit", "/exit", "/quit"):
        return False
    if lowered in ("help", "/help"):
        console.print(HELP_TEXT, markup=False)
        return True

    command, _, rest = line.partition(" ")
    rest = rest.strip()

    if command == "/new":
        thread = manager.new_thread(rest or None)
        print_success(f"Started thread {thread.thread_id or '(anonymous)'}")
    elif command == "/switch":
        if not rest:
            print_warning("Usage: /switch <id>")
        elif manager.switch_to(rest):
            print_success(f"Switched to thread {rest}")
        else:
            print_error(f"Unknown thread: {rest}")
    elif command == "/reset":
        thread = manager.reset_current()
        print_success(f"Thread {thread.thread_id or '(anonymous)'} cleared")
    elif command == "/threads":
        current = manager.current_thread
        print_threads(manager.list_threads(), current.thread_id if current else None)
    elif command == "/tools":
        runtime = await manager.initialize()
        print_tools(runtime.catalogue)
    elif command.lower() == "tool":
        name, _, raw_arguments = rest.partition(" ")
        if not name:
            print_warning("Usage: tool <name> [json]")
        else:
            await _call_tool(manager, name, raw_arguments.strip())
    else:
        await _send(manager, line)
    return True


async def _chat(settings: Settings, thread_id: Optional[str]) -> None:
    async with SessionManager(settings) as manager:
        runtime = await manager.initialize()
        if thread_id:
            manager.new_thread(thread_id)
        print_success(f"Connected: {len(runtime.catalogue)} tools available")
        print_info("Type 'help' for commands, 'exit' to quit.")

        while True:
            try:
                line = await asyncio.to_thread(console.input, "[bold green]You:[/bold green] ")
            except (EOFError, KeyboardInterrupt):
                break
            if not await handle_line(manager, line):
                break


async def _list_tools(settings: Settings) -> None:
    async with SessionManager(settings) as manager:
        runtime = await manager.initialize()
        print_tools(runtime.catalogue)


async def _call(settings: Settings, name: str, raw_arguments: Optional[str]) -> None:
    async with SessionManager(settings) as manager:
        await _call_tool(manager, name, raw_arguments)


def _run(coro) -> None:
    try:
        asyncio.run(coro)
    except ConfigurationError as e:
        print_error(str(e))
        if e.missing:
            print_info(f"Set {', '.join(e.missing)} in the environment or .env")
        raise typer.Exit(1)
    except DiscoveryError as e:
        print_error(str(e))
        raise typer.Exit(1)
    except OSError as e:
        print_error(f"Could not connect to the tool server: {e}")
        raise typer.Exit(1)


ServerOption = typer.Option(None, "--server", "-s", help="Server path or URL (overrides MCP_SERVER)")
LogLevelOption = typer.Option(None, "--log-level", "-l", help="Log level for diagnostics on stderr")


@app.command()
def chat(
    server: Optional[str] = ServerOption,
    thread: Optional[str] = typer.Option(None, "--thread", "-t", help="Start in a named thread"),
    log_level: Optional[str] = LogLevelOption,
):
    """Start an interactive chat session."""
    _run(_chat(_settings(server, log_level), thread))


@app.command()
def tools(
    server: Optional[str] = ServerOption,
    as_json: bool = typer.Option(False, "--json", help="Print the descriptor table as JSON"),
    log_level: Optional[str] = LogLevelOption,
):
    """List the tools the server exposes."""
    settings = _settings(server, log_level)
    if as_json:
        async def dump() -> None:
            async with SessionManager(settings) as manager:
                runtime = await manager.initialize()
                console.print_json(runtime.catalogue.to_json())
        _run(dump())
    else:
        _run(_list_tools(settings))


@app.command()
def call(
    name: str = typer.Argument(..., help="Tool name"),
    arguments: Optional[str] = typer.Argument(None, help="Arguments as a JSON object"),
    server: Optional[str] = ServerOption,
    log_level: Optional[str] = LogLevelOption,
):
    """Call one tool directly, without the agent."""
    if arguments:
        try:
            json.loads(arguments)
        except ValueError as e:
            print_error(f"Invalid JSON arguments: {e}")
            raise typer.Exit(1)
    _run(_call(_settings(server, log_level), name, arguments))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
