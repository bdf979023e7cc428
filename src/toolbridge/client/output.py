"""Console output for the command line client."""
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..common.types import ChatReply
from ..tools.catalogue import Catalogue

console = Console()


def print_success(message: str) -> None:
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    console.print(f"[red]✗[/red] {message}")


def print_warning(message: str) -> None:
    console.print(f"[yellow]⚠[/yellow] {message}")


def print_info(message: str) -> None:
    console.print(f"[blue]ℹ[/blue] {message}")


def print_tools(catalogue: Catalogue) -> None:
    """Print the catalogue with one row per parameter."""
    table = Table(title=f"Available Tools (v{catalogue.version})")
    table.add_column("Tool", style="cyan")
    table.add_column("Parameter")
    table.add_column("Type", style="magenta")
    table.add_column("Required", justify="center")
    table.add_column("Default")
    table.add_column("Description", max_width=50)

    for tool in catalogue:
        if not tool.parameters:
            table.add_row(tool.name, "-", "", "", "", escape(tool.description))
            continue
        for index, param in enumerate(tool.parameters.values()):
            default = param.to_prompt_dict()["default"]
            table.add_row(
                tool.name if index == 0 else "",
                param.name,
                param.type,
                "✓" if param.required else "",
                "" if default is None else escape(str(default)),
                escape(param.description or (tool.description if index == 0 else "")),
            )

    console.print(table)


def print_threads(names: List[str], current: Optional[str]) -> None:
    if not names:
        print_info("No named threads")
        return
    for name in names:
        marker = "[green]*[/green]" if name == current else " "
        console.print(f"{marker} {escape(name)}")


def print_reply(reply: ChatReply) -> None:
    """Print an agent reply, styled by outcome."""
    for call in reply.tool_calls:
        console.print(f"[dim]→ {escape(call.name)}({escape(str(call.arguments))})[/dim]")

    if reply.type == "message":
        console.print(f"[bold cyan]AI:[/bold cyan] {escape(reply.content)}")
    elif reply.type == "cancelled":
        print_warning(reply.content)
    else:
        print_error(escape(reply.content))
