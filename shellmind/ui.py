"""Consoles and renderables shared by the CLI."""

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

# Answers and command output go to stdout
console = Console()

# Diagnostics go to stderr so they never mix with printed commands
stderr_console = Console(stderr=True)

PROMPT = "[bold cyan]shellmind>[/bold cyan] "


def result_panel(result: str, title: str, style: str = "green") -> Panel:
    """Frame model or command output; the text is never parsed as markup."""
    return Panel(
        Text(result),
        title=f"[bold {style}]{title}[/bold {style}]",
        border_style=style,
    )
