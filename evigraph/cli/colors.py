"""CLI color utilities for terminal output.

Uses rich for formatting.
"""

from typing import Any, Dict

from rich.box import ASCII
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

custom_theme = Theme(
    {
        "info": "cyan",
        "success": "bold green",
        "warning": "bold yellow",
        "error": "bold red",
        "dim": "dim white",
        "highlight": "bold cyan",
        "layer0": "bold magenta",
        "layer1": "bold blue",
        "layer2": "bold green",
        "layer3": "yellow",
    }
)

console = Console(theme=custom_theme)


def print_header(text: str):
    """Print a section header."""
    console.print(f"\n[bold cyan]{text}[/bold cyan]")
    console.print("[dim]" + "-" * len(text) + "[/dim]")


def print_success(text: str):
    """Print success message."""
    console.print(f"[success][OK][/success] {text}")


def print_error(text: str):
    """Print error message."""
    console.print(f"[error][X][/error] {text}")


def print_warning(text: str):
    """Print warning message."""
    console.print(f"[warning][!][/warning] {text}")


def print_info(text: str):
    """Print info message."""
    console.print(f"[info][i][/info] {text}")


def print_key_value(key: str, value: Any):
    """Print an aligned key/value line."""
    console.print(f"  [dim]{key}:[/dim] {value}")


def print_panel(text: str, title: str = None, style: str = "cyan"):
    """Print text in a panel."""
    console.print(Panel(text, title=title, border_style=style))


def truncate_text(text: str, length: int) -> str:
    """Shorten text to length, marking the cut with an ellipsis."""
    return text if len(text) <= length else text[: length - 3] + "..."


def print_density_table(config: Dict[str, Any]):
    """Print a density configuration (wire form) as a table."""
    table = Table(show_header=True, header_style="bold cyan", box=ASCII)
    table.add_column("Stage", style="cyan", width=22)
    table.add_column("Setting", style="white", width=22)
    table.add_column("Value", style="yellow", width=10)

    table.add_row("Research", "exaNumResults", str(config["exaNumResults"]))
    for stage, values in (
        ("Direct sources", config["directSourcesPerBlock"]),
        ("Secondary concepts", config["secondarySources"]),
        ("Semantic edges", config["semanticEdges"]),
    ):
        for index, (name, value) in enumerate(values.items()):
            table.add_row(stage if index == 0 else "", name, str(value))

    console.print(table)


def print_graph_stats(stats: Dict[str, Any]):
    """Print node and edge counts of an evidence graph."""
    table = Table(show_header=True, header_style="bold cyan", box=ASCII)
    table.add_column("Kind", style="dim", width=10)
    table.add_column("Type", style="cyan", width=20)
    table.add_column("Count", style="yellow", width=8)

    for node_type, count in stats["nodes_by_type"].items():
        table.add_row("node", node_type, str(count))
    for relation, count in stats["edges_by_relation"].items():
        table.add_row("edge", relation, str(count))

    console.print(table)
    console.print(f"[dim]{stats['node_count']} nodes, {stats['edge_count']} edges[/dim]")
