"""
Rich terminal output helpers for CLI.

Provides functions for printing tables and status messages using the
Rich library.
"""

from typing import Any, Optional

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from swcache.api import FetchResult
from swcache.core.models import ResponseSource, Strategy

# Console instance for all output
console = Console()


def get_strategy_style(strategy: Optional[Strategy]) -> str:
    """Get Rich style string for a strategy."""
    styles = {
        Strategy.CACHE_FIRST: "green",
        Strategy.NETWORK_FIRST: "cyan",
        Strategy.NETWORK_ONLY: "yellow",
    }
    return styles.get(strategy, "dim")


def strategy_text(strategy: Optional[Strategy]) -> Text:
    label = str(strategy) if strategy else "passthrough"
    return Text(label, style=get_strategy_style(strategy))


def print_classification(rows: list[tuple[str, Optional[Strategy]]]) -> None:
    """Print how each path would be routed.

    Args:
        rows: (path, strategy) pairs; a None strategy is not intercepted.
    """
    table = Table(
        title="Request Routing",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Request", style="cyan")
    table.add_column("Strategy")

    for path, strategy in rows:
        table.add_row(path, strategy_text(strategy))

    console.print()
    console.print(table)


def print_fetch_results(results: list[FetchResult]) -> None:
    """Print a table of routed fetches."""
    table = Table(
        title="Fetch Results",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Path", style="cyan")
    table.add_column("Strategy")
    table.add_column("Status", justify="right")
    table.add_column("Source")
    table.add_column("Size", justify="right")

    for result in results:
        if result.response is None:
            table.add_row(
                result.path,
                strategy_text(result.strategy),
                Text("failed", style="bold red"),
                Text(str(result.error), style="red"),
                "-",
            )
            continue

        response = result.response
        status_style = "green" if response.ok else "yellow"
        source_style = "green" if response.source is ResponseSource.CACHE else "white"
        table.add_row(
            result.path,
            strategy_text(result.strategy),
            Text(str(response.status), style=status_style),
            Text(str(response.source), style=source_style),
            _format_size(len(response.body)),
        )

    console.print()
    console.print(table)

    failed = sum(1 for r in results if r.response is None)
    from_cache = sum(1 for r in results if r.source is ResponseSource.CACHE)
    console.print(
        f"\n[bold]Summary:[/bold] {len(results)} requests, "
        f"[green]{from_cache} from cache[/green], "
        f"[red]{failed} failed[/red]"
    )


def print_stats(stats: dict[str, Any], current: Optional[set[str]] = None) -> None:
    """Print storage statistics.

    Args:
        stats: Output of CacheStorage.stats().
        current: Store names owned by the current version; other stores
            are flagged as stale.
    """
    console.print(f"\n[bold]Database:[/bold] {stats['db_path']}")
    console.print(f"[bold]Size:[/bold] {_format_size(stats['db_size_bytes'])}")

    table = Table(box=box.SIMPLE, show_header=True, header_style="bold cyan")
    table.add_column("Store", style="cyan")
    table.add_column("Entries", justify="right")
    table.add_column("Bytes", justify="right")
    table.add_column("Version")

    for name, store in stats["stores"].items():
        if current is None:
            marker = Text("")
        elif name in current:
            marker = Text("current", style="green")
        else:
            marker = Text("stale", style="yellow")
        table.add_row(name, str(store["entries"]), _format_size(store["bytes"]), marker)

    console.print(table)
    console.print(
        f"[bold]Total:[/bold] {stats['total_stores']} stores, {stats['total_entries']} entries"
    )


def print_store_entries(store: str, keys: list[str]) -> None:
    console.print(f"\n[bold cyan]{store}[/bold cyan] ({len(keys)} entries)")
    for key in keys:
        console.print(f"  {key}")


def _format_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[bold yellow]Warning:[/] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[cyan]Info:[/] {message}")
