"""
Human-readable output formatting.

Centralizes all CLI output formatting so commands only deal with the
library calls.
"""
from __future__ import annotations

import typer
from pathlib import Path
from typing import List

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from ..store import StoredPolicy

_console = Console()
_err_console = Console(stderr=True)


def print_pulled(path: Path) -> None:
    """
    Print the local path of a fetched policy.

    Plain text only, so the output can be used by scripts.
    """
    typer.echo(str(path))


def print_policies(policies: List[StoredPolicy], root: Path) -> None:
    """
    Print the policies found in a store.

    Args:
        policies: Stored policies
        root: Store root, shown in the table title
    """
    if not policies:
        _console.print(f"[dim]No policies in {escape(str(root))}[/]")
        return

    table = Table(title=f"Policies in {escape(str(root))}")
    table.add_column("URI", style="cyan")
    table.add_column("Size", style="yellow", justify="right")
    for policy in policies:
        table.add_row(escape(policy.uri), _format_bytes(policy.local_path.stat().st_size))
    _console.print(table)


def print_digest(uri: str, digest: str) -> None:
    typer.echo(f"{uri} sha256:{digest}")


def print_error(exc: BaseException) -> None:
    """Print an error on stderr, with its cause when it adds detail."""
    _err_console.print(Text.assemble(("Error: ", "bold red"), str(exc)))
    cause = exc.__cause__
    if cause is not None and str(cause) and str(cause) not in str(exc):
        _err_console.print(Text(f"Caused by: {cause}", style="dim"))


def _format_bytes(size_bytes: int) -> str:
    """
    Format byte count as human-readable string.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted string (e.g., "1.5 MB", "42 KB")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"
