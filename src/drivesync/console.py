"""Styled terminal output for the CLI."""

from __future__ import annotations

from rich.console import Console

_console = Console(highlight=False)
_err_console = Console(stderr=True, highlight=False)


def info(msg: str) -> None:
    _console.print(f"[cyan]{msg}[/cyan]")


def success(msg: str) -> None:
    _console.print(f"[green]{msg}[/green]")


def warning(msg: str) -> None:
    _err_console.print(f"[yellow]{msg}[/yellow]")


def error(msg: str) -> None:
    _err_console.print(f"[bold red]error:[/bold red] {msg}")


def dim(msg: str) -> None:
    _console.print(f"[dim]{msg}[/dim]")


def raw(text: str) -> None:
    """Print text without markup processing."""
    _console.print(text, markup=False, soft_wrap=True)
