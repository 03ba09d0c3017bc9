"""Colour-coded status output for the CLI."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)


def log_info(message: str) -> None:
    console.print(f"[#8892a4]{escape(message)}[/]")


def log_success(message: str) -> None:
    console.print(f"[#39ff14]{escape(message)}[/]")


def log_warning(message: str) -> None:
    err_console.print(f"[#ffaa00]{escape(message)}[/]")


def log_error(message: str) -> None:
    err_console.print(f"[#ff3366]{escape(message)}[/]")


def print_json(data: object) -> None:
    console.print_json(data=data)
