"""Shared utility functions for forge-pkg.

Provides async command execution, JSON serialisation, and the Rich-based presentation
helpers.  Generators never print; everything user-facing goes through the
helpers at the bottom of this module.
"""

from __future__ import annotations

import asyncio
import json
import os
import signal
import threading
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.rule import Rule
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: str | list[str],
    cwd: str | Path | None = None,
    timeout: int = 120,
    capture: bool = True,
    env: dict[str, str] | None = None,
) -> tuple[int, str, str]:
    """Run *cmd* as a child process and wait for it.

    A list is executed directly; a string goes through the shell.  With
    ``capture=False`` the child writes straight to the terminal (used for
    package installs, so the user sees progress) and both returned strings
    are empty.  *env* is layered over ``os.environ``.

    Returns ``(returncode, stdout, stderr)``.  A missing executable yields
    ``127`` and a timeout yields ``-1``; neither raises.
    """
    merged_env: dict[str, str] | None = None
    if env:
        merged_env = {**os.environ, **env}

    stdout_pipe = asyncio.subprocess.PIPE if capture else None
    stderr_pipe = asyncio.subprocess.PIPE if capture else None

    try:
        if isinstance(cmd, list):
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=stdout_pipe,
                stderr=stderr_pipe,
                cwd=str(cwd) if cwd else None,
                env=merged_env,
            )
        else:
            process = await asyncio.create_subprocess_shell(
                cmd,
                stdout=stdout_pipe,
                stderr=stderr_pipe,
                cwd=str(cwd) if cwd else None,
                env=merged_env,
            )
    except FileNotFoundError as exc:
        return (127, "", f"Command not found: {exc.filename or _format_cmd(cmd)}")

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return (-1, "", f"Command timed out after {timeout}s: {_format_cmd(cmd)}")

    stdout_str = (stdout_bytes or b"").decode("utf-8", errors="replace").strip()
    stderr_str = (stderr_bytes or b"").decode("utf-8", errors="replace").strip()
    return (process.returncode or 0, stdout_str, stderr_str)


def _format_cmd(cmd: str | list[str]) -> str:
    return cmd if isinstance(cmd, str) else " ".join(cmd)


# ---------------------------------------------------------------------------
# Signals
# ---------------------------------------------------------------------------


def use_default_sigint() -> None:
    """Make Ctrl-C raise ``KeyboardInterrupt`` inside the running event loop.

    On Python 3.11+ ``asyncio.run`` installs a SIGINT handler that only
    cancels the main task, so a blocking terminal prompt never sees the
    interrupt.  Only the main thread may install signal handlers.
    """
    if threading.current_thread() is threading.main_thread():
        signal.signal(signal.SIGINT, signal.default_int_handler)


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------


def dump_json(data: Any) -> str:
    """Serialise generated JSON files: two-space indent, trailing newline.

    Key order is preserved, never sorted, since ``package.json`` readers
    expect the conventional field order.
    """
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """``3.7`` becomes ``"3.7s"``; ``65.2`` becomes ``"1m 5s"``."""
    if seconds < 0:
        return "0.0s"

    minutes = int(seconds // 60)
    secs = seconds % 60
    if minutes > 0:
        return f"{minutes}m {int(secs)}s"
    return f"{secs:.1f}s"


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_header(title: str, subtitle: str | None = None) -> None:
    """Print the banner shown at the start of a run."""
    body = f"[bold bright_cyan]{title}[/bold bright_cyan]"
    if subtitle:
        body += f"\n[dim]{subtitle}[/dim]"
    console.print(Panel(body, border_style="bright_cyan"))


def print_rule(title: str) -> None:
    """Print a full-width section rule."""
    console.print()
    console.print(Rule(f"[bold]{title}[/bold]", style="cyan"))


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")


def print_info(message: str) -> None:
    console.print(message)


def print_step(message: str) -> None:
    console.print(f"[bold cyan]>[/bold cyan] {message}")


def print_debug(message: str) -> None:
    console.print(f"[dim]{message}[/dim]")


def create_progress() -> Progress:
    """Transient spinner shown while a network or disk step runs."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )
