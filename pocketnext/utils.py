"""Shared utility functions for PocketNext.

Provides async command execution with child-process tracking, JSON I/O for
package manifests, file-system helpers, Rich-based console reporting, and a
connectivity probe.  All user-facing output goes through the module-level
``console`` so tests can capture it in one place.
"""

from __future__ import annotations

import asyncio
import json
import os
import shutil
import signal
import sys
from pathlib import Path
from typing import Any

import httpx
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

console = Console()

# Children started by run_command that have not exited yet.
_ACTIVE_PROCESSES: set[asyncio.subprocess.Process] = set()

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: list[str],
    cwd: str | Path | None = None,
    timeout: int = 600,
    env: dict[str, str] | None = None,
) -> tuple[int, str, str]:
    """Run a command asynchronously and capture its output.

    The child is started in its own process group and registered in
    ``_ACTIVE_PROCESSES`` until it exits, so an interrupt can terminate the
    whole group via :func:`terminate_active_processes`.

    Args:
        cmd: Argument vector; the first element is the executable.
        cwd: Working directory for the child process.
        timeout: Maximum wall-clock seconds before the process is killed.
        env: Optional extra environment variables merged on top of ``os.environ``.

    Returns:
        A ``(returncode, stdout, stderr)`` tuple.  A missing executable is
        reported as returncode ``127``; a timeout as ``-1``.
    """
    merged_env: dict[str, str] | None = None
    if env:
        merged_env = {**os.environ, **env}

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
            env=merged_env,
            start_new_session=sys.platform != "win32",
        )
    except FileNotFoundError:
        return (127, "", f"Command not found: {cmd[0]}")

    _ACTIVE_PROCESSES.add(process)
    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return (-1, "", f"Command timed out after {timeout}s: {' '.join(cmd)}")
    finally:
        _ACTIVE_PROCESSES.discard(process)

    stdout_str = (stdout_bytes or b"").decode("utf-8", errors="replace").strip()
    stderr_str = (stderr_bytes or b"").decode("utf-8", errors="replace").strip()
    return (process.returncode or 0, stdout_str, stderr_str)


def terminate_active_processes() -> int:
    """Terminate every tracked child process group.

    Returns:
        The number of processes signalled.
    """
    signalled = 0
    for process in list(_ACTIVE_PROCESSES):
        if process.returncode is not None:
            continue
        try:
            if sys.platform != "win32":
                os.killpg(process.pid, signal.SIGTERM)
            else:
                process.terminate()
            signalled += 1
        except (ProcessLookupError, PermissionError):
            pass
    _ACTIVE_PROCESSES.clear()
    return signalled


# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------


def load_json(path: str | Path) -> dict[str, Any]:
    """Load and parse a JSON object from *path*.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        return {"_root": data}
    return data


def save_json(data: dict[str, Any], path: str | Path) -> None:
    """Write *data* as two-space indented JSON with a trailing newline."""
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(
        json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
    )


# ---------------------------------------------------------------------------
# File-system helpers
# ---------------------------------------------------------------------------


def ensure_dir(path: str | Path) -> Path:
    """Create a directory (and parents) if it does not exist."""
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path.resolve()


def is_non_empty_dir(path: str | Path) -> bool:
    """``True`` when *path* is a directory with at least one entry."""
    dir_path = Path(path)
    return dir_path.is_dir() and any(dir_path.iterdir())


def safe_remove(path: str | Path) -> bool:
    """Remove a file or directory tree if it exists.

    Failures are reported as a warning rather than raised.

    Returns:
        ``True`` if something was removed.
    """
    target = Path(path)
    try:
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
            return True
        if target.exists() or target.is_symlink():
            target.unlink()
            return True
    except OSError as exc:
        print_warning(f"Warning: Failed to remove {target.name}: {exc}")
    return False


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
    """
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


def print_banner(version: str) -> None:
    """Print the welcome banner."""
    console.print(
        Panel(
            "[bold bright_blue]PocketNext[/bold bright_blue] - "
            "Create full-stack Next.js + PocketBase projects",
            subtitle=f"v{version}",
            border_style="bright_blue",
        )
    )


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
    """Print a dim informational line."""
    console.print(f"[dim]{message}[/dim]")


def print_remediation(cause: str, steps: list[str]) -> None:
    """Print a fatal cause followed by a numbered list of remediation steps."""
    print_error(cause)
    if steps:
        console.print("[yellow]To fix this, you can:[/yellow]")
        for number, step in enumerate(steps, start=1):
            console.print(f"  {number}. {step}")


def create_progress() -> Progress:
    """Create a Rich spinner configured for pipeline stages.

    Returns:
        A ``Progress`` instance suitable for use as a context manager.
    """
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )


# ---------------------------------------------------------------------------
# Connectivity
# ---------------------------------------------------------------------------


async def check_online(url: str = "https://registry.npmjs.org/npm", timeout: float = 3.0) -> bool:
    """Return ``True`` if *url* answers within *timeout* seconds.

    Any response counts as online; connection errors and timeouts do not.
    """
    async with httpx.AsyncClient(timeout=httpx.Timeout(timeout, connect=timeout)) as client:
        try:
            await client.head(url)
            return True
        except httpx.HTTPError:
            return False
