"""Shared utility functions for the Workflow Runner.

Provides child-process control, JSON I/O, file-system helpers, Rich-based
console reporting, and health-check polling for the generated API.
"""

from __future__ import annotations

import asyncio
import json
import shutil
import time
from pathlib import Path
from typing import Any

import httpx
from rich.console import Console
from rich.rule import Rule
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# Child processes
# ---------------------------------------------------------------------------


async def spawn_process(
    cmd: list[str],
    cwd: str | Path | None = None,
) -> asyncio.subprocess.Process:
    """Start a long-running child process without waiting for it.

    Output is discarded; the caller owns the returned process and must
    terminate it with :func:`terminate_process`.
    """
    return await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.DEVNULL,
        stderr=asyncio.subprocess.DEVNULL,
        cwd=str(cwd) if cwd else None,
        start_new_session=True,
    )


async def terminate_process(process: asyncio.subprocess.Process, timeout: float = 5.0) -> None:
    """Terminate *process*, escalating to ``kill`` if it does not exit in time."""
    if process.returncode is not None:
        return
    process.terminate()
    try:
        await asyncio.wait_for(process.wait(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()


# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------


def load_json(path: str | Path) -> dict[str, Any]:
    """Load and parse a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    raw = Path(path).read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        return {"_root": data}
    return data


async def save_json(data: dict[str, Any] | list[Any], path: str | Path) -> None:
    """Save data as pretty-printed JSON, creating parent directories."""
    file_path = Path(path)
    content = json.dumps(data, indent=2, ensure_ascii=False, default=str)
    await asyncio.to_thread(write_text, file_path, content)


# ---------------------------------------------------------------------------
# File-system helpers
# ---------------------------------------------------------------------------


def write_text(path: Path, content: str) -> Path:
    """Synchronous helper: create parent dirs and write UTF-8 content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def make_executable(path: Path) -> None:
    """Add the executable bits to *path* (no-op on platforms without them)."""
    mode = path.stat().st_mode
    path.chmod(mode | 0o111)


# Source-like files listed after each stage; build output is never shown.
_LISTED_SUFFIXES = {".cs", ".md", ".sql", ".yml", ".yaml", ".json", ".txt", ".sh", ".bat"}
_LISTED_NAMES = {"Dockerfile"}
_IGNORED_PARTS = {"bin", "obj"}


def list_generated_files(root: Path) -> list[Path]:
    """Return generated source files under *root*, relative and sorted.

    Build output and hidden run metadata (``.workflow/``) are left out.
    """
    if not root.is_dir():
        return []
    files: list[Path] = []
    for path in root.rglob("*"):
        if not path.is_file():
            continue
        rel = path.relative_to(root)
        if _IGNORED_PARTS.intersection(rel.parts):
            continue
        if any(part.startswith(".") for part in rel.parts):
            continue
        if path.suffix.lower() in _LISTED_SUFFIXES or path.name in _LISTED_NAMES:
            files.append(rel)
    return sorted(files)


def count_files(root: Path) -> int:
    """Count every regular file under *root* (0 when it does not exist)."""
    if not root.is_dir():
        return 0
    return sum(1 for p in root.rglob("*") if p.is_file())


def clear_directory(path: Path) -> bool:
    """Delete everything under *path* and recreate it empty.

    Returns:
        ``True`` if the directory existed before clearing.
    """
    existed = path.exists()
    if existed:
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)
    return existed


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Render a run duration for the summary panel and the state file.

    Runs under a minute keep one decimal (``"3.7s"``); longer runs drop the
    fraction and leave out zero hours (``"1m 5s"``, ``"1h 1m 1s"``).
    """
    seconds = max(seconds, 0.0)
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    return f"{minutes}m {secs}s"


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_stage_header(number: int, name: str, color: str) -> None:
    """Print a full-width rule announcing stage *number* in the stage's *color*."""
    console.print()
    console.print(Rule(f"[bold {color}] Stage {number}: {name} [/bold {color}]", style=color))


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


_MESSAGE_STYLES: dict[str, str] = {
    "success": "bold green",
    "error": "bold red",
    "warning": "bold yellow",
}


def _print_message(kind: str, message: str) -> None:
    style = _MESSAGE_STYLES[kind]
    console.print(f"[{style}]{message}[/{style}]")


def print_success(message: str) -> None:
    _print_message("success", message)


def print_error(message: str) -> None:
    _print_message("error", message)


def print_warning(message: str) -> None:
    _print_message("warning", message)


# ---------------------------------------------------------------------------
# Health-check polling
# ---------------------------------------------------------------------------


async def wait_for_health(
    url: str,
    timeout: int = 60,
    interval: float = 2,
) -> bool:
    """Poll the generated API at *url* until it answers ``200``.

    Connection errors count as "not up yet". Gives up once *timeout*
    seconds have passed; a zero timeout never sends a request.
    """
    deadline = time.monotonic() + timeout

    async with httpx.AsyncClient(timeout=httpx.Timeout(5.0, connect=3.0)) as client:
        while True:
            if time.monotonic() >= deadline:
                return False
            try:
                response = await client.get(url)
            except httpx.HTTPError:
                response = None
            if response is not None and response.status_code == 200:
                return True
            await asyncio.sleep(max(min(interval, deadline - time.monotonic()), 0))
