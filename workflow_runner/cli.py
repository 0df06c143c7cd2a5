"""Interactive command shell for the Workflow Runner.

Commands (case-insensitive):

    start-workflow  Run every stage against ``<workflow>/input/requirements.md``.
    test-project    Launch the generated API and wait for it to answer.
    status          Show the workflow state and per-directory file counts.
    clear           Delete the generated output (only while no run is active).
    exit            Stop any launched API and leave the shell.

Usage::

    workflow-runner
    workflow-runner --workflow-dir ./my-workflow --fix-delay 0
    python -m workflow_runner start-workflow status
"""

from __future__ import annotations

import asyncio
import sys
import traceback
from pathlib import Path
from typing import Any, Awaitable, Callable

from rich.panel import Panel
from rich.prompt import Prompt

from workflow_runner.config import Config
from workflow_runner.pipeline import Operator, Pipeline, WorkflowBusyError
from workflow_runner.utils import (
    clear_directory,
    console,
    count_files,
    list_generated_files,
    load_json,
    print_error,
    print_success,
    print_summary_table,
    print_warning,
    spawn_process,
    terminate_process,
    wait_for_health,
)

COMMANDS: tuple[str, ...] = ("start-workflow", "test-project", "status", "clear", "exit")
USAGE = "Commands: " + ", ".join(COMMANDS)

_STATUS_DIRECTORIES: tuple[str, ...] = (
    "Controllers",
    "Models",
    "Services",
    "Database",
    "Tests",
    "CodeReview",
    "DevOps",
)


class WorkflowShell:
    """Dispatches shell commands to the pipeline and the output tree.

    Attributes:
        config: Workflow configuration.
        pipeline: The single orchestrator owned by this shell.
        process: The API process launched by ``test-project``, if any.
    """

    def __init__(
        self,
        config: Config,
        operator: Operator | None = None,
        pipeline: Pipeline | None = None,
    ) -> None:
        self.config = config
        self.pipeline = pipeline or Pipeline(config, operator)
        self.process: asyncio.subprocess.Process | None = None
        self._handlers: dict[str, Callable[[], Awaitable[Any]]] = {
            "start-workflow": self.start_workflow,
            "test-project": self.test_project,
            "status": self.show_status,
            "clear": self.clear,
        }

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def handle(self, command: str) -> bool:
        """Execute one command line.

        Returns:
            ``False`` when the shell should exit, ``True`` otherwise.
        """
        name = command.strip().lower()
        if not name:
            return True
        if name == "exit":
            await self.stop_test_project()
            return False

        handler = self._handlers.get(name)
        if handler is None:
            print_warning(f"Unknown command: {command.strip()}")
            console.print(USAGE)
            return True

        try:
            await handler()
        except WorkflowBusyError as exc:
            print_error(str(exc))
        except Exception as exc:
            console.print(f"[dim]{traceback.format_exc()}[/dim]")
            print_error(f"{name} failed: {exc}")
        return True

    async def loop(self) -> None:
        """Read and execute commands until ``exit`` or end of input."""
        console.print(
            Panel(
                f"[bold bright_cyan]Workflow Runner[/bold bright_cyan]\n"
                f"Workflow : {self.config.workflow_dir.resolve()}\n"
                f"{USAGE}",
                border_style="bright_cyan",
            )
        )
        try:
            while True:
                try:
                    command = await asyncio.to_thread(
                        Prompt.ask,
                        "[bold cyan]workflow>[/bold cyan]",
                        console=console,
                        default="",
                        show_default=False,
                    )
                except (EOFError, KeyboardInterrupt):
                    console.print()
                    break
                if not await self.handle(command):
                    break
        finally:
            await self.stop_test_project()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def start_workflow(self) -> None:
        await self.pipeline.run()

    async def test_project(self) -> bool:
        """Launch the setup script and poll the API health URL.

        Returns:
            ``True`` if the API answered within ``Config.health_timeout``.
        """
        if not list_generated_files(self.config.output_dir):
            print_warning("No generated project found. Run start-workflow first.")
            return False
        script = self.config.setup_script_path
        if not script.is_file():
            print_warning(f"Setup script not found: {script}. Complete a workflow run first.")
            return False

        await self.stop_test_project()
        self.process = await spawn_process(["bash", str(script)], cwd=self.config.output_dir)
        console.print(
            f"  Started {script.name} (pid {self.process.pid}); "
            f"waiting up to {self.config.health_timeout}s for {self.config.health_url}"
        )

        healthy = await wait_for_health(self.config.health_url, timeout=self.config.health_timeout)
        if healthy:
            print_success(f"API is up: {self.config.health_url}")
        elif self.process.returncode is not None:
            print_error(f"Setup script exited with code {self.process.returncode}")
            self.process = None
        else:
            print_warning("API did not respond in time; the process is still running.")
        return healthy

    async def stop_test_project(self) -> None:
        """Terminate the process launched by ``test-project``, if any."""
        if self.process is not None:
            await terminate_process(self.process)
            self.process = None

    async def show_status(self) -> dict[str, str]:
        """Print and return the status summary."""
        config = self.config
        summary: dict[str, str] = {
            "Workflow state": self.pipeline.current_state,
            "Requirements": "present" if config.requirements_path.is_file() else "missing",
        }
        for name in _STATUS_DIRECTORIES:
            summary[f"{name}/"] = f"{count_files(config.output_dir / name)} files"
        summary["Program.cs"] = "present" if config.program_path.is_file() else "missing"
        summary["Project guide"] = "present" if config.guide_path.is_file() else "missing"

        if config.state_path.is_file():
            last_run = load_json(config.state_path)
            summary["Last run"] = str(last_run.get("state", "unknown"))
            if last_run.get("last_message"):
                summary["Last message"] = str(last_run["last_message"])
        if self.process is not None:
            summary["Test process"] = f"pid {self.process.pid}"

        print_summary_table(summary, title="Workflow Status")
        return summary

    async def clear(self) -> bool:
        """Delete the output tree.

        Raises:
            WorkflowBusyError: If a workflow run is in flight.
        """
        if not self.pipeline.is_idle:
            raise WorkflowBusyError(self.pipeline.current_state, "clear")
        await self.stop_test_project()
        existed = await asyncio.to_thread(clear_directory, self.config.output_dir)
        await self.pipeline.reset()
        if existed:
            print_success(f"Cleared {self.config.output_dir}")
        else:
            print_success("Output directory was already empty")
        return existed


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


async def _run(config: Config, commands: list[str]) -> int:
    shell = WorkflowShell(config)
    if not commands:
        await shell.loop()
        return 0
    try:
        for command in commands:
            if not await shell.handle(command):
                break
    finally:
        await shell.stop_test_project()
    report = shell.pipeline.report
    return 0 if report.state in ("idle", "completed") else 1


def main() -> None:
    """CLI entry point for ``workflow-runner`` and ``python -m workflow_runner``."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Workflow Runner -- requirements to generated API skeleton",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  workflow-runner\n"
            "  workflow-runner --workflow-dir ./my-workflow\n"
            "  workflow-runner start-workflow status\n"
        ),
    )
    parser.add_argument(
        "commands",
        nargs="*",
        help=f"Commands to run without the interactive prompt ({', '.join(COMMANDS)})",
    )
    parser.add_argument(
        "--workflow-dir", "-w",
        default=None,
        help="Workflow directory holding input/ and output/ (default: ./workflow)",
    )
    parser.add_argument(
        "--fix-delay",
        type=float,
        default=None,
        help="Seconds to pause before applying an automatic fix (default: 1.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port of the generated API used by test-project (default: 5000)",
    )

    args = parser.parse_args()

    overrides: dict[str, Any] = {}
    if args.workflow_dir:
        overrides["workflow_dir"] = Path(args.workflow_dir)
    if args.fix_delay is not None:
        overrides["fix_delay"] = args.fix_delay
    if args.port is not None:
        overrides["api_port"] = args.port

    base = Config.from_env()
    config = Config(**{**base.model_dump(), **overrides})

    sys.exit(asyncio.run(_run(config, args.commands)))


if __name__ == "__main__":
    main()
