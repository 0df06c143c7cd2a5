"""Workflow Runner pipeline orchestrator.

Runs the six workflow stages in order against one workflow directory:

Stage 1: Requirements -- parse requirements into a context, write epics.
Stage 2: Developer    -- generate controllers, models, services, host file.
Stage 3: DataSchema   -- generate the database schema script.
Stage 4: UnitTest     -- generate controller tests.
Stage 5: CodeReview   -- review the generated sources.
Stage 6: DevOps       -- generate deployment files.

Between stages the operator is asked whether to continue. A stage that
reports itemized issues puts the run in ``waiting_for_decision`` and the
operator picks *fix*, *manual*, *skip* or *abort*.

Usage::

    pipeline = Pipeline(Config(workflow_dir=Path("./workflow")), ConsoleOperator())
    report = await pipeline.run()
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from rich.panel import Panel
from rich.prompt import Prompt

from workflow_runner.config import Config
from workflow_runner.reporter import GuideGenerator
from workflow_runner.stages import (
    STAGE_ORDER,
    Stage,
    StageOutcome,
    StageResult,
    StageRun,
    execute_stage,
)
from workflow_runner.state_machine import (
    ACTIVE_STATES,
    TERMINAL_STATES,
    WorkflowModel,
    create_workflow_machine,
)
from workflow_runner.utils import (
    console,
    format_duration,
    print_error,
    print_stage_header,
    print_success,
    print_warning,
    save_json,
)

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class WorkflowBusyError(Exception):
    """Raised when an operation needs the pipeline idle but a run is active."""

    def __init__(self, state: str, action: str = "this operation") -> None:
        self.state = state
        super().__init__(f"Cannot run {action} while the workflow is {state}")


# ---------------------------------------------------------------------------
# Operator decisions
# ---------------------------------------------------------------------------


class RecoveryAction(str, Enum):
    FIX = "fix"
    MANUAL = "manual"
    SKIP = "skip"
    ABORT = "abort"


_RECOVERY_CHOICES: dict[str, RecoveryAction] = {
    "f": RecoveryAction.FIX,
    "fix": RecoveryAction.FIX,
    "m": RecoveryAction.MANUAL,
    "manual": RecoveryAction.MANUAL,
    "s": RecoveryAction.SKIP,
    "skip": RecoveryAction.SKIP,
    "a": RecoveryAction.ABORT,
    "abort": RecoveryAction.ABORT,
}


def parse_recovery_choice(answer: str) -> RecoveryAction | None:
    """Map operator input onto a :class:`RecoveryAction`.

    Returns ``None`` for anything unrecognised; the pipeline then continues
    without remediation.
    """
    return _RECOVERY_CHOICES.get(answer.strip().lower())


def is_affirmative(answer: str) -> bool:
    """Whether *answer* is ``y`` or ``yes`` (any case)."""
    return answer.strip().lower() in ("y", "yes")


class Operator(Protocol):
    """The human (or test double) consulted between and after stages."""

    async def confirm_continue(self, next_stage: Stage) -> bool: ...

    async def choose_recovery(self, stage: Stage, result: StageResult) -> str: ...


class ConsoleOperator:
    """Operator backed by Rich prompts on the terminal."""

    async def confirm_continue(self, next_stage: Stage) -> bool:
        answer = await asyncio.to_thread(
            Prompt.ask,
            f"Continue to {next_stage.display_name}? [bold](y/n)[/bold]",
            console=console,
            default="",
            show_default=False,
        )
        return is_affirmative(answer)

    async def choose_recovery(self, stage: Stage, result: StageResult) -> str:
        return await asyncio.to_thread(
            Prompt.ask,
            "Choose: [bold][f][/bold]ix, [bold][m][/bold]anual, "
            "[bold][s][/bold]kip, [bold][a][/bold]bort",
            console=console,
            default="",
            show_default=False,
        )


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------


@dataclass
class WorkflowReport:
    """Final outcome of one workflow run."""

    state: str = "idle"
    completed: list[Stage] = field(default_factory=list)
    skipped: list[Stage] = field(default_factory=list)
    fixed: list[Stage] = field(default_factory=list)
    message: str = ""
    guide_paths: list[Path] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.state == "completed"


# ---------------------------------------------------------------------------
# Pipeline Orchestrator
# ---------------------------------------------------------------------------


class Pipeline:
    """Workflow Runner pipeline orchestrator.

    Owns the workflow state machine and sequences the stages, persisting a
    small state file after each one so ``status`` can report on the last
    run.

    Attributes:
        config: Workflow configuration.
        operator: Source of continue/recovery decisions.
        model: State holder bound to the ``transitions`` machine.
    """

    def __init__(self, config: Config, operator: Operator | None = None) -> None:
        self.config = config
        self.operator: Operator = operator or ConsoleOperator()
        self.model = WorkflowModel()
        self.machine = create_workflow_machine(self.model)
        self.report = WorkflowReport()
        self.state: dict[str, Any] = {}

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def current_state(self) -> str:
        return self.model.state

    @property
    def is_idle(self) -> bool:
        """``True`` when no run is in flight (idle or finished)."""
        return self.model.state not in ACTIVE_STATES

    async def reset(self) -> None:
        """Return a finished pipeline to ``idle``."""
        if not self.is_idle:
            raise WorkflowBusyError(self.model.state, "reset")
        if self.model.state in TERMINAL_STATES:
            await self.model.reset()
        self.report = WorkflowReport()

    async def _save_state(self) -> None:
        """Persist the run state to ``.workflow/workflow-state.json``."""
        self.state.update(
            {
                "state": self.model.state,
                "updated_at": datetime.now(timezone.utc).isoformat(),
                "stages_completed": [s.value for s in self.report.completed],
                "stages_skipped": [s.value for s in self.report.skipped],
                "stages_fixed": [s.value for s in self.report.fixed],
                "last_message": self.report.message,
            }
        )
        await save_json(self.state, self.config.state_path)

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self) -> WorkflowReport:
        """Execute every stage in order, consulting the operator.

        Returns:
            The :class:`WorkflowReport` of this run; ``report.state`` is the
            terminal state the machine ended in.

        Raises:
            WorkflowBusyError: If a run is already in flight.
            Exception: Anything raised outside a stage handler (an operator
                prompt, the state file) after moving the machine to ``failed``.
        """
        if not self.is_idle:
            raise WorkflowBusyError(self.model.state, "start-workflow")

        started = time.monotonic()
        self.config.ensure_directories()
        self.report = WorkflowReport()
        self.state = {"started_at": datetime.now(timezone.utc).isoformat()}
        await self.model.start()

        console.print(
            Panel(
                f"[bold bright_cyan]Workflow Runner[/bold bright_cyan]\n"
                f"Input  : {self.config.requirements_path}\n"
                f"Output : {self.config.output_dir.resolve()}",
                title="[bold]Workflow Start[/bold]",
                border_style="bright_cyan",
            )
        )

        run = StageRun(self.config)
        try:
            await self._run_stages(run)
        except Exception as exc:
            # The machine must not stay active once run() has left.
            if self.model.state in ACTIVE_STATES:
                await self.model.critical_failure()
            self.report.state = self.model.state
            self.report.message = f"Workflow interrupted: {exc}"
            print_error(self.report.message)
            raise

        self.report.state = self.model.state
        self.state["duration"] = format_duration(time.monotonic() - started)
        await self._save_state()
        self._print_final_summary()
        return self.report

    async def _run_stages(self, run: StageRun) -> None:
        for position, stage in enumerate(STAGE_ORDER):
            print_stage_header(stage.number, stage.display_name, stage.color)
            result = await execute_stage(stage, run)
            proceed = await self._handle_result(stage, result, run)
            await self._save_state()
            if not proceed:
                return

            if position + 1 < len(STAGE_ORDER):
                next_stage = STAGE_ORDER[position + 1]
                if not await self.operator.confirm_continue(next_stage):
                    await self.model.halt()
                    self.report.message = f"Stopped before {next_stage.display_name}"
                    print_warning("Workflow stopped by operator.")
                    return

        await self.model.finish()
        self.report.message = "All stages completed"
        generator = GuideGenerator(self.config)
        self.report.guide_paths = await generator.generate(run.require_context())

    async def _handle_result(self, stage: Stage, result: StageResult, run: StageRun) -> bool:
        """Apply *result* to the machine; return whether the run proceeds."""
        outcome = result.outcome

        if outcome is StageOutcome.SUCCESS:
            print_success(f"{stage.display_name} completed: {result.message}")
            self._show_files(result)
            self.report.completed.append(stage)
            self.report.message = result.message
            return True

        if outcome is StageOutcome.FAILED_CRITICAL:
            await self.model.critical_failure()
            print_error(f"{stage.display_name} failed: {result.message}")
            self.report.message = result.message
            return False

        await self.model.recoverable_failure()
        print_error(f"{stage.display_name} reported issues: {result.message}")
        for number, error in enumerate(result.errors, 1):
            console.print(f"  {number}. {error}")
        self._show_files(result)

        answer = await self.operator.choose_recovery(stage, result)
        action = parse_recovery_choice(answer)
        self.report.message = result.message

        if action is RecoveryAction.FIX:
            return await self._remediate(stage, run)

        if action is RecoveryAction.MANUAL:
            await self.model.manual()
            print_warning(
                f"Workflow paused at {stage.display_name}. "
                "Fix the issues manually, then run start-workflow again."
            )
            return False

        if action is RecoveryAction.ABORT:
            await self.model.abort()
            print_error("Workflow aborted.")
            return False

        if action is RecoveryAction.SKIP:
            await self.model.skip()
            print_warning(f"Skipping issues in {stage.display_name}.")
        else:
            await self.model.continue_anyway()
            print_warning(f"Unrecognised choice {answer!r}. Continuing workflow.")
        self.report.skipped.append(stage)
        return True

    async def _remediate(self, stage: Stage, run: StageRun) -> bool:
        """Apply the stage remediation after the configured fix delay."""
        await self.model.fix()
        console.print(f"  Applying automatic fixes to {stage.display_name}...")
        await asyncio.sleep(self.config.fix_delay)

        fixed = await execute_stage(stage, run, remediate=True)
        if fixed.outcome is StageOutcome.FAILED_CRITICAL:
            await self.model.critical_failure()
            print_error(f"Fixing {stage.display_name} failed: {fixed.message}")
            self.report.message = fixed.message
            return False

        if fixed.has_errors:
            print_warning(f"{fixed.message}; continuing.")
        else:
            print_success(fixed.message)
        self._show_files(fixed)
        await self.model.remediated()
        self.report.fixed.append(stage)
        self.report.completed.append(stage)
        self.report.message = fixed.message
        return True

    # ------------------------------------------------------------------
    # Output helpers
    # ------------------------------------------------------------------

    def _show_files(self, result: StageResult) -> None:
        output_dir = self.config.output_dir
        for path in result.files:
            try:
                shown = path.relative_to(output_dir)
            except ValueError:
                shown = path
            console.print(f"    [dim]{shown}[/dim]")

    def _print_final_summary(self) -> None:
        """Print the final run summary panel."""
        report = self.report
        if report.success:
            border_style = "bold green"
            status_text = "[bold green]WORKFLOW COMPLETED[/bold green]"
        elif report.state in ("paused", "halted"):
            border_style = "bold yellow"
            status_text = f"[bold yellow]WORKFLOW {report.state.upper()}[/bold yellow]"
        else:
            border_style = "bold red"
            status_text = f"[bold red]WORKFLOW {report.state.upper()}[/bold red]"

        detail_lines = [
            status_text,
            "",
            f"Duration  : {self.state.get('duration', '?')}",
            f"Completed : {', '.join(s.display_name for s in report.completed) or 'none'}",
        ]
        if report.skipped:
            detail_lines.append(
                f"Skipped   : {', '.join(s.display_name for s in report.skipped)}"
            )
        if report.fixed:
            detail_lines.append(
                f"Fixed     : {', '.join(s.display_name for s in report.fixed)}"
            )
        detail_lines.extend(["", f"Output    : {self.config.output_dir.resolve()}"])
        for path in report.guide_paths:
            detail_lines.append(f"Guide     : {path}")

        console.print()
        console.print(
            Panel(
                "\n".join(detail_lines),
                title="[bold]Workflow Complete[/bold]",
                border_style=border_style,
            )
        )
