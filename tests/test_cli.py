"""Unit tests for the interactive command shell (workflow_runner.cli)."""

from __future__ import annotations

from typing import Callable
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from workflow_runner.cli import WorkflowShell, _run
from workflow_runner.config import Config
from workflow_runner.pipeline import WorkflowBusyError
from workflow_runner.utils import write_text

pytestmark = pytest.mark.unit


@pytest.fixture
def shell(workflow_config: Config, make_operator: Callable) -> WorkflowShell:
    return WorkflowShell(workflow_config, make_operator())


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

class TestHandle:
    @pytest.mark.asyncio
    async def test_exit_returns_false(self, shell: WorkflowShell):
        assert await shell.handle("exit") is False

    @pytest.mark.asyncio
    async def test_commands_are_case_insensitive(self, shell: WorkflowShell):
        assert await shell.handle("  EXIT ") is False

    @pytest.mark.asyncio
    async def test_unknown_command_keeps_loop_running(self, shell: WorkflowShell):
        assert await shell.handle("deploy") is True

    @pytest.mark.asyncio
    async def test_blank_line_is_ignored(self, shell: WorkflowShell):
        assert await shell.handle("   ") is True

    @pytest.mark.asyncio
    async def test_start_workflow_runs_pipeline(self, shell: WorkflowShell, workflow_config: Config):
        assert await shell.handle("Start-Workflow") is True
        assert shell.pipeline.report.state == "completed"
        assert workflow_config.guide_path.is_file()

    @pytest.mark.asyncio
    async def test_busy_error_is_reported_not_raised(self, shell: WorkflowShell):
        await shell.pipeline.model.start()
        assert await shell.handle("clear") is True

    @pytest.mark.asyncio
    async def test_corrupt_state_file_does_not_end_shell(
        self, shell: WorkflowShell, workflow_config: Config
    ):
        write_text(workflow_config.state_path, "{not json")
        assert await shell.handle("status") is True

    @pytest.mark.asyncio
    async def test_failing_prompt_during_run_keeps_shell_usable(
        self, workflow_config: Config, make_operator: Callable
    ):
        operator = make_operator()
        operator.choose_recovery = AsyncMock(side_effect=EOFError)
        shell = WorkflowShell(workflow_config, operator)

        assert await shell.handle("start-workflow") is True
        assert shell.pipeline.current_state == "failed"

        assert await shell.clear() is True
        assert shell.pipeline.current_state == "idle"


# ---------------------------------------------------------------------------
# clear
# ---------------------------------------------------------------------------

class TestClear:
    @pytest.mark.asyncio
    async def test_clear_removes_output(self, shell: WorkflowShell, workflow_config: Config):
        write_text(workflow_config.models_dir / "User.cs", "x")
        assert await shell.clear() is True
        assert workflow_config.output_dir.is_dir()
        assert list(workflow_config.output_dir.iterdir()) == []
        assert workflow_config.requirements_path.is_file()

    @pytest.mark.asyncio
    async def test_clear_refused_while_running(self, shell: WorkflowShell, workflow_config: Config):
        write_text(workflow_config.models_dir / "User.cs", "x")
        await shell.pipeline.model.start()
        with pytest.raises(WorkflowBusyError):
            await shell.clear()
        assert (workflow_config.models_dir / "User.cs").is_file()

    @pytest.mark.asyncio
    async def test_clear_after_run_resets_pipeline(self, shell: WorkflowShell):
        await shell.start_workflow()
        await shell.clear()
        assert shell.pipeline.current_state == "idle"

    @pytest.mark.asyncio
    async def test_clear_terminates_test_process(self, shell: WorkflowShell):
        process = MagicMock(returncode=None)
        shell.process = process
        with patch("workflow_runner.cli.terminate_process", new=AsyncMock()) as terminate:
            await shell.clear()
        terminate.assert_awaited_once_with(process)
        assert shell.process is None


# ---------------------------------------------------------------------------
# status
# ---------------------------------------------------------------------------

class TestStatus:
    @pytest.mark.asyncio
    async def test_status_before_run(self, shell: WorkflowShell):
        summary = await shell.show_status()
        assert summary["Workflow state"] == "idle"
        assert summary["Requirements"] == "present"
        assert summary["Controllers/"] == "0 files"
        assert "Last run" not in summary

    @pytest.mark.asyncio
    async def test_status_after_run(self, shell: WorkflowShell):
        await shell.start_workflow()
        summary = await shell.show_status()
        assert summary["Workflow state"] == "completed"
        assert summary["Controllers/"] == "2 files"
        assert summary["Program.cs"] == "present"
        assert summary["Last run"] == "completed"


# ---------------------------------------------------------------------------
# test-project
# ---------------------------------------------------------------------------

class TestTestProject:
    @pytest.mark.asyncio
    async def test_refuses_without_output(self, shell: WorkflowShell):
        with patch("workflow_runner.cli.spawn_process", new=AsyncMock()) as spawn:
            assert await shell.test_project() is False
        spawn.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_launches_setup_script_and_polls(self, shell: WorkflowShell, workflow_config: Config):
        await shell.start_workflow()
        process = MagicMock(returncode=None, pid=4242)
        with patch("workflow_runner.cli.spawn_process", new=AsyncMock(return_value=process)) as spawn, \
                patch("workflow_runner.cli.wait_for_health", new=AsyncMock(return_value=True)) as health:
            assert await shell.test_project() is True
        spawn.assert_awaited_once_with(
            ["bash", str(workflow_config.setup_script_path)], cwd=workflow_config.output_dir
        )
        health.assert_awaited_once_with(workflow_config.health_url, timeout=workflow_config.health_timeout)
        assert shell.process is process

    @pytest.mark.asyncio
    async def test_failed_script_is_forgotten(self, shell: WorkflowShell):
        await shell.start_workflow()
        process = MagicMock(returncode=1, pid=4242)
        with patch("workflow_runner.cli.spawn_process", new=AsyncMock(return_value=process)), \
                patch("workflow_runner.cli.wait_for_health", new=AsyncMock(return_value=False)):
            assert await shell.test_project() is False
        assert shell.process is None


# ---------------------------------------------------------------------------
# Non-interactive entry
# ---------------------------------------------------------------------------

class TestRunCommands:
    @pytest.mark.asyncio
    async def test_exit_code_reflects_final_state(self, config: Config):
        # No requirements file: the run fails on its first stage.
        assert await _run(config, ["start-workflow"]) == 1

    @pytest.mark.asyncio
    async def test_status_only_exits_zero(self, config: Config):
        assert await _run(config, ["status", "exit"]) == 0
