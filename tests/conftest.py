"""Shared pytest fixtures for the Workflow Runner test suite.

Provides reusable fixtures for:
- Temporary workflow directories and configuration
- Sample requirements documents
- A scripted operator standing in for the console prompts
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from workflow_runner.config import Config
from workflow_runner.parser import Context, parse_requirements
from workflow_runner.stages import Stage, StageResult


# ---------------------------------------------------------------------------
# Requirements
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_requirements() -> str:
    """Path to sample requirements.md fixture file."""
    path = Path(__file__).parent / "fixtures" / "sample-requirements.md"
    assert path.exists(), f"Sample requirements fixture not found at {path}"
    return str(path)


@pytest.fixture
def sample_requirements_text(sample_requirements: str) -> str:
    """Raw text content of the sample requirements.md."""
    return Path(sample_requirements).read_text(encoding="utf-8")


@pytest.fixture
def sample_context(sample_requirements_text: str) -> Context:
    """The sample requirements parsed into a Context."""
    return parse_requirements(sample_requirements_text)


# ---------------------------------------------------------------------------
# Configuration & directories
# ---------------------------------------------------------------------------

@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Config rooted in a temporary workflow directory, with no fix delay."""
    return Config(workflow_dir=tmp_path / "workflow", fix_delay=0, health_timeout=0)


@pytest.fixture
def workflow_config(config: Config, sample_requirements_text: str) -> Config:
    """Config whose input directory already holds the sample requirements."""
    config.ensure_directories()
    config.requirements_path.write_text(sample_requirements_text, encoding="utf-8")
    return config


# ---------------------------------------------------------------------------
# Operator
# ---------------------------------------------------------------------------

class ScriptedOperator:
    """Operator double answering from pre-recorded scripts.

    Continue prompts answer ``True`` once the script runs out; recovery
    prompts answer ``"s"`` (skip).
    """

    def __init__(
        self,
        continues: list[bool] | None = None,
        recoveries: list[str] | None = None,
    ) -> None:
        self.continues = list(continues or [])
        self.recoveries = list(recoveries or [])
        self.continue_prompts: list[Stage] = []
        self.recovery_prompts: list[tuple[Stage, StageResult]] = []

    async def confirm_continue(self, next_stage: Stage) -> bool:
        self.continue_prompts.append(next_stage)
        return self.continues.pop(0) if self.continues else True

    async def choose_recovery(self, stage: Stage, result: StageResult) -> str:
        self.recovery_prompts.append((stage, result))
        return self.recoveries.pop(0) if self.recoveries else "s"


@pytest.fixture
def make_operator() -> Callable[..., ScriptedOperator]:
    """Factory for :class:`ScriptedOperator` instances."""
    return ScriptedOperator
