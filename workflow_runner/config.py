"""Workflow Runner configuration.

Centralised, typed configuration for the whole workflow. Every component
receives the ``Config`` instance explicitly instead of reading process-wide
path constants, so tests can point a run at any temporary directory.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class Config(BaseModel):
    """Global Workflow Runner configuration.

    Holds the workflow directory layout and the few tuning knobs of the
    pipeline. Instances are created once by the CLI entry point (or by a
    test) and passed through the rest of the system.
    """

    workflow_dir: Path = Field(default=Path("./workflow"))
    input_dirname: str = Field(default="input")
    output_dirname: str = Field(default="output")
    requirements_filename: str = Field(default="requirements.md")
    meta_dirname: str = Field(default=".workflow")
    setup_script_name: str = Field(default="quick-setup.sh")

    fix_delay: float = Field(
        default=1.0, ge=0.0, description="Pause in seconds before an automatic fix is applied"
    )
    api_port: int = Field(default=5000, ge=1, le=65535)
    health_timeout: int = Field(
        default=60, ge=0, description="Seconds test-project waits for the generated API"
    )

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def input_dir(self) -> Path:
        return self.workflow_dir / self.input_dirname

    @property
    def output_dir(self) -> Path:
        return self.workflow_dir / self.output_dirname

    @property
    def requirements_path(self) -> Path:
        """Path to the requirements document read by the Requirements stage."""
        return self.input_dir / self.requirements_filename

    @property
    def meta_path(self) -> Path:
        """Root of the ``.workflow/`` metadata directory inside the output."""
        return self.output_dir / self.meta_dirname

    @property
    def context_path(self) -> Path:
        """Path to the persisted ``context.json``."""
        return self.meta_path / "context.json"

    @property
    def state_path(self) -> Path:
        """Path to the persisted workflow state JSON file."""
        return self.meta_path / "workflow-state.json"

    @property
    def epics_path(self) -> Path:
        """Intermediate artefact whose presence gates the Developer stage."""
        return self.output_dir / "epics.md"

    @property
    def controllers_dir(self) -> Path:
        return self.output_dir / "Controllers"

    @property
    def models_dir(self) -> Path:
        return self.output_dir / "Models"

    @property
    def services_dir(self) -> Path:
        return self.output_dir / "Services"

    @property
    def database_dir(self) -> Path:
        return self.output_dir / "Database"

    @property
    def tests_dir(self) -> Path:
        return self.output_dir / "Tests"

    @property
    def review_dir(self) -> Path:
        return self.output_dir / "CodeReview"

    @property
    def devops_dir(self) -> Path:
        return self.output_dir / "DevOps"

    @property
    def program_path(self) -> Path:
        return self.output_dir / "Program.cs"

    @property
    def guide_path(self) -> Path:
        return self.output_dir / "PROJECT-GUIDE.md"

    @property
    def setup_script_path(self) -> Path:
        return self.output_dir / self.setup_script_name

    @property
    def health_url(self) -> str:
        """URL polled by ``test-project`` once the generated API is launched."""
        return f"http://localhost:{self.api_port}/swagger/index.html"

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path | None = None) -> Path:
        """Persist the configuration to a JSON file.

        Args:
            path: Destination file. Defaults to ``<meta_path>/config.json``.

        Returns:
            The path where the file was written.
        """
        target = path or (self.meta_path / "config.json")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            WF_WORKFLOW_DIR, WF_REQUIREMENTS_FILE, WF_FIX_DELAY,
            WF_API_PORT, WF_HEALTH_TIMEOUT, WF_SETUP_SCRIPT.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("WF_WORKFLOW_DIR"):
            kwargs["workflow_dir"] = Path(os.environ["WF_WORKFLOW_DIR"])
        if os.environ.get("WF_REQUIREMENTS_FILE"):
            kwargs["requirements_filename"] = os.environ["WF_REQUIREMENTS_FILE"]
        if os.environ.get("WF_FIX_DELAY"):
            kwargs["fix_delay"] = float(os.environ["WF_FIX_DELAY"])
        if os.environ.get("WF_API_PORT"):
            kwargs["api_port"] = int(os.environ["WF_API_PORT"])
        if os.environ.get("WF_HEALTH_TIMEOUT"):
            kwargs["health_timeout"] = int(os.environ["WF_HEALTH_TIMEOUT"])
        if os.environ.get("WF_SETUP_SCRIPT"):
            kwargs["setup_script_name"] = os.environ["WF_SETUP_SCRIPT"]
        return cls(**kwargs)

    def ensure_directories(self) -> None:
        """Create the input, output and metadata directories."""
        for directory in (self.input_dir, self.output_dir, self.meta_path):
            directory.mkdir(parents=True, exist_ok=True)
