"""Workflow stages: identifiers, results and handlers.

The pipeline is a fixed sequence of :class:`Stage` members. Each member has
exactly one handler (the normal run) and one remediation (the run applied
when the operator chooses *fix*). Handlers never raise for expected
failures; they return a :class:`StageResult` whose :attr:`~StageResult.outcome`
tells the orchestrator what to do next.

Stage 1: Requirements -- parse requirements, persist the context, write epics.
Stage 2: Developer    -- controllers, models, services, ``Program.cs``.
Stage 3: DataSchema   -- ``Database/schema.sql``.
Stage 4: UnitTest     -- controller tests.
Stage 5: CodeReview   -- static review, ``CodeReview/review.md``.
Stage 6: DevOps       -- ``Dockerfile`` and ``docker-compose.yml``.
"""

from __future__ import annotations

import asyncio
import functools
import traceback
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable

from workflow_runner.config import Config
from workflow_runner.parser import Context, read_requirements
from workflow_runner.reviewer import CodeReviewer
from workflow_runner.scaffolder import ArtifactBundle, ArtifactGenerator, DevOpsGenerator
from workflow_runner.utils import console, print_warning, save_json, write_text


# ---------------------------------------------------------------------------
# Stage identifiers
# ---------------------------------------------------------------------------


class Stage(str, Enum):
    """The ordered, closed set of workflow stages."""

    REQUIREMENTS = "requirements"
    DEVELOPER = "developer"
    DATA_SCHEMA = "data_schema"
    UNIT_TEST = "unit_test"
    CODE_REVIEW = "code_review"
    DEVOPS = "devops"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def number(self) -> int:
        """1-based position of the stage in the workflow."""
        return STAGE_ORDER.index(self) + 1

    @property
    def color(self) -> str:
        """Rich colour of the stage's console header."""
        return _STAGE_COLORS[self]


_DISPLAY_NAMES: dict[Stage, str] = {
    Stage.REQUIREMENTS: "Requirements",
    Stage.DEVELOPER: "Developer",
    Stage.DATA_SCHEMA: "DataSchema",
    Stage.UNIT_TEST: "UnitTest",
    Stage.CODE_REVIEW: "CodeReview",
    Stage.DEVOPS: "DevOps",
}

_STAGE_COLORS: dict[Stage, str] = {
    Stage.REQUIREMENTS: "bright_cyan",
    Stage.DEVELOPER: "bright_green",
    Stage.DATA_SCHEMA: "bright_yellow",
    Stage.UNIT_TEST: "bright_magenta",
    Stage.CODE_REVIEW: "bright_red",
    Stage.DEVOPS: "bright_blue",
}

STAGE_ORDER: tuple[Stage, ...] = tuple(Stage)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class StageOutcome(str, Enum):
    SUCCESS = "success"
    FAILED_CRITICAL = "failed_critical"
    FAILED_RECOVERABLE = "failed_recoverable"


@dataclass(frozen=True)
class StageResult:
    """Outcome of one stage invocation.

    A failed result with itemized ``errors`` is recoverable; a failed result
    without any is critical.
    """

    success: bool
    message: str = ""
    errors: tuple[str, ...] = ()
    files: tuple[Path, ...] = ()

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def outcome(self) -> StageOutcome:
        if self.success:
            return StageOutcome.SUCCESS
        if self.has_errors:
            return StageOutcome.FAILED_RECOVERABLE
        return StageOutcome.FAILED_CRITICAL

    @classmethod
    def ok(cls, message: str, files: list[Path] | tuple[Path, ...] = ()) -> "StageResult":
        return cls(success=True, message=message, files=tuple(files))

    @classmethod
    def critical(cls, message: str) -> "StageResult":
        return cls(success=False, message=message)

    @classmethod
    def recoverable(
        cls,
        message: str,
        errors: list[str],
        files: list[Path] | tuple[Path, ...] = (),
    ) -> "StageResult":
        if not errors:
            raise ValueError("A recoverable result needs at least one itemized error")
        return cls(success=False, message=message, errors=tuple(errors), files=tuple(files))


# ---------------------------------------------------------------------------
# Run state shared by the handlers
# ---------------------------------------------------------------------------


@dataclass
class StageRun:
    """Collaborators and the parsed context of one workflow run."""

    config: Config
    context: Context | None = None
    generator: ArtifactGenerator = field(default_factory=ArtifactGenerator)
    devops: DevOpsGenerator = field(default_factory=DevOpsGenerator)

    def require_context(self) -> Context:
        """Return the run's context, reloading ``context.json`` if needed.

        Raises:
            FileNotFoundError: If no context was parsed and none is persisted.
        """
        if self.context is None:
            path = self.config.context_path
            if not path.is_file():
                raise FileNotFoundError(f"Parsed context not found: {path}")
            self.context = Context.model_validate_json(path.read_text(encoding="utf-8"))
        return self.context

    async def bundles(self, *, strict: bool = False) -> list[ArtifactBundle]:
        """Generate one bundle per context entity, concurrently."""
        context = self.require_context()
        jobs = [
            asyncio.to_thread(
                self.generator.generate,
                entity,
                context.category,
                context.properties_for(entity),
                context.project_name,
                strict=strict,
            )
            for entity in context.core_entities
        ]
        return list(await asyncio.gather(*jobs))


StageHandler = Callable[[StageRun], Awaitable[StageResult]]


async def _write_files(files: dict[Path, str]) -> list[Path]:
    """Write every ``path -> content`` pair concurrently."""
    return list(
        await asyncio.gather(
            *(asyncio.to_thread(write_text, path, content) for path, content in files.items())
        )
    )


def _missing(path: Path, description: str) -> StageResult | None:
    """Critical result when the stage precondition *path* does not exist."""
    if path.exists():
        return None
    return StageResult.critical(f"{description} not found: {path}")


def _prune_stale(directory: Path, keep: set[Path]) -> list[Path]:
    """Delete ``*.cs`` files in *directory* not generated by this run."""
    if not directory.is_dir():
        return []
    stale = [path for path in sorted(directory.glob("*.cs")) if path not in keep]
    for path in stale:
        path.unlink()
        print_warning(f"  Removed stale {path.relative_to(directory.parent)}")
    return stale


# ---------------------------------------------------------------------------
# Stage handlers
# ---------------------------------------------------------------------------


async def run_requirements(run: StageRun, *, strict: bool = False) -> StageResult:
    """Parse requirements, persist ``context.json`` and write ``epics.md``."""
    config = run.config
    failed = _missing(config.requirements_path, "Requirements file")
    if failed:
        return failed

    context = await read_requirements(config.requirements_path)
    run.context = context
    for warning in context.warnings:
        print_warning(f"  {warning}")

    console.print(f"  Project: [bold]{context.project_name or '(untitled)'}[/bold]")
    console.print(f"  Domain category: {context.category.value}")
    console.print(f"  Entities: {', '.join(context.core_entities)}")

    await save_json(context.model_dump(mode="json"), config.context_path)
    written = await _write_files({config.epics_path: run.generator.generate_epics(context)})
    return StageResult.ok(
        f"Requirements analyzed: {len(context.core_entities)} entities identified",
        [*written, config.context_path],
    )


async def run_developer(run: StageRun, *, strict: bool = False) -> StageResult:
    """Generate controllers, models, services and ``Program.cs``."""
    config = run.config
    failed = _missing(config.epics_path, "Epics document")
    if failed:
        return failed

    context = run.require_context()
    bundles = await run.bundles(strict=strict)
    files: dict[Path, str] = {}
    for bundle in bundles:
        files[config.output_dir / bundle.api_path] = bundle.api
        files[config.output_dir / bundle.model_path] = bundle.model
        files[config.output_dir / bundle.service_path] = bundle.service
    files[config.program_path] = run.generator.generate_program(
        context.project_name, context.core_entities, strict=strict
    )
    written = await _write_files(files)
    for directory in (config.controllers_dir, config.models_dir, config.services_dir):
        _prune_stale(directory, set(files))
    return StageResult.ok(f"Source code generated for {len(bundles)} entities", written)


async def run_data_schema(run: StageRun, *, strict: bool = False) -> StageResult:
    """Write the combined ``Database/schema.sql`` script."""
    config = run.config
    failed = _missing(config.models_dir, "Models directory")
    if failed:
        return failed

    bundles = await run.bundles(strict=strict)
    schema = run.generator.generate_schema_script(bundles)
    written = await _write_files({config.database_dir / "schema.sql": schema})
    return StageResult.ok(f"Database schema generated for {len(bundles)} tables", written)


async def run_unit_test(run: StageRun, *, strict: bool = False) -> StageResult:
    """Write one controller test class per entity."""
    config = run.config
    failed = _missing(config.controllers_dir, "Controllers directory")
    if failed:
        return failed

    bundles = await run.bundles(strict=strict)
    files = {config.output_dir / bundle.test_path: bundle.test for bundle in bundles}
    written = await _write_files(files)
    _prune_stale(config.tests_dir, set(files))
    return StageResult.ok(f"Unit tests generated for {len(bundles)} controllers", written)


async def run_code_review(run: StageRun) -> StageResult:
    """Review the generated sources; issues make the result recoverable."""
    config = run.config
    failed = _missing(config.controllers_dir, "Controllers directory")
    if failed:
        return failed

    bundles = await run.bundles()
    review, report = await CodeReviewer(config).review_and_report(bundles)
    if review.passed:
        return StageResult.ok("Code review passed", [report])
    return StageResult.recoverable(
        f"Code review found {len(review.issues)} issues", review.messages, [report]
    )


async def fix_code_review(run: StageRun) -> StageResult:
    """Regenerate controllers, services and ``Program.cs`` in strict mode.

    The review report is rewritten afterwards so it reflects the fixed tree.
    """
    config = run.config
    context = run.require_context()
    bundles = await run.bundles(strict=True)
    files: dict[Path, str] = {}
    for bundle in bundles:
        files[config.output_dir / bundle.api_path] = bundle.api
        files[config.output_dir / bundle.service_path] = bundle.service
    files[config.program_path] = run.generator.generate_program(
        context.project_name, context.core_entities, strict=True
    )
    written = await _write_files(files)

    review, report = await CodeReviewer(config).review_and_report(bundles)
    if review.passed:
        return StageResult.ok("Code review issues fixed", [*written, report])
    return StageResult.recoverable(
        f"{len(review.issues)} issues remain after fixing", review.messages, [*written, report]
    )


async def run_devops(run: StageRun, *, strict: bool = False) -> StageResult:
    """Write ``DevOps/Dockerfile`` and ``DevOps/docker-compose.yml``."""
    config = run.config
    failed = _missing(config.program_path, "Program.cs")
    if failed:
        return failed

    context = run.require_context()
    written = await run.devops.generate_all(
        config.devops_dir, context.project_name, config.api_port
    )
    return StageResult.ok("Deployment files generated", written)


# ---------------------------------------------------------------------------
# Dispatch tables
# ---------------------------------------------------------------------------

STAGE_HANDLERS: dict[Stage, StageHandler] = {
    Stage.REQUIREMENTS: run_requirements,
    Stage.DEVELOPER: run_developer,
    Stage.DATA_SCHEMA: run_data_schema,
    Stage.UNIT_TEST: run_unit_test,
    Stage.CODE_REVIEW: run_code_review,
    Stage.DEVOPS: run_devops,
}

STAGE_REMEDIATIONS: dict[Stage, StageHandler] = {
    Stage.REQUIREMENTS: functools.partial(run_requirements, strict=True),
    Stage.DEVELOPER: functools.partial(run_developer, strict=True),
    Stage.DATA_SCHEMA: functools.partial(run_data_schema, strict=True),
    Stage.UNIT_TEST: functools.partial(run_unit_test, strict=True),
    Stage.CODE_REVIEW: fix_code_review,
    Stage.DEVOPS: functools.partial(run_devops, strict=True),
}

_unhandled = [s.value for s in Stage if s not in STAGE_HANDLERS or s not in STAGE_REMEDIATIONS]
if _unhandled:
    raise RuntimeError(f"Stages without a handler or remediation: {', '.join(_unhandled)}")


async def execute_stage(stage: Stage, run: StageRun, *, remediate: bool = False) -> StageResult:
    """Run the handler (or remediation) of *stage*.

    Any exception escaping the handler is converted into a critical result.
    """
    handler = STAGE_REMEDIATIONS[stage] if remediate else STAGE_HANDLERS[stage]
    try:
        return await handler(run)
    except Exception as exc:
        console.print(f"[dim]{traceback.format_exc()}[/dim]")
        return StageResult.critical(f"{stage.display_name} failed: {exc}")
