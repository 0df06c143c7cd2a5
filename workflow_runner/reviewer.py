"""Static code review of the generated project.

Scans the generated controllers, services and ``Program.cs`` for the
handful of defects the non-strict templates are known to carry: missing
input validation, missing exception handling and a hard-coded signing
secret. The review report is always written to ``CodeReview/review.md``.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field
from pathlib import Path

from workflow_runner.config import Config
from workflow_runner.scaffolder import ArtifactBundle
from workflow_runner.utils import write_text

_VALIDATION_MARKER = "ModelState.IsValid"
_ERROR_HANDLING_PATTERN = re.compile(r"\bcatch\s*\(")
_HARDCODED_SECRET_PATTERN = re.compile(r"\bjwtSecret\s*=\s*\"")


@dataclass
class ReviewIssue:
    """A single finding of the review."""

    category: str  # "validation", "error_handling", "security"
    message: str
    file: str = ""


@dataclass
class ReviewResult:
    """Structured result of reviewing the output tree."""

    files_reviewed: list[str] = field(default_factory=list)
    issues: list[ReviewIssue] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.issues

    @property
    def messages(self) -> list[str]:
        return [issue.message for issue in self.issues]


class CodeReviewer:
    """Reviews the generated sources of the current run's entities."""

    def __init__(self, config: Config) -> None:
        self.config = config

    def review(self, bundles: list[ArtifactBundle]) -> ReviewResult:
        """Scan the controllers and services of *bundles* plus ``Program.cs``.

        Files that have not been written yet are not reviewed. Never writes.
        """
        result = ReviewResult()
        output_dir = self.config.output_dir
        ordered = sorted(bundles, key=lambda b: b.entity)

        for bundle in ordered:
            path = output_dir / bundle.api_path
            if not path.is_file():
                continue
            result.files_reviewed.append(str(bundle.api_path))
            if _VALIDATION_MARKER not in path.read_text(encoding="utf-8"):
                result.issues.append(
                    ReviewIssue(
                        category="validation",
                        message=f"Missing input validation in {path.stem}",
                        file=path.name,
                    )
                )

        for bundle in ordered:
            path = output_dir / bundle.service_path
            if not path.is_file():
                continue
            result.files_reviewed.append(str(bundle.service_path))
            if not _ERROR_HANDLING_PATTERN.search(path.read_text(encoding="utf-8")):
                result.issues.append(
                    ReviewIssue(
                        category="error_handling",
                        message=f"No error handling in {path.stem}",
                        file=path.name,
                    )
                )

        program = self.config.program_path
        if program.is_file():
            result.files_reviewed.append(program.name)
            if _HARDCODED_SECRET_PATTERN.search(program.read_text(encoding="utf-8")):
                result.issues.append(
                    ReviewIssue(
                        category="security",
                        message="JWT secret should be in configuration",
                        file=program.name,
                    )
                )

        return result

    async def review_and_report(self, bundles: list[ArtifactBundle]) -> tuple[ReviewResult, Path]:
        """Review *bundles* and write ``CodeReview/review.md``."""
        result = await asyncio.to_thread(self.review, bundles)
        report_path = self.config.review_dir / "review.md"
        await asyncio.to_thread(write_text, report_path, render_report(result))
        return result, report_path


def render_report(result: ReviewResult) -> str:
    """Render *result* as the markdown review report."""
    lines: list[str] = [
        "# Code Review Report",
        "",
        f"**Status:** {'PASSED' if result.passed else 'ISSUES FOUND'}",
        f"**Files reviewed:** {len(result.files_reviewed)}",
        "",
        "## Findings",
        "",
    ]
    if result.issues:
        for number, issue in enumerate(result.issues, 1):
            lines.append(f"{number}. [{issue.category}] {issue.message} (`{issue.file}`)")
    else:
        lines.append("No issues found.")
    lines.extend(["", "## Files Reviewed", ""])
    lines.extend(f"- `{name}`" for name in result.files_reviewed)
    lines.append("")
    return "\n".join(lines)
