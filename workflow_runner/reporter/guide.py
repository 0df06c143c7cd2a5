"""Project guide and setup script generation.

Runs once a workflow completes. Produces ``PROJECT-GUIDE.md`` describing
the generated project (structure, endpoints, how to run it) and the
``quick-setup.sh`` script that ``test-project`` launches.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from pathlib import Path

from workflow_runner.config import Config
from workflow_runner.parser import Context
from workflow_runner.scaffolder import TemplateRenderer
from workflow_runner.scaffolder.templates import pluralize
from workflow_runner.utils import console, make_executable, write_text

# Output directories copied into the .NET project by the setup script.
_SOURCE_DIRECTORIES: tuple[str, ...] = ("Controllers", "Models", "Services")

_STRUCTURE: tuple[tuple[str, str], ...] = (
    ("Controllers/", "API controllers, one per entity"),
    ("Models/", "Entity classes"),
    ("Services/", "In-memory services, one per entity"),
    ("Database/schema.sql", "Table definitions"),
    ("Tests/", "xUnit controller tests"),
    ("CodeReview/review.md", "Code review findings"),
    ("DevOps/", "Dockerfile and docker-compose.yml"),
    ("Program.cs", "Application host"),
)


class GuideGenerator:
    """Writes ``PROJECT-GUIDE.md`` and the quick-setup script."""

    def __init__(self, config: Config, renderer: TemplateRenderer | None = None) -> None:
        self.config = config
        self.renderer = renderer or TemplateRenderer()

    async def generate(self, context: Context) -> list[Path]:
        """Write the guide and setup script for *context*.

        Returns:
            ``[guide_path, setup_script_path]``.
        """
        guide = await asyncio.to_thread(
            write_text, self.config.guide_path, self.render_guide(context)
        )
        script = await self.renderer.render_to_file(
            "quick-setup.sh.j2", self.config.setup_script_path, self._script_context(context)
        )
        make_executable(script)
        console.print(f"[green]Project guide written to {guide}[/green]")
        return [guide, script]

    def _script_context(self, context: Context) -> dict[str, object]:
        return {
            "project_title": context.project_name or context.namespace,
            "namespace": context.namespace,
            "directories": list(_SOURCE_DIRECTORIES),
            "port": self.config.api_port,
        }

    def render_guide(self, context: Context) -> str:
        """Render the complete guide markdown."""
        title = context.project_name or context.namespace
        port = self.config.api_port
        sections: list[str] = []

        sections.append(f"# {title} -- Project Guide")
        sections.append("")
        sections.append(
            f"> Generated by Workflow Runner on "
            f"{datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')}"
        )
        sections.append("")
        sections.append(f"- Domain category: **{context.category.value}**")
        sections.append(f"- Namespace: `{context.namespace}`")
        sections.append(f"- Entities: {', '.join(context.core_entities)}")
        sections.append("")

        # Structure
        sections.append("## Project Structure")
        sections.append("")
        for name, description in _STRUCTURE:
            sections.append(f"- `{name}` -- {description}")
        sections.append("")

        # Entities and endpoints
        sections.append("## API Endpoints")
        sections.append("")
        for entity in context.core_entities:
            route = f"/api/{pluralize(entity).lower()}"
            sections.append(f"### {entity}")
            sections.append("")
            sections.append(f"- `GET {route}` -- list all {pluralize(entity).lower()}")
            sections.append(f"- `POST {route}` -- create a {entity.lower()}")
            sections.append(f"- `GET {route}/{{id}}` -- get one {entity.lower()} by id")
            sections.append("")
            sections.append("| Field | Type |")
            sections.append("|-------|------|")
            for prop in context.properties_for(entity):
                sections.append(f"| {prop.name} | {prop.type.value} |")
            sections.append("")

        if context.api_endpoints:
            sections.append("## Endpoints Named in the Requirements")
            sections.append("")
            for line in context.api_endpoints:
                sections.append(f"- {line}")
            sections.append("")

        if context.features:
            sections.append("## Requirement Sections")
            sections.append("")
            for feature in context.features:
                sections.append(f"- {feature}")
            sections.append("")

        # Running
        sections.append("## Running the Project")
        sections.append("")
        sections.append("Prerequisites: .NET 8 SDK (and Docker for the container build).")
        sections.append("")
        sections.append("1. Build and start the API:")
        sections.append("   ```bash")
        sections.append(f"   ./{self.config.setup_script_name}")
        sections.append("   ```")
        sections.append("")
        sections.append("2. Open Swagger UI:")
        sections.append("   ```")
        sections.append(f"   http://localhost:{port}/swagger")
        sections.append("   ```")
        sections.append("")
        sections.append("3. Or build the container:")
        sections.append("   ```bash")
        sections.append("   docker compose -f DevOps/docker-compose.yml up --build")
        sections.append("   ```")
        sections.append("")

        if context.warnings:
            sections.append("## Parser Warnings")
            sections.append("")
            for warning in context.warnings:
                sections.append(f"- {warning}")
            sections.append("")

        return "\n".join(sections)
