"""Deployment file generation for the DevOps stage.

Renders the ``Dockerfile`` from its Jinja2 template and builds the
``docker-compose.yml`` as a plain dictionary dumped through PyYAML.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import yaml

from workflow_runner.parser import namespace_token
from workflow_runner.utils import write_text

from .templates import TemplateRenderer, snake_case


class DevOpsGenerator:
    """Generates the Dockerfile and Compose file of the generated API."""

    def __init__(self, renderer: TemplateRenderer | None = None) -> None:
        self.renderer = renderer or TemplateRenderer()

    def render_dockerfile(self, project_name: str, port: int) -> str:
        return self.renderer.render(
            "Dockerfile.j2",
            {"namespace": namespace_token(project_name), "port": port},
        )

    @staticmethod
    def compose_document(project_name: str, port: int) -> dict[str, Any]:
        """Return the Compose document as a dictionary.

        The service name is the snake-cased namespace token so it is always a
        valid Compose identifier.
        """
        service = snake_case(namespace_token(project_name))
        return {
            "services": {
                service: {
                    "build": {"context": "..", "dockerfile": "DevOps/Dockerfile"},
                    "ports": [f"{port}:{port}"],
                    "environment": {
                        "ASPNETCORE_ENVIRONMENT": "Production",
                        "Jwt__Secret": "${JWT_SECRET}",
                    },
                    "restart": "unless-stopped",
                }
            }
        }

    def render_compose(self, project_name: str, port: int) -> str:
        return yaml.safe_dump(
            self.compose_document(project_name, port),
            sort_keys=False,
            default_flow_style=False,
        )

    async def generate_all(self, output_dir: Path, project_name: str, port: int) -> list[Path]:
        """Write ``Dockerfile`` and ``docker-compose.yml`` into *output_dir*.

        Returns:
            The written file paths, Dockerfile first.
        """
        return [
            await asyncio.to_thread(
                write_text, output_dir / "Dockerfile", self.render_dockerfile(project_name, port)
            ),
            await asyncio.to_thread(
                write_text, output_dir / "docker-compose.yml", self.render_compose(project_name, port)
            ),
        ]
