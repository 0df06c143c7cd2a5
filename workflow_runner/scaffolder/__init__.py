"""Artefact generation for the Workflow Runner.

Renders per-entity source bundles, the project host file, the epics
document and the deployment files from Jinja2 templates.
"""

from workflow_runner.scaffolder.docker_gen import DevOpsGenerator
from workflow_runner.scaffolder.generator import (
    ArtifactBundle,
    ArtifactGenerator,
    schema_columns,
)
from workflow_runner.scaffolder.templates import TemplateRenderer

__all__ = [
    "ArtifactBundle",
    "ArtifactGenerator",
    "DevOpsGenerator",
    "TemplateRenderer",
    "schema_columns",
]
