"""Post-run reporting for the Workflow Runner."""

from workflow_runner.reporter.guide import GuideGenerator

__all__ = ["GuideGenerator"]
