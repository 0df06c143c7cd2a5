"""Jinja2 template rendering for generated artefacts.

Provides the TemplateRenderer class which loads Jinja2 templates from the
``workflow_runner/scaffolder/templates/`` directory and renders them with
entity-specific context data. The literal text of every generated file
lives in those templates; Python code only decides what goes into them.
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from workflow_runner.utils import write_text


# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders Jinja2 templates for artefact generation.

    Undefined variables raise instead of rendering as empty text, so a
    template/context mismatch surfaces as a stage failure rather than as a
    silently broken file.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        # Custom filters
        self.env.filters["plural"] = pluralize

    # -- Single template rendering -----------------------------------------

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a single template with the provided context.

        Args:
            template_path: Path relative to the template directory (e.g.
                ``"controller.cs.j2"``).
            context: Dictionary of variables available inside the template.
        """
        template = self.env.get_template(template_path)
        return template.render(**context)

    async def render_to_file(
        self,
        template_path: str,
        output_path: str | Path,
        context: dict[str, Any],
    ) -> Path:
        """Render a template and write the result to *output_path*.

        Parent directories are created automatically.
        """
        content = self.render(template_path, context)
        return await asyncio.to_thread(write_text, Path(output_path), content)


# ---------------------------------------------------------------------------
# Name helpers (``plural`` is also a template filter)
# ---------------------------------------------------------------------------

def snake_case(value: str) -> str:
    """Convert ``SomeThing`` or ``some-thing`` to ``some_thing``."""
    s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", value)
    s2 = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1)
    return re.sub(r"[-\s]+", "_", s2).lower()


def pluralize(value: str) -> str:
    """Naive English plural used for controller and table names.

    Examples::

        pluralize("User")     -> "Users"
        pluralize("Category") -> "Categories"
        pluralize("Address")  -> "Addresses"
    """
    if not value:
        return value
    lower = value.lower()
    if lower.endswith("y") and lower[-2:-1] not in ("a", "e", "i", "o", "u"):
        return value[:-1] + "ies"
    if lower.endswith(("s", "sh", "ch", "x", "z")):
        return value + "es"
    return value + "s"
