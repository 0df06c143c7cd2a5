"""Requirements document parser for the Workflow Runner.

Turns free-text markdown requirements into a :class:`Context`: project name,
section features, endpoint mentions and the entity list every later stage
generates artefacts for. Uses pure regex and line structure -- no AI calls.
Parsing never fails; degenerate documents fall back to domain defaults.
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path

from .classifier import classify_domain, default_entities
from .models import Context


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_TITLE_PATTERN = re.compile(r"^#(?!#)\s*(.*)$")
_SECTION_PATTERN = re.compile(r"^##(?!#)\s*(.*)$")
_API_PATTERN = re.compile(r"\bapis?\b", re.IGNORECASE)
_VERB_PATTERN = re.compile(r"\b(get|post|put|delete)\b", re.IGNORECASE)
_ENTITY_SUFFIX_PATTERN = re.compile(r"\b(Management|API|Entity)\b")
_NON_IDENTIFIER = re.compile(r"[^A-Za-z0-9]")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def sanitize_entity_name(text: str) -> str:
    """Convert arbitrary header text into an entity identifier.

    ``&`` becomes ``And``, every other non-alphanumeric character is dropped,
    and a leading digit is prefixed with ``Entity``.

    Examples::

        sanitize_entity_name("Order & Payment") -> "OrderAndPayment"
        sanitize_entity_name("3D Models")       -> "Entity3DModels"
        sanitize_entity_name("")                -> ""
    """
    cleaned = _NON_IDENTIFIER.sub("", text.replace("&", "And"))
    if cleaned and cleaned[0].isdigit():
        cleaned = "Entity" + cleaned
    return cleaned


def _is_endpoint_line(line: str) -> bool:
    """Whether *line* mentions an API together with an HTTP verb."""
    return bool(_API_PATTERN.search(line) and _VERB_PATTERN.search(line))


def _entity_from_section(header: str) -> str | None:
    """Return the raw entity candidate of a section header, if it names one.

    ``None`` means the header carries no entity suffix word at all; an empty
    string means it did but nothing usable was left after sanitising.
    """
    if not _ENTITY_SUFFIX_PATTERN.search(header):
        return None
    return sanitize_entity_name(_ENTITY_SUFFIX_PATTERN.sub("", header).strip())


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_requirements(text: str) -> Context:
    """Parse requirements *text* into a :class:`Context`.

    Args:
        text: Raw markdown. ``#`` marks the title line, ``##`` a section.

    Returns:
        A Context whose ``core_entities`` is never empty.
    """
    context = Context()
    lines = [line.strip() for line in text.splitlines() if line.strip()]

    for line in lines:
        if not context.project_name:
            title = _TITLE_PATTERN.match(line)
            if title and title.group(1).strip():
                context.project_name = title.group(1).strip()
                context.domain = context.project_name

        if _is_endpoint_line(line):
            context.api_endpoints.append(line)

        section = _SECTION_PATTERN.match(line)
        if not section:
            continue

        header = section.group(1).strip()
        context.features.append(header)

        entity = _entity_from_section(header)
        if entity is None:
            continue
        if not entity:
            context.warnings.append(
                f"Section '{header}' names no usable entity and was ignored"
            )
        elif entity not in context.core_entities:
            context.core_entities.append(entity)

    if not context.core_entities:
        context.core_entities = default_entities(classify_domain(context.domain))

    return context


async def read_requirements(path: str | Path) -> Context:
    """Read the requirements file at *path* and parse it.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    text = await asyncio.to_thread(Path(path).read_text, encoding="utf-8")
    return parse_requirements(text)
