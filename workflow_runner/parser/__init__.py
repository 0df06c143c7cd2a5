"""Workflow Runner requirements parser.

Parses markdown requirement documents into a structured ``Context``,
classifies the project domain and resolves per-entity property lists.

Usage::

    from workflow_runner.parser import parse_requirements

    context = parse_requirements(Path("requirements.md").read_text())
    print(context.core_entities)
    print(context.properties_for(context.core_entities[0]))
"""

from workflow_runner.parser.classifier import classify_domain, default_entities
from workflow_runner.parser.extractor import (
    parse_requirements,
    read_requirements,
    sanitize_entity_name,
)
from workflow_runner.parser.models import (
    Context,
    DomainCategory,
    Property,
    PropertyType,
    namespace_token,
)
from workflow_runner.parser.properties import resolve_properties

__all__ = [
    "parse_requirements",
    "read_requirements",
    "sanitize_entity_name",
    "classify_domain",
    "default_entities",
    "resolve_properties",
    "Context",
    "DomainCategory",
    "Property",
    "PropertyType",
    "namespace_token",
]
