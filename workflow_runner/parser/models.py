"""Pydantic v2 models for the Workflow Runner requirements parser.

Defines the structured ``Context`` extracted from a requirements document
and the ``Property`` description shared by every generated artefact.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class DomainCategory(str, Enum):
    """Known business verticals used to pick default entities and fields."""
    INSURANCE = "insurance"
    ECOMMERCE = "ecommerce"
    GENERIC = "generic"


class PropertyType(str, Enum):
    """Field types understood by every artefact template."""
    INT = "int"
    STRING = "string"
    DECIMAL = "decimal"
    DATETIME = "datetime"

    @property
    def default_expression(self) -> str:
        """Canonical default-value expression emitted into generated code."""
        return _DEFAULT_EXPRESSIONS[self]


# ``DateTime.UtcNow`` is evaluated by the generated code at runtime; the
# generator itself never embeds a timestamp.
_DEFAULT_EXPRESSIONS: dict[PropertyType, str] = {
    PropertyType.INT: "0",
    PropertyType.STRING: "string.Empty",
    PropertyType.DECIMAL: "0m",
    PropertyType.DATETIME: "DateTime.UtcNow",
}


# ---------------------------------------------------------------------------
# Property
# ---------------------------------------------------------------------------

class Property(BaseModel):
    """A single field of a generated entity."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Field name, e.g. 'CompanyName'")
    type: PropertyType = Field(..., description="Field data type")
    default_expression: str = Field(
        default="", description="Initial value expression; derived from the type when empty"
    )

    @model_validator(mode="before")
    @classmethod
    def _fill_default(cls, data: Any) -> Any:
        if isinstance(data, dict) and "type" in data and not data.get("default_expression"):
            data = {**data, "default_expression": PropertyType(data["type"]).default_expression}
        return data

    def __str__(self) -> str:
        return f"{self.name}:{self.type.value}"


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------

_NAMESPACE_STRIP = re.compile(r"[\s-]+")

FALLBACK_NAMESPACE = "GeneratedApi"


def namespace_token(project_name: str) -> str:
    """Strip whitespace and hyphens from *project_name*.

    Examples::

        namespace_token("My Ecommerce API") -> "MyEcommerceAPI"
        namespace_token("cyber-desk")       -> "cyberdesk"
        namespace_token("")                 -> "GeneratedApi"
    """
    return _NAMESPACE_STRIP.sub("", project_name) or FALLBACK_NAMESPACE


class Context(BaseModel):
    """Structured result of parsing a requirements document.

    Built once per workflow run by the Requirements stage and handed to every
    later stage. ``entity_properties`` is filled lazily through
    :meth:`properties_for`; the parser never touches it.
    """

    project_name: str = Field(default="", description="Text of the first title line")
    domain: str = Field(default="", description="Text classified into a DomainCategory")
    core_entities: list[str] = Field(
        default_factory=list, description="Unique, insertion-ordered entity names"
    )
    api_endpoints: list[str] = Field(
        default_factory=list, description="Raw lines that look like endpoint declarations"
    )
    features: list[str] = Field(default_factory=list, description="Raw section-header texts")
    entity_properties: dict[str, list[Property]] = Field(
        default_factory=dict, description="Resolved property lists, keyed by entity name"
    )
    warnings: list[str] = Field(
        default_factory=list,
        description="Parse anomalies, e.g. headers whose entity name sanitised to nothing",
    )

    @property
    def category(self) -> DomainCategory:
        """Domain category of :attr:`domain`."""
        from .classifier import classify_domain

        return classify_domain(self.domain)

    @property
    def namespace(self) -> str:
        """Namespace token: the project name without whitespace or hyphens."""
        return namespace_token(self.project_name)

    def properties_for(self, entity: str) -> list[Property]:
        """Return (and cache) the property list for *entity*."""
        from .properties import resolve_properties

        if entity not in self.entity_properties:
            self.entity_properties[entity] = resolve_properties(entity, self.category)
        return list(self.entity_properties[entity])
