"""Per-entity artefact generation.

Takes an entity, its domain category and its resolved property list and
renders the five artefacts every entity gets: API controller, model,
service, schema fragment and controller tests. Generation is a pure
function of its arguments -- no timestamps, no random values -- so bundles
can be regenerated freely and compared for equality.
"""

from __future__ import annotations

from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field

from workflow_runner.parser.models import (
    Context,
    DomainCategory,
    Property,
    PropertyType,
    namespace_token,
)

from .templates import TemplateRenderer, pluralize


# ---------------------------------------------------------------------------
# Type mapping
# ---------------------------------------------------------------------------

CS_TYPES: dict[PropertyType, str] = {
    PropertyType.INT: "int",
    PropertyType.STRING: "string",
    PropertyType.DECIMAL: "decimal",
    PropertyType.DATETIME: "DateTime",
}

# Signing secret written into the non-strict Program.cs; code review flags it.
DEV_JWT_SECRET = "dev-only-signing-key-change-me"


# ---------------------------------------------------------------------------
# Schema column tables
# ---------------------------------------------------------------------------

_PK = "Id INT PRIMARY KEY"

SCHEMA_COLUMNS: dict[DomainCategory, dict[str, tuple[str, ...]]] = {
    DomainCategory.INSURANCE: {
        "submission": (
            _PK,
            "Name NVARCHAR(200)",
            "CompanyName NVARCHAR(200)",
            "Revenue DECIMAL(18,2)",
            "NAICS NVARCHAR(10)",
            "SubmissionDate DATETIME2",
        ),
        "case": (
            _PK,
            "Name NVARCHAR(200)",
            "SubmissionId INT",
            "Status NVARCHAR(50)",
            "AssignedUnderwriter NVARCHAR(100)",
            "OpenedDate DATETIME2",
        ),
        "quote": (
            _PK,
            "Name NVARCHAR(200)",
            "CaseId INT",
            "Premium DECIMAL(18,2)",
            "[Limit] DECIMAL(18,2)",
            "Deductible DECIMAL(18,2)",
            "ExpirationDate DATETIME2",
        ),
        "referral": (
            _PK,
            "Name NVARCHAR(200)",
            "CaseId INT",
            "Reason NVARCHAR(500)",
            "ReferredTo NVARCHAR(100)",
            "ReferralDate DATETIME2",
        ),
        "coverage": (
            _PK,
            "Name NVARCHAR(200)",
            "QuoteId INT",
            "CoverageType NVARCHAR(100)",
            "[Limit] DECIMAL(18,2)",
            "Retention DECIMAL(18,2)",
        ),
    },
    DomainCategory.ECOMMERCE: {
        "user": (
            _PK,
            "Name NVARCHAR(100)",
            "Email NVARCHAR(255)",
            "CreatedDate DATETIME2",
        ),
        "product": (
            _PK,
            "Name NVARCHAR(200)",
            "Price DECIMAL(10,2)",
            "Description NVARCHAR(1000)",
            "Stock INT",
        ),
        "order": (
            _PK,
            "Name NVARCHAR(100)",
            "UserId INT",
            "OrderDate DATETIME2",
            "TotalAmount DECIMAL(10,2)",
            "Status NVARCHAR(50)",
        ),
    },
}


def schema_columns(
    entity: str, category: DomainCategory, properties: Iterable[Property]
) -> list[str]:
    """Return the column definitions for *entity*'s table.

    Known insurance and ecommerce entities use their dedicated width table;
    everything else gets the generic two-column table, plus ``CreatedDate``
    when the entity carries that property.
    """
    known = SCHEMA_COLUMNS.get(category, {}).get(entity.lower())
    if known:
        return list(known)
    columns = [_PK, "Name NVARCHAR(100)"]
    if any(prop.name == "CreatedDate" for prop in properties):
        columns.append("CreatedDate DATETIME2")
    return columns


# ---------------------------------------------------------------------------
# Bundle model
# ---------------------------------------------------------------------------


class ArtifactBundle(BaseModel):
    """The generated text artefacts of a single entity."""

    model_config = ConfigDict(frozen=True)

    entity: str = Field(..., description="Entity name, e.g. 'Product'")
    api: str = Field(..., description="Controller source")
    model: str = Field(..., description="Model class source")
    service: str = Field(..., description="Service class source")
    schema_sql: str = Field(..., description="CREATE TABLE fragment")
    test: str = Field(..., description="Controller test source")

    @property
    def plural(self) -> str:
        return pluralize(self.entity)

    @property
    def api_path(self) -> str:
        return f"Controllers/{self.plural}Controller.cs"

    @property
    def model_path(self) -> str:
        return f"Models/{self.entity}.cs"

    @property
    def service_path(self) -> str:
        return f"Services/{self.entity}Service.cs"

    @property
    def test_path(self) -> str:
        return f"Tests/{self.plural}ControllerTests.cs"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _sample_literal(prop: Property, entity: str, index: int) -> str:
    """C# literal used for *prop* in the *index*-th canned sample instance."""
    if prop.type is PropertyType.INT:
        return str(index)
    if prop.type is PropertyType.DECIMAL:
        return f"{index * 100}.00m"
    if prop.type is PropertyType.DATETIME:
        return prop.default_expression
    if prop.name == "Name":
        return f'"Sample {entity} {index}"'
    if "email" in prop.name.lower():
        return f'"{entity.lower()}{index}@example.com"'
    return f'"{prop.name} {index}"'


def _initializer(properties: list[Property], entity: str, index: int, id_expr: str | None = None) -> str:
    """Object-initializer body, e.g. ``Id = 1, Name = "Sample User 1"``."""
    parts: list[str] = []
    for prop in properties:
        if prop.name == "Id" and id_expr is not None:
            value = id_expr
        else:
            value = _sample_literal(prop, entity, index)
        parts.append(f"{prop.name} = {value}")
    return ", ".join(parts)


# ---------------------------------------------------------------------------
# ArtifactGenerator
# ---------------------------------------------------------------------------


class ArtifactGenerator:
    """Renders per-entity bundles and the project-level source files.

    ``strict=True`` selects the hardened variants (input validation in
    controllers, exception handling in services, configuration-sourced
    secrets) used when a code-review finding is fixed automatically.
    """

    def __init__(self, renderer: TemplateRenderer | None = None) -> None:
        self.renderer = renderer or TemplateRenderer()

    # -- Public API --------------------------------------------------------

    def generate(
        self,
        entity: str,
        category: DomainCategory,
        properties: list[Property],
        project_name: str,
        *,
        strict: bool = False,
    ) -> ArtifactBundle:
        """Render the five artefacts of *entity*."""
        ctx = self._entity_context(entity, category, properties, project_name, strict)
        return ArtifactBundle(
            entity=entity,
            api=self.renderer.render("controller.cs.j2", ctx),
            model=self.renderer.render("model.cs.j2", ctx),
            service=self.renderer.render("service.cs.j2", ctx),
            schema_sql=self.renderer.render("schema.sql.j2", ctx),
            test=self.renderer.render("controller_tests.cs.j2", ctx),
        )

    def generate_program(self, project_name: str, entities: list[str], *, strict: bool = False) -> str:
        """Render the ``Program.cs`` host that wires every entity service."""
        return self.renderer.render(
            "program.cs.j2",
            {
                "namespace": namespace_token(project_name),
                "entities": entities,
                "strict": strict,
                "dev_secret": DEV_JWT_SECRET,
            },
        )

    def generate_epics(self, context: Context) -> str:
        """Render the epics document produced by the Requirements stage."""
        return self.renderer.render(
            "epics.md.j2",
            {
                "project_name": context.project_name,
                "category": context.category.value,
                "entities": context.core_entities,
                "features": context.features,
            },
        )

    @staticmethod
    def generate_schema_script(bundles: list[ArtifactBundle]) -> str:
        """Join the schema fragments of *bundles* into one SQL script."""
        return "\n".join(bundle.schema_sql for bundle in bundles)

    # -- Context building --------------------------------------------------

    def _entity_context(
        self,
        entity: str,
        category: DomainCategory,
        properties: list[Property],
        project_name: str,
        strict: bool,
    ) -> dict[str, Any]:
        """Build the Jinja2 template context for one entity."""
        return {
            "namespace": namespace_token(project_name),
            "entity": entity,
            "plural": pluralize(entity),
            "strict": strict,
            "properties": [
                {
                    "name": prop.name,
                    "cs_type": CS_TYPES[prop.type],
                    "default": prop.default_expression,
                }
                for prop in properties
            ],
            "samples": [_initializer(properties, entity, index) for index in (1, 2)],
            "detail": _initializer(properties, entity, 1, id_expr="id"),
            "columns": schema_columns(entity, category, properties),
        }
