"""Tests for property resolution and the parser data models.

Covers:
- Base properties and per-(category, entity) extras
- Case-insensitive entity lookup
- Default value expressions per property type
- Context derived fields (category, namespace) and lazy property cache
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from workflow_runner.parser import Context, DomainCategory, Property, PropertyType, resolve_properties

pytestmark = pytest.mark.unit


def _labels(properties: list[Property]) -> list[str]:
    return [str(prop) for prop in properties]


class TestResolveProperties:
    def test_ecommerce_user(self):
        result = resolve_properties("user", DomainCategory.ECOMMERCE)
        assert _labels(result) == ["Id:int", "Name:string", "Email:string", "CreatedDate:datetime"]

    def test_unknown_entity_gets_base_only(self):
        result = resolve_properties("widget", DomainCategory.ECOMMERCE)
        assert _labels(result) == ["Id:int", "Name:string"]

    def test_lookup_is_case_insensitive(self):
        result = resolve_properties("QUOTE", DomainCategory.INSURANCE)
        assert _labels(result) == [
            "Id:int",
            "Name:string",
            "CaseId:int",
            "Premium:decimal",
            "Limit:decimal",
            "Deductible:decimal",
            "ExpirationDate:datetime",
        ]

    def test_entity_outside_its_category_gets_base_only(self):
        result = resolve_properties("Product", DomainCategory.INSURANCE)
        assert _labels(result) == ["Id:int", "Name:string"]

    def test_generic_category_gets_base_only(self):
        assert _labels(resolve_properties("User", DomainCategory.GENERIC)) == ["Id:int", "Name:string"]

    def test_base_properties_always_first(self):
        result = resolve_properties("Submission", DomainCategory.INSURANCE)
        assert [p.name for p in result[:2]] == ["Id", "Name"]
        assert [p.name for p in result[2:]] == ["CompanyName", "Revenue", "NAICS", "SubmissionDate"]

    def test_returns_new_list_each_call(self):
        first = resolve_properties("Order", DomainCategory.ECOMMERCE)
        first.clear()
        assert len(resolve_properties("Order", DomainCategory.ECOMMERCE)) == 6


class TestProperty:
    @pytest.mark.parametrize(
        ("type_", "expected"),
        [
            (PropertyType.INT, "0"),
            (PropertyType.STRING, "string.Empty"),
            (PropertyType.DECIMAL, "0m"),
            (PropertyType.DATETIME, "DateTime.UtcNow"),
        ],
    )
    def test_default_expression_from_type(self, type_: PropertyType, expected: str):
        assert Property(name="Field", type=type_).default_expression == expected

    def test_explicit_default_is_kept(self):
        prop = Property(name="Stock", type=PropertyType.INT, default_expression="10")
        assert prop.default_expression == "10"

    def test_is_frozen(self):
        prop = Property(name="Id", type=PropertyType.INT)
        with pytest.raises(ValidationError):
            prop.name = "Other"

    def test_equality(self):
        assert Property(name="Id", type="int") == Property(name="Id", type=PropertyType.INT)


class TestContext:
    def test_category_follows_domain(self):
        assert Context(domain="Cyber Desk").category is DomainCategory.INSURANCE
        assert Context(domain="").category is DomainCategory.GENERIC

    @pytest.mark.parametrize(
        ("project_name", "expected"),
        [
            ("My Ecommerce API", "MyEcommerceAPI"),
            ("cyber-desk", "cyberdesk"),
            ("  - ", "GeneratedApi"),
            ("", "GeneratedApi"),
        ],
    )
    def test_namespace(self, project_name: str, expected: str):
        assert Context(project_name=project_name).namespace == expected

    def test_properties_for_caches_resolution(self):
        context = Context(domain="Shopping", core_entities=["Product"])
        assert context.entity_properties == {}
        props = context.properties_for("Product")
        assert [p.name for p in props] == ["Id", "Name", "Price", "Description", "Stock"]
        assert "Product" in context.entity_properties

    def test_properties_for_returns_copy(self):
        context = Context(domain="Shopping")
        context.properties_for("Product").clear()
        assert len(context.properties_for("Product")) == 5

    def test_json_round_trip_keeps_properties(self):
        context = Context(project_name="Shop", domain="Shopping", core_entities=["User"])
        context.properties_for("User")
        restored = Context.model_validate_json(context.model_dump_json())
        assert restored == context
