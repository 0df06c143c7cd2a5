"""Tests for the requirements parser (workflow_runner.parser.extractor).

Covers:
- Title extraction and domain initialisation
- Section headers -> features and entities
- Entity suffix stripping and sanitisation
- Endpoint line detection
- Default entity fallback per domain category
- Warnings for headers that sanitise to nothing
- Async file reading
"""

from __future__ import annotations

from pathlib import Path

import pytest

from workflow_runner.parser import Context, parse_requirements, read_requirements, sanitize_entity_name

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# sanitize_entity_name
# ---------------------------------------------------------------------------

class TestSanitizeEntityName:
    def test_ampersand_becomes_and(self):
        assert sanitize_entity_name("Order & Payment") == "OrderAndPayment"

    def test_leading_digit_gets_prefix(self):
        assert sanitize_entity_name("3D Models") == "Entity3DModels"

    def test_empty_stays_empty(self):
        assert sanitize_entity_name("") == ""

    def test_punctuation_only_becomes_empty(self):
        assert sanitize_entity_name("-- / --") == ""

    def test_non_ascii_letters_are_dropped(self):
        assert sanitize_entity_name("Café Menu") == "CafMenu"


# ---------------------------------------------------------------------------
# parse_requirements
# ---------------------------------------------------------------------------

class TestTitle:
    def test_title_only_falls_back_to_generic_defaults(self):
        context = parse_requirements("# Foo")
        assert context.project_name == "Foo"
        assert context.domain == "Foo"
        assert context.core_entities == ["User", "Item", "Record"]

    def test_first_title_wins(self):
        context = parse_requirements("# First\n# Second\n")
        assert context.project_name == "First"

    def test_section_marker_is_not_a_title(self):
        context = parse_requirements("## Not A Title\n# Real Title")
        assert context.project_name == "Real Title"

    def test_title_is_trimmed(self):
        context = parse_requirements("   #    Spaced Out   \n")
        assert context.project_name == "Spaced Out"

    def test_no_title_leaves_name_empty(self):
        context = parse_requirements("just some text\nmore text")
        assert context.project_name == ""
        assert context.core_entities == ["User", "Item", "Record"]

    def test_empty_document(self):
        context = parse_requirements("")
        assert isinstance(context, Context)
        assert context.project_name == ""
        assert context.features == []
        assert context.core_entities == ["User", "Item", "Record"]


class TestDomainDefaults:
    def test_insurance_title_uses_insurance_defaults(self):
        context = parse_requirements("# Commercial INSURANCE Portal")
        assert context.core_entities == ["Submission", "Case", "Quote", "Referral", "Coverage"]

    def test_ecommerce_title_uses_ecommerce_defaults(self):
        context = parse_requirements("# Shopping Cart Service")
        assert context.core_entities == ["User", "Product", "Order", "Cart"]

    def test_insurance_takes_precedence_over_ecommerce(self):
        context = parse_requirements("# Cyber Shopping Hub")
        assert context.core_entities[0] == "Submission"

    def test_defaults_not_used_when_entities_found(self):
        context = parse_requirements("# Insurance Desk\n## Broker Management")
        assert context.core_entities == ["Broker"]


class TestSections:
    def test_every_section_is_a_feature(self):
        context = parse_requirements("# P\n## Alpha\n## Beta Management\n### Gamma")
        assert context.features == ["Alpha", "Beta Management"]

    def test_suffix_words_produce_entities(self):
        text = "# P\n## Customer Management\n## Invoice API\n## Ledger Entity"
        context = parse_requirements(text)
        assert context.core_entities == ["Customer", "Invoice", "Ledger"]

    def test_header_without_suffix_is_not_an_entity(self):
        context = parse_requirements("# P\n## Reporting\n## Customer Management")
        assert context.core_entities == ["Customer"]

    def test_suffix_match_is_whole_word(self):
        context = parse_requirements("# P\n## Managements Overview")
        assert context.core_entities == ["User", "Item", "Record"]

    def test_entities_are_deduplicated_in_order(self):
        text = "# P\n## User Management\n## Product API\n## User API"
        context = parse_requirements(text)
        assert context.core_entities == ["User", "Product"]

    def test_sanitised_section_entity(self):
        context = parse_requirements("# P\n## Order & Payment API\n## 3D Models Management")
        assert context.core_entities == ["OrderAndPayment", "Entity3DModels"]

    def test_empty_candidate_is_dropped_with_warning(self):
        context = parse_requirements("# P\n## Management\n## Claim API")
        assert context.core_entities == ["Claim"]
        assert len(context.warnings) == 1
        assert "Management" in context.warnings[0]

    def test_sample_document(self, sample_context: Context):
        assert sample_context.project_name == "Online Shopping Platform"
        assert sample_context.features == ["Product Management", "Order & Payment API", "Reporting"]
        assert sample_context.core_entities == ["Product", "OrderAndPayment"]
        assert sample_context.warnings == []


class TestEndpoints:
    def test_api_with_verb_is_an_endpoint(self):
        context = parse_requirements("# P\nThe API should GET all users")
        assert context.api_endpoints == ["The API should GET all users"]

    def test_apis_plural_counts(self):
        context = parse_requirements("# P\nThese apis delete records")
        assert context.api_endpoints == ["These apis delete records"]

    def test_verb_without_api_is_ignored(self):
        context = parse_requirements("# P\nUsers can get a refund")
        assert context.api_endpoints == []

    def test_verb_must_be_whole_word(self):
        context = parse_requirements("# P\nThe API targets posters")
        assert context.api_endpoints == []

    def test_lines_are_trimmed(self):
        context = parse_requirements("# P\n    API: POST /orders   ")
        assert context.api_endpoints == ["API: POST /orders"]

    def test_sample_document_endpoints(self, sample_context: Context):
        assert len(sample_context.api_endpoints) == 2


# ---------------------------------------------------------------------------
# read_requirements
# ---------------------------------------------------------------------------

class TestReadRequirements:
    @pytest.mark.asyncio
    async def test_reads_and_parses_file(self, sample_requirements: str):
        context = await read_requirements(sample_requirements)
        assert context.project_name == "Online Shopping Platform"

    @pytest.mark.asyncio
    async def test_missing_file_raises(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            await read_requirements(tmp_path / "missing.md")
