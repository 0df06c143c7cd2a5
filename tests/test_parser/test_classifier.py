"""Tests for domain classification (workflow_runner.parser.classifier)."""

from __future__ import annotations

import pytest

from workflow_runner.parser import DomainCategory, classify_domain, default_entities

pytestmark = pytest.mark.unit


class TestClassifyDomain:
    @pytest.mark.parametrize(
        "domain",
        ["Insurance Portal", "underwriting workbench", "CYBER risk desk"],
    )
    def test_insurance_keywords(self, domain: str):
        assert classify_domain(domain) is DomainCategory.INSURANCE

    @pytest.mark.parametrize(
        "domain",
        ["ECommerce Store", "Weekend Shopping", "Product Catalogue"],
    )
    def test_ecommerce_keywords(self, domain: str):
        assert classify_domain(domain) is DomainCategory.ECOMMERCE

    def test_substring_match(self):
        assert classify_domain("reinsurance broker") is DomainCategory.INSURANCE

    def test_insurance_checked_first(self):
        assert classify_domain("Cyber product shop") is DomainCategory.INSURANCE

    def test_unknown_is_generic(self):
        assert classify_domain("Library Loans") is DomainCategory.GENERIC

    def test_empty_is_generic(self):
        assert classify_domain("") is DomainCategory.GENERIC


class TestDefaultEntities:
    def test_insurance(self):
        assert default_entities(DomainCategory.INSURANCE) == [
            "Submission", "Case", "Quote", "Referral", "Coverage",
        ]

    def test_ecommerce(self):
        assert default_entities(DomainCategory.ECOMMERCE) == ["User", "Product", "Order", "Cart"]

    def test_generic(self):
        assert default_entities(DomainCategory.GENERIC) == ["User", "Item", "Record"]

    def test_returns_fresh_list(self):
        first = default_entities(DomainCategory.GENERIC)
        first.append("Extra")
        assert default_entities(DomainCategory.GENERIC) == ["User", "Item", "Record"]
