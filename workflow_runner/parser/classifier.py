"""Keyword-based domain classification.

Maps the free-text domain of a project onto a :class:`DomainCategory` and
supplies the default entity set used when a requirements document names no
entities of its own.
"""

from __future__ import annotations

from .models import DomainCategory

# Checked in order; the first category with a matching keyword wins, so a
# domain mentioning both "cyber" and "shopping" classifies as insurance.
_CATEGORY_KEYWORDS: tuple[tuple[DomainCategory, tuple[str, ...]], ...] = (
    (DomainCategory.INSURANCE, ("insurance", "underwriting", "cyber")),
    (DomainCategory.ECOMMERCE, ("ecommerce", "shopping", "product")),
)

DEFAULT_ENTITIES: dict[DomainCategory, tuple[str, ...]] = {
    DomainCategory.INSURANCE: ("Submission", "Case", "Quote", "Referral", "Coverage"),
    DomainCategory.ECOMMERCE: ("User", "Product", "Order", "Cart"),
    DomainCategory.GENERIC: ("User", "Item", "Record"),
}


def classify_domain(domain_text: str) -> DomainCategory:
    """Classify *domain_text* by case-insensitive keyword substring.

    Examples::

        classify_domain("Cyber Underwriting Desk") -> DomainCategory.INSURANCE
        classify_domain("My Shopping App")         -> DomainCategory.ECOMMERCE
        classify_domain("Foo")                     -> DomainCategory.GENERIC
    """
    lower = domain_text.lower()
    for category, keywords in _CATEGORY_KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            return category
    return DomainCategory.GENERIC


def default_entities(category: DomainCategory) -> list[str]:
    """Return a fresh copy of the default entity list for *category*."""
    return list(DEFAULT_ENTITIES[category])
