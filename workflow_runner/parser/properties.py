"""Entity property resolution.

Every entity starts with ``Id`` and ``Name``; known (domain, entity) pairs
append a fixed set of extra fields. The tables below are the single source
of field lists for every artefact kind.
"""

from __future__ import annotations

from .models import DomainCategory, Property, PropertyType

_INT = PropertyType.INT
_STRING = PropertyType.STRING
_DECIMAL = PropertyType.DECIMAL
_DATETIME = PropertyType.DATETIME

BASE_PROPERTIES: tuple[tuple[str, PropertyType], ...] = (
    ("Id", _INT),
    ("Name", _STRING),
)

EXTRA_PROPERTIES: dict[DomainCategory, dict[str, tuple[tuple[str, PropertyType], ...]]] = {
    DomainCategory.INSURANCE: {
        "submission": (
            ("CompanyName", _STRING),
            ("Revenue", _DECIMAL),
            ("NAICS", _STRING),
            ("SubmissionDate", _DATETIME),
        ),
        "case": (
            ("SubmissionId", _INT),
            ("Status", _STRING),
            ("AssignedUnderwriter", _STRING),
            ("OpenedDate", _DATETIME),
        ),
        "quote": (
            ("CaseId", _INT),
            ("Premium", _DECIMAL),
            ("Limit", _DECIMAL),
            ("Deductible", _DECIMAL),
            ("ExpirationDate", _DATETIME),
        ),
        "referral": (
            ("CaseId", _INT),
            ("Reason", _STRING),
            ("ReferredTo", _STRING),
            ("ReferralDate", _DATETIME),
        ),
        "coverage": (
            ("QuoteId", _INT),
            ("CoverageType", _STRING),
            ("Limit", _DECIMAL),
            ("Retention", _DECIMAL),
        ),
    },
    DomainCategory.ECOMMERCE: {
        "user": (
            ("Email", _STRING),
            ("CreatedDate", _DATETIME),
        ),
        "product": (
            ("Price", _DECIMAL),
            ("Description", _STRING),
            ("Stock", _INT),
        ),
        "order": (
            ("UserId", _INT),
            ("OrderDate", _DATETIME),
            ("TotalAmount", _DECIMAL),
            ("Status", _STRING),
        ),
    },
}


def resolve_properties(entity: str, category: DomainCategory) -> list[Property]:
    """Return the ordered property list for *entity* within *category*.

    Entity lookup is case-insensitive. Entities outside the tables (or in
    the generic category) get only the base ``Id``/``Name`` pair.

    Examples::

        resolve_properties("user", DomainCategory.ECOMMERCE)
        -> [Id:int, Name:string, Email:string, CreatedDate:datetime]
        resolve_properties("widget", DomainCategory.ECOMMERCE)
        -> [Id:int, Name:string]
    """
    extras = EXTRA_PROPERTIES.get(category, {}).get(entity.lower(), ())
    return [Property(name=name, type=type_) for name, type_ in (*BASE_PROPERTIES, *extras)]
