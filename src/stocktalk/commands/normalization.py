"""Parameter-name normalization onto the canonical action schemas."""

from typing import Any

# Synonym -> canonical parameter name
PARAMETER_ALIASES: dict[str, str] = {
    "qty": "quantity",
    "cost": "unitCost",
    "price": "unitCost",
    "supplier": "preferredSupplierName",
    "supplierName": "preferredSupplierName",
    "loc": "location",
    "warehouse": "location",
    "mfg": "manufacturer",
    "make": "manufacturer",
    "item": "partNumber",
    "part": "partNumber",
    "sku": "partNumber",
}

SEARCH_TERM_KEYS = ("search", "query", "searchTerm", "q")


def normalize_parameters(parameters: dict[str, Any]) -> dict[str, Any]:
    """Copy synonym parameters onto their canonical names.

    The synonym keys are kept, since downstream consumers (and the
    conversation context) still read e.g. ``item``. A canonical field that
    is already present is never overwritten, and among several synonyms for
    the same field the first one encountered wins.

    Args:
        parameters: Parameters as extracted

    Returns:
        New dict with canonical names filled in
    """
    normalized = dict(parameters)
    for key, value in parameters.items():
        canonical = PARAMETER_ALIASES.get(key)
        if canonical is None or value is None:
            continue
        if normalized.get(canonical) is None:
            normalized[canonical] = value
    return normalized


def extract_search_term(parameters: dict[str, Any]) -> str | None:
    """Return the search term under any of its accepted names, or None."""
    for key in SEARCH_TERM_KEYS:
        term = parameters.get(key)
        if term:
            return str(term)
    return None
