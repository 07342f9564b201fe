"""
insight_pipeline/validators/product_validator.py

Sanity checks for extracted product fields.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from llm_analysis.schema import UNKNOWN, ExtractedFields

MIN_TITLE_LENGTH = 10
MAX_TITLE_LENGTH = 500
MIN_PRICE = 0.01
MAX_PRICE = 100_000.0
RATING_RANGE = (1.0, 5.0)

SUSPICIOUS_TITLE_WORDS = ("sponsored", "advertisement", "recommended")

# Identifier-shaped tokens must contain a digit so plain ten-letter words are ignored.
_IDENTIFIER_TOKEN = re.compile(r"\b(?=[A-Z0-9]*[0-9])[A-Z0-9]{10}\b")


@dataclass(frozen=True)
class ProductValidationReport:
    """
    Outcome of validating one product's extracted fields.
    """

    is_valid: bool
    issues: tuple[str, ...]
    warnings: tuple[str, ...]

    @property
    def summary(self) -> str:
        if self.is_valid:
            return "Validation passed"
        return f"Validation failed: {len(self.issues)} issue(s), {len(self.warnings)} warning(s)"


def _known(value: str) -> str | None:
    stripped = value.strip()
    if not stripped or stripped == UNKNOWN:
        return None
    return stripped


def parse_number(value: str | None) -> float | None:
    """
    Coerce free-text numbers such as ``$1,299.00`` or ``4.5`` to float.
    """

    if value is None:
        return None
    match = re.search(r"[0-9][0-9,]*(?:\.[0-9]+)?", value)
    if not match:
        return None
    try:
        return float(match.group(0).replace(",", ""))
    except ValueError:
        return None


def validate_product_fields(
    identifier: str,
    fields: ExtractedFields,
    *,
    expected_category: str | None = None,
) -> ProductValidationReport:
    """
    Flag extracted fields that are missing, implausible or likely taken
    from the wrong product.
    """

    issues: list[str] = []
    warnings: list[str] = []

    title = _known(fields.title)
    price_text = _known(fields.price)
    rating_text = _known(fields.rating)

    if title is None:
        issues.append("Missing product title")
    if price_text is None:
        warnings.append("Missing price data")
    if rating_text is None:
        warnings.append("Missing rating data")

    if title is not None:
        if len(title) < MIN_TITLE_LENGTH:
            issues.append(f'Title too short: "{title}" (likely wrong data)')
        if len(title) > MAX_TITLE_LENGTH:
            warnings.append("Title unusually long, may include extra content")

        found = _IDENTIFIER_TOKEN.findall(title)
        if found and identifier not in found:
            issues.append(f"Identifier mismatch: expected {identifier}, found {found[0]} in title")

        lowered = title.lower()
        for word in SUSPICIOUS_TITLE_WORDS:
            if word in lowered:
                issues.append(f'Title contains "{word}" - likely not the main product')

        if expected_category and expected_category.lower() not in lowered:
            warnings.append(f'Expected category "{expected_category}" not found in title')

    price = parse_number(price_text)
    if price is not None:
        if price < MIN_PRICE:
            issues.append(f"Price too low: {price}")
        if price > MAX_PRICE:
            warnings.append(f"Price unusually high: {price}")

    rating = parse_number(rating_text)
    if rating is not None and not RATING_RANGE[0] <= rating <= RATING_RANGE[1]:
        issues.append(f"Invalid rating: {rating} (must be 1-5)")

    return ProductValidationReport(
        is_valid=not issues,
        issues=tuple(issues),
        warnings=tuple(warnings),
    )
