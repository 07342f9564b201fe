"""Rule-driven field extraction from free-text analyses.

Rules are evaluated in order and the first match per field wins, so new
label formats are added by appending rules rather than editing code.
Overlapping rules can pick up the wrong value when the upstream prompt
format drifts; this module does not validate what it extracts.
"""

import re
from dataclasses import dataclass
from typing import Dict, Optional, Pattern, Sequence

from llm_analysis.schema import UNKNOWN, ExtractedFields

EXTRACTED_FIELDS = ("title", "price", "rating")

# Label, optional Markdown bold, ASCII or full-width colon(s).
_LABEL_SUFFIX = r"\**\s*[：:]+\s*\**"
_LINE_VALUE = r"\s*([^\n]+)"
_NUMBER_VALUE = r"[^0-9]*([0-9](?:[0-9,.]*[0-9])?)"


@dataclass(frozen=True)
class FieldRule:
    """One extraction rule: a regex whose first group is ``field``'s value."""

    field: str
    pattern: Pattern[str]

    def __post_init__(self) -> None:
        if self.field not in EXTRACTED_FIELDS:
            raise ValueError(f"Unknown field '{self.field}'. Allowed: {', '.join(EXTRACTED_FIELDS)}.")


def label_rule(field: str, label: str, value: str = _LINE_VALUE) -> FieldRule:
    return FieldRule(field=field, pattern=re.compile(re.escape(label) + _LABEL_SUFFIX + value))


DEFAULT_FIELD_RULES: Sequence[FieldRule] = (
    label_rule("title", "产品标题"),
    label_rule("title", "Title"),
    label_rule("price", "价格", _NUMBER_VALUE),
    label_rule("price", "Price", _NUMBER_VALUE),
    label_rule("rating", "评分", _NUMBER_VALUE),
    label_rule("rating", "Rating", _NUMBER_VALUE),
)


def _clean(value: str) -> str:
    return value.strip().strip("*").strip()


def match_rules(text: str, rules: Sequence[FieldRule]) -> Dict[str, str]:
    """Apply ``rules`` in order and return the first value found per field."""
    values: Dict[str, str] = {}
    for rule in rules:
        if rule.field in values:
            continue
        match = rule.pattern.search(text)
        if not match:
            continue
        value = _clean(match.group(1))
        if value:
            values[rule.field] = value
    return values


def extract_fields(
    text: Optional[str],
    identifier: str,
    rules: Sequence[FieldRule] = DEFAULT_FIELD_RULES,
) -> ExtractedFields:
    """Extract title, price and rating from an analysis.

    Price and rating stay free text; numeric coercion is the consumer's
    job.

    Args:
        text: The free-text analysis.
        identifier: Product identifier the analysis belongs to.
        rules: Ordered extraction rules.

    Returns:
        ExtractedFields with ``UNKNOWN`` for every unmatched field.
    """
    analysis = text or ""
    values = match_rules(analysis, rules)
    return ExtractedFields(
        identifier=identifier,
        title=values.get("title", UNKNOWN),
        price=values.get("price", UNKNOWN),
        rating=values.get("rating", UNKNOWN),
        full_analysis=analysis,
    )
