"""
Product identifier normalization.
"""

from __future__ import annotations

import re

from insight_pipeline.config import DEFAULT_PRODUCT_URL_TEMPLATE

IDENTIFIER_LENGTH = 10

_BARE_IDENTIFIER = re.compile(r"^[A-Z0-9]{10}$", re.IGNORECASE)

# First capture of the first matching pattern wins.
URL_IDENTIFIER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"/dp/([A-Z0-9]{10})(?![A-Z0-9])", re.IGNORECASE),
    re.compile(r"/gp/product/([A-Z0-9]{10})(?![A-Z0-9])", re.IGNORECASE),
    re.compile(
        r"amazon\.(?:com|co\.uk|de|es|fr|it|ca|co\.jp)/.*/([A-Z0-9]{10})(?![A-Z0-9])",
        re.IGNORECASE,
    ),
)


def normalize_identifier(raw: object) -> str | None:
    """
    Return the canonical uppercase identifier for an ID or product URL.

    ``None`` means no identifier could be found; callers branch on it.
    """

    if not isinstance(raw, str):
        return None
    candidate = raw.strip()
    if not candidate:
        return None

    if _BARE_IDENTIFIER.match(candidate):
        return candidate.upper()

    for pattern in URL_IDENTIFIER_PATTERNS:
        match = pattern.search(candidate)
        if match:
            return match.group(1).upper()
    return None


def build_product_url(
    identifier: str,
    template: str = DEFAULT_PRODUCT_URL_TEMPLATE,
) -> str:
    return template.format(identifier=identifier)
