"""
Scraping layer exports.
"""

from insight_pipeline.scraping.client import API_ENDPOINTS, ScrapeClient
from insight_pipeline.scraping.identifiers import build_product_url, normalize_identifier
from insight_pipeline.scraping.types import ScrapeResult

__all__ = [
    "API_ENDPOINTS",
    "ScrapeClient",
    "ScrapeResult",
    "build_product_url",
    "normalize_identifier",
]
