"""
insight_pipeline/validators package marker.
"""

from insight_pipeline.validators.product_validator import (
    ProductValidationReport,
    parse_number,
    validate_product_fields,
)

__all__ = [
    "ProductValidationReport",
    "parse_number",
    "validate_product_fields",
]
