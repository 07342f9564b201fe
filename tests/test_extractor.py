"""
tests/test_extractor.py

Rule-driven field extraction from free-text analyses.
"""

from __future__ import annotations

import re

import pytest

from llm_analysis.extractor import DEFAULT_FIELD_RULES, FieldRule, extract_fields, label_rule, match_rules
from llm_analysis.schema import UNKNOWN, ExtractedFields

IDENTIFIER = "B0ABCDEFGH"


class TestExtractFields:
    def test_chinese_labels(self, mock_analysis_text: str) -> None:
        fields = extract_fields(mock_analysis_text, IDENTIFIER)

        assert fields.identifier == IDENTIFIER
        assert fields.title == "Mock Wireless Earbuds with Charging Case"
        assert fields.price == "29.99"
        assert fields.rating == "4.4"
        assert fields.full_analysis == mock_analysis_text

    def test_english_markdown_labels(self) -> None:
        text = "**Title:** Acme Blender 3000\n**Price:** $1,299.00\n**Rating:** 4.5 out of 5"
        fields = extract_fields(text, IDENTIFIER)

        assert fields.title == "Acme Blender 3000"
        assert fields.price == "1,299.00"
        assert fields.rating == "4.5"

    def test_full_width_colon(self) -> None:
        fields = extract_fields("产品标题：无线降噪耳机 Pro\n价格：¥199\n评分：4.8", IDENTIFIER)

        assert fields.title == "无线降噪耳机 Pro"
        assert fields.price == "199"
        assert fields.rating == "4.8"

    def test_first_rule_wins(self) -> None:
        text = "Title: English Name\n产品标题: 中文名称"
        assert extract_fields(text, IDENTIFIER).title == "中文名称"

    def test_unmatched_fields_are_unknown(self) -> None:
        fields = extract_fields("The product is nice.", IDENTIFIER)

        assert fields.title == UNKNOWN
        assert fields.price == UNKNOWN
        assert fields.rating == UNKNOWN
        assert fields.full_analysis == "The product is nice."

    def test_empty_text(self) -> None:
        for text in ("", None):
            fields = extract_fields(text, IDENTIFIER)
            assert fields == ExtractedFields(identifier=IDENTIFIER, full_analysis="")

    def test_is_idempotent(self, mock_analysis_text: str) -> None:
        assert extract_fields(mock_analysis_text, IDENTIFIER) == extract_fields(mock_analysis_text, IDENTIFIER)

    def test_custom_rules(self) -> None:
        rules = (FieldRule(field="price", pattern=re.compile(r"Cost=(\d+)")),)
        fields = extract_fields("Cost=42\nTitle: ignored", IDENTIFIER, rules=rules)

        assert fields.price == "42"
        assert fields.title == UNKNOWN


class TestRules:
    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(ValueError):
            FieldRule(field="brand", pattern=re.compile("(.*)"))

    def test_label_rule_strips_bold_markers(self) -> None:
        rule = label_rule("title", "Name")
        assert match_rules("Name: **Bold Product**", (rule,)) == {"title": "Bold Product"}

    def test_default_rule_order(self) -> None:
        assert [rule.field for rule in DEFAULT_FIELD_RULES] == [
            "title",
            "title",
            "price",
            "price",
            "rating",
            "rating",
        ]
