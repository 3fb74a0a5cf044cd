"""Tests for rule evaluation and the raw data store."""

from __future__ import annotations

import logging

import pytest

from xpath_to_json.common.document import DocumentElement
from xpath_to_json.common.exceptions import RuleEvaluationError
from xpath_to_json.common.rule_models import ExtractionRule
from xpath_to_json.evaluator import (
    RuleEvaluator,
    as_sequence,
    collapse,
    evaluate_rule,
)

CARD_XPATH = "//div[contains(concat(' ', @class, ' '), ' product ')]"
DAY_CELL_XPATH = (
    "//td[contains(concat(' ', @class, ' '), ' caltabletdnum ')]/text()"
)


def _rule(**kwargs) -> ExtractionRule:
    return ExtractionRule.model_validate(kwargs)


class TestCollapse:
    """Tests for the cardinality-collapse helpers."""

    def test_collapse(self) -> None:
        """None for nothing, the value for one, a list for several."""
        assert collapse([]) is None
        assert collapse([0]) == 0
        assert collapse([{"a": 1}]) == {"a": 1}
        assert collapse(["a", "b"]) == ["a", "b"]

    def test_as_sequence(self) -> None:
        """Scalars become one-element lists and None becomes empty."""
        assert as_sequence(None) == []
        assert as_sequence("a") == ["a"]
        assert as_sequence(["a", "b"]) == ["a", "b"]


class TestLeafRules:
    """Tests for text, attribute, html and count rules."""

    def test_single_text_match(self, product_document) -> None:
        """One match collapses to the trimmed text itself."""
        evaluator = RuleEvaluator(product_document)
        rule = _rule(name="title", xpath="//h1/text()", extract_type="text")
        assert evaluator.evaluate(rule) == "Catalog"

    def test_multiple_text_matches(self, product_document) -> None:
        """Several matches give a list in document order."""
        evaluator = RuleEvaluator(product_document)
        rule = _rule(name="names", xpath="//h2/text()", extract_type="text")
        assert evaluator.evaluate(rule) == ["Widget", "Gadget"]

    def test_no_match(self, product_document) -> None:
        """No match gives None."""
        evaluator = RuleEvaluator(product_document)
        rule = _rule(name="none", xpath="//h3/text()", extract_type="text")
        assert evaluator.evaluate(rule) is None

    def test_empty_text_dropped(self, product_document) -> None:
        """Elements with only whitespace contribute nothing."""
        evaluator = RuleEvaluator(product_document)
        rule = _rule(
            name="empty",
            xpath="//p[@class='empty']/text()",
            extract_type="text",
        )
        assert evaluator.evaluate(rule) is None

    def test_attribute(self, product_document) -> None:
        """Attribute values are read from each match."""
        evaluator = RuleEvaluator(product_document)
        rule = _rule(
            name="links",
            xpath="//a[contains(@href, '/p/')]/@href",
            extract_type="attribute",
            attribute="href",
        )
        assert evaluator.evaluate(rule) == ["/p/1", "/p/2"]

    def test_missing_attribute_skipped(self, product_document) -> None:
        """Matches without the attribute are skipped."""
        evaluator = RuleEvaluator(product_document)
        rule = _rule(
            name="ids",
            xpath="//div/@data-id",
            extract_type="attribute",
            attribute="data-id",
        )
        assert evaluator.evaluate(rule) == ["p1", "p2"]
        rule = _rule(
            name="titles",
            xpath="//a/@title",
            extract_type="attribute",
            attribute="title",
        )
        assert evaluator.evaluate(rule) is None

    def test_html(self, product_document) -> None:
        """Html rules give the inner markup of each match."""
        evaluator = RuleEvaluator(product_document)
        rule = _rule(
            name="price",
            xpath="//div[@data-id='p1']/span",
            extract_type="html",
        )
        assert evaluator.evaluate(rule) == "$10"

    @pytest.mark.parametrize(
        "xpath, expected", [(CARD_XPATH, 2), ("//table", 0), ("//h1", 1)]
    )
    def test_count(self, product_document, xpath: str, expected: int) -> None:
        """Count rules always give an integer, never None."""
        evaluator = RuleEvaluator(product_document)
        rule = _rule(name="n", xpath=xpath, extract_type="count")
        assert evaluator.evaluate(rule) == expected


class TestObjectRules:
    """Tests for object rules with children."""

    def _cards_rule(self, xpath: str = CARD_XPATH) -> ExtractionRule:
        return _rule(
            name="cards",
            xpath=xpath,
            extract_type="object",
            children=[
                {
                    "name": "name",
                    "xpath": "./h2/text()",
                    "extract_type": "text",
                },
                {
                    "name": "price",
                    "xpath": ".//span[contains(concat(' ', @class, ' '),"
                    " ' price ')]/text()",
                    "extract_type": "text",
                },
                {"name": "links", "xpath": ".//a", "extract_type": "count"},
            ],
        )

    def test_children_scoped_to_each_match(self, product_document) -> None:
        """Each matched element yields one object of child values."""
        evaluator = RuleEvaluator(product_document)
        assert evaluator.evaluate(self._cards_rule()) == [
            {"name": "Widget", "price": "$10", "links": 1},
            {"name": "Gadget", "price": "$20", "links": 1},
        ]

    def test_single_match_collapses(self, product_document) -> None:
        """One matched element gives a single object."""
        evaluator = RuleEvaluator(product_document)
        rule = self._cards_rule("//div[@data-id='p2']")
        assert evaluator.evaluate(rule) == {
            "name": "Gadget",
            "price": "$20",
            "links": 1,
        }

    def test_no_match(self, product_document) -> None:
        """No matched element gives None."""
        evaluator = RuleEvaluator(product_document)
        assert evaluator.evaluate(self._cards_rule("//section")) is None

    def test_nested_objects(self, product_document) -> None:
        """Object rules nest."""
        evaluator = RuleEvaluator(product_document)
        rule = _rule(
            name="page",
            xpath="//body",
            extract_type="object",
            children=[
                {"name": "title", "xpath": ".//h1", "extract_type": "text"},
                {
                    "name": "ids",
                    "xpath": "./div",
                    "extract_type": "object",
                    "fields": [
                        {
                            "name": "link",
                            "xpath": "./a/@href",
                            "extract_type": "attribute",
                            "attribute": "href",
                        }
                    ],
                },
            ],
        )
        assert evaluator.evaluate(rule) == {
            "title": "Catalog",
            "ids": [{"link": "/p/1"}, {"link": "/p/2"}],
        }

    def test_object_without_children(self, product_document) -> None:
        """An object rule with no children cannot be evaluated."""
        evaluator = RuleEvaluator(product_document)
        rule = _rule(name="bare", xpath="//div", extract_type="object")
        with pytest.raises(RuleEvaluationError, match="requires 'children'"):
            evaluator.evaluate(rule)


class TestRun:
    """Tests for evaluating a full rule list."""

    def test_keys_in_declaration_order(self, product_document) -> None:
        """The raw data store keeps rule order."""
        raw, errors = RuleEvaluator(product_document).run(
            [
                _rule(name="b", xpath="//h1", extract_type="text"),
                _rule(name="a", xpath="//h2", extract_type="count"),
            ]
        )
        assert list(raw) == ["b", "a"]
        assert errors == []

    def test_unsupported_selector_isolated(self, product_document) -> None:
        """A failing rule records one error and None; others still run."""
        raw, errors = RuleEvaluator(product_document).run(
            [
                _rule(name="title", xpath="//h1", extract_type="text"),
                _rule(name="parent", xpath="//h2/..", extract_type="text"),
                _rule(name="cards", xpath=CARD_XPATH, extract_type="count"),
            ]
        )

        assert raw == {"title": "Catalog", "parent": None, "cards": 2}
        assert len(errors) == 1
        assert errors[0].startswith("Error processing rule 'parent': ")
        assert "parent steps" in errors[0]

    def test_object_without_children_isolated(self, product_document) -> None:
        """Rule evaluation errors are recorded the same way."""
        raw, errors = RuleEvaluator(product_document).run(
            [_rule(name="bare", xpath="//div", extract_type="object")]
        )
        assert raw == {"bare": None}
        assert errors == [
            "Error processing rule 'bare': object extraction requires "
            "'children' or 'fields' (rule: bare)"
        ]

    def test_duplicate_names_last_wins(self, product_document, caplog) -> None:
        """A repeated rule name keeps the last value and logs a warning."""
        with caplog.at_level(logging.WARNING, logger="xpath_to_json"):
            raw, _ = RuleEvaluator(product_document).run(
                [
                    _rule(name="x", xpath="//h1", extract_type="text"),
                    _rule(name="x", xpath="//h2", extract_type="count"),
                ]
            )

        assert raw == {"x": 2}
        assert "appears 2 times" in caplog.text

    def test_for_each_without_mapper(self, product_document) -> None:
        """Without a map-item, a for-each rule gives its inner result."""
        raw, _ = RuleEvaluator(product_document).run(
            [
                _rule(
                    name="names",
                    xpath="//div",
                    extract_type="text",
                    **{
                        "for-each-item": {
                            "name": "inner",
                            "xpath": "//h2",
                            "extract_type": "text",
                        }
                    },
                )
            ]
        )
        assert raw == {"names": ["Widget", "Gadget"]}


class TestCalendarRules:
    """Tests for for-each rules with a map-item on calendar pages."""

    def _days_rule(self, name: str) -> ExtractionRule:
        return _rule(
            name=name,
            xpath="//table//tr[1]/td/text()",
            extract_type="text",
            **{
                "for-each-item": {
                    "name": "days",
                    "xpath": DAY_CELL_XPATH,
                    "extract_type": "text",
                    "map-item": {
                        "name": "symbol",
                        "xpath": ".//a/text()",
                        "extract_type": "text",
                    },
                }
            },
        )

    def test_items_per_day(self, calendar_document) -> None:
        """Each day label maps to the items in the cell below it."""
        evaluator = RuleEvaluator(calendar_document)
        assert evaluator.evaluate(self._days_rule("symbols")) == [
            ["AAA"],
            ["BBB"],
        ]

    def test_months_rule_stores_calendar_keys(
        self, calendar_document
    ) -> None:
        """A for-each rule named months stores months, days and day_items."""
        raw, errors = RuleEvaluator(calendar_document).run(
            [self._days_rule("months")]
        )

        assert errors == []
        assert raw == {
            "months": "March 2025 - Ex-Dividend Calendar",
            "days": ["1", "2"],
            "day_items": {"1": ["AAA"], "2": ["BBB"]},
        }

    def test_months_rule_across_tables(self, two_month_document) -> None:
        """Without a month filter, items of every calendar table combine."""
        raw, _ = RuleEvaluator(two_month_document).run(
            [self._days_rule("months")]
        )

        assert raw["months"] == [
            "April 2025 - Ex-Dividend Calendar",
            "March 2025 - Ex-Dividend Calendar",
        ]
        assert raw["days"] == ["1", "2", "1", "2", "1"]
        assert raw["day_items"] == {
            "1": ["CCC", "AAA"],
            "2": ["DDD", "EEE", "BBB"],
        }


class TestEvaluateRule:
    """Tests for the single-rule helper."""

    def test_success(self, product_document) -> None:
        """A working rule gives its value and no error."""
        rule = _rule(name="n", xpath="//h2", extract_type="count")
        assert evaluate_rule(product_document, rule) == (2, None)

    def test_failure(self, product_document) -> None:
        """A failing rule gives None and the error message."""
        rule = _rule(name="bad", xpath="//a | //b", extract_type="count")
        value, error = evaluate_rule(product_document, rule)
        assert value is None
        assert error is not None
        assert error.startswith("Error processing rule 'bad'")


class TestContainmentPredicates:
    """Containment predicates either match like XPath or fail the rule."""

    def test_string_value_containment(self) -> None:
        """contains(., 'v') matches every element whose text has v."""
        document = DocumentElement.from_html(
            "<table><tr><td><b>X</b></td><td>X here</td></tr></table>"
        )
        rule = _rule(
            name="cells", xpath="//td[contains(., 'X')]", extract_type="text"
        )
        assert evaluate_rule(document, rule) == (["X", "X here"], None)

    def test_first_text_node_containment_rejected(self) -> None:
        """contains(text(), 'v') is reported instead of over-matching."""
        document = DocumentElement.from_html(
            "<table><tr><td><b>X</b></td><td>X here</td></tr></table>"
        )
        rule = _rule(
            name="cells",
            xpath="//td[contains(text(), 'X')]",
            extract_type="text",
        )
        value, error = evaluate_rule(document, rule)
        assert value is None
        assert error is not None
        assert "contains(text(), ...)" in error

    def test_padded_class_word(self) -> None:
        """A space-padded word matches whole class names only."""
        document = DocumentElement.from_html(
            '<div class="foo bar">f</div><div class="foobar">fb</div>'
        )
        rule = _rule(
            name="divs",
            xpath="//div[contains(concat(' ', @class, ' '), ' foo ')]",
            extract_type="text",
        )
        assert evaluate_rule(document, rule) == ("f", None)

    def test_unpadded_class_substring_rejected(self) -> None:
        """An unpadded class substring is reported instead of dropped."""
        document = DocumentElement.from_html(
            '<div class="foobar">fb</div>'
        )
        rule = _rule(
            name="divs",
            xpath="//div[contains(concat(' ', @class, ' '), 'foo')]",
            extract_type="text",
        )
        value, error = evaluate_rule(document, rule)
        assert value is None
        assert error is not None
        assert "padded with single spaces" in error
