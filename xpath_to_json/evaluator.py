"""Rule evaluation against a parsed document.

RuleEvaluator executes extraction rules and builds the raw data store: an
insertion-ordered mapping from rule name to its JSON value. Every rule's
selector is translated from the XPath subset to CSS before it runs.

Values follow the cardinality-collapse law: no match gives ``None``, one
match gives the value itself and several matches give a list in document
order. ``count`` rules always give an integer.

Failures in one top-level rule (an unsupported selector, an object rule
without children) are recorded as an error string and leave ``None`` under
the rule's name; the remaining rules still run.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any

from xpath_to_json.common.calendar import DayItemsResolver
from xpath_to_json.common.document import DocumentElement
from xpath_to_json.common.exceptions import (
    RuleEvaluationError,
    SelectorError,
)
from xpath_to_json.common.rule_models import (
    CalendarLayout,
    ExtractionRule,
    ExtractKind,
    NestingMode,
)
from xpath_to_json.common.selector_translation import xpath_to_css

logger = logging.getLogger(__name__)

# A top-level for-each rule with this name drives the calendar path, which
# stores the synthetic "months", "days" and "day_items" keys.
CALENDAR_RULE_NAME = "months"


def collapse(values: list[Any]) -> Any:
    """Collapse a list of values by cardinality.

    Examples:
        >>> collapse([]) is None
        True
        >>> collapse(["a"])
        'a'
        >>> collapse(["a", "b"])
        ['a', 'b']
    """
    if not values:
        return None
    if len(values) == 1:
        return values[0]
    return list(values)


def as_sequence(value: Any) -> list[Any]:
    """Treat a rule value as a sequence, wrapping scalars."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def format_rule_error(rule_name: str, error: Exception) -> str:
    """Render a per-rule failure for the result's error list."""
    return f"Error processing rule '{rule_name}': {error}"


def _warn_on_duplicates(rules: list[ExtractionRule], scope: str) -> None:
    counts = Counter(rule.name for rule in rules)
    for name, count in counts.items():
        if count > 1:
            logger.warning(
                "Rule name %r appears %d times in %s; the last one wins",
                name,
                count,
                scope,
            )


class RuleEvaluator:
    """Evaluates extraction rules against one document.

    Attributes:
        document: The parsed document root.
        resolver: Day/item resolver used by for-each rules with a map-item.
    """

    def __init__(
        self,
        document: DocumentElement,
        layout: CalendarLayout | None = None,
    ) -> None:
        self.document = document
        self.resolver = DayItemsResolver(document, layout)

    def run(
        self, rules: list[ExtractionRule]
    ) -> tuple[dict[str, Any], list[str]]:
        """Evaluate top-level rules in declaration order.

        Args:
            rules: The configuration's top-level rules.

        Returns:
            The raw data store and the list of per-rule error messages.
        """
        _warn_on_duplicates(rules, "top-level rules")
        raw: dict[str, Any] = {}
        errors: list[str] = []

        for rule in rules:
            try:
                if (
                    rule.name == CALENDAR_RULE_NAME
                    and rule.nesting is NestingMode.FOR_EACH
                ):
                    self._store_calendar(rule, raw)
                else:
                    raw[rule.name] = self.evaluate(rule)
            except (SelectorError, RuleEvaluationError) as e:
                logger.warning("Rule %r failed: %s", rule.name, e)
                errors.append(format_rule_error(rule.name, e))
                raw[rule.name] = None

        return raw, errors

    def evaluate(
        self, rule: ExtractionRule, scope: DocumentElement | None = None
    ) -> Any:
        """Evaluate one rule.

        Args:
            rule: The rule to evaluate.
            scope: Element whose subtree the rule's selector searches.
                Defaults to the whole document.

        Returns:
            The rule's JSON value.

        Raises:
            SelectorError: If the rule's selector is unsupported or invalid.
            RuleEvaluationError: If the rule cannot be evaluated.
        """
        logger.debug("Evaluating rule %r (%s)", rule.name, rule.xpath)

        if rule.nesting is NestingMode.FOR_EACH:
            return self._evaluate_for_each(rule, scope)

        kind = rule.extract_type
        if kind is ExtractKind.OBJECT:
            return self._evaluate_object(rule, scope)

        elements = self._select(rule, scope)
        if kind is ExtractKind.COUNT:
            return len(elements)
        if kind is ExtractKind.TEXT:
            return collapse(self._texts(elements))
        if kind is ExtractKind.ATTRIBUTE:
            assert rule.attribute is not None
            return collapse(
                [
                    value
                    for element in elements
                    if (value := element.get_attribute(rule.attribute))
                    is not None
                ]
            )
        if kind is ExtractKind.HTML:
            return collapse([element.inner_html() for element in elements])

        raise RuleEvaluationError(
            rule.name, f"unknown extract type {kind!r}"
        )

    def _select(
        self, rule: ExtractionRule, scope: DocumentElement | None
    ) -> list[DocumentElement]:
        selector = xpath_to_css(rule.xpath)
        return (scope or self.document).select(selector)

    @staticmethod
    def _texts(elements: list[DocumentElement]) -> list[str]:
        return [
            text
            for element in elements
            if (text := element.text_content().strip())
        ]

    def _evaluate_object(
        self, rule: ExtractionRule, scope: DocumentElement | None
    ) -> Any:
        if not rule.children:
            raise RuleEvaluationError(
                rule.name,
                "object extraction requires 'children' or 'fields'",
            )
        _warn_on_duplicates(rule.children, f"children of {rule.name!r}")

        objects = []
        for element in self._select(rule, scope):
            objects.append(
                {
                    child.name: self.evaluate(child, element)
                    for child in rule.children
                }
            )
        return collapse(objects)

    def _evaluate_for_each(
        self, rule: ExtractionRule, scope: DocumentElement | None
    ) -> Any:
        assert rule.for_each_item is not None
        result = self.evaluate(rule.for_each_item, scope)
        if rule.item_mapper is None:
            return result

        return [
            self.resolver.items_for_day(item)
            for item in as_sequence(result)
            if isinstance(item, str)
        ]

    def _store_calendar(
        self, rule: ExtractionRule, raw: dict[str, Any]
    ) -> None:
        """Store the month labels, day labels and day/item mapping."""
        assert rule.for_each_item is not None
        raw["months"] = collapse(self._texts(self._select(rule, None)))

        days = self.evaluate(rule.for_each_item)
        raw["days"] = days

        if rule.item_mapper is not None:
            labels = [d for d in as_sequence(days) if isinstance(d, str)]
            raw["day_items"] = self.resolver.day_items(labels)


def evaluate_rule(
    document: DocumentElement,
    rule: ExtractionRule,
    layout: CalendarLayout | None = None,
) -> tuple[Any, str | None]:
    """Evaluate a single rule, capturing expected failures.

    Args:
        document: The parsed document root.
        rule: The rule to evaluate.
        layout: Optional calendar layout for map-item rules.

    Returns:
        ``(value, None)`` on success, ``(None, message)`` on failure.
    """
    try:
        return RuleEvaluator(document, layout).evaluate(rule), None
    except (SelectorError, RuleEvaluationError) as e:
        return None, format_rule_error(rule.name, e)
