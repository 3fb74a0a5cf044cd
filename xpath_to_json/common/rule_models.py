"""Pydantic models for the declarative rule configuration.

A configuration file names a set of rules, each pairing an XPath-subset
selector with what to read from the matched elements, plus an optional
output sample used as the projection template.

Example configuration::

    {
        "name": "products",
        "rules": [
            {"name": "title", "xpath": "//h1/text()", "extract_type": "text"},
            {
                "name": "links",
                "xpath": "//a/@href",
                "extract_type": "attribute",
                "attribute": "href"
            }
        ],
        "output_sample": [{"page": "{title}"}]
    }
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    model_validator,
)

from xpath_to_json.common.exceptions import ConfigurationError


class ExtractKind(str, Enum):
    """What a rule reads from each matched element."""

    TEXT = "text"
    ATTRIBUTE = "attribute"
    HTML = "html"
    COUNT = "count"
    OBJECT = "object"


class NestingMode(str, Enum):
    """How a rule nests other rules.

    A rule nests either through ``children`` (object rules) or through
    ``for-each-item``, never both.
    """

    NONE = "none"
    CHILDREN = "children"
    FOR_EACH = "for_each"


class CalendarLayout(BaseModel):
    """Markup conventions of a grid calendar page.

    The defaults describe the ex-dividend calendar layout where a row of
    day-number cells is immediately followed by a row of item cells.

    Attributes:
        table_marker: Text that marks a table as a calendar table.
        day_cell_selector: CSS selector for day-number cells within a row.
        item_cell_selector: CSS selector for item cells within a row.
        item_leaf_selector: CSS selector for the values inside an item cell.
    """

    model_config = ConfigDict(frozen=True)

    table_marker: str = "Ex-Dividend Calendar"
    day_cell_selector: str = "td.caltabletdnum"
    item_cell_selector: str = "td.caltabletdevt"
    item_leaf_selector: str = "a"


class ExtractionRule(BaseModel):
    """A single named extraction rule.

    Attributes:
        name: Key of the rule's value in the raw data store.
        xpath: Selector expression in the supported XPath subset.
        extract_type: What to read from matched elements.
        attribute: Attribute name, required for attribute extraction only.
        iterate_over: Optional name of another rule's result. Accepted and
            kept on the model; evaluation does not interpret it.
        children: Child rules evaluated within each matched element
            (``object`` rules only). ``fields`` is accepted as an alias.
        for_each_item: Nested rule whose result is iterated.
        map_item: Rule applied per iterated item.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str
    xpath: str
    extract_type: ExtractKind
    attribute: str | None = None
    iterate_over: str | None = None
    children: list[ExtractionRule] | None = Field(
        default=None,
        validation_alias=AliasChoices("children", "fields"),
    )
    for_each_item: ExtractionRule | None = Field(
        default=None, alias="for-each-item"
    )
    map_item: ExtractionRule | None = Field(default=None, alias="map-item")

    @model_validator(mode="after")
    def _check_structure(self) -> ExtractionRule:
        if self.extract_type is ExtractKind.ATTRIBUTE and not self.attribute:
            raise ValueError(
                f"rule '{self.name}': attribute extraction requires "
                "'attribute'"
            )
        if self.attribute and self.extract_type is not ExtractKind.ATTRIBUTE:
            raise ValueError(
                f"rule '{self.name}': 'attribute' is only valid with "
                "extract_type 'attribute'"
            )
        if self.children is not None and self.for_each_item is not None:
            raise ValueError(
                f"rule '{self.name}': 'children' and 'for-each-item' "
                "cannot be combined"
            )
        if (
            self.children is not None
            and self.extract_type is not ExtractKind.OBJECT
        ):
            raise ValueError(
                f"rule '{self.name}': 'children' requires extract_type "
                "'object'"
            )
        return self

    @property
    def nesting(self) -> NestingMode:
        """The nesting style this rule uses."""
        if self.for_each_item is not None:
            return NestingMode.FOR_EACH
        if self.children is not None:
            return NestingMode.CHILDREN
        return NestingMode.NONE

    @property
    def item_mapper(self) -> ExtractionRule | None:
        """The ``map-item`` rule for a for-each rule.

        Looks on the rule itself first, then on its ``for-each-item`` rule.
        """
        if self.map_item is not None:
            return self.map_item
        if self.for_each_item is not None:
            return self.for_each_item.map_item
        return None


class RuleConfiguration(BaseModel):
    """A complete extraction configuration.

    Attributes:
        name: Configuration name, echoed in the result.
        description: Optional free-form description.
        output_sample: Optional JSON template used to shape the output.
        calendar: Layout of calendar pages for day/item association.
        rules: Top-level rules in evaluation order.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str
    description: str | None = None
    output_sample: Any = None
    calendar: CalendarLayout = Field(default_factory=CalendarLayout)
    rules: list[ExtractionRule]


def parse_configuration(data: Any) -> RuleConfiguration:
    """Validate a deserialized configuration.

    Args:
        data: The decoded JSON configuration.

    Returns:
        The validated RuleConfiguration.

    Raises:
        ConfigurationError: If the data does not describe a valid
            configuration.
    """
    try:
        return RuleConfiguration.model_validate(data)
    except ValidationError as e:
        summary = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc']) or '<root>'}: "
            f"{err['msg']}"
            for err in e.errors()
        )
        raise ConfigurationError(
            f"Invalid configuration: {summary}",
            {"error_count": e.error_count()},
        ) from e
